"""Convenience API for aumos-input-gate: a blocking ``input`` step.

Example
-------
::

    from aumos_input_gate import InputStep
    step = InputStep(ExecutionRecord("deploy #42", "job/deploy/42/", root_dir=Path("runs/42")))
    target = step.input("Deploy to production?", submitter="release-managers",
                        parameters=[ChoiceParameter("target", choices=["canary", "full"])])

"""
from __future__ import annotations

import itertools
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from aumos_input_gate.approval.gate import PauseGate
from aumos_input_gate.approval.request import GateRequest
from aumos_input_gate.engine.context import CallbackStepContext
from aumos_input_gate.engine.execution import ExecutionRecord, FlowNode
from aumos_input_gate.permissions.provider import ContextIdentityProvider, IdentityProvider

if TYPE_CHECKING:
    from aumos_input_gate.parameters.definitions import ParameterDefinition

logger = logging.getLogger(__name__)


class InputStep:
    """Pause the calling thread until a human answers.

    Wraps :class:`PauseGate` with a blocking wait for the common case of a
    script that cannot continue without approval.  Gates are answered from
    other threads, typically through the HTTP server.

    Parameters
    ----------
    record:
        The execution record the gates are registered in.
    identity:
        Identity provider; a :class:`ContextIdentityProvider` without
        grants when omitted.
    """

    def __init__(
        self,
        record: ExecutionRecord,
        identity: IdentityProvider | None = None,
    ) -> None:
        self._record = record
        self._identity = identity or ContextIdentityProvider()
        self._node_ids = itertools.count(1)

    def start(
        self,
        message: str,
        *,
        id: str = "",
        ok: str = "Proceed",
        submitter: str | None = None,
        submitter_parameter: str | None = None,
        parameters: Sequence["ParameterDefinition"] = (),
    ) -> tuple[PauseGate, CallbackStepContext]:
        """Start a gate without waiting for it.

        Returns
        -------
        tuple[PauseGate, CallbackStepContext]
            The started gate and the context its outcome is delivered to.
        """
        request = GateRequest(
            message,
            id=id,
            ok=ok,
            submitter=submitter,
            submitter_parameter=submitter_parameter,
            parameters=tuple(parameters),
        )
        context = CallbackStepContext()
        gate = PauseGate(
            request,
            record=self._record,
            node=FlowNode(str(next(self._node_ids))),
            context=context,
            identity=self._identity,
        )
        gate.start()
        return gate, context

    def input(
        self,
        message: str,
        *,
        timeout: float | None = None,
        **options: object,
    ) -> object:
        """Start a gate and block until it settles.

        Parameters
        ----------
        message:
            Prompt shown to approvers.
        timeout:
            Seconds to wait before the gate is stopped.  ``None`` waits
            forever.
        options:
            Forwarded to :meth:`start`.

        Returns
        -------
        object
            The bound submission value.

        Raises
        ------
        FlowInterruptedError
            When the gate was aborted, or stopped after *timeout*.
        """
        gate, context = self.start(message, **options)  # type: ignore[arg-type]
        if not context.wait(timeout):
            logger.info("Input %s in %s timed out after %ss", gate.id, self._record.url, timeout)
            gate.stop(TimeoutError(f"No answer within {timeout}s")).result()
            context.wait()

        if context.error is not None:
            raise context.error
        return context.result

    @property
    def record(self) -> ExecutionRecord:
        return self._record

    def __repr__(self) -> str:
        return f"InputStep(record={self._record.url!r})"
