"""Pause gate: the approval state machine for one paused step.

A gate starts ``PENDING`` and settles exactly once, either accepted with
the value bound from the settling submission or rejected with a
:class:`~aumos_input_gate.approval.outcome.FlowInterruptedError`.  Every
decision (settled check, authorization, binding, ledger update, formula
evaluation and the settlement side effects) happens under one per-gate
lock, so concurrent votes and cancellations settle the gate at most once.
The engine's resume or failure entry point is then entered exactly once,
by the thread that settled it.

Settlement side effects, in order:

1. remove the gate from the record's pause registry
2. persist the execution record
3. close the pause period on the flow node

Failures in 1 and 2 are logged as warnings and never undo the settlement.

Example
-------
>>> gate = PauseGate(
...     GateRequest("Release?", submitter="alice,bob"),
...     record=record,
...     node=FlowNode("12"),
...     context=CallbackStepContext(),
...     identity=ContextIdentityProvider(),
... )
>>> gate.start()
>>> outcome = gate.cast_vote(Principal("alice"))
>>> outcome.is_accepted
True
>>> gate.cast_vote(Principal("bob"))
Traceback (most recent call last):
  ...
AlreadySettledError: This input has already been given.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from concurrent.futures import Future
from enum import Enum
from urllib.parse import quote

from aumos_input_gate.approval.ledger import ApprovalLedger
from aumos_input_gate.approval.outcome import FlowInterruptedError, Outcome, Rejection
from aumos_input_gate.approval.registry import PauseRegistry
from aumos_input_gate.approval.request import GateRequest
from aumos_input_gate.engine import worker
from aumos_input_gate.engine.context import StepContext
from aumos_input_gate.engine.execution import ExecutionRecord, FlowNode
from aumos_input_gate.engine.output import hyperlink, post_hyperlink, principal_link
from aumos_input_gate.errors import (
    AlreadySettledError,
    AuthorizationError,
    FormulaError,
    ParameterBindingError,
)
from aumos_input_gate.parameters.binder import ParameterBinder
from aumos_input_gate.permissions.policy import AuthorizationPolicy
from aumos_input_gate.permissions.principal import SYSTEM, Principal, impersonate
from aumos_input_gate.permissions.provider import IdentityProvider

logger = logging.getLogger(__name__)

_PAUSE_LABEL = "Input"
_DISPLAY_NAME_LIMIT = 32


class GateState(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"


class PauseGate:
    """One pending approval request suspending an execution branch.

    Parameters
    ----------
    request:
        What the pause point asks for and who may answer.
    record:
        The execution record that owns the pause registry.
    node:
        The flow node marked as paused; ``None`` when the engine has none.
    context:
        The engine's resume/failure entry points for the paused step.
    identity:
        Provider resolving the current principal and its permissions.
    """

    def __init__(
        self,
        request: GateRequest,
        record: ExecutionRecord,
        node: FlowNode | None,
        context: StepContext,
        identity: IdentityProvider,
    ) -> None:
        self._request = request
        self._record = record
        self._node = node
        self._context = context
        self._ledger: ApprovalLedger | None = request.create_ledger()
        self._policy = AuthorizationPolicy(identity, record, request.submitter, self._ledger)
        self._binder = ParameterBinder(
            request.parameters,
            submitter_parameter=request.submitter_parameter,
            storage_dir=record.root_dir,
        )
        self._outcome: Outcome | None = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Register the gate, mark the pause, and announce it.

        Returns immediately; the engine keeps the branch suspended until
        the gate settles.
        """
        self._record.pause_registry().add(self)
        if self._node is not None:
            self._node.begin_pause(_PAUSE_LABEL)

        output = self._record.output
        if self._binder.accepts_empty:
            output.println(self._request.message)
            output.println(
                f"{post_hyperlink(self.url + 'proceedEmpty', self._request.ok)}"
                f" or {post_hyperlink(self.url + 'abort', 'Abort')}"
            )
        else:
            output.println(hyperlink(self.registry_url, "Input requested"))

        self._record.audit_event(
            "input_requested",
            gate_id=self.id,
            message=self._request.message,
            submitter=self._request.submitter,
        )
        logger.info("Input %s requested in %s", self.id, self._record.url)

    def stop(self, cause: BaseException | None = None) -> "Future[None]":
        """Abort the gate from a teardown path that must not block.

        The abort runs on the shared background executor as the ``SYSTEM``
        principal.  A gate that has settled by then is left alone.

        Returns
        -------
        Future[None]
            Completes once the abort attempt has run.
        """
        logger.debug("Stopping input %s in %s (cause: %r)", self.id, self._record.url, cause)

        def _abort() -> None:
            with impersonate(SYSTEM):
                try:
                    self.cancel(SYSTEM)
                except AlreadySettledError:
                    logger.debug("Input %s already settled; nothing to stop", self.id)

        return worker.submit(_abort)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def cast_vote(
        self,
        principal: Principal | None = None,
        entries: Iterable[Mapping[str, object]] | None = None,
    ) -> Outcome | None:
        """Approve the gate, submitting raw parameter *entries*.

        Parameters
        ----------
        principal:
            The approving principal; resolved from the identity provider
            when ``None``.
        entries:
            Raw parameter entries such as ``{"name": "target", "value": "prod"}``.

        Returns
        -------
        Outcome | None
            The accepted outcome when this vote settled the gate, ``None``
            when the gate keeps waiting for other approvers.

        Raises
        ------
        AlreadySettledError
            When the gate has already settled.
        AuthorizationError
            When the principal may not approve.
        ParameterBindingError
            When the submission does not bind.
        FormulaError
            When the submitter formula cannot be evaluated.
        """
        return self._vote(principal, entries, empty=False)

    def proceed_empty(self, principal: Principal | None = None) -> Outcome | None:
        """Approve without a submission.

        Only valid for gates that declare no parameters and no submitter
        slot; otherwise :class:`ParameterBindingError` is raised.
        """
        return self._vote(principal, None, empty=True)

    def cancel(self, principal: Principal | None = None) -> Outcome:
        """Reject the gate.

        Allowed for principals holding the record's cancel permission and
        for principals allowed to approve.

        Raises
        ------
        AlreadySettledError
            When the gate has already settled.
        AuthorizationError
            When the principal may neither cancel nor approve.
        """
        with self._lock:
            self._check_pending()
            who = self._policy.resolve(principal)
            if not self._policy.can_cancel(who) and not self._policy.can_vote(who):
                logger.info("Access denied: %s may not abort input %s in %s", who, self.id, self._record.url)
                raise AuthorizationError(
                    f"You need to be '{self._request.submitter}' "
                    f"(or have CANCEL permission on {self._record.name}) to cancel this.",
                    who.name,
                )

            rejection = Rejection(None if who.is_system else who.name)
            error = FlowInterruptedError("ABORTED", rejection)
            if who.is_system:
                self._record.output.println("Aborted")
            else:
                self._record.output.println(f"Aborted by {principal_link(who)}")

            outcome = Outcome.rejected(error)
            self._settle(outcome, who)

        self._context.on_failure(error)
        return outcome

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_settled(self) -> bool:
        return self._outcome is not None

    @property
    def state(self) -> GateState:
        return GateState.SETTLED if self._outcome is not None else GateState.PENDING

    @property
    def outcome(self) -> Outcome | None:
        return self._outcome

    @property
    def id(self) -> str:
        return self._request.id

    @property
    def request(self) -> GateRequest:
        return self._request

    @property
    def record(self) -> ExecutionRecord:
        return self._record

    @property
    def policy(self) -> AuthorizationPolicy:
        return self._policy

    @property
    def ledger(self) -> dict[str, bool] | None:
        """Snapshot of the approval ledger, ``None`` for single-approver gates."""
        with self._lock:
            return self._ledger.snapshot() if self._ledger is not None else None

    @property
    def accepts_empty(self) -> bool:
        return self._binder.accepts_empty

    @property
    def display_name(self) -> str:
        message = self._request.message
        if len(message) < _DISPLAY_NAME_LIMIT:
            return message
        return message[:_DISPLAY_NAME_LIMIT] + "..."

    @property
    def registry_url(self) -> str:
        """URL listing the record's pending inputs."""
        return f"/{self._record.url}{PauseRegistry.URL_NAME}/"

    @property
    def url(self) -> str:
        """URL of this gate; action names are appended to it."""
        return f"{self.registry_url}{quote(self.id, safe='')}/"

    def to_dict(self) -> dict[str, object]:
        """Serialisable view used by the pending-input listing."""
        return {
            "id": self.id,
            "display_name": self.display_name,
            "message": self._request.message,
            "ok": self._request.ok,
            "submitter": self._request.submitter,
            "submitter_parameter": self._request.submitter_parameter,
            "parameters": [definition.to_dict() for definition in self._request.parameters],
            "approvals": self.ledger,
            "state": self.state.value,
            "url": self.url,
        }

    def __repr__(self) -> str:
        return f"PauseGate(id={self.id!r}, state={self.state.value!r})"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _vote(
        self,
        principal: Principal | None,
        entries: Iterable[Mapping[str, object]] | None,
        empty: bool,
    ) -> Outcome | None:
        with self._lock:
            self._check_pending()
            who = self._policy.resolve(principal)
            if not self._policy.can_vote(who):
                logger.info("Access denied: %s may not approve input %s in %s", who, self.id, self._record.url)
                raise AuthorizationError(f"You need to be {self._request.submitter} to submit this.", who.name)
            if empty and not self._binder.accepts_empty:
                raise ParameterBindingError(
                    f"Input {self.id} declares parameters; submit them instead of proceeding empty."
                )

            value = self._binder.bind(entries, who)

            satisfied = True
            if self._ledger is not None:
                identities = who.identities()
                if not self._ledger.pending_changes(identities):
                    self._record.output.println(f"{principal_link(who)} has already approved")
                    self._record.audit_event("input_already_approved", gate_id=self.id, principal=who.name)
                    return None
                # A FormulaError must leave the ledger and approvers untouched.
                satisfied = self._formula_satisfied(self._ledger.with_approval(identities))
                self._ledger.approve(identities)

            self._record.add_approver(who.name)
            self._record.output.println(f"Approved by {principal_link(who)}")
            self._record.audit_event("input_approved", gate_id=self.id, principal=who.name)

            if not satisfied:
                self._record.output.println(
                    "Still waiting for others to approve. "
                    f"The configured submitters are: {self._request.submitter}"
                )
                self._record.audit_event(
                    "input_waiting",
                    gate_id=self.id,
                    principal=who.name,
                    approvals=self._ledger.snapshot() if self._ledger is not None else None,
                )
                return None

            outcome = Outcome.accepted(value)
            self._settle(outcome, who)

        self._context.on_success(value)
        return outcome

    def _formula_satisfied(self, votes: Mapping[str, bool]) -> bool:
        """Evaluate the submitter formula against *votes*.  Caller holds the lock."""
        assert self._request.formula is not None
        try:
            return self._request.formula.evaluate(votes)
        except FormulaError:
            logger.error("Submitter expression of input %s in %s cannot be evaluated", self.id, self._record.url)
            raise

    def _check_pending(self) -> None:
        if self._outcome is not None:
            raise AlreadySettledError(self.id)

    def _settle(self, outcome: Outcome, who: Principal) -> None:
        """Set the outcome and run the settlement side effects.  Caller holds the lock."""
        self._outcome = outcome
        try:
            self._record.pause_registry().remove(self)
            self._record.save()
        except (KeyError, OSError):
            logger.warning("Failed to remove input %s from %s", self.id, self._record.url, exc_info=True)
        finally:
            if self._node is None:
                logger.warning("Cannot set pause end time for %s in %s", self.id, self._record.url)
            elif self._node.end_current_pause() is None:
                logger.warning("No open pause to end for %s in %s", self.id, self._record.url)

        event = "input_accepted" if outcome.is_accepted else "input_aborted"
        self._record.audit_event(event, gate_id=self.id, principal=None if who.is_system else who.name)
        logger.info("Input %s in %s settled: %s by %s", self.id, self._record.url, outcome.kind.value, who)
