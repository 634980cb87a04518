"""Gate requests: what a pause point asks for and who may answer.

Example
-------
>>> request = GateRequest(
...     message="Deploy to production?",
...     submitter="alice and bob",
...     parameters=(ChoiceParameter("target", choices=["canary", "full"]),),
... )
>>> len(request.id)
32
>>> request.create_ledger().snapshot()
{'alice': False, 'bob': False}
"""
from __future__ import annotations

import hashlib
from collections.abc import Mapping
from dataclasses import dataclass, field

from aumos_input_gate.approval.ledger import ApprovalLedger
from aumos_input_gate.errors import FormulaError
from aumos_input_gate.expressions.formula import Formula, is_simple_name
from aumos_input_gate.parameters.definitions import ParameterDefinition, build_definition


def derive_id(message: str) -> str:
    """Identifier derived from a message: its MD5 hex digest, first character upper-cased."""
    digest = hashlib.md5(message.encode("utf-8")).hexdigest()  # noqa: S324
    return digest[:1].upper() + digest[1:]


@dataclass(frozen=True)
class GateRequest:
    """Immutable description of one pause point.

    Attributes
    ----------
    message:
        Prompt shown to approvers.
    id:
        Identifier unique within the execution record.  Derived from the
        message when omitted.
    ok:
        Label of the accept action.
    submitter:
        ``None`` or blank for an open gate; a single user/group name; or a
        formula over approver names such as ``"alice,bob"`` or
        ``"alice and (bob or carol)"``.
    submitter_parameter:
        Name of a parameter slot receiving the approver's name.
    parameters:
        Parameter definitions the submission is bound against.

    Raises
    ------
    FormulaError
        When *submitter* is a formula that does not parse.
    ValueError
        When *message* is empty or parameter names collide.
    """

    message: str
    id: str = ""
    ok: str = "Proceed"
    submitter: str | None = None
    submitter_parameter: str | None = None
    parameters: tuple[ParameterDefinition, ...] = ()
    formula: Formula | None = field(default=None, init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        if not self.message:
            raise ValueError("A gate request needs a message.")
        if not self.id:
            object.__setattr__(self, "id", derive_id(self.message))
        object.__setattr__(self, "parameters", tuple(self.parameters))

        names = [definition.name for definition in self.parameters]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Duplicate parameter names: {duplicates}")

        submitter = (self.submitter or "").strip()
        object.__setattr__(self, "submitter", submitter or None)
        if submitter and not is_simple_name(submitter):
            formula = Formula.parse(submitter)
            if not formula.variables:
                raise FormulaError("Submitter expression names no approvers", submitter)
            object.__setattr__(self, "formula", formula)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> GateRequest:
        """Build a request from a configuration dict.

        ``parameters`` entries may be definition objects or dicts accepted
        by :func:`~aumos_input_gate.parameters.definitions.build_definition`.
        """
        raw_parameters = list(data.get("parameters") or [])  # type: ignore[call-overload]
        parameters = tuple(
            p if isinstance(p, ParameterDefinition) else build_definition(p) for p in raw_parameters
        )
        return cls(
            message=str(data.get("message", "")),
            id=str(data.get("id") or ""),
            ok=str(data.get("ok") or "Proceed"),
            submitter=data.get("submitter") or None,  # type: ignore[arg-type]
            submitter_parameter=data.get("submitter_parameter") or None,  # type: ignore[arg-type]
            parameters=parameters,
        )

    @property
    def uses_ledger(self) -> bool:
        """``True`` when approvals are tracked per approver."""
        return self.formula is not None

    def create_ledger(self) -> ApprovalLedger | None:
        """A fresh ledger for formula submitters, ``None`` otherwise."""
        if self.formula is None:
            return None
        return ApprovalLedger.from_formula(self.formula)
