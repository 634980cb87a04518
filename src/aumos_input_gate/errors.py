"""Error taxonomy for aumos-input-gate.

Every error a caller can trigger against a pending gate derives from
:class:`InputGateError`.  Each class carries the HTTP status the request
surface renders it with, so the boundary can turn any of them into a
user-visible failure response without a lookup table.

Example
-------
>>> try:
...     gate.cast_vote(principal, [])
... except InputGateError as exc:
...     print(exc.http_status, exc)
409 This input has already been given.
"""
from __future__ import annotations


class InputGateError(Exception):
    """Base class for all user-facing gate errors.

    Attributes
    ----------
    http_status:
        Status code used when the error is rendered by the HTTP surface.
    """

    http_status: int = 400


class AlreadySettledError(InputGateError):
    """Raised when a vote or cancellation reaches a gate that is already settled."""

    http_status = 409

    def __init__(self, gate_id: str) -> None:
        self.gate_id = gate_id
        super().__init__("This input has already been given.")


class AuthorizationError(InputGateError):
    """Raised when the current principal may not vote on or cancel a gate.

    Attributes
    ----------
    principal_name:
        Name of the principal that was denied.
    """

    http_status = 403

    def __init__(self, message: str, principal_name: str | None = None) -> None:
        self.principal_name = principal_name
        super().__init__(message)


class ParameterBindingError(InputGateError):
    """Raised when a submission names an unknown parameter or is malformed."""

    http_status = 400


class FormulaError(InputGateError):
    """Raised when a submitter expression cannot be parsed or evaluated.

    This is a configuration defect: a formula that silently evaluated to
    ``False`` would leave the paused execution waiting forever.

    Attributes
    ----------
    reason:
        The failure without the expression context.
    expression:
        The offending expression text.
    position:
        Character offset of the failure, when known.
    """

    http_status = 500

    def __init__(
        self,
        message: str,
        expression: str | None = None,
        position: int | None = None,
    ) -> None:
        self.reason = message
        self.expression = expression
        self.position = position
        detail = message
        if expression is not None:
            detail = f"{message} (in submitter expression {expression!r}"
            if position is not None:
                detail += f" at offset {position}"
            detail += ")"
        super().__init__(detail)
