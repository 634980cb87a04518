"""Terminal outcomes of a gate.

A settled gate holds exactly one :class:`Outcome`: accepted with the bound
submission value, or rejected with the :class:`FlowInterruptedError` handed
to the engine's failure entry point.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


@dataclass(frozen=True)
class Rejection:
    """Cause recorded when a gate is aborted.

    Attributes
    ----------
    principal:
        Name of the rejecting principal, or ``None`` when the abort was
        initiated by the system (for example during teardown).
    """

    principal: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @property
    def short_description(self) -> str:
        if self.principal is None:
            return "Rejected"
        return f"Rejected by {self.principal}"


class FlowInterruptedError(Exception):
    """Delivered to the engine when a paused branch is aborted.

    Parameters
    ----------
    result:
        Result the interrupted branch ends with (``"ABORTED"``).
    causes:
        Why the branch was interrupted.
    """

    def __init__(self, result: str, *causes: Rejection) -> None:
        self.result = result
        self.causes: tuple[Rejection, ...] = causes
        detail = "; ".join(cause.short_description for cause in causes) or "no cause"
        super().__init__(f"{result}: {detail}")


class OutcomeKind(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Outcome:
    """The one terminal outcome of a gate.

    Attributes
    ----------
    kind:
        Accepted or rejected.
    value:
        Bound submission value for accepted outcomes (may be ``None``).
    error:
        The interruption for rejected outcomes.
    """

    kind: OutcomeKind
    value: object = None
    error: FlowInterruptedError | None = None

    @classmethod
    def accepted(cls, value: object) -> Outcome:
        return cls(OutcomeKind.ACCEPTED, value=value)

    @classmethod
    def rejected(cls, error: FlowInterruptedError) -> Outcome:
        return cls(OutcomeKind.REJECTED, error=error)

    @property
    def is_accepted(self) -> bool:
        return self.kind is OutcomeKind.ACCEPTED

    @property
    def rejected_by(self) -> str | None:
        """Name of the rejecting principal, if any."""
        if self.error is None:
            return None
        for cause in self.error.causes:
            if cause.principal is not None:
                return cause.principal
        return None
