"""Authorization policy for a single gate.

Decides whether a principal may vote on a gate and whether it may cancel
it.  Principals and permissions are resolved through the identity
provider on every call; nothing is captured when the gate is created.

Example
-------
>>> policy = AuthorizationPolicy(identity, record, submitter="release-managers")
>>> policy.can_vote(Principal("alice", frozenset({"release-managers"})))
True
>>> policy.can_vote(Principal("mallory"))
False
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aumos_input_gate.permissions.principal import Principal
from aumos_input_gate.permissions.provider import IdentityProvider, Permission

if TYPE_CHECKING:
    from aumos_input_gate.approval.ledger import ApprovalLedger
    from aumos_input_gate.engine.execution import ExecutionRecord

logger = logging.getLogger(__name__)


class AuthorizationPolicy:
    """Vote and cancel eligibility for one gate.

    Parameters
    ----------
    identity:
        Provider used to resolve the current principal and permissions.
    record:
        The execution record the gate belongs to.
    submitter:
        The configured submitter string, or ``None`` for an open gate.
    ledger:
        The gate's approval ledger for formula gates; ``None`` otherwise.
    """

    def __init__(
        self,
        identity: IdentityProvider,
        record: "ExecutionRecord | None",
        submitter: str | None = None,
        ledger: "ApprovalLedger | None" = None,
    ) -> None:
        self._identity = identity
        self._record = record
        self._submitter = submitter.strip() if submitter and submitter.strip() else None
        self._ledger = ledger

    def resolve(self, principal: Principal | None = None) -> Principal:
        """Return *principal*, or the provider's current principal when ``None``."""
        return principal if principal is not None else self._identity.current_principal()

    def can_vote(self, principal: Principal | None = None) -> bool:
        """Return whether the principal may approve this gate.

        Without a ledger, an unset submitter admits everyone; otherwise the
        principal's name or one of its groups must equal the submitter.
        With a ledger, the name or a group must be one of its voters.
        """
        who = self.resolve(principal)
        if self._ledger is not None:
            return self._ledger.is_voter(who.identities())
        if self._submitter is None:
            return True
        return self._submitter in who.identities()

    def can_cancel(self, principal: Principal | None = None) -> bool:
        """Return whether the principal holds the record's cancel permission.

        The ``SYSTEM`` principal may always cancel.
        """
        who = self.resolve(principal)
        if who.is_system:
            return True
        return self._identity.has_permission(self._record, Permission.CANCEL, who)

    @property
    def submitter(self) -> str | None:
        return self._submitter
