"""Identity and permission providers.

The gate never caches who is calling or what they may do: it asks an
:class:`IdentityProvider` each time.  :class:`ContextIdentityProvider` is the
in-process implementation used by the HTTP surface and the CLI; it reads
the principal bound by :func:`~aumos_input_gate.permissions.principal.impersonate`
and checks permission grants that may be changed at runtime.

Example
-------
>>> provider = ContextIdentityProvider(cancel_groups=["admins"])
>>> provider.has_permission(record, Permission.CANCEL, Principal("eve", frozenset({"admins"})))
True
>>> provider.revoke(Permission.CANCEL, "admins")
>>> provider.has_permission(record, Permission.CANCEL, Principal("eve", frozenset({"admins"})))
False
"""
from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Iterable

from aumos_input_gate.permissions.principal import Principal, current_principal

if TYPE_CHECKING:
    from aumos_input_gate.engine.execution import ExecutionRecord

logger = logging.getLogger(__name__)


class Permission(str, Enum):
    """Permissions an execution record can grant."""

    CANCEL = "cancel"


class IdentityProvider(ABC):
    """Supplies the current principal and answers permission checks."""

    @abstractmethod
    def current_principal(self) -> Principal:
        """Return the principal of the current authentication context."""

    @abstractmethod
    def has_permission(
        self,
        record: "ExecutionRecord | None",
        permission: Permission,
        principal: Principal | None = None,
    ) -> bool:
        """Return whether *principal* (default: the current one) holds *permission* on *record*."""


class ContextIdentityProvider(IdentityProvider):
    """Thread-context identity with mutable, name-based permission grants.

    Grants are keyed by user or group name.  A grant made with ``record``
    applies only to that execution record (matched by URL); otherwise it
    applies to every record.  The ``SYSTEM`` principal holds every
    permission.

    Parameters
    ----------
    cancel_users:
        User names granted :attr:`Permission.CANCEL` on every record.
    cancel_groups:
        Group names granted :attr:`Permission.CANCEL` on every record.
    """

    def __init__(
        self,
        cancel_users: Iterable[str] = (),
        cancel_groups: Iterable[str] = (),
    ) -> None:
        self._grants: dict[tuple[str | None, Permission], set[str]] = {}
        self._lock = threading.Lock()
        for name in [*cancel_users, *cancel_groups]:
            self.grant(Permission.CANCEL, name)

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    def grant(
        self,
        permission: Permission,
        name: str,
        record: "ExecutionRecord | None" = None,
    ) -> None:
        """Grant *permission* to the user or group *name*."""
        key = (record.url if record is not None else None, permission)
        with self._lock:
            self._grants.setdefault(key, set()).add(name)
        logger.debug("Granted %s to %r (record=%s)", permission.value, name, key[0])

    def revoke(
        self,
        permission: Permission,
        name: str,
        record: "ExecutionRecord | None" = None,
    ) -> None:
        """Withdraw a grant made by :meth:`grant`.  Unknown grants are ignored."""
        key = (record.url if record is not None else None, permission)
        with self._lock:
            self._grants.get(key, set()).discard(name)
        logger.debug("Revoked %s from %r (record=%s)", permission.value, name, key[0])

    # ------------------------------------------------------------------
    # IdentityProvider
    # ------------------------------------------------------------------

    def current_principal(self) -> Principal:
        return current_principal()

    def has_permission(
        self,
        record: "ExecutionRecord | None",
        permission: Permission,
        principal: Principal | None = None,
    ) -> bool:
        who = principal if principal is not None else self.current_principal()
        if who.is_system:
            return True

        keys = [(None, permission)]
        if record is not None:
            keys.append((record.url, permission))

        identities = who.identities()
        with self._lock:
            return any(identities & self._grants.get(key, set()) for key in keys)
