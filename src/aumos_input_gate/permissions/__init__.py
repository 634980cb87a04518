"""Principals, identity providers and the per-gate authorization policy.

Example
-------
::

    from aumos_input_gate.permissions import (
        ContextIdentityProvider,
        Principal,
        impersonate,
    )

    identity = ContextIdentityProvider(cancel_groups=["admins"])
    with impersonate(Principal("alice", frozenset({"admins"}))):
        assert identity.current_principal().name == "alice"
"""
from __future__ import annotations

from aumos_input_gate.permissions.policy import AuthorizationPolicy
from aumos_input_gate.permissions.principal import (
    ANONYMOUS,
    SYSTEM,
    Principal,
    current_principal,
    impersonate,
)
from aumos_input_gate.permissions.provider import (
    ContextIdentityProvider,
    IdentityProvider,
    Permission,
)

__all__ = [
    "ANONYMOUS",
    "SYSTEM",
    "AuthorizationPolicy",
    "ContextIdentityProvider",
    "IdentityProvider",
    "Permission",
    "Principal",
    "current_principal",
    "impersonate",
]
