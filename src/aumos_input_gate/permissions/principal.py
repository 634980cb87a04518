"""Authenticated principals and the per-thread authentication context.

Request-handling threads bind the principal they act for with
:func:`impersonate`; everything downstream reads it back through
:func:`current_principal` at the moment a decision is made, so a change in
identity or group membership is always observed.

Example
-------
>>> with impersonate(Principal("alice", frozenset({"release-managers"}))):
...     current_principal().name
'alice'
>>> current_principal() is ANONYMOUS
True
"""
from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Principal:
    """An identity attempting to vote on or cancel a gate.

    Attributes
    ----------
    name:
        User identifier.
    groups:
        Names of the groups (authorities) the user belongs to.
    """

    name: str
    groups: frozenset[str] = field(default_factory=frozenset)

    def identities(self) -> frozenset[str]:
        """The user name together with every group membership."""
        return frozenset({self.name}) | self.groups

    @property
    def is_system(self) -> bool:
        """True only for the :data:`SYSTEM` instance itself, never for a user of that name."""
        return self is SYSTEM

    def __str__(self) -> str:
        return self.name


SYSTEM = Principal("SYSTEM")
ANONYMOUS = Principal("anonymous")

_context = threading.local()


def current_principal() -> Principal:
    """Return the principal bound to the calling thread (anonymous by default)."""
    return getattr(_context, "principal", ANONYMOUS)


@contextmanager
def impersonate(principal: Principal) -> Iterator[Principal]:
    """Bind *principal* to the calling thread for the duration of the block.

    Nested blocks restore the outer principal on exit.
    """
    previous = getattr(_context, "principal", None)
    _context.principal = principal
    try:
        yield principal
    finally:
        if previous is None:
            del _context.principal
        else:
            _context.principal = previous
