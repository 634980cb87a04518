"""Per-gate approval ledger for multi-approver gates.

The ledger records, for every approver named by a submitter formula,
whether that approver has approved yet.  Its key set is fixed when the
ledger is built; votes only move from ``False`` to ``True``.

The ledger has no lock of its own: it is owned by exactly one
:class:`~aumos_input_gate.approval.gate.PauseGate` and only mutated while
that gate's lock is held.

Example
-------
>>> ledger = ApprovalLedger(["alice", "bob"])
>>> ledger.approve({"alice"})
['alice']
>>> ledger.approve({"alice"})
[]
>>> ledger.snapshot()
{'alice': True, 'bob': False}
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator

from aumos_input_gate.expressions.formula import Formula


class ApprovalLedger:
    """Mapping of approver identity to vote, with monotonic updates.

    Parameters
    ----------
    voters:
        Approver identities (user or group names).  Duplicates collapse.

    Raises
    ------
    ValueError
        When *voters* is empty.
    """

    def __init__(self, voters: Iterable[str]) -> None:
        self._votes: dict[str, bool] = {voter: False for voter in voters}
        if not self._votes:
            raise ValueError("An approval ledger needs at least one voter.")

    @classmethod
    def from_formula(cls, formula: Formula) -> ApprovalLedger:
        """Build a ledger with one entry per approver the formula names."""
        return cls(formula.variables)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def approve(self, identities: Iterable[str]) -> list[str]:
        """Record an approval for every voter among *identities*.

        Parameters
        ----------
        identities:
            The identities a principal acts as (its name and groups).

        Returns
        -------
        list[str]
            Voters whose vote changed from ``False`` to ``True``.  An empty
            list means the principal had already approved under every
            identity it holds in this ledger (or holds none).
        """
        changed = self.pending_changes(identities)
        for voter in changed:
            self._votes[voter] = True
        return changed

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def pending_changes(self, identities: Iterable[str]) -> list[str]:
        """Voters among *identities* that :meth:`approve` would flip to ``True``."""
        return sorted({identity for identity in identities if self._votes.get(identity) is False})

    def with_approval(self, identities: Iterable[str]) -> dict[str, bool]:
        """Snapshot of the votes as they would be after approving *identities*."""
        votes = self.snapshot()
        votes.update(dict.fromkeys(self.pending_changes(identities), True))
        return votes

    def is_voter(self, identities: Iterable[str]) -> bool:
        """Return ``True`` when any of *identities* is a ledger key."""
        return any(identity in self._votes for identity in identities)

    def vote_of(self, voter: str) -> bool:
        """Return the current vote of *voter*.

        Raises
        ------
        KeyError
            When *voter* is not in the ledger.
        """
        return self._votes[voter]

    def approved(self) -> list[str]:
        """Voters that have approved, in ledger order."""
        return [voter for voter, vote in self._votes.items() if vote]

    def snapshot(self) -> dict[str, bool]:
        """Copy of the current votes."""
        return dict(self._votes)

    @property
    def voters(self) -> tuple[str, ...]:
        return tuple(self._votes)

    def __contains__(self, voter: object) -> bool:
        return voter in self._votes

    def __iter__(self) -> Iterator[str]:
        return iter(self._votes)

    def __len__(self) -> int:
        return len(self._votes)

    def __repr__(self) -> str:
        return f"ApprovalLedger({self._votes!r})"
