"""Append-only JSONL audit trail for gate decisions.

Every gate event is written as one JSON record carrying a UTC ISO-8601
timestamp, the execution it belongs to, and the caller-supplied fields.
Writes are serialised with a ``threading.Lock`` so concurrent votes never
interleave partial lines.

Events written by gates:

- ``input_requested``        : a gate started and is waiting
- ``input_approved``         : a principal approved
- ``input_already_approved`` : a principal approved again (no effect)
- ``input_waiting``          : approval recorded, formula not yet satisfied
- ``input_accepted``         : the gate settled with an accepted outcome
- ``input_aborted``          : the gate settled with a rejection

Example
-------
>>> from pathlib import Path
>>> audit = AuditLogger(Path("/tmp/input_gate_audit.jsonl"), execution="job/deploy/42/")
>>> audit.log({"event": "input_approved", "gate_id": "Deploy", "principal": "alice"})
>>> audit.query({"event": "input_approved"})[0]["principal"]
'alice'
"""
from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

logger = logging.getLogger(__name__)


class AuditLogger:
    """Append-only JSONL audit logger.

    Parameters
    ----------
    log_path:
        Path to the ``.jsonl`` file.  Parent directories are created on
        first write.
    execution:
        Identifier of the execution record, stamped on every record.
    """

    def __init__(self, log_path: Path, execution: str | None = None) -> None:
        self._log_path = Path(log_path)
        self._execution = execution
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def log(self, entry: dict[str, object]) -> None:
        """Append an event record.

        ``timestamp`` and ``execution`` are added automatically and take
        precedence over caller-supplied keys of the same name.

        Parameters
        ----------
        entry:
            Event fields; must be JSON-serialisable (``default=str`` is
            applied to anything that is not).
        """
        record: dict[str, object] = {
            **entry,
            "timestamp": datetime.now(tz=timezone.utc).isoformat(),
            "execution": self._execution,
        }
        with self._lock:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, default=str) + "\n")

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def read_all(self) -> list[dict[str, object]]:
        """All records in write order; empty when the file does not exist."""
        return list(self._iter_records())

    def query(self, filters: dict[str, object]) -> list[dict[str, object]]:
        """Records whose top-level fields equal every value in *filters*."""
        return [
            record
            for record in self._iter_records()
            if all(record.get(k) == v for k, v in filters.items())
        ]

    def count(self) -> int:
        return sum(1 for _ in self._iter_records())

    def last_n(self, n: int) -> list[dict[str, object]]:
        """The *n* most recent records."""
        records = self.read_all()
        return records[-n:] if n < len(records) else records

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _iter_records(self) -> Iterator[dict[str, object]]:
        if not self._log_path.exists():
            return
        with self._lock:
            lines = self._log_path.read_text(encoding="utf-8").splitlines()
        for number, line in enumerate(lines, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping malformed audit line %d in %s", number, self._log_path)

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def execution(self) -> str | None:
        return self._execution
