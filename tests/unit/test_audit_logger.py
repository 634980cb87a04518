"""Tests for AuditLogger."""
from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from aumos_input_gate.audit.logger import AuditLogger


@pytest.fixture()
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "logs" / "audit.jsonl"


@pytest.fixture()
def logger(log_path: Path) -> AuditLogger:
    return AuditLogger(log_path, execution="job/deploy/42/")


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


class TestLog:
    def test_creates_parent_directories(self, logger: AuditLogger, log_path: Path) -> None:
        logger.log({"event": "input_requested"})
        assert log_path.exists()

    def test_writes_one_json_line(self, logger: AuditLogger, log_path: Path) -> None:
        logger.log({"event": "input_approved", "gate_id": "Deploy", "principal": "alice"})
        lines = log_path.read_text(encoding="utf-8").strip().splitlines()
        assert len(lines) == 1
        record = json.loads(lines[0])
        assert record["principal"] == "alice"

    def test_adds_timestamp_and_execution(self, logger: AuditLogger) -> None:
        logger.log({"event": "input_requested", "execution": "spoofed"})
        record = logger.read_all()[0]
        assert "timestamp" in record
        assert record["execution"] == "job/deploy/42/"

    def test_non_serialisable_values_stringified(self, logger: AuditLogger) -> None:
        logger.log({"event": "input_accepted", "value": Path("/tmp/x")})
        assert logger.read_all()[0]["value"] == "/tmp/x"

    def test_concurrent_writes_do_not_interleave(self, logger: AuditLogger) -> None:
        threads = [
            threading.Thread(target=lambda i=i: logger.log({"event": "input_approved", "n": i}))
            for i in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert logger.count() == 20


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


class TestRead:
    def test_missing_file_is_empty(self, logger: AuditLogger) -> None:
        assert logger.read_all() == []
        assert logger.count() == 0

    def test_query(self, logger: AuditLogger) -> None:
        logger.log({"event": "input_approved", "principal": "alice"})
        logger.log({"event": "input_approved", "principal": "bob"})
        logger.log({"event": "input_accepted", "principal": "bob"})
        assert len(logger.query({"event": "input_approved"})) == 2
        assert len(logger.query({"event": "input_approved", "principal": "bob"})) == 1

    def test_last_n(self, logger: AuditLogger) -> None:
        for i in range(5):
            logger.log({"event": "input_waiting", "n": i})
        assert [r["n"] for r in logger.last_n(2)] == [3, 4]
        assert len(logger.last_n(10)) == 5

    def test_malformed_lines_skipped(
        self, logger: AuditLogger, log_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        logger.log({"event": "input_requested"})
        with log_path.open("a", encoding="utf-8") as fh:
            fh.write("{not json\n\n")
        logger.log({"event": "input_accepted"})
        assert [r["event"] for r in logger.read_all()] == ["input_requested", "input_accepted"]
        assert "Skipping malformed audit line 2" in caplog.text

    def test_properties(self, logger: AuditLogger, log_path: Path) -> None:
        assert logger.log_path == log_path
        assert logger.execution == "job/deploy/42/"
