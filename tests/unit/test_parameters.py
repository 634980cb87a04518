"""Tests for parameter definitions and ParameterBinder."""
from __future__ import annotations

import base64
import io
from pathlib import Path

import pytest

from aumos_input_gate.errors import ParameterBindingError
from aumos_input_gate.parameters.binder import ParameterBinder
from aumos_input_gate.parameters.definitions import (
    BooleanParameter,
    ChoiceParameter,
    FileParameter,
    FileParameterValue,
    PasswordParameter,
    StringParameter,
    TextParameter,
    build_definition,
)
from aumos_input_gate.permissions.principal import Principal

ALICE = Principal("alice")


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


class TestStringParameters:
    def test_value(self) -> None:
        value = StringParameter("tag").create_value({"name": "tag", "value": "v1"})
        assert value is not None
        assert value.value == "v1"

    def test_trim(self) -> None:
        value = StringParameter("tag", trim=True).create_value({"name": "tag", "value": "  v1 "})
        assert value is not None
        assert value.value == "v1"

    def test_default_used_without_value(self) -> None:
        value = TextParameter("notes", default="none").create_value({"name": "notes"})
        assert value is not None
        assert value.value == "none"

    def test_declines_without_value_or_default(self) -> None:
        assert StringParameter("tag").create_value({"name": "tag"}) is None

    def test_password_default_hidden(self) -> None:
        data = PasswordParameter("token", default="secret").to_dict()
        assert data["default"] is None
        assert data["type"] == "password"


class TestBooleanParameter:
    @pytest.mark.parametrize("raw", [True, "true", "on", "YES", "1"])
    def test_truthy(self, raw: object) -> None:
        value = BooleanParameter("dry_run").create_value({"name": "dry_run", "value": raw})
        assert value is not None and value.value is True

    @pytest.mark.parametrize("raw", [False, "false", "off", "no", "0", ""])
    def test_falsy(self, raw: object) -> None:
        value = BooleanParameter("dry_run").create_value({"name": "dry_run", "value": raw})
        assert value is not None and value.value is False

    def test_missing_is_false(self) -> None:
        value = BooleanParameter("dry_run").create_value({"name": "dry_run"})
        assert value is not None and value.value is False

    def test_garbage_raises(self) -> None:
        with pytest.raises(ParameterBindingError):
            BooleanParameter("dry_run").create_value({"name": "dry_run", "value": "maybe"})


class TestChoiceParameter:
    def test_first_choice_is_default(self) -> None:
        choice = ChoiceParameter("target", choices=["canary", "full"])
        value = choice.create_value({"name": "target"})
        assert value is not None and value.value == "canary"

    def test_illegal_choice(self) -> None:
        choice = ChoiceParameter("target", choices=["canary", "full"])
        with pytest.raises(ParameterBindingError, match="Illegal choice"):
            choice.create_value({"name": "target", "value": "everything"})

    def test_needs_choices(self) -> None:
        with pytest.raises(ValueError):
            ChoiceParameter("target")

    def test_to_dict_lists_choices(self) -> None:
        assert ChoiceParameter("target", choices=["a", "b"]).to_dict()["choices"] == ["a", "b"]


class TestFileParameter:
    def test_bytes(self) -> None:
        value = FileParameter("report").create_value({"name": "report", "file": b"data", "filename": "r.txt"})
        assert isinstance(value, FileParameterValue)
        assert value.filename == "r.txt"
        assert value.stream.read() == b"data"

    def test_base64_mapping(self) -> None:
        payload = {"filename": "r.txt", "content_base64": base64.b64encode(b"hello").decode()}
        value = FileParameter("report").create_value({"name": "report", "file": payload})
        assert isinstance(value, FileParameterValue)
        assert value.stream.read() == b"hello"

    def test_malformed_base64(self) -> None:
        with pytest.raises(ParameterBindingError, match="base64"):
            FileParameter("report").create_value(
                {"name": "report", "file": {"content_base64": "***"}}
            )

    def test_missing_file_declined(self) -> None:
        assert FileParameter("report").create_value({"name": "report"}) is None


class TestBuildDefinition:
    def test_default_type_is_string(self) -> None:
        assert isinstance(build_definition({"name": "tag"}), StringParameter)

    def test_choice(self) -> None:
        definition = build_definition({"type": "Choice", "name": "t", "choices": ["x"]})
        assert isinstance(definition, ChoiceParameter)

    def test_unknown_type(self) -> None:
        with pytest.raises(ValueError, match="Unknown parameter type"):
            build_definition({"type": "color", "name": "c"})

    def test_missing_name(self) -> None:
        with pytest.raises(ValueError, match="name"):
            build_definition({"type": "string"})


# ---------------------------------------------------------------------------
# ParameterBinder
# ---------------------------------------------------------------------------


class TestParameterBinder:
    def test_nothing_bound_is_none(self) -> None:
        assert ParameterBinder().bind([], ALICE) is None
        assert ParameterBinder().bind(None, ALICE) is None

    def test_single_value_collapses(self) -> None:
        binder = ParameterBinder([StringParameter("tag")])
        assert binder.bind([{"name": "tag", "value": "v1"}], ALICE) == "v1"

    def test_many_values_form_dict(self) -> None:
        binder = ParameterBinder([StringParameter("tag"), BooleanParameter("dry_run")])
        value = binder.bind(
            [{"name": "tag", "value": "v1"}, {"name": "dry_run", "value": "true"}],
            ALICE,
        )
        assert value == {"tag": "v1", "dry_run": True}

    def test_unknown_parameter(self) -> None:
        binder = ParameterBinder([StringParameter("tag")])
        with pytest.raises(ParameterBindingError, match="No such parameter definition: other"):
            binder.bind([{"name": "other", "value": "x"}], ALICE)

    @pytest.mark.parametrize("entry", [{"value": "x"}, "tag", {"name": ""}])
    def test_malformed_entry(self, entry: object) -> None:
        binder = ParameterBinder([StringParameter("tag")])
        with pytest.raises(ParameterBindingError, match="Malformed"):
            binder.bind([entry], ALICE)  # type: ignore[list-item]

    def test_declined_values_skipped(self) -> None:
        binder = ParameterBinder([StringParameter("tag"), StringParameter("note")])
        assert binder.bind([{"name": "tag", "value": "v1"}, {"name": "note"}], ALICE) == "v1"

    def test_submitter_slot_alone(self) -> None:
        binder = ParameterBinder(submitter_parameter="approver")
        assert binder.bind([], ALICE) == "alice"

    def test_submitter_slot_with_values(self) -> None:
        binder = ParameterBinder([StringParameter("tag")], submitter_parameter="approver")
        assert binder.bind([{"name": "tag", "value": "v1"}], ALICE) == {"tag": "v1", "approver": "alice"}

    def test_file_copied_into_storage(self, tmp_path: Path) -> None:
        binder = ParameterBinder([FileParameter("report")], storage_dir=tmp_path / "run")
        stored = binder.bind([{"name": "report", "file": io.BytesIO(b"payload")}], ALICE)
        assert stored == tmp_path / "run" / "report"
        assert stored.read_bytes() == b"payload"

    def test_file_without_storage(self) -> None:
        binder = ParameterBinder([FileParameter("report")])
        with pytest.raises(ParameterBindingError, match="no storage"):
            binder.bind([{"name": "report", "file": b"x"}], ALICE)

    def test_accepts_empty(self) -> None:
        assert ParameterBinder().accepts_empty is True
        assert ParameterBinder([StringParameter("tag")]).accepts_empty is False
        assert ParameterBinder(submitter_parameter="who").accepts_empty is False
