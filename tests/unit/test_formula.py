"""Tests for the submitter formula language (expressions/formula.py)."""
from __future__ import annotations

from unittest.mock import patch

import pytest

from aumos_input_gate.errors import FormulaError
from aumos_input_gate.expressions.formula import Formula, TokenKind, is_simple_name, tokenize


# ---------------------------------------------------------------------------
# tokenize
# ---------------------------------------------------------------------------


class TestTokenize:
    def test_bare_names_and_symbols(self) -> None:
        kinds = [t.kind for t in tokenize("alice && !bob")]
        assert kinds == [TokenKind.NAME, TokenKind.AND, TokenKind.NOT, TokenKind.NAME, TokenKind.END]

    def test_keywords_are_case_insensitive(self) -> None:
        kinds = [t.kind for t in tokenize("a AND b Or NOT c")]
        assert kinds == [
            TokenKind.NAME,
            TokenKind.AND,
            TokenKind.NAME,
            TokenKind.OR,
            TokenKind.NOT,
            TokenKind.NAME,
            TokenKind.END,
        ]

    def test_comma_is_or(self) -> None:
        assert tokenize("a,b")[1].kind is TokenKind.OR

    def test_quoted_name_keeps_spaces(self) -> None:
        token = tokenize("'Domain Users'")[0]
        assert token.kind is TokenKind.NAME
        assert token.text == "Domain Users"

    def test_name_characters(self) -> None:
        token = tokenize("ops.team-1@corp$")[0]
        assert token.text == "ops.team-1@corp$"

    def test_positions_are_recorded(self) -> None:
        tokens = tokenize("a | b")
        assert [t.position for t in tokens] == [0, 2, 4, 5]

    def test_unterminated_quote(self) -> None:
        with pytest.raises(FormulaError, match="Unterminated"):
            tokenize("'alice")

    def test_unexpected_character(self) -> None:
        with pytest.raises(FormulaError, match="offset 6"):
            tokenize("alice # bob")


# ---------------------------------------------------------------------------
# Formula.parse / variables
# ---------------------------------------------------------------------------


class TestFormulaParse:
    def test_variables_in_source_order(self) -> None:
        formula = Formula.parse("carol and (alice or bob)")
        assert formula.variables == ["carol", "alice", "bob"]

    def test_variables_are_distinct(self) -> None:
        assert Formula.parse("alice or (alice and bob)").variables == ["alice", "bob"]

    def test_literals_have_no_variables(self) -> None:
        assert Formula.parse("true or false").variables == []

    def test_expression_is_kept(self) -> None:
        assert Formula.parse("a,b").expression == "a,b"

    @pytest.mark.parametrize("text", ["", "   ", "alice and", "(alice", "alice bob", "and alice", "alice)"])
    def test_invalid_expressions(self, text: str) -> None:
        with pytest.raises(FormulaError):
            Formula.parse(text)

    def test_error_message_names_expression(self) -> None:
        with pytest.raises(FormulaError) as info:
            Formula.parse("alice and")
        assert info.value.expression == "alice and"
        assert "alice and" in str(info.value)

    def test_repr(self) -> None:
        assert repr(Formula.parse("a")) == "Formula('a')"


# ---------------------------------------------------------------------------
# Formula.evaluate
# ---------------------------------------------------------------------------


class TestFormulaEvaluate:
    def test_or_any_approver(self) -> None:
        formula = Formula.parse("alice,bob")
        assert formula.evaluate({"alice": False, "bob": True}) is True
        assert formula.evaluate({"alice": False, "bob": False}) is False

    def test_and_all_approvers(self) -> None:
        formula = Formula.parse("alice and bob")
        assert formula.evaluate({"alice": True, "bob": False}) is False
        assert formula.evaluate({"alice": True, "bob": True}) is True

    def test_and_binds_tighter_than_or(self) -> None:
        formula = Formula.parse("a or b and c")
        assert formula.evaluate({"a": True, "b": False, "c": False}) is True
        assert formula.evaluate({"a": False, "b": True, "c": False}) is False

    def test_parentheses_override_precedence(self) -> None:
        formula = Formula.parse("(a or b) and c")
        assert formula.evaluate({"a": True, "b": False, "c": False}) is False

    def test_not(self) -> None:
        formula = Formula.parse("!a && b")
        assert formula.evaluate({"a": False, "b": True}) is True
        assert formula.evaluate({"a": True, "b": True}) is False

    def test_double_not(self) -> None:
        assert Formula.parse("not not a").evaluate({"a": True}) is True

    def test_literals(self) -> None:
        assert Formula.parse("a or true").evaluate({"a": False}) is True
        assert Formula.parse("a and false").evaluate({"a": True}) is False

    def test_quoted_names_evaluate(self) -> None:
        formula = Formula.parse("'Domain Users' and bob")
        assert formula.evaluate({"Domain Users": True, "bob": True}) is True

    def test_unknown_name_raises_even_when_short_circuit_possible(self) -> None:
        formula = Formula.parse("a or b")
        with pytest.raises(FormulaError, match="Unknown approver 'b'"):
            formula.evaluate({"a": True})

    def test_unknown_name_error_carries_expression(self) -> None:
        with pytest.raises(FormulaError) as info:
            Formula.parse("alice and zed").evaluate({"alice": True})
        assert info.value.expression == "alice and zed"
        assert info.value.position == 10
        assert info.value.http_status == 500

    def test_unknown_name_message_names_expression_once(self) -> None:
        with pytest.raises(FormulaError) as info:
            Formula.parse("alice and zed").evaluate({"alice": True})
        assert info.value.reason == "Unknown approver 'zed'"
        assert str(info.value).count("in submitter expression") == 1

    def test_error_with_expression_is_not_wrapped_again(self) -> None:
        formula = Formula.parse("alice and bob")
        inner = FormulaError("broken", "alice and bob", 4)
        with patch.object(type(formula._root), "evaluate", side_effect=inner):
            with pytest.raises(FormulaError) as info:
                formula.evaluate({"alice": True, "bob": True})
        assert info.value is inner
        assert str(info.value).count("in submitter expression") == 1


# ---------------------------------------------------------------------------
# is_simple_name
# ---------------------------------------------------------------------------


class TestIsSimpleName:
    @pytest.mark.parametrize("text", ["alice", "release-managers", "Domain Users", "  bob  "])
    def test_simple(self, text: str) -> None:
        assert is_simple_name(text) is True

    @pytest.mark.parametrize(
        "text",
        ["", "alice,bob", "alice and bob", "!alice", "(alice)", "'alice'", "true", "alice | bob"],
    )
    def test_not_simple(self, text: str) -> None:
        assert is_simple_name(text) is False

    def test_name_with_foreign_characters_is_simple(self) -> None:
        assert is_simple_name("jürgen#ops") is True
