"""Submitter expression language for multi-approver gates."""
from __future__ import annotations

from aumos_input_gate.expressions.formula import Formula, Token, TokenKind, is_simple_name, tokenize

__all__ = [
    "Formula",
    "Token",
    "TokenKind",
    "is_simple_name",
    "tokenize",
]
