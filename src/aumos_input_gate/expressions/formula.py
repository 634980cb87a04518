"""Boolean submitter formulas.

A submitter expression names the principals that must approve a gate and
the combination of their votes that releases it.  The language is kept
deliberately small and is interpreted here rather than handed to any
general-purpose evaluator:

- identifiers: bare names made of letters, digits and ``_ . @ $ -``, or
  quoted with ``'`` / ``"`` when they contain spaces
- OR: ``or``, ``||``, ``|`` and ``,``
- AND: ``and``, ``&&``, ``&``
- NOT: ``not``, ``!``
- parentheses and the literals ``true`` / ``false``

Precedence is NOT > AND > OR.  Keywords are case-insensitive.

Example
-------
>>> formula = Formula.parse("alice, bob")
>>> sorted(formula.variables)
['alice', 'bob']
>>> formula.evaluate({"alice": True, "bob": False})
True
>>> Formula.parse("alice and (bob or carol)").evaluate(
...     {"alice": True, "bob": False, "carol": False}
... )
False
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

from aumos_input_gate.errors import FormulaError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TokenKind(str, Enum):
    """Lexical categories of the formula language."""

    NAME = "name"
    AND = "and"
    OR = "or"
    NOT = "not"
    TRUE = "true"
    FALSE = "false"
    LPAREN = "("
    RPAREN = ")"
    END = "end"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    position: int


_KEYWORDS: dict[str, TokenKind] = {
    "and": TokenKind.AND,
    "or": TokenKind.OR,
    "not": TokenKind.NOT,
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
}

_SYMBOLS: list[tuple[str, TokenKind]] = [
    ("&&", TokenKind.AND),
    ("||", TokenKind.OR),
    ("&", TokenKind.AND),
    ("|", TokenKind.OR),
    (",", TokenKind.OR),
    ("!", TokenKind.NOT),
    ("(", TokenKind.LPAREN),
    (")", TokenKind.RPAREN),
]

_NAME_RE = re.compile(r"[A-Za-z0-9_.@$\-]+")


def tokenize(expression: str) -> list[Token]:
    """Split *expression* into tokens, ending with a ``END`` token.

    Raises
    ------
    FormulaError
        On an unterminated quote or a character outside the language.
    """
    tokens: list[Token] = []
    pos = 0
    length = len(expression)

    while pos < length:
        char = expression[pos]
        if char.isspace():
            pos += 1
            continue

        if char in ("'", '"'):
            end = expression.find(char, pos + 1)
            if end == -1:
                raise FormulaError("Unterminated quoted name", expression, pos)
            name = expression[pos + 1 : end]
            if not name.strip():
                raise FormulaError("Empty quoted name", expression, pos)
            tokens.append(Token(TokenKind.NAME, name, pos))
            pos = end + 1
            continue

        for symbol, kind in _SYMBOLS:
            if expression.startswith(symbol, pos):
                tokens.append(Token(kind, symbol, pos))
                pos += len(symbol)
                break
        else:
            match = _NAME_RE.match(expression, pos)
            if match is None:
                raise FormulaError(f"Unexpected character {char!r}", expression, pos)
            word = match.group(0)
            kind = _KEYWORDS.get(word.lower(), TokenKind.NAME)
            tokens.append(Token(kind, word, pos))
            pos = match.end()

    tokens.append(Token(TokenKind.END, "", length))
    return tokens


# ---------------------------------------------------------------------------
# Syntax tree
# ---------------------------------------------------------------------------


class Node(ABC):
    """A node of a parsed formula."""

    @abstractmethod
    def evaluate(self, bindings: Mapping[str, bool]) -> bool:
        ...

    @abstractmethod
    def names(self) -> list[str]:
        """Variable names referenced below this node, in source order."""


@dataclass(frozen=True)
class Literal(Node):
    value: bool

    def evaluate(self, bindings: Mapping[str, bool]) -> bool:
        return self.value

    def names(self) -> list[str]:
        return []


@dataclass(frozen=True)
class Variable(Node):
    name: str
    position: int

    def evaluate(self, bindings: Mapping[str, bool]) -> bool:
        try:
            return bool(bindings[self.name])
        except KeyError:
            raise FormulaError(f"Unknown approver {self.name!r}", position=self.position) from None

    def names(self) -> list[str]:
        return [self.name]


@dataclass(frozen=True)
class Not(Node):
    operand: Node

    def evaluate(self, bindings: Mapping[str, bool]) -> bool:
        return not self.operand.evaluate(bindings)

    def names(self) -> list[str]:
        return self.operand.names()


@dataclass(frozen=True)
class And(Node):
    operands: tuple[Node, ...]

    def evaluate(self, bindings: Mapping[str, bool]) -> bool:
        # Every operand is evaluated so unknown names fail regardless of order.
        results = [operand.evaluate(bindings) for operand in self.operands]
        return all(results)

    def names(self) -> list[str]:
        return [name for operand in self.operands for name in operand.names()]


@dataclass(frozen=True)
class Or(Node):
    operands: tuple[Node, ...]

    def evaluate(self, bindings: Mapping[str, bool]) -> bool:
        results = [operand.evaluate(bindings) for operand in self.operands]
        return any(results)

    def names(self) -> list[str]:
        return [name for operand in self.operands for name in operand.names()]


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    """Recursive-descent parser over a token list.

    Grammar::

        expr    := term (OR term)*
        term    := factor (AND factor)*
        factor  := NOT factor | atom
        atom    := NAME | TRUE | FALSE | "(" expr ")"
    """

    def __init__(self, expression: str) -> None:
        self._expression = expression
        self._tokens = tokenize(expression)
        self._index = 0

    def parse(self) -> Node:
        if self._peek().kind is TokenKind.END:
            raise FormulaError("Empty submitter expression", self._expression, 0)
        node = self._expr()
        token = self._peek()
        if token.kind is not TokenKind.END:
            raise FormulaError(f"Unexpected {token.text!r}", self._expression, token.position)
        return node

    def _peek(self) -> Token:
        return self._tokens[self._index]

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        self._index += 1
        return token

    def _expr(self) -> Node:
        operands = [self._term()]
        while self._peek().kind is TokenKind.OR:
            self._advance()
            operands.append(self._term())
        return operands[0] if len(operands) == 1 else Or(tuple(operands))

    def _term(self) -> Node:
        operands = [self._factor()]
        while self._peek().kind is TokenKind.AND:
            self._advance()
            operands.append(self._factor())
        return operands[0] if len(operands) == 1 else And(tuple(operands))

    def _factor(self) -> Node:
        if self._peek().kind is TokenKind.NOT:
            self._advance()
            return Not(self._factor())
        return self._atom()

    def _atom(self) -> Node:
        token = self._advance()
        match token.kind:
            case TokenKind.NAME:
                return Variable(token.text, token.position)
            case TokenKind.TRUE:
                return Literal(True)
            case TokenKind.FALSE:
                return Literal(False)
            case TokenKind.LPAREN:
                node = self._expr()
                closing = self._advance()
                if closing.kind is not TokenKind.RPAREN:
                    raise FormulaError("Missing ')'", self._expression, closing.position)
                return node
            case TokenKind.END:
                raise FormulaError("Unexpected end of expression", self._expression, token.position)
            case _:
                raise FormulaError(f"Unexpected {token.text!r}", self._expression, token.position)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class Formula:
    """A parsed submitter expression.

    Use :meth:`parse` to build one; instances are immutable and safe to
    share between threads.

    Parameters
    ----------
    expression:
        The source text.
    root:
        The parsed syntax tree.
    """

    def __init__(self, expression: str, root: Node) -> None:
        self._expression = expression
        self._root = root

    @classmethod
    def parse(cls, expression: str) -> Formula:
        """Parse *expression*.

        Raises
        ------
        FormulaError
            When the text is not a valid formula.
        """
        root = _Parser(expression).parse()
        logger.debug("Parsed submitter expression %r", expression)
        return cls(expression, root)

    @property
    def expression(self) -> str:
        """The source text the formula was parsed from."""
        return self._expression

    @property
    def variables(self) -> list[str]:
        """Distinct approver names referenced by the formula, in source order."""
        return list(dict.fromkeys(self._root.names()))

    def evaluate(self, bindings: Mapping[str, bool]) -> bool:
        """Evaluate the formula with each approver bound to its vote.

        Parameters
        ----------
        bindings:
            Mapping of approver name to current vote.

        Raises
        ------
        FormulaError
            When the formula references a name absent from *bindings*.
        """
        try:
            return self._root.evaluate(bindings)
        except FormulaError as exc:
            if exc.expression is not None:
                raise
            raise FormulaError(exc.reason, self._expression, exc.position) from None

    def __repr__(self) -> str:
        return f"Formula({self._expression!r})"


def is_simple_name(expression: str) -> bool:
    """Return ``True`` when *expression* is a single bare name.

    Such a submitter names one principal or group and is matched directly
    instead of being tracked per approver.  Whitespace inside the name is
    allowed (``"Domain Users"``); quotes, operators, keywords and
    parentheses make it a formula.
    """
    text = expression.strip()
    if not text or any(quote in text for quote in ("'", '"')):
        return False
    try:
        tokens = tokenize(text)
    except FormulaError:
        return not any(symbol in text for symbol, _ in _SYMBOLS)
    return all(token.kind in (TokenKind.NAME, TokenKind.END) for token in tokens)
