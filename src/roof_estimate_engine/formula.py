"""Quantity formula parsing and evaluation.

Formulas are small arithmetic expressions over roof variables, e.g.
``SQ*1.10``, ``EAVE+RAKE``, ``F1SQ+F2SQ`` or ``(SQ-5)*0.9``::

    expression = term (('+' | '-') term)*
    term       = factor (('*' | '/') factor)*
    factor     = NUMBER | IDENT | '(' expression ')' | '-' factor

Identifiers are case-sensitive and must be present in the bindings.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Union

from .dictionaries import SUGGESTED_FORMULAS
from .errors import (
    DivisionByZero,
    FormulaError,
    FormulaSyntaxError,
    NumericOverflow,
    UnknownVariable,
)

NUMBER = "NUMBER"
IDENT = "IDENT"
OPERATOR = "OPERATOR"
LPAREN = "LPAREN"
RPAREN = "RPAREN"
EOF = "EOF"

_DIGITS = "0123456789"
_IDENT_START = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz_"
_IDENT_CHARS = _IDENT_START + _DIGITS
MAX_DEPTH = 100


@dataclass(frozen=True)
class Token:
    type: str
    text: str
    position: int


@dataclass(frozen=True)
class NumberNode:
    value: float
    position: int


@dataclass(frozen=True)
class VariableNode:
    name: str
    position: int


@dataclass(frozen=True)
class UnaryNode:
    operand: "Node"
    position: int


@dataclass(frozen=True)
class ChainNode:
    """A left-associative run such as ``a+b-c`` or ``a*b/c``.

    Each step in ``rest`` is ``(operator, operand, operator position)``.
    """

    first: "Node"
    rest: tuple[tuple[str, "Node", int], ...]


Node = Union[NumberNode, VariableNode, UnaryNode, ChainNode]


def tokenize(formula: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    length = len(formula)
    while pos < length:
        char = formula[pos]
        if char.isspace():
            pos += 1
            continue
        if char in _DIGITS or char == ".":
            start = pos
            seen_dot = False
            while pos < length and (formula[pos] in _DIGITS or formula[pos] == "."):
                if formula[pos] == ".":
                    if seen_dot:
                        raise FormulaSyntaxError("Malformed number", position=pos)
                    seen_dot = True
                pos += 1
            text = formula[start:pos]
            if text == ".":
                raise FormulaSyntaxError("Malformed number", position=start)
            tokens.append(Token(NUMBER, text, start))
            continue
        if char in _IDENT_START:
            start = pos
            while pos < length and formula[pos] in _IDENT_CHARS:
                pos += 1
            tokens.append(Token(IDENT, formula[start:pos], start))
            continue
        if char in "+-*/":
            tokens.append(Token(OPERATOR, char, pos))
            pos += 1
            continue
        if char == "(":
            tokens.append(Token(LPAREN, char, pos))
            pos += 1
            continue
        if char == ")":
            tokens.append(Token(RPAREN, char, pos))
            pos += 1
            continue
        raise FormulaSyntaxError(f"Unexpected character {char!r}", position=pos)
    tokens.append(Token(EOF, "", length))
    return tokens


class _Parser:
    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0
        self._depth = 0

    def parse(self) -> Node:
        if self._current.type == EOF:
            raise FormulaSyntaxError("Empty expression", position=self._current.position)
        node = self._expression()
        if self._current.type != EOF:
            token = self._current
            raise FormulaSyntaxError(f"Unexpected token {token.text!r}", position=token.position)
        return node

    @property
    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _advance(self) -> Token:
        token = self._current
        if token.type != EOF:
            self._pos += 1
        return token

    def _expression(self) -> Node:
        return self._chain("+-", self._term)

    def _term(self) -> Node:
        return self._chain("*/", self._factor)

    def _chain(self, operators: str, operand: Callable[[], Node]) -> Node:
        first = operand()
        rest: list[tuple[str, Node, int]] = []
        while self._current.type == OPERATOR and self._current.text in operators:
            op = self._advance()
            rest.append((op.text, operand(), op.position))
        return ChainNode(first, tuple(rest)) if rest else first

    def _enter(self, token: Token) -> None:
        self._depth += 1
        if self._depth > MAX_DEPTH:
            raise FormulaSyntaxError("Expression nested too deeply", position=token.position)

    def _factor(self) -> Node:
        token = self._current
        if token.type == OPERATOR and token.text == "-":
            self._advance()
            self._enter(token)
            operand = self._factor()
            self._depth -= 1
            return UnaryNode(operand, token.position)
        if token.type == NUMBER:
            self._advance()
            return NumberNode(float(token.text), token.position)
        if token.type == IDENT:
            self._advance()
            return VariableNode(token.text, token.position)
        if token.type == LPAREN:
            self._advance()
            self._enter(token)
            node = self._expression()
            if self._current.type != RPAREN:
                closing = self._current
                if closing.type == EOF:
                    raise FormulaSyntaxError("Unbalanced parenthesis", position=token.position)
                raise FormulaSyntaxError(
                    f"Expected ')' but found {closing.text!r}", position=closing.position
                )
            self._advance()
            self._depth -= 1
            return node
        if token.type == EOF:
            raise FormulaSyntaxError("Unexpected end of expression", position=token.position)
        raise FormulaSyntaxError(f"Unexpected token {token.text!r}", position=token.position)


def _finite(value: float, position: int) -> float:
    if not math.isfinite(value):
        raise NumericOverflow(position=position)
    return value


def _evaluate(node: Node, bindings: Mapping[str, float]) -> float:
    if isinstance(node, NumberNode):
        return _finite(node.value, node.position)
    if isinstance(node, VariableNode):
        if node.name not in bindings:
            raise UnknownVariable(node.name, position=node.position)
        return _finite(float(bindings[node.name]), node.position)
    if isinstance(node, UnaryNode):
        return -_evaluate(node.operand, bindings)
    result = _evaluate(node.first, bindings)
    for op, operand, position in node.rest:
        right = _evaluate(operand, bindings)
        if op == "+":
            result = result + right
        elif op == "-":
            result = result - right
        elif op == "*":
            result = result * right
        else:
            if right == 0:
                raise DivisionByZero(position=position)
            result = result / right
        result = _finite(result, position)
    return result


def _collect_variables(root: Node) -> Iterable[str]:
    stack = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, VariableNode):
            yield node.name
        elif isinstance(node, UnaryNode):
            stack.append(node.operand)
        elif isinstance(node, ChainNode):
            stack.extend(reversed([node.first, *(operand for _, operand, _ in node.rest)]))


@dataclass(frozen=True)
class Formula:
    """A parsed formula that can be evaluated against many binding sets."""

    source: str
    root: Node

    @property
    def variables(self) -> list[str]:
        seen: dict[str, None] = {}
        for name in _collect_variables(self.root):
            seen.setdefault(name, None)
        return list(seen)

    def evaluate(self, bindings: Mapping[str, float]) -> float:
        return _evaluate(self.root, bindings)


def parse(formula: str) -> Formula:
    return Formula(source=formula, root=_Parser(tokenize(formula)).parse())


def evaluate(formula: str, variables: Mapping[str, float]) -> float:
    """Evaluate ``formula`` against ``variables``.

    Raises a ``FormulaError`` subclass on malformed syntax, unknown
    identifiers, division by zero or non-finite intermediate values. The
    result is not rounded.
    """
    return parse(formula).evaluate(variables)


@dataclass(frozen=True)
class FormulaValidation:
    valid: bool
    required_variables: list[str]
    error: str | None = None
    position: int | None = None


def validate_formula(formula: str | None, known: Iterable[str] | None = None) -> FormulaValidation:
    """Check syntax (and optionally variable names) without evaluating."""
    if formula is None or not formula.strip():
        return FormulaValidation(valid=True, required_variables=[])
    try:
        parsed = parse(formula)
    except FormulaError as exc:
        return FormulaValidation(
            valid=False, required_variables=[], error=str(exc), position=exc.position
        )
    required = parsed.variables
    if known is not None:
        allowed = set(known)
        missing = [name for name in required if name not in allowed]
        if missing:
            return FormulaValidation(
                valid=False,
                required_variables=required,
                error=f"Unknown variable: {missing[0]}",
            )
    return FormulaValidation(valid=True, required_variables=required)


def format_formula(formula: str) -> str:
    rendered = (
        formula.replace("+", " + ")
        .replace("-", " - ")
        .replace("*", " × ")
        .replace("/", " ÷ ")
    )
    return " ".join(rendered.split())


def suggested_formula(category: str) -> str | None:
    return SUGGESTED_FORMULAS.get(category)


__all__ = [
    "Formula",
    "FormulaValidation",
    "Token",
    "evaluate",
    "format_formula",
    "parse",
    "suggested_formula",
    "tokenize",
    "validate_formula",
]
