"""Expression syntax for the reference engine.

Grammar::

    expr  := app ('->' expr)?          # arrows associate to the right
    app   := atom atom*                # application by juxtaposition
    atom  := IDENT | NUM | '?' IDENT | '(' expr ')'

``→`` is accepted as a synonym for ``->``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union


class ParseFailure(ValueError):
    """Raised when text does not match the grammar."""

    def __init__(self, message: str, column: int) -> None:
        self.column = column
        super().__init__(f"{message} (column {column})")


@dataclass(frozen=True)
class Const:
    name: str


@dataclass(frozen=True)
class Num:
    value: int


@dataclass(frozen=True)
class MVar:
    name: str


@dataclass(frozen=True)
class App:
    fn: "Expr"
    arg: "Expr"


@dataclass(frozen=True)
class Arrow:
    dom: "Expr"
    cod: "Expr"


Expr = Union[Const, Num, MVar, App, Arrow]

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<arrow>->|→)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<mvar>\?[A-Za-z_][A-Za-z0-9_'.]*)
  | (?P<num>[0-9]+)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_'.]*)
    """,
    re.VERBOSE,
)


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    column: int  # 1-based


def tokenize(text: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            raise ParseFailure(f"unexpected character {text[pos]!r}", pos + 1)
        kind = m.lastgroup
        if kind != "ws":
            if kind == "ident" and (m.group().endswith(".") or ".." in m.group()):
                raise ParseFailure(f"malformed name {m.group()!r}", pos + 1)
            tokens.append(Token(kind, m.group(), pos + 1))
        pos = m.end()
    return tokens


class _Parser:
    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = tokenize(text)
        self.pos = 0

    def peek(self) -> Token | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def end_column(self) -> int:
        return len(self.text) + 1

    def parse(self) -> Expr:
        if not self.tokens:
            raise ParseFailure("expected expression", 1)
        expr = self.expr()
        tok = self.peek()
        if tok is not None:
            raise ParseFailure(f"unexpected {tok.text!r}", tok.column)
        return expr

    def expr(self) -> Expr:
        left = self.app()
        tok = self.peek()
        if tok is not None and tok.kind == "arrow":
            self.pos += 1
            return Arrow(left, self.expr())
        return left

    def app(self) -> Expr:
        fn = self.atom()
        while True:
            tok = self.peek()
            if tok is None or tok.kind not in ("ident", "num", "mvar", "lparen"):
                return fn
            fn = App(fn, self.atom())

    def atom(self) -> Expr:
        tok = self.peek()
        if tok is None:
            raise ParseFailure("unexpected end of input", self.end_column())
        self.pos += 1
        if tok.kind == "ident":
            return Const(tok.text)
        if tok.kind == "num":
            return Num(int(tok.text))
        if tok.kind == "mvar":
            return MVar(tok.text[1:])
        if tok.kind == "lparen":
            inner = self.expr()
            close = self.peek()
            if close is None:
                raise ParseFailure("expected ')'", self.end_column())
            if close.kind != "rparen":
                raise ParseFailure(f"expected ')', got {close.text!r}", close.column)
            self.pos += 1
            return inner
        raise ParseFailure(f"unexpected {tok.text!r}", tok.column)


def parse_expr(text: str) -> Expr:
    """Parse ``text`` into an expression. Raises ParseFailure."""
    return _Parser(text).parse()


def pretty(expr: Expr) -> str:
    """Canonical rendering; ``parse_expr(pretty(e)) == e``."""
    if isinstance(expr, Const):
        return expr.name
    if isinstance(expr, Num):
        return str(expr.value)
    if isinstance(expr, MVar):
        return f"?{expr.name}"
    if isinstance(expr, App):
        arg = pretty(expr.arg)
        if isinstance(expr.arg, (App, Arrow)):
            arg = f"({arg})"
        fn = pretty(expr.fn)
        if isinstance(expr.fn, Arrow):
            fn = f"({fn})"
        return f"{fn} {arg}"
    dom = pretty(expr.dom)
    if isinstance(expr.dom, Arrow):
        dom = f"({dom})"
    return f"{dom} -> {pretty(expr.cod)}"


def spine(expr: Expr) -> tuple[Expr, list[Expr]]:
    """Split ``f a b c`` into ``(f, [a, b, c])``."""
    args: list[Expr] = []
    while isinstance(expr, App):
        args.append(expr.arg)
        expr = expr.fn
    args.reverse()
    return expr, args


def occurs(name: str, expr: Expr) -> bool:
    if isinstance(expr, MVar):
        return expr.name == name
    if isinstance(expr, App):
        return occurs(name, expr.fn) or occurs(name, expr.arg)
    if isinstance(expr, Arrow):
        return occurs(name, expr.dom) or occurs(name, expr.cod)
    return False


def metavariables(expr: Expr) -> list[str]:
    """Metavariable names in order of first occurrence."""
    seen: list[str] = []

    def walk(e: Expr) -> None:
        if isinstance(e, MVar):
            if e.name not in seen:
                seen.append(e.name)
        elif isinstance(e, App):
            walk(e.fn)
            walk(e.arg)
        elif isinstance(e, Arrow):
            walk(e.dom)
            walk(e.cod)

    walk(expr)
    return seen
