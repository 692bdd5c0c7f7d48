"""Tactic language of the reference engine: parsing and execution.

Steps are tactics separated by ``;`` or newlines; ``( ... )`` groups a
sequence. Available tactics::

    intro x y        exact e          apply e          assumption
    sorry / admit    skip             fail "msg"       trace "msg"
    error "msg"      repeat t

Every primitive tactic costs one budget step, and so does every iteration
of ``repeat``. ``error`` logs an error diagnostic without failing; the
session decides what to do with it.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, replace
from typing import Optional, Union

from proofstep.engine.kernel import ElabFailure, Environment, GoalState, ProofState, infer
from proofstep.engine.syntax import Arrow, Expr, ParseFailure, parse_expr, pretty
from proofstep.protocols import Diagnostic, Severity, SourcePosition

# ------------------------------------------------------------------
# AST
# ------------------------------------------------------------------


@dataclass(frozen=True)
class Intro:
    names: tuple[str, ...]


@dataclass(frozen=True)
class Exact:
    term: Expr


@dataclass(frozen=True)
class Apply:
    term: Expr


@dataclass(frozen=True)
class Assumption:
    pass


@dataclass(frozen=True)
class Admit:
    pass


@dataclass(frozen=True)
class Skip:
    pass


@dataclass(frozen=True)
class Fail:
    message: str


@dataclass(frozen=True)
class Log:
    severity: Severity
    message: str


@dataclass(frozen=True)
class Repeat:
    body: "Tactic"


@dataclass(frozen=True)
class Seq:
    tactics: tuple["Tactic", ...]


Tactic = Union[Intro, Exact, Apply, Assumption, Admit, Skip, Fail, Log, Repeat, Seq]

# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_']*")
_HEAD_RE = re.compile(r"\s*([A-Za-z_][A-Za-z0-9_]*)")
_STRING_RE = re.compile(r'"(?:[^"\\]|\\.)*"')


def _split_top_level(text: str) -> list[str]:
    """Split on ``;`` and newlines outside parentheses and string literals."""
    parts: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == '"':
            m = _STRING_RE.match(text, i)
            if m is None:
                raise ParseFailure("unterminated string literal", i + 1)
            i = m.end()
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth < 0:
                raise ParseFailure("unexpected ')'", i + 1)
        elif ch in ";\n" and depth == 0:
            parts.append(text[start:i])
            start = i + 1
        i += 1
    if depth > 0:
        raise ParseFailure("unbalanced '(': expected ')'", len(text) + 1)
    parts.append(text[start:])
    return parts


def _string_arg(tactic: str, rest: str, *, required: bool = True) -> str:
    rest = rest.strip()
    if not rest:
        if required:
            raise ParseFailure(f"'{tactic}' expects a string literal", 1)
        return ""
    m = _STRING_RE.fullmatch(rest)
    if m is None:
        raise ParseFailure(f"'{tactic}' expects a string literal, got {rest!r}", 1)
    try:
        return json.loads(rest)
    except ValueError:
        raise ParseFailure(f"invalid string literal {rest!r}", 1) from None


def _no_args(tactic: str, rest: str) -> None:
    if rest.strip():
        raise ParseFailure(f"'{tactic}' takes no arguments", 1)


def _parse_one(text: str) -> Tactic:
    stripped = text.strip()
    if stripped.startswith("(") and stripped.endswith(")"):
        return parse_tactics(stripped[1:-1])

    m = _HEAD_RE.match(text)
    if m is None:
        raise ParseFailure(f"expected a tactic, got {stripped!r}", 1)
    head, rest = m.group(1), text[m.end():]

    if head == "intro":
        names = rest.split()
        for name in names:
            if not _NAME_RE.fullmatch(name):
                raise ParseFailure(f"'intro' expects names, got {name!r}", 1)
        return Intro(tuple(names))
    if head in ("exact", "apply"):
        term = parse_expr(rest)
        return Exact(term) if head == "exact" else Apply(term)
    if head == "assumption":
        _no_args(head, rest)
        return Assumption()
    if head in ("sorry", "admit"):
        _no_args(head, rest)
        return Admit()
    if head == "skip":
        _no_args(head, rest)
        return Skip()
    if head == "fail":
        return Fail(_string_arg(head, rest, required=False) or "tactic 'fail' failed")
    if head == "trace":
        return Log("info", _string_arg(head, rest))
    if head == "error":
        return Log("error", _string_arg(head, rest))
    if head == "repeat":
        if not rest.strip():
            raise ParseFailure("'repeat' expects a tactic", 1)
        return Repeat(parse_tactics(rest))
    raise ParseFailure(f"unknown tactic '{head}'", 1)


def parse_tactics(text: str) -> Tactic:
    """Parse step text into a tactic. Raises ParseFailure."""
    items = [part for part in _split_top_level(text) if part.strip()]
    if not items:
        raise ParseFailure("empty tactic block", 1)
    tactics = tuple(_parse_one(part) for part in items)
    return tactics[0] if len(tactics) == 1 else Seq(tactics)


# ------------------------------------------------------------------
# Execution
# ------------------------------------------------------------------


class TacticFailure(Exception):
    """Raised when a tactic cannot be applied."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class BudgetExhausted(Exception):
    """Raised when a step uses up its budget. Not caught by ``repeat``."""


class Budget:
    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.used = 0

    def tick(self) -> None:
        self.used += 1
        if self.used > self.limit:
            raise BudgetExhausted()


def _fresh_name(base: str, goal: GoalState) -> str:
    taken = {name for name, _ in goal.hyps}
    if base not in taken:
        return base
    i = 1
    while f"{base}_{i}" in taken:
        i += 1
    return f"{base}_{i}"


class Interpreter:
    """Runs tactics against a ProofState without mutating it."""

    def __init__(
        self,
        env: Environment,
        budget: Budget,
        position: Optional[SourcePosition] = None,
    ) -> None:
        self.env = env
        self.budget = budget
        self.position = position

    def run(self, tactic: Tactic, state: ProofState) -> ProofState:
        if isinstance(tactic, Seq):
            for item in tactic.tactics:
                state = self.run(item, state)
            return state
        if isinstance(tactic, Repeat):
            while True:
                self.budget.tick()
                try:
                    state = self.run(tactic.body, state)
                except TacticFailure:
                    return state

        self.budget.tick()
        if isinstance(tactic, Skip):
            return state
        if isinstance(tactic, Fail):
            raise TacticFailure(tactic.message)
        if isinstance(tactic, Log):
            return self._log(state, tactic.severity, tactic.message)

        goal = state.main_goal
        if goal is None:
            raise TacticFailure("no goals to be proved")
        rest = state.goals[1:]

        if isinstance(tactic, Admit):
            state = self._log(state, "warning", "declaration uses 'sorry'")
            return replace(state, goals=rest)
        if isinstance(tactic, Intro):
            return replace(state, goals=(self._intro(goal, tactic.names), *rest))
        if isinstance(tactic, Assumption):
            for _, hyp_type in reversed(goal.hyps):
                if hyp_type == goal.target:
                    return replace(state, goals=rest)
            raise TacticFailure("no hypothesis matches the goal")
        if isinstance(tactic, Exact):
            term_type = self._infer(tactic.term, goal)
            if term_type != goal.target:
                raise TacticFailure(
                    f"type mismatch: '{pretty(tactic.term)}' has type "
                    f"'{pretty(term_type)}' but is expected to have type "
                    f"'{pretty(goal.target)}'"
                )
            return replace(state, goals=rest)
        if isinstance(tactic, Apply):
            return replace(state, goals=(*self._apply(goal, tactic.term), *rest))
        raise TypeError(f"Unknown tactic node: {tactic!r}")

    def _log(self, state: ProofState, severity: Severity, text: str) -> ProofState:
        diagnostic = Diagnostic(severity=severity, text=text, position=self.position)
        return replace(state, messages=(*state.messages, diagnostic))

    def _infer(self, term: Expr, goal: GoalState) -> Expr:
        try:
            return infer(term, goal, self.env)
        except ElabFailure as exc:
            raise TacticFailure(str(exc)) from None

    def _intro(self, goal: GoalState, names: tuple[str, ...]) -> GoalState:
        for name in names or ("x",):
            if not isinstance(goal.target, Arrow):
                raise TacticFailure(
                    f"no additional binders: goal '{pretty(goal.target)}' "
                    f"is not a function type"
                )
            if not names:
                name = _fresh_name(name, goal)
            goal = replace(
                goal,
                hyps=(*goal.hyps, (name, goal.target.dom)),
                target=goal.target.cod,
            )
        return goal

    def _apply(self, goal: GoalState, term: Expr) -> list[GoalState]:
        ty = self._infer(term, goal)
        premises: list[Expr] = []
        while ty != goal.target:
            if not isinstance(ty, Arrow):
                raise TacticFailure(
                    f"could not unify the conclusion of '{pretty(term)}' "
                    f"with the goal '{pretty(goal.target)}'"
                )
            premises.append(ty.dom)
            ty = ty.cod
        return [GoalState(None, goal.hyps, premise) for premise in premises]
