"""Core data and checks of the reference engine.

ProofState is the engine's whole mutable context and doubles as its
snapshot type: it is immutable, so capturing and restoring are pointer
swaps and every node can share structure with its parent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from proofstep.engine.syntax import (
    App,
    Arrow,
    Const,
    Expr,
    MVar,
    Num,
    metavariables,
    occurs,
    parse_expr,
    pretty,
    spine,
)
from proofstep.protocols import Diagnostic, Goal, Hypothesis, NameCandidate

NAT = Const("Nat")


class ElabFailure(Exception):
    """Raised when an expression is ill-formed in its context."""


@dataclass(frozen=True)
class GoalState:
    name: Optional[str]
    hyps: tuple[tuple[str, Expr], ...]
    target: Expr

    def lookup_local(self, name: str) -> Optional[Expr]:
        """Type of the innermost hypothesis called ``name``."""
        for hyp_name, hyp_type in reversed(self.hyps):
            if hyp_name == name:
                return hyp_type
        return None

    def render(self) -> Goal:
        hypotheses = [Hypothesis(n, pretty(t)) for n, t in self.hyps]
        lines = [f"{h.name} : {h.type}" for h in hypotheses]
        lines.append(f"⊢ {pretty(self.target)}")
        if self.name:
            lines.insert(0, f"case {self.name}")
        return Goal(
            name=self.name,
            hypotheses=hypotheses,
            target=pretty(self.target),
            pretty="\n".join(lines),
        )


@dataclass(frozen=True)
class ProofState:
    goals: tuple[GoalState, ...] = ()
    messages: tuple[Diagnostic, ...] = ()

    @property
    def main_goal(self) -> Optional[GoalState]:
        return self.goals[0] if self.goals else None


_DEFAULT_DECLARATIONS = {
    "Nat": "Type",
    "Nat.zero": "Nat",
    "Nat.succ": "Nat -> Nat",
    "Nat.add": "Nat -> Nat -> Nat",
    "Nat.mul": "Nat -> Nat -> Nat",
    "Bool": "Type",
    "Bool.true": "Bool",
    "Bool.false": "Bool",
    "Bool.not": "Bool -> Bool",
    "True": "Prop",
    "True.intro": "True",
    "Unit": "Type",
    "Unit.unit": "Unit",
}


class Environment:
    """Global declarations plus the namespaces opened for name lookup."""

    def __init__(
        self,
        declarations: dict[str, Expr],
        open_namespaces: list[str] | None = None,
    ) -> None:
        self.declarations = dict(declarations)
        self.open_namespaces = list(open_namespaces or [])

    @classmethod
    def default(cls, open_namespaces: list[str] | None = None) -> Environment:
        decls = {name: parse_expr(ty) for name, ty in _DEFAULT_DECLARATIONS.items()}
        return cls(decls, open_namespaces)

    def _scopes(self) -> list[str]:
        return ["", *self.open_namespaces]

    def resolve(self, name: str) -> Optional[str]:
        """Full name of the declaration ``name`` refers to, if any."""
        for ns in self._scopes():
            full = f"{ns}.{name}" if ns else name
            if full in self.declarations:
                return full
        return None

    def candidates(self, name: str) -> list[NameCandidate]:
        """Every (declaration, trailing fields) reading of a dotted name.

        Readings with fewer trailing fields (longer declaration prefixes)
        come first.
        """
        parts = name.split(".")
        found: list[NameCandidate] = []
        for ns in self._scopes():
            for k in range(len(parts), 0, -1):
                prefix = ".".join(parts[:k])
                full = f"{ns}.{prefix}" if ns else prefix
                if full in self.declarations:
                    candidate = NameCandidate(full, parts[k:])
                    if candidate not in found:
                        found.append(candidate)
        found.sort(key=lambda c: len(c.fields))
        return found


def infer(expr: Expr, goal: Optional[GoalState], env: Environment) -> Expr:
    """Type of ``expr`` in the local context of ``goal``."""
    if isinstance(expr, Num):
        return NAT
    if isinstance(expr, Const):
        local = goal.lookup_local(expr.name) if goal is not None else None
        if local is not None:
            return local
        full = env.resolve(expr.name)
        if full is None:
            raise ElabFailure(f"unknown identifier '{expr.name}'")
        return env.declarations[full]
    if isinstance(expr, MVar):
        raise ElabFailure(f"unexpected metavariable '?{expr.name}'")
    if isinstance(expr, Arrow):
        raise ElabFailure(f"expected a term, got the type '{pretty(expr)}'")

    fn_type = infer(expr.fn, goal, env)
    if not isinstance(fn_type, Arrow):
        raise ElabFailure(
            f"function expected, '{pretty(expr.fn)}' has type '{pretty(fn_type)}'"
        )
    arg_type = infer(expr.arg, goal, env)
    if arg_type != fn_type.dom:
        raise ElabFailure(
            f"application type mismatch: '{pretty(expr.arg)}' has type "
            f"'{pretty(arg_type)}' but is expected to have type "
            f"'{pretty(fn_type.dom)}'"
        )
    return fn_type.cod


def _arity(ty: Expr) -> int:
    n = 0
    while isinstance(ty, Arrow):
        n += 1
        ty = ty.cod
    return n


def normalize_pattern(expr: Expr, goal: Optional[GoalState], env: Environment) -> Expr:
    """Prepare an expression for unification.

    Global names are replaced by their full names; hypotheses and unknown
    identifiers stay as they are (unknown ones act as rigid free
    variables). Over-applied literals and constants are rejected.
    """
    if isinstance(expr, Const):
        if goal is not None and goal.lookup_local(expr.name) is not None:
            return expr
        full = env.resolve(expr.name)
        return Const(full) if full is not None else expr
    if isinstance(expr, (Num, MVar)):
        return expr
    if isinstance(expr, Arrow):
        return Arrow(
            normalize_pattern(expr.dom, goal, env),
            normalize_pattern(expr.cod, goal, env),
        )

    head, args = spine(expr)
    if isinstance(head, Num):
        raise ElabFailure(f"function expected, literal '{head.value}' applied to arguments")
    if isinstance(head, Const):
        head_type = goal.lookup_local(head.name) if goal is not None else None
        if head_type is None:
            full = env.resolve(head.name)
            head_type = env.declarations[full] if full is not None else None
        if head_type is not None and len(args) > _arity(head_type):
            raise ElabFailure(
                f"function expected, '{head.name}' takes at most "
                f"{_arity(head_type)} argument(s), got {len(args)}"
            )
    return App(normalize_pattern(expr.fn, goal, env), normalize_pattern(expr.arg, goal, env))


def unify_exprs(lhs: Expr, rhs: Expr) -> Optional[dict[str, Optional[str]]]:
    """First-order unification with occurs check.

    Returns None when no unifier exists, otherwise every metavariable of
    either side mapped to its solution text, or None if left unassigned.
    """
    subst: dict[str, Expr] = {}

    def walk(e: Expr) -> Expr:
        while isinstance(e, MVar) and e.name in subst:
            e = subst[e.name]
        return e

    def resolve(e: Expr) -> Expr:
        e = walk(e)
        if isinstance(e, App):
            return App(resolve(e.fn), resolve(e.arg))
        if isinstance(e, Arrow):
            return Arrow(resolve(e.dom), resolve(e.cod))
        return e

    def bind(name: str, value: Expr) -> bool:
        if occurs(name, resolve(value)):
            return False
        subst[name] = value
        return True

    def unify(a: Expr, b: Expr) -> bool:
        a, b = walk(a), walk(b)
        if a == b:
            return True
        if isinstance(a, MVar):
            return bind(a.name, b)
        if isinstance(b, MVar):
            return bind(b.name, a)
        if isinstance(a, App) and isinstance(b, App):
            return unify(a.fn, b.fn) and unify(a.arg, b.arg)
        if isinstance(a, Arrow) and isinstance(b, Arrow):
            return unify(a.dom, b.dom) and unify(a.cod, b.cod)
        return False

    if not unify(lhs, rhs):
        return None

    solution: dict[str, Optional[str]] = {}
    for name in metavariables(lhs) + metavariables(rhs):
        if name in solution:
            continue
        value = resolve(MVar(name))
        solution[name] = None if value == MVar(name) else pretty(value)
    return solution
