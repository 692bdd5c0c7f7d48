"""Protocol definitions for proofstep.

Defines the two pluggable interfaces (Engine, SessionOperations) and the
frozen dataclasses engines hand back for structured output (Hypothesis, Goal,
Diagnostic, SourcePosition, NameCandidate).

No pydantic imports allowed in this module -- pure domain protocols.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Protocol, runtime_checkable

# Opaque engine state capture. Only the engine that produced a snapshot
# knows its shape; the session just stores and hands it back.
Snapshot = Any

Severity = Literal["info", "warning", "error"]


@dataclass(frozen=True)
class SourcePosition:
    """A location in the source the engine is attached to."""

    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class Hypothesis:
    """One entry of a goal's local context."""

    name: str
    type: str


@dataclass(frozen=True)
class Goal:
    """Pretty-printed view of one open goal."""

    name: Optional[str]
    hypotheses: list[Hypothesis] = field(default_factory=list)
    target: str = ""
    pretty: str = ""


@dataclass(frozen=True)
class Diagnostic:
    """One entry of the engine's accumulated message log."""

    severity: Severity
    text: str
    position: Optional[SourcePosition] = None


@dataclass(frozen=True)
class NameCandidate:
    """A resolved global declaration plus the trailing field names."""

    name: str
    fields: list[str] = field(default_factory=list)


@runtime_checkable
class Engine(Protocol):
    """What the session core requires from a proof-construction engine.

    The engine owns one mutable "current" context. ``restore`` is the only
    way the session changes it. Failures are signalled by raising the
    matching class from ``proofstep.exceptions``; ``EngineFault`` means the
    context is corrupted and the session must stop.
    """

    def restore(self, snapshot: Snapshot) -> None:
        """Make ``snapshot`` the current context."""
        ...

    def capture_snapshot(self) -> Snapshot:
        """Capture the current context as an immutable snapshot."""
        ...

    def current_goals(self) -> list[Goal]:
        """Open goals of the current context, pretty-printed."""
        ...

    def diagnostics(self) -> list[Diagnostic]:
        """Accumulated message log of the current context."""
        ...

    def parse_step(self, text: str) -> Any:
        """Parse step text. Raises StepParseError."""
        ...

    def execute_step(self, step: Any, budget: int) -> None:
        """Run a parsed step against the current context.

        Raises StepExecutionError (BudgetExceededError when the budget
        runs out).
        """
        ...

    def admit_all_goals(self) -> None:
        """Discharge every open goal without proof."""
        ...

    def build_context(self, specs: Sequence[tuple[Optional[str], str]]) -> Snapshot:
        """Build a fresh context with one goal per (name, type) pair."""
        ...

    def resolve_global_name(self, name: str) -> list[NameCandidate]:
        ...

    def parse_expression(self, text: str) -> Any:
        """Parse an expression. Raises ExpressionParseError."""
        ...

    def unify(self, lhs: Any, rhs: Any) -> Optional[dict[str, Optional[str]]]:
        """Unify two parsed expressions.

        Returns None when no unifier exists, otherwise a mapping from
        metavariable name to its solution text (None if left unassigned).
        Raises ElaborationError.
        """
        ...

    def current_position(self) -> Optional[SourcePosition]:
        ...


@runtime_checkable
class SessionOperations(Protocol):
    """The capability set every concrete session exposes to the registry."""

    def apply_step(self, sid: int, step: str, budget: Optional[int] = None) -> int:
        ...

    def query_state(self, sid: int) -> list[Goal]:
        ...

    def query_messages(self, sid: int) -> list[Diagnostic]:
        ...

    def resolve_name(self, sid: int, name: str) -> list[NameCandidate]:
        ...

    def unify(self, sid: int, lhs: str, rhs: str) -> Optional[dict[str, Optional[str]]]:
        ...

    def new_state(self, specs: Sequence[tuple[Optional[str], str]]) -> int:
        ...

    def give_up(self, sid: int) -> int:
        ...

    def commit(self, sid: int) -> None:
        ...

    def position(self) -> Optional[SourcePosition]:
        ...
