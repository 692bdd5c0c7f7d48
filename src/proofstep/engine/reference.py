"""ReferenceEngine -- a small first-order goal engine behind the Engine protocol.

Goals are (hypotheses, target) pairs over the expression language in
``proofstep.engine.syntax``; steps are tactic scripts from
``proofstep.engine.tactics``. The whole context is one immutable ProofState,
which is also the snapshot handed to the session.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from proofstep.engine.kernel import (
    ElabFailure,
    Environment,
    GoalState,
    ProofState,
    normalize_pattern,
    unify_exprs,
)
from proofstep.engine.syntax import Expr, ParseFailure, parse_expr
from proofstep.engine.tactics import (
    Budget,
    BudgetExhausted,
    Interpreter,
    Tactic,
    TacticFailure,
    parse_tactics,
)
from proofstep.exceptions import (
    BudgetExceededError,
    ElaborationError,
    EngineFault,
    ExpressionParseError,
    StepExecutionError,
    StepParseError,
)
from proofstep.models.config import EngineConfig
from proofstep.protocols import Diagnostic, Goal, NameCandidate, SourcePosition

logger = logging.getLogger(__name__)

_TOO_DEEP = "expression nested too deeply"


class ReferenceEngine:
    """In-process engine implementing ``proofstep.protocols.Engine``."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        *,
        environment: Environment | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.env = environment or Environment.default(self.config.open_namespaces)
        self._state = ProofState()

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def restore(self, snapshot: ProofState) -> None:
        if not isinstance(snapshot, ProofState):
            raise EngineFault(
                f"Cannot restore a {type(snapshot).__name__}: "
                f"not a snapshot of this engine"
            )
        self._state = snapshot

    def capture_snapshot(self) -> ProofState:
        return self._state

    def current_goals(self) -> list[Goal]:
        return [goal.render() for goal in self._state.goals]

    def diagnostics(self) -> list[Diagnostic]:
        return list(self._state.messages)

    def current_position(self) -> Optional[SourcePosition]:
        return self.config.position

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def parse_step(self, text: str) -> Tactic:
        try:
            return parse_tactics(text)
        except ParseFailure as exc:
            raise StepParseError(str(exc)) from None
        except RecursionError:
            raise StepParseError(_TOO_DEEP) from None

    def execute_step(self, step: Tactic, budget: int) -> None:
        interpreter = Interpreter(self.env, Budget(budget), self.config.position)
        try:
            self._state = interpreter.run(step, self._state)
        except TacticFailure as exc:
            raise StepExecutionError([exc.message]) from None
        except BudgetExhausted:
            raise BudgetExceededError(budget) from None
        except RecursionError:
            raise StepExecutionError([_TOO_DEEP]) from None
        logger.debug("Step used %d/%d budget", interpreter.budget.used, budget)

    def admit_all_goals(self) -> None:
        state = self._state
        if not state.goals:
            return
        warning = Diagnostic(
            severity="warning",
            text="declaration uses 'sorry'",
            position=self.config.position,
        )
        self._state = ProofState(goals=(), messages=(*state.messages, warning))

    def build_context(self, specs: Sequence[tuple[Optional[str], str]]) -> ProofState:
        goals = []
        for index, (name, type_text) in enumerate(specs):
            try:
                target = parse_expr(type_text)
            except ParseFailure as exc:
                label = name if name is not None else f"#{index}"
                raise ExpressionParseError(f"goal {label}: {exc}") from None
            except RecursionError:
                label = name if name is not None else f"#{index}"
                raise ExpressionParseError(f"goal {label}: {_TOO_DEEP}") from None
            goals.append(GoalState(name=name, hyps=(), target=target))
        return ProofState(goals=tuple(goals))

    # ------------------------------------------------------------------
    # Names and expressions
    # ------------------------------------------------------------------

    def resolve_global_name(self, name: str) -> list[NameCandidate]:
        return self.env.candidates(name)

    def parse_expression(self, text: str) -> Expr:
        try:
            return parse_expr(text)
        except ParseFailure as exc:
            raise ExpressionParseError(str(exc)) from None
        except RecursionError:
            raise ExpressionParseError(_TOO_DEEP) from None

    def unify(self, lhs: Expr, rhs: Expr) -> Optional[dict[str, Optional[str]]]:
        goal = self._state.main_goal
        try:
            left = normalize_pattern(lhs, goal, self.env)
            right = normalize_pattern(rhs, goal, self.env)
        except ElabFailure as exc:
            raise ElaborationError(str(exc)) from None
        except RecursionError:
            raise ElaborationError(_TOO_DEEP) from None
        try:
            return unify_exprs(left, right)
        except RecursionError:
            raise ElaborationError(_TOO_DEEP) from None
