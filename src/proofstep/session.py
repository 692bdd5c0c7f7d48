"""ProofSession -- the capability set over one engine and one node tree.

Every operation that reads or changes goal state starts by restoring the
snapshot of the node it targets. The engine's current context is a single
global that is never reset between calls, so skipping the restore would act
on whatever the previous request left behind.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from proofstep.exceptions import InvalidParamsError, StepExecutionError
from proofstep.models.config import SessionConfig
from proofstep.models.node import ROOT_ID, Node
from proofstep.protocols import (
    Diagnostic,
    Engine,
    Goal,
    NameCandidate,
    SourcePosition,
)
from proofstep.state import SessionState

logger = logging.getLogger(__name__)


class ProofSession:
    """Branchable proof session driving a single stateful engine.

    The root node is captured from the engine's starting context when the
    session is created.

    Example::

        session = ProofSession(ReferenceEngine())
        sid = session.new_state([("h", "Nat")])
        child = session.apply_step(sid, "exact 0")
        session.query_state(child)  # []
    """

    def __init__(self, engine: Engine, config: SessionConfig | None = None) -> None:
        self.engine = engine
        self.config = config or SessionConfig()
        self.state = SessionState(
            Node(snapshot=engine.capture_snapshot(), parent=ROOT_ID)
        )

    @property
    def running(self) -> bool:
        return self.state.running

    def _restore(self, sid: int) -> Node:
        node = self.state.lookup(sid)
        self.engine.restore(node.snapshot)
        return node

    def _resolve_budget(self, budget: Optional[int]) -> int:
        if budget is None:
            return self.config.default_budget
        if self.config.max_budget is not None and budget > self.config.max_budget:
            raise InvalidParamsError(
                f"Budget {budget} exceeds the session maximum "
                f"({self.config.max_budget})"
            )
        return budget

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def apply_step(self, sid: int, step: str, budget: Optional[int] = None) -> int:
        """Run ``step`` from node ``sid`` and append the result as a child.

        Atomic: on any failure the engine is put back on ``sid``'s snapshot
        and no node is appended.

        Raises:
            NodeNotFoundError: Unknown ``sid``.
            StepParseError: ``step`` does not parse.
            StepExecutionError: The step failed, ran out of budget, or
                logged error diagnostics.
        """
        limit = self._resolve_budget(budget)
        node = self._restore(sid)
        parsed = self.engine.parse_step(step)
        seen = len(self.engine.diagnostics())

        try:
            self.engine.execute_step(parsed, limit)
        except StepExecutionError as exc:
            self.engine.restore(node.snapshot)
            logger.debug("Step %r failed on node %d: %s", step, sid, exc.messages)
            raise
        except Exception:
            self.engine.restore(node.snapshot)
            raise

        errors = [
            d.text for d in self.engine.diagnostics()[seen:] if d.severity == "error"
        ]
        if errors:
            self.engine.restore(node.snapshot)
            logger.debug("Step %r on node %d logged errors: %s", step, sid, errors)
            raise StepExecutionError(errors)

        return self.state.append(
            Node(snapshot=self.engine.capture_snapshot(), parent=sid, step=step)
        )

    def query_state(self, sid: int) -> list[Goal]:
        self._restore(sid)
        return self.engine.current_goals()

    def query_messages(self, sid: int) -> list[Diagnostic]:
        self._restore(sid)
        return self.engine.diagnostics()

    def resolve_name(self, sid: int, name: str) -> list[NameCandidate]:
        self._restore(sid)
        return self.engine.resolve_global_name(name)

    def unify(self, sid: int, lhs: str, rhs: str) -> Optional[dict[str, Optional[str]]]:
        """Unify two expressions in the context of node ``sid``.

        Returns None when the expressions have no unifier. The tree is never
        changed.
        """
        self._restore(sid)
        left = self.engine.parse_expression(lhs)
        right = self.engine.parse_expression(rhs)
        return self.engine.unify(left, right)

    def new_state(self, specs: Sequence[tuple[Optional[str], str]]) -> int:
        """Start a fresh goal context, attached as a child of the root."""
        snapshot = self.engine.build_context(list(specs))
        return self.state.append(Node(snapshot=snapshot, parent=ROOT_ID))

    def give_up(self, sid: int) -> int:
        """Admit every open goal of ``sid`` and append the result."""
        self._restore(sid)
        self.engine.admit_all_goals()
        return self.state.append(
            Node(snapshot=self.engine.capture_snapshot(), parent=sid)
        )

    def commit(self, sid: int) -> None:
        """Finish the session on node ``sid``. Appends nothing."""
        self._restore(sid)
        self.state.stop()

    def position(self) -> Optional[SourcePosition]:
        return self.engine.current_position()
