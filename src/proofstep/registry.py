"""Operation registry: protocol method name -> typed handler.

The table is built once, when the session is attached, from an object that
implements SessionOperations. Each entry pairs the params model used to
validate the request payload with a closure over that object.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from proofstep.models.wire import (
    ApplyStepParams,
    NewStateParams,
    NoParams,
    ResolveNameParams,
    StateParams,
    UnifyParams,
)
from proofstep.protocols import SessionOperations


@dataclass(frozen=True)
class OperationEntry:
    """One registered method."""

    name: str
    params_model: type[BaseModel]
    handler: Callable[[Any], Any]


class OperationRegistry:
    """Fixed table of protocol methods. Owned by a Dispatcher."""

    def __init__(self) -> None:
        self._entries: dict[str, OperationEntry] = {}

    def register(
        self,
        name: str,
        params_model: type[BaseModel],
        handler: Callable[[Any], Any],
    ) -> None:
        """Register ``handler`` under ``name``.

        Raises ValueError if the name is already registered.
        """
        if name in self._entries:
            raise ValueError(f"Operation '{name}' is already registered.")
        self._entries[name] = OperationEntry(name, params_model, handler)

    def get(self, name: str) -> OperationEntry | None:
        return self._entries.get(name)

    def is_registered(self, name: str) -> bool:
        return name in self._entries

    @property
    def operation_names(self) -> set[str]:
        return set(self._entries)


def build_registry(ops: SessionOperations) -> OperationRegistry:
    """Build the method table for ``ops``."""
    registry = OperationRegistry()

    registry.register(
        "applyStep",
        ApplyStepParams,
        lambda p: ops.apply_step(p.state, p.step, p.budget),
    )
    registry.register("queryState", StateParams, lambda p: ops.query_state(p.state))
    registry.register(
        "queryMessages", StateParams, lambda p: ops.query_messages(p.state)
    )
    registry.register(
        "resolveName",
        ResolveNameParams,
        lambda p: ops.resolve_name(p.state, p.name),
    )
    registry.register("unify", UnifyParams, lambda p: ops.unify(p.state, p.lhs, p.rhs))
    registry.register(
        "newState",
        NewStateParams,
        lambda p: ops.new_state([g.as_pair() for g in p.goals]),
    )
    registry.register("giveUp", StateParams, lambda p: ops.give_up(p.state))
    registry.register("commit", StateParams, lambda p: ops.commit(p.state))
    registry.register("position", NoParams, lambda p: ops.position())

    return registry
