"""Node model for the proof-state checkpoint tree."""

from __future__ import annotations

from dataclasses import dataclass

from proofstep.protocols import Snapshot

ROOT_ID = 0


@dataclass(frozen=True)
class Node:
    """One checkpoint in the proof-construction tree.

    Attributes:
        snapshot: Engine state captured when the node was created.
        parent: Id of the node this one was derived from. The root is its
            own parent.
        step: Text of the step that produced the node; empty for the root
            and for administrative transitions (new states, give-ups).
    """

    snapshot: Snapshot
    parent: int
    step: str = ""

    @property
    def is_administrative(self) -> bool:
        return self.step == ""
