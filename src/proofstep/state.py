"""Session state: the append-only node arena plus the running flag.

Node ids are indexes into ``nodes``. Nothing here ever edits or removes a
node, so an id handed to a client stays valid for the life of the session.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from proofstep.exceptions import NodeNotFoundError, SessionError
from proofstep.models.node import ROOT_ID, Node

logger = logging.getLogger(__name__)


class SessionState:
    """Owns the node tree and the running flag."""

    def __init__(self, root: Node) -> None:
        if root.parent != ROOT_ID:
            raise SessionError(f"Root node must be its own parent, got {root.parent}")
        self._nodes: list[Node] = [root]
        self._running = True

    @property
    def running(self) -> bool:
        return self._running

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def append(self, node: Node) -> int:
        """Append a node and return its id (the node count before the append)."""
        node_id = len(self._nodes)
        if not 0 <= node.parent < node_id:
            raise SessionError(
                f"Parent {node.parent} does not precede new node {node_id}"
            )
        self._nodes.append(node)
        logger.info("Node %d appended (parent %d)", node_id, node.parent)
        return node_id

    def lookup(self, node_id: int) -> Node:
        """Return the node with ``node_id``.

        Raises:
            NodeNotFoundError: If ``node_id`` is outside ``[0, len(nodes))``.
        """
        if not 0 <= node_id < len(self._nodes):
            raise NodeNotFoundError(node_id, len(self._nodes))
        return self._nodes[node_id]

    def stop(self) -> None:
        """Flip ``running`` to False. Allowed exactly once."""
        if not self._running:
            raise SessionError("Session already stopped")
        self._running = False
        logger.info("Session stopped with %d nodes", len(self._nodes))

    # ------------------------------------------------------------------
    # Tree queries
    # ------------------------------------------------------------------

    def children(self, node_id: int) -> list[int]:
        """Ids of the direct children of ``node_id``, in creation order."""
        self.lookup(node_id)
        return [
            i
            for i, node in enumerate(self._nodes)
            if i != ROOT_ID and node.parent == node_id
        ]

    def path(self, node_id: int) -> list[int]:
        """Ids from the root down to ``node_id`` inclusive."""
        self.lookup(node_id)
        ids = [node_id]
        while node_id != ROOT_ID:
            node_id = self._nodes[node_id].parent
            ids.append(node_id)
        ids.reverse()
        return ids
