"""In-memory hierarchical record store with undo/redo.

Nodes live in one flat list in insertion order and point at their parent by
id. Tree queries (children, descendants, ancestors) are linear scans over that
list. Every mutation is recorded as a ``Command`` on a history stack so it can
be undone, and undone commands move to a future stack so they can be redone.

Example::

    store = HierarchicalStore([
        {"id": 1, "parent": None, "label": "root"},
        {"id": 2, "parent": 1, "label": "a"},
    ])
    store.add_item({"id": 3, "parent": 2, "label": "b"})
    store.remove_item(2)   # removes 2 and 3
    store.undo()           # both back
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from treestore.models import Command, CommandAction, Node, NodeId
from treestore.validation import NodeValidator, coerce_node, patch_from

logger = logging.getLogger(__name__)


@dataclass
class StoreConfig:
    """Behaviour switches for a HierarchicalStore.

    Attributes:
        copy_items: Copy incoming Node instances instead of keeping the
            caller's objects.
        strict: Reject duplicate ids and dangling parents with
            ``ValidationError`` on construction, add and update.
        max_history: Keep at most this many undo entries; the oldest are
            dropped first. None means unbounded.
    """

    copy_items: bool = True
    strict: bool = False
    max_history: int | None = None

    def __post_init__(self) -> None:
        if self.max_history is not None and self.max_history < 1:
            raise ValueError(f"max_history must be positive, got {self.max_history}")


class HierarchicalStore:
    """Flat node list with tree queries and an undo/redo command log.

    Lookups by id return the first match. Misses never raise: queries
    return None or an empty list, and mutations against a missing target
    are no-ops.

    Args:
        items: Initial nodes, as Node instances or flat mappings.
        config: Optional StoreConfig. Defaults to permissive behaviour.
    """

    def __init__(
        self,
        items: Iterable[Node | Mapping[str, Any]] = (),
        config: StoreConfig | None = None,
    ) -> None:
        self._config = config or StoreConfig()
        self._validator = NodeValidator()
        self._items: list[Node] = [
            coerce_node(item, copy_node=self._config.copy_items) for item in items
        ]
        if self._config.strict:
            self._validator.validate_nodes(self._items)
        self._history: list[Command] = []
        self._future: list[Command] = []

    @property
    def config(self) -> StoreConfig:
        """Return the active configuration."""
        return self._config

    # ---------------------------------------------------------------
    # Queries
    # ---------------------------------------------------------------

    def get_all(self) -> list[Node]:
        """Return every node in insertion order."""
        return list(self._items)

    def get_item(self, node_id: NodeId) -> Node | None:
        """Return the first node with *node_id*, or None."""
        for node in self._items:
            if node.id == node_id:
                return node
        return None

    def get_children(self, node_id: NodeId) -> list[Node]:
        """Return the direct children of *node_id* in insertion order."""
        return [node for node in self._items if node.parent == node_id]

    def get_all_children(self, node_id: NodeId) -> list[Node]:
        """
        Return all descendants of *node_id* in breadth-first order.

        Each node is visited at most once, and *node_id* itself is never
        part of the result even when a parent cycle leads back to it.
        """
        descendants: list[Node] = []
        visited: set[int] = set()
        queue = deque(self.get_children(node_id))

        while queue:
            node = queue.popleft()
            if id(node) in visited or node.id == node_id:
                continue
            visited.add(id(node))
            descendants.append(node)
            queue.extend(self.get_children(node.id))

        return descendants

    def get_all_parents(self, node_id: NodeId) -> list[Node]:
        """
        Return the ancestors of *node_id*, root-most first.

        The walk stops at a root, at a parent id with no matching node, or
        when it would revisit a node.
        """
        parents: list[Node] = []
        current = self.get_item(node_id)
        if current is None:
            return parents

        visited = {id(current)}
        while current.parent is not None:
            parent = self.get_item(current.parent)
            if parent is None or id(parent) in visited:
                break
            visited.add(id(parent))
            parents.append(parent)
            current = parent

        parents.reverse()
        return parents

    def get_roots(self) -> list[Node]:
        """Return nodes without a parent in insertion order."""
        return [node for node in self._items if node.is_root]

    def get_depth(self, node_id: NodeId) -> int:
        """Return the number of reachable ancestors of *node_id*."""
        return len(self.get_all_parents(node_id))

    # ---------------------------------------------------------------
    # Mutations
    # ---------------------------------------------------------------

    def add_item(self, item: Node | Mapping[str, Any]) -> Node:
        """Append a node and record the insertion.

        Args:
            item: Node or flat mapping with an ``id``.

        Returns:
            The node as stored.

        Raises:
            ValidationError: In strict mode, on duplicate id or dangling parent.
        """
        node = coerce_node(item, copy_node=self._config.copy_items)
        if self._config.strict:
            self._validator.check_insert(node, self._items)

        self._items.append(node)
        self._record(Command.add(node.copy()))
        logger.debug("Added node %r under %r", node.id, node.parent)
        return node

    def remove_item(self, node_id: NodeId) -> list[Node]:
        """Remove *node_id* and its whole subtree, recording the removal.

        An id with no match still records an entry; any nodes that name it
        as parent are removed along with their subtrees.

        Returns:
            The removed nodes in store order.
        """
        removed = self._remove_subtree(node_id)
        self._record(Command.remove(node_id, [node.copy() for node in removed]))
        return removed

    def update_item(self, patch: Node | Mapping[str, Any]) -> Node | None:
        """Merge *patch* into the node with ``patch["id"]``.

        Fields in the patch override; every other field is preserved. With
        no matching node nothing is recorded.

        Returns:
            The merged node, or None when no node matched.

        Raises:
            ValidationError: In strict mode, when the patch points the node
                at a missing parent or at itself.
        """
        fields = patch_from(patch)
        if "id" not in fields:
            logger.debug("Ignoring update without an id: %s", fields)
            return None

        index = self._index_of(fields["id"])
        if index is None:
            logger.debug("Ignoring update for unknown node %r", fields["id"])
            return None

        if self._config.strict:
            self._validator.check_update(fields, self._items)

        previous = self._items[index].copy()
        merged = self._apply_update(fields)
        self._record(Command.update(fields, previous))
        return merged

    # ---------------------------------------------------------------
    # Undo / redo
    # ---------------------------------------------------------------

    @property
    def history(self) -> tuple[Command, ...]:
        """Undoable commands, oldest first."""
        return tuple(self._history)

    @property
    def future(self) -> tuple[Command, ...]:
        """Redoable commands, the next one to redo last."""
        return tuple(self._future)

    @property
    def can_undo(self) -> bool:
        return bool(self._history)

    @property
    def can_redo(self) -> bool:
        return bool(self._future)

    def undo(self) -> Command | None:
        """Reverse the most recent command.

        Returns:
            The command that was undone, or None if history is empty.
        """
        if not self._history:
            return None

        command = self._history.pop()
        if command.action == CommandAction.ADD and command.node is not None:
            index = self._last_index_of(command.node.id)
            if index is not None:
                del self._items[index]
        elif command.action == CommandAction.REMOVE:
            self._items.extend(node.copy() for node in command.removed)
        elif command.action == CommandAction.UPDATE and command.previous is not None:
            index = self._index_of(command.previous.id)
            if index is not None:
                self._items[index] = command.previous.copy()

        self._future.append(command)
        logger.debug("Undid %s", command.action.value)
        return command

    def redo(self) -> Command | None:
        """Re-apply the most recently undone command.

        Replays do not clear the future stack and add no extra history.

        Returns:
            The command that was redone, or None if there is nothing to redo.
        """
        if not self._future:
            return None

        command = self._future.pop()
        if command.action == CommandAction.ADD and command.node is not None:
            self._items.append(command.node.copy())
        elif command.action == CommandAction.REMOVE:
            self._remove_subtree(command.target_id)
        elif command.action == CommandAction.UPDATE:
            self._apply_update(command.patch)

        self._history.append(command)
        logger.debug("Redid %s", command.action.value)
        return command

    def clear_history(self) -> None:
        """Forget all undo and redo entries. Nodes are untouched."""
        self._history.clear()
        self._future.clear()

    # ---------------------------------------------------------------
    # Reporting
    # ---------------------------------------------------------------

    def get_statistics(self) -> dict[str, Any]:
        """Get store statistics for display."""
        parent_ids = {node.parent for node in self._items if node.parent is not None}
        depths = [self.get_depth(node.id) for node in self._items]
        return {
            "total_nodes": len(self._items),
            "root_nodes": len(self.get_roots()),
            "leaf_nodes": sum(1 for node in self._items if node.id not in parent_ids),
            "max_depth": max(depths) if depths else 0,
            "history_size": len(self._history),
            "future_size": len(self._future),
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert nodes and both command stacks to plain dictionaries."""
        return {
            "items": [node.to_dict() for node in self._items],
            "history": [command.to_dict() for command in self._history],
            "future": [command.to_dict() for command in self._future],
        }

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._items))

    def __contains__(self, node_id: object) -> bool:
        return any(node.id == node_id for node in self._items)

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"<HierarchicalStore nodes={len(self._items)} "
            f"history={len(self._history)} future={len(self._future)}>"
        )

    # ---------------------------------------------------------------
    # Internals
    # ---------------------------------------------------------------

    def _index_of(self, node_id: NodeId) -> int | None:
        for index, node in enumerate(self._items):
            if node.id == node_id:
                return index
        return None

    def _last_index_of(self, node_id: NodeId) -> int | None:
        for index in range(len(self._items) - 1, -1, -1):
            if self._items[index].id == node_id:
                return index
        return None

    def _remove_subtree(self, node_id: NodeId) -> list[Node]:
        doomed = {node_id}
        doomed.update(node.id for node in self.get_all_children(node_id))

        removed = [node for node in self._items if node.id in doomed]
        self._items = [node for node in self._items if node.id not in doomed]
        logger.debug("Removed %d node(s) for %r", len(removed), node_id)
        return removed

    def _apply_update(self, fields: Mapping[str, Any]) -> Node | None:
        index = self._index_of(fields["id"])
        if index is None:
            return None
        merged = self._items[index].merged(fields)
        self._items[index] = merged
        logger.debug("Updated node %r: %s", merged.id, sorted(fields))
        return merged

    def _record(self, command: Command) -> None:
        self._history.append(command)
        self._future.clear()

        limit = self._config.max_history
        if limit is not None and len(self._history) > limit:
            dropped = len(self._history) - limit
            del self._history[:dropped]
            logger.debug("History capped at %d, dropped %d oldest", limit, dropped)
