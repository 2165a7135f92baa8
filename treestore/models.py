"""
Record types for the hierarchical store.

Nodes are flat records linked by parent references. Commands describe one
applied mutation and carry enough state to reverse or replay it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

NodeId = Union[int, str]

# Keys that map onto Node fields; everything else goes to the attribute bag.
_CORE_KEYS = ("id", "parent", "label")


@dataclass
class Node:
    """
    A single record in the store.

    The store treats ``id`` and ``parent`` as opaque identifiers:
    - ``parent`` of None marks a root
    - a ``parent`` that matches no node is allowed (dangling)
    - extra named fields live in ``attributes`` and survive merges verbatim
    """

    id: NodeId
    parent: NodeId | None = None
    label: str = ""

    # Open attribute bag
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def is_root(self) -> bool:
        """Check if this node has no parent."""
        return self.parent is None

    def merged(self, patch: Mapping[str, Any]) -> Node:
        """
        Return a new node with ``patch`` applied on top of this one.

        Fields present in the patch override; all other fields are kept.
        """
        data = self.to_dict()
        data.update(patch)
        return Node.from_dict(data)

    def copy(self) -> Node:
        """Return a shallow copy with its own attribute dict."""
        return Node(
            id=self.id,
            parent=self.parent,
            label=self.label,
            attributes=dict(self.attributes),
        )

    def to_dict(self) -> dict[str, Any]:
        """Flatten to a single mapping (attributes alongside core fields)."""
        result: dict[str, Any] = {
            "id": self.id,
            "parent": self.parent,
            "label": self.label,
        }
        for key, value in self.attributes.items():
            if key not in _CORE_KEYS:
                result[key] = value
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Node:
        """Build a node from a flat mapping such as ``to_dict()`` output."""
        return cls(
            id=data["id"],
            parent=data.get("parent"),
            label=data.get("label", ""),
            attributes={k: v for k, v in data.items() if k not in _CORE_KEYS},
        )

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"<Node {self.id!r} parent={self.parent!r} '{self.label[:40]}'>"


class CommandAction(str, Enum):
    """Kind of mutation recorded in the undo/redo log."""

    ADD = "add"
    REMOVE = "remove"
    UPDATE = "update"


@dataclass
class Command:
    """One applied mutation.

    Attributes:
        action: Which mutation this records.
        node: ADD only. The node as inserted.
        target_id: REMOVE only. Id the removal was requested for.
        removed: REMOVE only. Snapshot of every node taken out, in the
            order they sat in the store.
        patch: UPDATE only. The merge patch that was applied.
        previous: UPDATE only. The full node before the merge.
    """

    action: CommandAction
    node: Node | None = None
    target_id: NodeId | None = None
    removed: list[Node] = field(default_factory=list)
    patch: dict[str, Any] = field(default_factory=dict)
    previous: Node | None = None

    @staticmethod
    def add(node: Node) -> Command:
        """Record an insertion."""
        return Command(action=CommandAction.ADD, node=node)

    @staticmethod
    def remove(target_id: NodeId, removed: list[Node]) -> Command:
        """Record a subtree removal."""
        return Command(action=CommandAction.REMOVE, target_id=target_id, removed=removed)

    @staticmethod
    def update(patch: Mapping[str, Any], previous: Node) -> Command:
        """Record a merge update."""
        return Command(
            action=CommandAction.UPDATE,
            patch=dict(patch),
            previous=previous,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        result: dict[str, Any] = {"action": self.action.value}
        if self.action == CommandAction.ADD and self.node is not None:
            result["node"] = self.node.to_dict()
        elif self.action == CommandAction.REMOVE:
            result["target_id"] = self.target_id
            result["removed"] = [n.to_dict() for n in self.removed]
        elif self.action == CommandAction.UPDATE:
            result["patch"] = dict(self.patch)
            result["previous"] = self.previous.to_dict() if self.previous else None
        return result
