"""Input validation for the hierarchical store.

Provides node coercion at the store boundary and the opt-in strict checks
(duplicate ids, dangling parents) used when ``StoreConfig.strict`` is set.
The store itself stays permissive unless asked otherwise.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from treestore.models import Node, NodeId

logger = logging.getLogger(__name__)


class TreeStoreError(Exception):
    """Base class for treestore errors."""


class ValidationError(TreeStoreError):
    """Raised when input validation fails."""


def coerce_node(item: Node | Mapping[str, Any], *, copy_node: bool = True) -> Node:
    """Normalise caller input into a ``Node``.

    Args:
        item: A Node or a flat mapping with at least an ``id`` key.
        copy_node: Return a copy when *item* is already a Node.

    Returns:
        A Node instance.

    Raises:
        ValidationError: If *item* is neither a Node nor a mapping with an id.
    """
    if isinstance(item, Node):
        return item.copy() if copy_node else item
    if isinstance(item, Mapping):
        if "id" not in item:
            raise ValidationError("Node mapping has no 'id' field.")
        return Node.from_dict(item)
    raise ValidationError(f"Cannot build a node from {type(item).__name__}.")


def patch_from(patch: Node | Mapping[str, Any]) -> dict[str, Any]:
    """Turn an update argument into a flat patch dict.

    A Node passed as a patch overrides every field it carries.
    """
    if isinstance(patch, Node):
        return patch.to_dict()
    if isinstance(patch, Mapping):
        return dict(patch)
    raise ValidationError(f"Cannot build a patch from {type(patch).__name__}.")


class NodeValidator:
    """Validate nodes against the well-formedness rules of strict mode.

    All ``check_*`` methods raise ``ValidationError`` on failure;
    ``find_problems`` collects messages instead.
    """

    def check_id(self, node: Node) -> None:
        """Reject ids that are not int or str.

        ``bool`` is excluded even though it subclasses ``int``.
        """
        if isinstance(node.id, bool) or not isinstance(node.id, (int, str)):
            raise ValidationError(f"Node id must be int or str, got {type(node.id).__name__}.")
        if node.parent is not None and (
            isinstance(node.parent, bool) or not isinstance(node.parent, (int, str))
        ):
            raise ValidationError(
                f"Node parent must be int, str or None, got {type(node.parent).__name__}."
            )
        if not isinstance(node.label, str):
            raise ValidationError("Node label must be a string.")

    def check_insert(self, node: Node, existing: Iterable[Node]) -> None:
        """Check that *node* can join *existing* without breaking invariants.

        Args:
            node: Candidate node.
            existing: Nodes currently in the store.

        Raises:
            ValidationError: On a duplicate id or a dangling parent.
        """
        self.check_id(node)
        ids = {n.id for n in existing}
        if node.id in ids:
            raise ValidationError(f"Duplicate node id: {node.id!r}")
        if node.parent is not None and node.parent not in ids:
            raise ValidationError(
                f"Parent {node.parent!r} of node {node.id!r} does not exist."
            )

    def check_update(self, patch: Mapping[str, Any], existing: Iterable[Node]) -> None:
        """Check that a patch keeps the parent reference resolvable."""
        if "parent" not in patch or patch["parent"] is None:
            return
        ids = {n.id for n in existing}
        if patch["parent"] not in ids:
            raise ValidationError(f"Parent {patch['parent']!r} does not exist.")
        if patch["parent"] == patch.get("id"):
            raise ValidationError(f"Node {patch['id']!r} cannot be its own parent.")

    def find_problems(self, nodes: list[Node]) -> list[str]:
        """Collect well-formedness problems in an initial node list.

        Parents may appear later in the list than their children.

        Returns:
            List of error strings. Empty list means valid.
        """
        errors: list[str] = []
        valid: list[tuple[int, Node]] = []
        for idx, node in enumerate(nodes):
            try:
                self.check_id(node)
            except ValidationError as exc:
                errors.append(f"Record {idx + 1}: {exc}")
                continue
            valid.append((idx, node))

        ids = {node.id for _, node in valid}
        seen: set[NodeId] = set()
        for idx, node in valid:
            if node.id in seen:
                errors.append(f"Record {idx + 1}: duplicate id {node.id!r}")
            seen.add(node.id)
            if node.parent is not None and node.parent not in ids:
                errors.append(f"Record {idx + 1}: parent {node.parent!r} does not exist")
        return errors

    def validate_nodes(self, nodes: list[Node]) -> None:
        """Raise ``ValidationError`` listing every problem in *nodes*."""
        errors = self.find_problems(nodes)
        if errors:
            logger.debug("Rejected %d initial nodes: %s", len(nodes), errors)
            raise ValidationError("; ".join(errors))
