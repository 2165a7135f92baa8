"""Shared fixtures for treestore tests."""

from __future__ import annotations

from typing import Any

import pytest

from treestore.store import HierarchicalStore


@pytest.fixture
def sample_rows() -> list[dict[str, Any]]:
    """A small two-branch tree.

    1
    ├── 2
    │   ├── 4
    │   └── 5
    │       └── 7
    └── 3
        └── 6
    """
    return [
        {"id": 1, "parent": None, "label": "root"},
        {"id": 2, "parent": 1, "label": "a"},
        {"id": 3, "parent": 1, "label": "b"},
        {"id": 4, "parent": 2, "label": "a.1", "kind": "leaf"},
        {"id": 5, "parent": 2, "label": "a.2"},
        {"id": 6, "parent": 3, "label": "b.1", "kind": "leaf"},
        {"id": 7, "parent": 5, "label": "a.2.1", "kind": "leaf"},
    ]


@pytest.fixture
def store(sample_rows: list[dict[str, Any]]) -> HierarchicalStore:
    """A permissive store seeded with ``sample_rows``."""
    return HierarchicalStore(sample_rows)


@pytest.fixture
def chain_store() -> HierarchicalStore:
    """The three-node chain root -> a -> b."""
    return HierarchicalStore(
        [
            {"id": 1, "parent": None, "label": "root"},
            {"id": 2, "parent": 1, "label": "a"},
            {"id": 3, "parent": 2, "label": "b"},
        ]
    )
