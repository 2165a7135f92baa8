"""
treestore - in-memory hierarchical record store.

Flat parent-linked nodes with tree queries and undoable/redoable mutations.
"""

from treestore.models import Command, CommandAction, Node, NodeId
from treestore.store import HierarchicalStore, StoreConfig
from treestore.validation import NodeValidator, TreeStoreError, ValidationError

__version__ = "0.1.0"

__all__ = [
    "Command",
    "CommandAction",
    "HierarchicalStore",
    "Node",
    "NodeId",
    "NodeValidator",
    "StoreConfig",
    "TreeStoreError",
    "ValidationError",
]
