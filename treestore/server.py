"""FastAPI router for the hierarchical store.

Exposes the store's queries, mutations and undo/redo over REST so a UI
layer can drive it. Designed to be mounted at ``/api/tree/`` by the
parent application.

Handlers are ``async`` so they run one at a time on the event loop;
the store itself has no locking and must not see concurrent writers.

Example::

    from fastapi import FastAPI
    from treestore.server import configure, router

    app = FastAPI()
    configure(HierarchicalStore(items))
    app.include_router(router, prefix="/api/tree")
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from treestore.models import NodeId
from treestore.store import HierarchicalStore
from treestore.validation import ValidationError

logger = logging.getLogger(__name__)

# ===================================================================
# Pydantic request models
# ===================================================================


class NodeBody(BaseModel):
    """Request body for adding a node."""

    id: int | str
    parent: int | str | None = None
    label: str = Field(default="", max_length=10_000)
    attributes: dict[str, Any] = Field(default_factory=dict)

    def to_record(self) -> dict[str, Any]:
        """Flatten into the mapping shape the store accepts."""
        record: dict[str, Any] = dict(self.attributes)
        record.update({"id": self.id, "parent": self.parent, "label": self.label})
        return record


class PatchBody(BaseModel):
    """Request body for updating a node. Only fields that are sent change."""

    parent: int | str | None = None
    label: str | None = Field(default=None, max_length=10_000)
    attributes: dict[str, Any] = Field(default_factory=dict)

    def to_patch(self, node_id: NodeId) -> dict[str, Any]:
        """Build a merge patch for *node_id* from the fields that were set."""
        sent = self.model_dump(exclude_unset=True)
        patch: dict[str, Any] = dict(sent.pop("attributes", {}))
        patch.update(sent)
        patch["id"] = node_id
        return patch


# ===================================================================
# Shared state
# ===================================================================

_state: dict[str, Any] = {"store": None}


def configure(store: HierarchicalStore) -> None:
    """Inject the store the router serves.

    Must be called before the router handles any requests.
    """
    _state["store"] = store


def get_store() -> HierarchicalStore:
    """Return the configured store, raising 503 if not initialised.

    Raises:
        HTTPException: 503 if ``configure()`` has not been called.
    """
    store = _state.get("store")
    if store is None:
        raise HTTPException(
            status_code=503,
            detail="Tree store not initialised. Call configure() first.",
        )
    return store


def _resolve_id(store: HierarchicalStore, raw: str) -> NodeId:
    """Map a path segment to a node id.

    Path parameters are always strings. A segment that is itself a node id
    wins; otherwise a canonical integer spelling resolves to an int id when
    a node with that int id exists.
    """
    if raw in store:
        return raw
    try:
        as_int = int(raw)
    except ValueError:
        return raw
    if str(as_int) == raw and as_int in store:
        return as_int
    return raw


def _history_state(store: HierarchicalStore) -> dict[str, Any]:
    return {"can_undo": store.can_undo, "can_redo": store.can_redo}


# ===================================================================
# Router
# ===================================================================

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, Any]:
    """Return tree store health status."""
    configured = _state.get("store") is not None
    return {
        "status": "ok" if configured else "not_configured",
        "version": "0.1.0",
        "configured": configured,
    }


# -------------------------------------------------------------------
# Queries
# -------------------------------------------------------------------


@router.get("/items")
async def list_items() -> dict[str, Any]:
    """List every node in insertion order."""
    store = get_store()
    return {"items": [node.to_dict() for node in store.get_all()]}


@router.get("/items/{node_id}")
async def get_item(node_id: str) -> dict[str, Any]:
    """Return one node.

    Raises:
        HTTPException: 404 if no node has this id.
    """
    store = get_store()
    node = store.get_item(_resolve_id(store, node_id))
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return node.to_dict()


@router.get("/items/{node_id}/children")
async def get_children(node_id: str) -> dict[str, Any]:
    """List direct children of a node."""
    store = get_store()
    children = store.get_children(_resolve_id(store, node_id))
    return {"items": [node.to_dict() for node in children]}


@router.get("/items/{node_id}/descendants")
async def get_descendants(node_id: str) -> dict[str, Any]:
    """List all descendants of a node in level order."""
    store = get_store()
    descendants = store.get_all_children(_resolve_id(store, node_id))
    return {"items": [node.to_dict() for node in descendants]}


@router.get("/items/{node_id}/ancestors")
async def get_ancestors(node_id: str) -> dict[str, Any]:
    """List ancestors of a node, root-most first."""
    store = get_store()
    ancestors = store.get_all_parents(_resolve_id(store, node_id))
    return {"items": [node.to_dict() for node in ancestors]}


@router.get("/statistics")
async def statistics() -> dict[str, Any]:
    """Return node and history counts."""
    return get_store().get_statistics()


# -------------------------------------------------------------------
# Mutations
# -------------------------------------------------------------------


@router.post("/items", status_code=201)
async def add_item(body: NodeBody) -> dict[str, Any]:
    """Append a node.

    Returns:
        The stored node as a dictionary.
    """
    try:
        store = get_store()
        node = store.add_item(body.to_record())
        return node.to_dict()
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Failed to add node %r", body.id)
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.patch("/items/{node_id}")
async def update_item(node_id: str, body: PatchBody) -> dict[str, Any]:
    """Merge the sent fields into a node.

    Raises:
        HTTPException: 404 if no node has this id, 422 on a rejected patch.
    """
    try:
        store = get_store()
        merged = store.update_item(body.to_patch(_resolve_id(store, node_id)))
        if merged is None:
            raise HTTPException(status_code=404, detail="Node not found")
        return merged.to_dict()
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Failed to update node %s", node_id)
        raise HTTPException(status_code=500, detail="Internal server error") from exc


@router.delete("/items/{node_id}")
async def remove_item(node_id: str) -> dict[str, Any]:
    """Remove a node and its subtree.

    Returns:
        The removed nodes. Empty when nothing matched.
    """
    try:
        store = get_store()
        removed = store.remove_item(_resolve_id(store, node_id))
        return {"removed": [node.to_dict() for node in removed]}
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Failed to remove node %s", node_id)
        raise HTTPException(status_code=500, detail="Internal server error") from exc


# -------------------------------------------------------------------
# Undo / redo
# -------------------------------------------------------------------


@router.post("/undo")
async def undo() -> dict[str, Any]:
    """Undo the most recent mutation, if any."""
    store = get_store()
    command = store.undo()
    return {"command": command.to_dict() if command else None, **_history_state(store)}


@router.post("/redo")
async def redo() -> dict[str, Any]:
    """Redo the most recently undone mutation, if any."""
    store = get_store()
    command = store.redo()
    return {"command": command.to_dict() if command else None, **_history_state(store)}
