"""Tests for the treestore FastAPI router.

Covers health, queries, mutations and undo/redo endpoints using the
httpx-backed TestClient.
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from treestore.server import _state, configure, router
from treestore.store import HierarchicalStore, StoreConfig

# ===================================================================
# Fixtures
# ===================================================================


@pytest.fixture()
def client(sample_rows: list[dict[str, Any]]) -> TestClient:
    """Create a TestClient with the tree router mounted and configured."""
    app = FastAPI()
    app.include_router(router, prefix="/api/tree")
    configure(HierarchicalStore(sample_rows))

    yield TestClient(app)

    _state["store"] = None


@pytest.fixture()
def unconfigured_client() -> TestClient:
    """Create a TestClient where no store has been configured."""
    app = FastAPI()
    app.include_router(router, prefix="/api/tree")
    _state["store"] = None
    return TestClient(app)


@pytest.fixture()
def client_for():
    """Build a TestClient over a store seeded with the given rows."""

    def _make(rows: list[dict[str, Any]]) -> TestClient:
        app = FastAPI()
        app.include_router(router, prefix="/api/tree")
        configure(HierarchicalStore(rows))
        return TestClient(app)

    yield _make

    _state["store"] = None


def _ids(payload: dict[str, Any], key: str = "items") -> list[Any]:
    return [row["id"] for row in payload[key]]


# ===================================================================
# Health
# ===================================================================


class TestHealth:
    """Tests for GET /health."""

    def test_health_configured(self, client: TestClient) -> None:
        resp = client.get("/api/tree/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["configured"] is True

    def test_health_unconfigured(self, unconfigured_client: TestClient) -> None:
        resp = unconfigured_client.get("/api/tree/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "not_configured"

    def test_unconfigured_returns_503(self, unconfigured_client: TestClient) -> None:
        resp = unconfigured_client.get("/api/tree/items")
        assert resp.status_code == 503


# ===================================================================
# Queries
# ===================================================================


class TestQueries:
    """Tests for the read endpoints."""

    def test_list_items(self, client: TestClient) -> None:
        resp = client.get("/api/tree/items")
        assert resp.status_code == 200
        assert _ids(resp.json()) == [1, 2, 3, 4, 5, 6, 7]

    def test_get_item_flattens_attributes(self, client: TestClient) -> None:
        resp = client.get("/api/tree/items/4")
        assert resp.status_code == 200
        assert resp.json() == {"id": 4, "parent": 2, "label": "a.1", "kind": "leaf"}

    def test_get_item_not_found(self, client: TestClient) -> None:
        assert client.get("/api/tree/items/99").status_code == 404

    def test_children(self, client: TestClient) -> None:
        resp = client.get("/api/tree/items/1/children")
        assert _ids(resp.json()) == [2, 3]

    def test_descendants(self, client: TestClient) -> None:
        resp = client.get("/api/tree/items/1/descendants")
        assert _ids(resp.json()) == [2, 3, 4, 5, 6, 7]

    def test_ancestors(self, client: TestClient) -> None:
        resp = client.get("/api/tree/items/7/ancestors")
        assert _ids(resp.json()) == [1, 2, 5]

    def test_unknown_id_gives_empty_lists(self, client: TestClient) -> None:
        for suffix in ("children", "descendants", "ancestors"):
            resp = client.get(f"/api/tree/items/nope/{suffix}")
            assert resp.status_code == 200
            assert resp.json() == {"items": []}

    def test_string_ids(self, client: TestClient) -> None:
        client.post("/api/tree/items", json={"id": "doc", "parent": 3, "label": "d"})
        resp = client.get("/api/tree/items/doc/ancestors")
        assert _ids(resp.json()) == [1, 3]

    def test_non_ascii_digit_id(self, client_for) -> None:
        client = client_for([{"id": "²", "label": "squared"}])
        resp = client.get("/api/tree/items/²")
        assert resp.status_code == 200
        assert resp.json()["label"] == "squared"
        assert client.get("/api/tree/items/³/children").json() == {"items": []}

    def test_string_id_preferred_over_int(self, client_for) -> None:
        client = client_for([{"id": 7, "label": "int"}, {"id": "007", "label": "str"}])
        assert client.get("/api/tree/items/007").json()["label"] == "str"
        assert client.get("/api/tree/items/7").json()["label"] == "int"

        removed = client.delete("/api/tree/items/007").json()
        assert _ids(removed, "removed") == ["007"]
        assert _ids(client.get("/api/tree/items").json()) == [7]

    def test_non_canonical_int_spelling_not_resolved(self, client_for) -> None:
        client = client_for([{"id": 7, "label": "int"}])
        assert client.get("/api/tree/items/07").status_code == 404
        assert client.get("/api/tree/items/-7").status_code == 404

    def test_statistics(self, client: TestClient) -> None:
        data = client.get("/api/tree/statistics").json()
        assert data["total_nodes"] == 7
        assert data["max_depth"] == 3


# ===================================================================
# Mutations
# ===================================================================


class TestMutations:
    """Tests for add, update and remove endpoints."""

    def test_add_item(self, client: TestClient) -> None:
        resp = client.post(
            "/api/tree/items",
            json={"id": 8, "parent": 6, "label": "new", "attributes": {"size": 2}},
        )
        assert resp.status_code == 201
        assert resp.json() == {"id": 8, "parent": 6, "label": "new", "size": 2}
        assert _ids(client.get("/api/tree/items/6/children").json()) == [8]

    def test_add_item_requires_id(self, client: TestClient) -> None:
        resp = client.post("/api/tree/items", json={"label": "no id"})
        assert resp.status_code == 422

    def test_add_item_strict_rejects_duplicate(self) -> None:
        app = FastAPI()
        app.include_router(router, prefix="/api/tree")
        configure(HierarchicalStore([{"id": 1}], StoreConfig(strict=True)))
        try:
            resp = TestClient(app).post("/api/tree/items", json={"id": 1})
            assert resp.status_code == 422
            assert "Duplicate" in resp.json()["detail"]
        finally:
            _state["store"] = None

    def test_update_item_merges_sent_fields(self, client: TestClient) -> None:
        resp = client.patch(
            "/api/tree/items/4",
            json={"label": "renamed", "attributes": {"color": "red"}},
        )
        assert resp.status_code == 200
        assert resp.json() == {
            "id": 4,
            "parent": 2,
            "label": "renamed",
            "kind": "leaf",
            "color": "red",
        }

    def test_update_item_reparent_to_root(self, client: TestClient) -> None:
        resp = client.patch("/api/tree/items/5", json={"parent": None})
        assert resp.json()["parent"] is None
        assert client.get("/api/tree/items/7/ancestors").json() == {
            "items": [{"id": 5, "parent": None, "label": "a.2"}]
        }

    def test_update_item_not_found(self, client: TestClient) -> None:
        resp = client.patch("/api/tree/items/99", json={"label": "x"})
        assert resp.status_code == 404

    def test_remove_item(self, client: TestClient) -> None:
        resp = client.delete("/api/tree/items/2")
        assert resp.status_code == 200
        assert _ids(resp.json(), "removed") == [2, 4, 5, 7]
        assert _ids(client.get("/api/tree/items").json()) == [1, 3, 6]

    def test_remove_unknown_is_empty(self, client: TestClient) -> None:
        resp = client.delete("/api/tree/items/99")
        assert resp.status_code == 200
        assert resp.json() == {"removed": []}


# ===================================================================
# Undo / redo
# ===================================================================


class TestUndoRedo:
    """Tests for POST /undo and POST /redo."""

    def test_undo_nothing(self, client: TestClient) -> None:
        resp = client.post("/api/tree/undo")
        assert resp.status_code == 200
        assert resp.json() == {"command": None, "can_undo": False, "can_redo": False}

    def test_undo_then_redo_remove(self, client: TestClient) -> None:
        client.delete("/api/tree/items/3")

        undo = client.post("/api/tree/undo").json()
        assert undo["command"]["action"] == "remove"
        assert undo["command"]["target_id"] == 3
        assert undo["can_redo"] is True
        assert sorted(_ids(client.get("/api/tree/items").json())) == [1, 2, 3, 4, 5, 6, 7]

        redo = client.post("/api/tree/redo").json()
        assert redo["command"]["action"] == "remove"
        assert redo["can_redo"] is False
        assert _ids(client.get("/api/tree/items").json()) == [1, 2, 4, 5, 7]

    def test_new_mutation_clears_redo(self, client: TestClient) -> None:
        client.post("/api/tree/items", json={"id": 8})
        client.post("/api/tree/undo")
        client.post("/api/tree/items", json={"id": 9})
        assert client.post("/api/tree/redo").json()["command"] is None


# ===================================================================
# Application
# ===================================================================


class TestApplication:
    """Tests for the treestore_server entry point."""

    def test_create_app_serves_seeded_store(self) -> None:
        from treestore_server import create_app

        app = create_app([{"id": 1, "parent": None, "label": "root"}])
        try:
            resp = TestClient(app).get("/api/tree/items/1")
            assert resp.status_code == 200
            assert resp.json()["label"] == "root"
        finally:
            _state["store"] = None
