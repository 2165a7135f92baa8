"""Treestore backend server.

Serves one in-memory HierarchicalStore over REST under ``/api/tree``
so a UI can browse and edit the tree with undo/redo.

Usage::

    # Development (auto-reload)
    uvicorn treestore_server:app --reload --port 8430

    # Or run directly
    python treestore_server.py
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from treestore.server import configure, router
from treestore.store import HierarchicalStore

logger = logging.getLogger("treestore")

# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Treestore API",
    description="In-memory hierarchical record store with undo/redo.",
    version="0.1.0",
)

# ---------------------------------------------------------------------------
# CORS -- allow local dev server origins
# ---------------------------------------------------------------------------

_ALLOWED_ORIGINS = [
    "http://localhost:5173",   # Vite dev server
    "http://localhost:8430",   # Self (for Swagger UI)
    "http://127.0.0.1:5173",
    "http://127.0.0.1:8430",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def create_app(items: list[dict[str, Any]] | None = None) -> FastAPI:
    """Configure the shared store and return the application.

    Args:
        items: Initial nodes. Defaults to an empty store.

    Returns:
        The module-level FastAPI app with the tree router mounted.
    """
    configure(HierarchicalStore(items or []))
    logger.info("Tree store configured with %d node(s)", len(items or []))
    return app


app.include_router(router, prefix="/api/tree", tags=["tree"])
configure(HierarchicalStore())


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def run_server(host: str = "127.0.0.1", port: int = 8430) -> None:
    """Start the treestore server via uvicorn.

    Args:
        host: Bind address. Defaults to localhost.
        port: Port number. Defaults to 8430.
    """
    import uvicorn

    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    run_server()
