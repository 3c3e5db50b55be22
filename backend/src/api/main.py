"""FastAPI application main entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

load_dotenv()

from .middleware import register_error_handlers
from .routes import documents, folders, vault
from ..services.config import get_config
from ..services.index_store import IndexStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler to run startup tasks."""
    config = get_config()
    created = IndexStore(config).ensure_initialized()
    logger.info(
        "Vault ready",
        extra={"vault_path": str(config.vault_path), "created_paths": created},
    )
    yield


app = FastAPI(
    title="Document Vault API",
    description="Markdown vault with JSON indexes and integrity repair",
    version="0.1.0",
    lifespan=lifespan,
)

register_error_handlers(app)

app.include_router(documents.router, tags=["documents"])
app.include_router(folders.router, tags=["folders"])
app.include_router(vault.router, tags=["vault"])


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


__all__ = ["app"]
