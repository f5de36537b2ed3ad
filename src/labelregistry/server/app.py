"""FastAPI application hosting the label registry.

Provides:
- /api/v1/admin: admin register
- /api/v1/labels: label registry
- /api/v1/operators: operator index
- /api/v1/assets: asset index
- /health: liveness and registry size
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from pydantic import BaseModel, Field

from labelregistry import __version__
from labelregistry.api.admin import router as admin_router
from labelregistry.api.assets import router as assets_router
from labelregistry.api.common import get_store
from labelregistry.api.labels import router as labels_router
from labelregistry.api.operators import router as operators_router

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager: load the registry before serving."""
    store = get_store()
    logger.info(
        "Label registry ready: admin=%s, labels=%d", store.get_admin(), len(store.list_labels())
    )
    yield
    logger.info("Label registry shutting down")


app = FastAPI(
    title="Label Registry",
    description="Access-controlled registry of labels, operators and labeled assets",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(admin_router)
app.include_router(labels_router)
app.include_router(operators_router)
app.include_router(assets_router)


class HealthResponse(BaseModel):
    """Response model for the health check."""

    status: str = Field(description="Service status")
    version: str = Field(description="Service version")
    labels: int = Field(description="Number of registered labels")


@app.get("/health", response_model=HealthResponse, tags=["health"])
def health() -> HealthResponse:
    """Report liveness and the number of registered labels."""
    return HealthResponse(
        status="ok", version=__version__, labels=len(get_store().list_labels())
    )
