"""Shared pieces of the registry REST API.

Holds the process-wide LabelStore, the caller header and the translation of
registry errors into HTTP responses.
"""

import threading
from typing import Annotated

from fastapi import Header, HTTPException, status
from pydantic import BaseModel, Field

from labelregistry.config import get_settings
from labelregistry.registry import (
    AlreadyExists,
    AssetOracleError,
    InvalidIdentifierLength,
    LabelRegistryError,
    LabelStore,
    LabelStoreError,
    NotEmpty,
    NotFound,
    Unauthorized,
)


# Resolved principal supplied by the authentication layer in front of the API
Caller = Annotated[str, Header(alias="X-Caller", min_length=1)]

ERROR_STATUS: dict[type[LabelRegistryError], int] = {
    Unauthorized: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    AlreadyExists: status.HTTP_409_CONFLICT,
    NotEmpty: status.HTTP_409_CONFLICT,
    InvalidIdentifierLength: status.HTTP_400_BAD_REQUEST,
    AssetOracleError: status.HTTP_503_SERVICE_UNAVAILABLE,
    LabelStoreError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

_store: LabelStore | None = None
_store_lock = threading.Lock()


class HasResponse(BaseModel):
    """Boolean-as-count answer of the has_* queries."""

    has: int = Field(ge=0, le=1, description="1 if the relation holds, 0 otherwise")


def get_store() -> LabelStore:
    """Get or create the process-wide label store from settings."""
    global _store
    with _store_lock:
        if _store is None:
            settings = get_settings()
            _store = LabelStore(
                admin=settings.admin,
                asset_oracle=settings.build_asset_oracle(),
                storage_path=settings.storage_path,
            )
        return _store


def set_store(store: LabelStore | None) -> None:
    """Replace the process-wide label store; None forces a rebuild from settings."""
    global _store
    with _store_lock:
        _store = store


def registry_http_error(error: LabelRegistryError) -> HTTPException:
    """Translate a registry error into an HTTPException.

    The detail carries the wire code, the message and the offending identifier.
    """
    status_code = ERROR_STATUS.get(type(error), status.HTTP_400_BAD_REQUEST)
    return HTTPException(
        status_code=status_code,
        detail={
            "code": error.code,
            "message": error.message,
            "identifier": error.identifier,
        },
    )
