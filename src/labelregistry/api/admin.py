"""API endpoints for the admin register."""


from fastapi import APIRouter
from pydantic import BaseModel, Field, field_validator

from labelregistry.api.common import Caller, get_store, registry_http_error
from labelregistry.registry import LabelRegistryError


router = APIRouter(prefix="/api/v1/admin", tags=["admin"])


class ChangeAdminRequest(BaseModel):
    """Request body for handing over admin rights."""

    new_admin: str = Field(description="Principal that becomes admin", min_length=1)

    @field_validator("new_admin")
    @classmethod
    def new_admin_not_empty(cls, v: str) -> str:
        """Validate new_admin is not just whitespace."""
        if not v.strip():
            raise ValueError("new_admin cannot be empty or whitespace only")
        return v.strip()


class AdminResponse(BaseModel):
    """Current admin principal."""

    admin: str = Field(description="Current admin principal")


@router.get("", response_model=AdminResponse)
def get_admin() -> AdminResponse:
    """Return the current admin principal."""
    return AdminResponse(admin=get_store().get_admin())


@router.put(
    "",
    response_model=AdminResponse,
    responses={
        200: {"description": "Admin changed"},
        403: {"description": "Caller is not the admin"},
    },
)
def change_admin(request: ChangeAdminRequest, caller: Caller) -> AdminResponse:
    """Hand admin rights over to another principal.

    Only the current admin may call this.
    """
    try:
        admin = get_store().change_admin(caller, request.new_admin)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return AdminResponse(admin=admin)
