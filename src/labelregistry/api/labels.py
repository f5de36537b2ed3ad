"""API endpoints for the label registry.

Creating, changing and removing labels is reserved to the admin; reading
labels is open to every caller.
"""


from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from labelregistry.api.common import Caller, HasResponse, get_store, registry_http_error
from labelregistry.registry import LabelDescriptor, LabelRegistryError


router = APIRouter(prefix="/api/v1/labels", tags=["labels"])


class CreateLabelRequest(BaseModel):
    """Request body for creating a label."""

    id: str = Field(description="Two character label identifier")
    name: str = Field(description="Human readable label name")
    url: str = Field(default="", description="Link describing the label")


class UpdateLabelRequest(BaseModel):
    """Request body for changing a label's metadata."""

    name: str = Field(description="Human readable label name")
    url: str = Field(default="", description="Link describing the label")


class LabelResponse(BaseModel):
    """A label with its metadata and reference counters."""

    id: str = Field(description="Label identifier")
    name: str = Field(description="Human readable label name")
    url: str = Field(description="Link describing the label")
    num_assets: int = Field(description="Assets carrying this label")
    num_operators: int = Field(description="Operators of this label")

    @classmethod
    def from_descriptor(cls, label_id: str, descriptor: LabelDescriptor) -> "LabelResponse":
        return cls(id=label_id, **descriptor.model_dump())


class LabelListResponse(BaseModel):
    """All label identifiers in creation order."""

    labels: list[str] = Field(description="Label identifiers")
    count: int = Field(description="Number of labels")


@router.post(
    "",
    response_model=LabelResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Label created"},
        400: {"description": "Label id has the wrong length"},
        403: {"description": "Caller is not the admin"},
        409: {"description": "Label already exists"},
    },
)
def add_label(request: CreateLabelRequest, caller: Caller) -> LabelResponse:
    """Create a label with zeroed counters."""
    try:
        descriptor = get_store().add_label(caller, request.id, request.name, request.url)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return LabelResponse.from_descriptor(request.id, descriptor)


@router.get("", response_model=LabelListResponse)
def list_labels() -> LabelListResponse:
    """List every label identifier in creation order."""
    labels = get_store().list_labels()
    return LabelListResponse(labels=labels, count=len(labels))


@router.get(
    "/{label_id}",
    response_model=LabelResponse,
    responses={
        400: {"description": "Label id has the wrong length"},
        404: {"description": "Label not found"},
    },
)
def get_label(label_id: str) -> LabelResponse:
    """Return a label's metadata and counters."""
    try:
        descriptor = get_store().get_label(label_id)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return LabelResponse.from_descriptor(label_id, descriptor)


@router.get("/{label_id}/exists", response_model=HasResponse)
def has_label(label_id: str) -> HasResponse:
    """Return 1 if the label exists, 0 otherwise."""
    try:
        return HasResponse(has=get_store().has_label(label_id))
    except LabelRegistryError as e:
        raise registry_http_error(e) from e


@router.put(
    "/{label_id}",
    response_model=LabelResponse,
    responses={
        403: {"description": "Caller is not the admin"},
        404: {"description": "Label not found"},
    },
)
def change_label(label_id: str, request: UpdateLabelRequest, caller: Caller) -> LabelResponse:
    """Overwrite a label's name and url."""
    try:
        descriptor = get_store().change_label(caller, label_id, request.name, request.url)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return LabelResponse.from_descriptor(label_id, descriptor)


@router.delete(
    "/{label_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Caller is not the admin"},
        404: {"description": "Label not found"},
        409: {"description": "Label still has operators or assets"},
    },
)
def remove_label(label_id: str, caller: Caller) -> Response:
    """Delete a label that has neither operators nor assets."""
    try:
        get_store().remove_label(caller, label_id)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return Response(status_code=status.HTTP_204_NO_CONTENT)
