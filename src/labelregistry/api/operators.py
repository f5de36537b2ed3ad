"""API endpoints for the operator index."""


from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from labelregistry.api.common import Caller, HasResponse, get_store, registry_http_error
from labelregistry.registry import LabelRegistryError


router = APIRouter(prefix="/api/v1/operators", tags=["operators"])


class AddOperatorRequest(BaseModel):
    """Request body for granting a principal operator rights on a label."""

    label: str = Field(description="Label identifier")


class OperatorLabelsResponse(BaseModel):
    """Labels operated by a principal, in the order they were granted."""

    operator: str = Field(description="Operator principal")
    labels: list[str] = Field(description="Label identifiers")


@router.get("/{operator}/labels", response_model=OperatorLabelsResponse)
def get_operator_labels(operator: str) -> OperatorLabelsResponse:
    """Return the labels a principal operates."""
    return OperatorLabelsResponse(
        operator=operator, labels=get_store().get_operator_labels(operator)
    )


@router.get("/{operator}/labels/{label_id}", response_model=HasResponse)
def has_operator_label(operator: str, label_id: str) -> HasResponse:
    """Return 1 if the principal operates the label, 0 otherwise."""
    try:
        return HasResponse(has=get_store().has_operator_label(operator, label_id))
    except LabelRegistryError as e:
        raise registry_http_error(e) from e


@router.post(
    "/{operator}/labels",
    response_model=OperatorLabelsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Caller is neither admin nor an operator of the label"},
        404: {"description": "Label not found"},
        409: {"description": "Principal already operates the label"},
    },
)
def add_operator_to_label(
    operator: str, request: AddOperatorRequest, caller: Caller
) -> OperatorLabelsResponse:
    """Grant a principal the right to attach and detach a label."""
    try:
        labels = get_store().add_operator_to_label(caller, operator, request.label)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return OperatorLabelsResponse(operator=operator, labels=labels)


@router.delete(
    "/{operator}/labels/{label_id}",
    response_model=OperatorLabelsResponse,
    responses={
        403: {"description": "Caller is neither admin nor the operator"},
        404: {"description": "Label not found or not operated by the principal"},
    },
)
def remove_operator_from_label(
    operator: str, label_id: str, caller: Caller
) -> OperatorLabelsResponse:
    """Revoke a principal's operator rights on a label."""
    try:
        labels = get_store().remove_operator_from_label(caller, operator, label_id)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return OperatorLabelsResponse(operator=operator, labels=labels)
