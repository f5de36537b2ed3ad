"""API endpoints for the asset index.

Only operators of a label may attach it to or detach it from assets.
"""


from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from labelregistry.api.common import Caller, HasResponse, get_store, registry_http_error
from labelregistry.registry import LabelRegistryError


router = APIRouter(prefix="/api/v1/assets", tags=["assets"])


class AddAssetLabelRequest(BaseModel):
    """Request body for attaching a label to one asset."""

    label: str = Field(description="Label identifier")


class AddAssetsLabelRequest(BaseModel):
    """Request body for attaching a label to several assets at once."""

    assets: list[int] = Field(min_length=1, description="Asset ids, all labeled or none")
    label: str = Field(description="Label identifier")


class AssetsQueryRequest(BaseModel):
    """Request body for fetching the labels of several assets."""

    assets: list[int] = Field(description="Asset ids")


class AssetLabelsResponse(BaseModel):
    """Labels attached to an asset, in the order they were attached."""

    asset: int = Field(description="Asset id")
    labels: list[str] = Field(description="Label identifiers")


class AssetsLabelsResponse(BaseModel):
    """Labels of several assets, in request order."""

    assets: list[AssetLabelsResponse] = Field(description="Per-asset labels")


class BatchLabelResponse(BaseModel):
    """Outcome of a batch labeling."""

    label: str = Field(description="Label identifier")
    assets: list[int] = Field(description="Assets that received the label")
    num_assets: int = Field(description="Assets carrying the label after the batch")


@router.post(
    "/labels",
    response_model=BatchLabelResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Caller is not an operator of the label"},
        404: {"description": "Label or one of the assets not found"},
        409: {"description": "One of the assets already carries the label"},
        503: {"description": "Asset oracle unavailable"},
    },
)
def add_label_to_assets(request: AddAssetsLabelRequest, caller: Caller) -> BatchLabelResponse:
    """Attach a label to several assets; on any failure none is labeled."""
    try:
        descriptor = get_store().add_label_to_assets(caller, request.assets, request.label)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return BatchLabelResponse(
        label=request.label, assets=request.assets, num_assets=descriptor.num_assets
    )


@router.post("/labels/query", response_model=AssetsLabelsResponse)
def get_assets_labels(request: AssetsQueryRequest) -> AssetsLabelsResponse:
    """Return the labels of several assets."""
    labels = get_store().get_assets_labels(request.assets)
    return AssetsLabelsResponse(
        assets=[
            AssetLabelsResponse(asset=asset, labels=asset_labels)
            for asset, asset_labels in zip(request.assets, labels, strict=True)
        ]
    )


@router.get("/{asset}/labels", response_model=AssetLabelsResponse)
def get_asset_labels(asset: int) -> AssetLabelsResponse:
    """Return the labels attached to an asset."""
    return AssetLabelsResponse(asset=asset, labels=get_store().get_asset_labels(asset))


@router.get("/{asset}/labels/{label_id}", response_model=HasResponse)
def has_asset_label(asset: int, label_id: str) -> HasResponse:
    """Return 1 if the asset carries the label, 0 otherwise."""
    try:
        return HasResponse(has=get_store().has_asset_label(asset, label_id))
    except LabelRegistryError as e:
        raise registry_http_error(e) from e


@router.post(
    "/{asset}/labels",
    response_model=AssetLabelsResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"description": "Caller is not an operator of the label"},
        404: {"description": "Label or asset not found"},
        409: {"description": "Asset already carries the label"},
        503: {"description": "Asset oracle unavailable"},
    },
)
def add_label_to_asset(
    asset: int, request: AddAssetLabelRequest, caller: Caller
) -> AssetLabelsResponse:
    """Attach a label to an existing asset."""
    try:
        labels = get_store().add_label_to_asset(caller, asset, request.label)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return AssetLabelsResponse(asset=asset, labels=labels)


@router.delete(
    "/{asset}/labels/{label_id}",
    response_model=AssetLabelsResponse,
    responses={
        403: {"description": "Caller is not an operator of the label"},
        404: {"description": "Label not found or not attached to the asset"},
    },
)
def remove_label_from_asset(asset: int, label_id: str, caller: Caller) -> AssetLabelsResponse:
    """Detach a label from an asset."""
    try:
        labels = get_store().remove_label_from_asset(caller, asset, label_id)
    except LabelRegistryError as e:
        raise registry_http_error(e) from e
    return AssetLabelsResponse(asset=asset, labels=labels)
