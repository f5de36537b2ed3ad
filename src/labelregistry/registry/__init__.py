"""Label, operator and asset indexing with access control."""

from labelregistry.registry.asset_oracle import (
    AssetOracle,
    HttpAssetOracle,
    PermissiveAssetOracle,
    StaticAssetOracle,
)
from labelregistry.registry.authorization import (
    AUTHORIZATION_MATRIX,
    Operation,
    Role,
    authorize,
    is_authorized,
    resolve_roles,
)
from labelregistry.registry.errors import (
    AlreadyExists,
    AssetOracleError,
    InvalidIdentifierLength,
    LabelRegistryError,
    LabelStoreError,
    NotEmpty,
    NotFound,
    Unauthorized,
)
from labelregistry.registry.models import (
    LABEL_ID_LENGTH,
    LabelDescriptor,
    RegistryState,
    validate_label_id,
)
from labelregistry.registry.store import LabelStore

__all__ = [
    "AUTHORIZATION_MATRIX",
    "LABEL_ID_LENGTH",
    "AlreadyExists",
    "AssetOracle",
    "AssetOracleError",
    "HttpAssetOracle",
    "InvalidIdentifierLength",
    "LabelDescriptor",
    "LabelRegistryError",
    "LabelStore",
    "LabelStoreError",
    "NotEmpty",
    "NotFound",
    "Operation",
    "PermissiveAssetOracle",
    "RegistryState",
    "Role",
    "StaticAssetOracle",
    "Unauthorized",
    "authorize",
    "is_authorized",
    "resolve_roles",
    "validate_label_id",
]
