"""Error taxonomy for the label registry.

Every rejected call raises exactly one of these. The ``code`` attribute is the
short wire code clients match on; ``identifier`` names the offending label,
principal or asset so the caller can decide whether to retry with corrected
input.
"""

from typing import Any, ClassVar


class LabelRegistryError(Exception):
    """Base exception for all label registry failures."""

    code: ClassVar[str] = "ERR:REGISTRY"

    def __init__(self, message: str, identifier: Any = None) -> None:
        super().__init__(f"{self.code} {message}")
        self.message = message
        self.identifier = identifier


class Unauthorized(LabelRegistryError):
    """Caller is not allowed to perform the attempted operation."""

    code: ClassVar[str] = "ERR:UNAUTH"


class AlreadyExists(LabelRegistryError):
    """Label, operator membership or asset labeling already exists."""

    code: ClassVar[str] = "ERR:EXISTS"


class NotFound(LabelRegistryError):
    """Label, operator membership, asset labeling or asset does not exist."""

    code: ClassVar[str] = "ERR:NOEXIST"


class InvalidIdentifierLength(LabelRegistryError):
    """Label identifier does not have the fixed required length."""

    code: ClassVar[str] = "ERR:LENGTH"


class NotEmpty(LabelRegistryError):
    """Label still has operators or assets attached."""

    code: ClassVar[str] = "ERR:NOEMPTY"


class AssetOracleError(LabelRegistryError):
    """The asset existence oracle could not answer."""

    code: ClassVar[str] = "ERR:ORACLE"


class LabelStoreError(LabelRegistryError):
    """Registry state could not be loaded from or saved to disk."""

    code: ClassVar[str] = "ERR:STORAGE"
