"""Data model for labels, operator memberships and asset labelings."""

from pydantic import BaseModel, Field

from labelregistry.registry.errors import InvalidIdentifierLength

LABEL_ID_LENGTH = 2


def validate_label_id(label_id: str) -> str:
    """Check that a label identifier has the fixed length.

    Length is measured in UTF-8 bytes, the unit ledger keys are sized in, so
    "é" (two bytes) is a valid id and "éé" is not.

    Args:
        label_id: Label identifier to check.

    Returns:
        The identifier unchanged.

    Raises:
        InvalidIdentifierLength: If the identifier is not exactly
            LABEL_ID_LENGTH bytes long in UTF-8.
    """
    size = len(label_id.encode("utf-8"))
    if size != LABEL_ID_LENGTH:
        raise InvalidIdentifierLength(
            f"Label id '{label_id}' must be {LABEL_ID_LENGTH} bytes, got {size}",
            identifier=label_id,
        )
    return label_id


class LabelDescriptor(BaseModel):
    """Metadata and reference counters of a single label.

    Attributes:
        name: Human readable label name.
        url: Link describing the label.
        num_assets: Number of assets currently carrying this label.
        num_operators: Number of principals allowed to attach this label.
    """

    name: str = Field(description="Human readable label name")
    url: str = Field(description="Link describing the label")
    num_assets: int = Field(default=0, ge=0, description="Assets carrying this label")
    num_operators: int = Field(default=0, ge=0, description="Operators of this label")


class RegistryState(BaseModel):
    """Complete mutable state of the registry.

    The admin lives here rather than in module state so that every store
    carries its own admin and replacing it is a regular state mutation.

    Attributes:
        admin: Principal allowed to manage labels and hand over admin rights.
        labels: Label id to descriptor, in creation order.
        operators: Principal to the label ids it operates, in insertion order.
        assets: Asset id to the label ids attached to it, in insertion order.
    """

    admin: str = Field(description="Current admin principal")
    labels: dict[str, LabelDescriptor] = Field(default_factory=dict)
    operators: dict[str, list[str]] = Field(default_factory=dict)
    assets: dict[int, list[str]] = Field(default_factory=dict)
