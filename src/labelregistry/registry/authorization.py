"""Authorization decisions for registry operations.

The whole permission model is the AUTHORIZATION_MATRIX table: for every
operation it lists the roles that may invoke it. A caller's roles are
resolved from the current registry state on every call, so a change of admin
or operator set takes effect on the very next request.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from labelregistry.registry.errors import Unauthorized

if TYPE_CHECKING:
    from labelregistry.registry.models import RegistryState


class Role(StrEnum):
    """Relationship between a caller and the target of an operation."""

    ADMIN = "admin"
    OPERATOR = "operator"
    SELF = "self"


class Operation(StrEnum):
    """Mutating registry operations subject to authorization."""

    CHANGE_ADMIN = "change_admin"
    ADD_LABEL = "add_label"
    CHANGE_LABEL = "change_label"
    REMOVE_LABEL = "remove_label"
    ADD_OPERATOR_TO_LABEL = "add_operator_to_label"
    REMOVE_OPERATOR_FROM_LABEL = "remove_operator_from_label"
    ADD_LABEL_TO_ASSET = "add_label_to_asset"
    ADD_LABEL_TO_ASSETS = "add_label_to_assets"
    REMOVE_LABEL_FROM_ASSET = "remove_label_from_asset"


AUTHORIZATION_MATRIX: dict[Operation, frozenset[Role]] = {
    Operation.CHANGE_ADMIN: frozenset({Role.ADMIN}),
    Operation.ADD_LABEL: frozenset({Role.ADMIN}),
    Operation.CHANGE_LABEL: frozenset({Role.ADMIN}),
    Operation.REMOVE_LABEL: frozenset({Role.ADMIN}),
    Operation.ADD_OPERATOR_TO_LABEL: frozenset({Role.ADMIN, Role.OPERATOR}),
    Operation.REMOVE_OPERATOR_FROM_LABEL: frozenset({Role.ADMIN, Role.SELF}),
    # Admin rights alone never allow tagging assets
    Operation.ADD_LABEL_TO_ASSET: frozenset({Role.OPERATOR}),
    Operation.ADD_LABEL_TO_ASSETS: frozenset({Role.OPERATOR}),
    Operation.REMOVE_LABEL_FROM_ASSET: frozenset({Role.OPERATOR}),
}


def resolve_roles(
    state: RegistryState,
    caller: str,
    label_id: str | None = None,
    operator: str | None = None,
) -> frozenset[Role]:
    """Compute the roles a caller holds with respect to an operation target.

    Args:
        state: Current registry state.
        caller: Resolved principal issuing the call.
        label_id: Label the operation targets, if any.
        operator: Operator principal the operation acts on, if any.

    Returns:
        Set of roles held by the caller.
    """
    roles: set[Role] = set()
    if caller == state.admin:
        roles.add(Role.ADMIN)
    if label_id is not None and label_id in state.operators.get(caller, ()):
        roles.add(Role.OPERATOR)
    if operator is not None and caller == operator:
        roles.add(Role.SELF)
    return frozenset(roles)


def is_authorized(
    state: RegistryState,
    caller: str,
    operation: Operation,
    label_id: str | None = None,
    operator: str | None = None,
) -> bool:
    """Return whether the caller may perform the operation on the target."""
    allowed = AUTHORIZATION_MATRIX[operation]
    return bool(allowed & resolve_roles(state, caller, label_id, operator))


def authorize(
    state: RegistryState,
    caller: str,
    operation: Operation,
    label_id: str | None = None,
    operator: str | None = None,
) -> None:
    """Reject the call unless the caller holds an allowed role.

    Raises:
        Unauthorized: If none of the caller's roles is allowed for the operation.
    """
    if not is_authorized(state, caller, operation, label_id, operator):
        raise Unauthorized(f"'{caller}' may not {operation.value}", identifier=caller)
