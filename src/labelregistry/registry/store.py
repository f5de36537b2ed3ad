"""Label registry state machine.

This module provides the LabelStore class, which owns the admin register, the
label registry, the operator index and the asset index, enforces their
invariants and resolves every authorization decision.
"""

import json
import logging
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from labelregistry.registry.asset_oracle import AssetOracle, PermissiveAssetOracle
from labelregistry.registry.authorization import Operation, authorize
from labelregistry.registry.errors import (
    AlreadyExists,
    AssetOracleError,
    LabelRegistryError,
    LabelStoreError,
    NotEmpty,
    NotFound,
)
from labelregistry.registry.models import LabelDescriptor, RegistryState, validate_label_id

logger = logging.getLogger(__name__)

# Oracle answers gathered before a labeling; an error stands in for the answer
AssetLookup = dict[int, bool | AssetOracleError]


class LabelStore:
    """Access-controlled index of labels, operators and labeled assets.

    Each public operation runs as one atomic step: the store lock is held for
    the whole call and a failed mutation restores the state it started from,
    so partial writes are never observable. Reference counters on the label
    descriptors are updated in the same step as the per-principal and
    per-asset sequences. Mutators return the state they produced, read inside
    the same step.

    The asset oracle is the one exception to holding the lock: it is asked
    before the lock is taken, so a slow oracle never blocks other callers.

    Thread-safe: All operations are protected by a reentrant lock.

    Example:
        >>> store = LabelStore(admin="alice")
        >>> store.add_label("alice", "wo", "world", "http://")
        LabelDescriptor(name='world', url='http://', num_assets=0, num_operators=0)
        >>> store.add_operator_to_label("alice", "bob", "wo")
        ['wo']
        >>> store.add_label_to_asset("bob", 13, "wo")
        ['wo']

    File Structure:
        {storage_path} - JSON snapshot of the full registry state
        .{storage_path name}.tmp - Snapshot being written, renamed over the
            real one once complete
    """

    def __init__(
        self,
        admin: str,
        asset_oracle: AssetOracle | None = None,
        storage_path: str | Path | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            admin: Principal that becomes admin of a freshly created registry.
                Ignored when an existing snapshot is loaded from storage_path.
            asset_oracle: Oracle consulted before labeling an asset. Defaults to
                PermissiveAssetOracle.
            storage_path: Optional JSON file the state is persisted to after
                every committed write.
        """
        self._lock = threading.RLock()
        self._oracle = asset_oracle or PermissiveAssetOracle()
        self._storage_path = Path(storage_path) if storage_path is not None else None

        loaded = self._load()
        self._state = loaded if loaded is not None else RegistryState(admin=admin)

    def _load(self) -> RegistryState | None:
        """Load a state snapshot from disk, if one exists.

        Raises:
            LabelStoreError: If the snapshot exists but cannot be parsed.
        """
        if self._storage_path is None or not self._storage_path.exists():
            return None
        try:
            with open(self._storage_path, encoding="utf-8") as f:
                data = json.load(f)
            state = RegistryState(**data)
        except json.JSONDecodeError as e:
            raise LabelStoreError(f"Invalid JSON in registry file '{self._storage_path}': {e}") from e
        except Exception as e:
            raise LabelStoreError(f"Failed to load registry from '{self._storage_path}': {e}") from e
        logger.info(
            "Loaded registry from %s with %d labels", self._storage_path, len(state.labels)
        )
        return state

    def _save(self) -> None:
        """Write the current state snapshot to disk.

        The snapshot goes to a temporary file first and replaces the previous
        one only once fully written, so a failed write leaves it intact.
        """
        if self._storage_path is None:
            return
        tmp_path = self._storage_path.with_name(f".{self._storage_path.name}.tmp")
        try:
            self._storage_path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._state.model_dump(mode="json"), f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._storage_path)
        except OSError as e:
            raise LabelStoreError(f"Failed to save registry to '{self._storage_path}': {e}") from e
        finally:
            tmp_path.unlink(missing_ok=True)

    def _log_rejection(self, operation: str, error: LabelRegistryError) -> None:
        logger.warning(
            "Rejected %s: %s",
            operation,
            error,
            extra={"code": error.code, "identifier": error.identifier, "operation": operation},
        )

    def _check_label_id(self, operation: str, label_id: str) -> None:
        """Validate a label id, logging a malformed one as a rejection."""
        try:
            validate_label_id(label_id)
        except LabelRegistryError as e:
            self._log_rejection(operation, e)
            raise

    @contextmanager
    def _transaction(
        self, operation: Operation, label_id: str | None = None
    ) -> Iterator[RegistryState]:
        """Run a mutation atomically.

        Checks label_id first, then yields the live state. If the body or the
        snapshot write raises, the state is restored to its value before the
        call.
        """
        with self._lock:
            if label_id is not None:
                self._check_label_id(operation.value, label_id)
            snapshot = self._state.model_copy(deep=True)
            try:
                yield self._state
                self._save()
            except LabelRegistryError as e:
                self._state = snapshot
                self._log_rejection(operation.value, e)
                raise
            except Exception:
                self._state = snapshot
                logger.exception("Unexpected failure during %s", operation.value)
                raise

    @contextmanager
    def _reading(self, name: str, label_id: str | None = None) -> Iterator[RegistryState]:
        """Hold the lock for a read of the committed state."""
        with self._lock:
            if label_id is not None:
                self._check_label_id(name, label_id)
            logger.debug("Reading %s", name, extra={"operation": name})
            try:
                yield self._state
            except LabelRegistryError as e:
                self._log_rejection(name, e)
                raise

    def _require_label(self, state: RegistryState, label_id: str) -> LabelDescriptor:
        """Return the live descriptor of a label or raise NotFound."""
        descriptor = state.labels.get(label_id)
        if descriptor is None:
            raise NotFound(f"Label '{label_id}' does not exist", identifier=label_id)
        return descriptor

    # Admin register

    def get_admin(self) -> str:
        """Return the current admin principal."""
        with self._reading("get_admin") as state:
            return state.admin

    def change_admin(self, caller: str, new_admin: str) -> str:
        """Hand admin rights over to another principal.

        Returns:
            The admin after the change.

        Raises:
            Unauthorized: If caller is not the current admin.
        """
        with self._transaction(Operation.CHANGE_ADMIN) as state:
            authorize(state, caller, Operation.CHANGE_ADMIN)
            state.admin = new_admin
        logger.info("Admin changed from %s to %s", caller, new_admin)
        return new_admin

    # Label registry

    def add_label(self, caller: str, label_id: str, name: str, url: str) -> LabelDescriptor:
        """Create a label with zeroed counters.

        Returns:
            A copy of the new label's descriptor.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
            Unauthorized: If caller is not the admin.
            AlreadyExists: If the label already exists.
        """
        with self._transaction(Operation.ADD_LABEL, label_id) as state:
            authorize(state, caller, Operation.ADD_LABEL, label_id=label_id)
            if label_id in state.labels:
                raise AlreadyExists(f"Label '{label_id}' already exists", identifier=label_id)
            descriptor = LabelDescriptor(name=name, url=url)
            state.labels[label_id] = descriptor
            result = descriptor.model_copy()
        logger.info("Added label %s (%s)", label_id, name)
        return result

    def change_label(self, caller: str, label_id: str, name: str, url: str) -> LabelDescriptor:
        """Overwrite a label's name and url, leaving its counters untouched.

        Returns:
            A copy of the changed descriptor.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
            Unauthorized: If caller is not the admin.
            NotFound: If the label does not exist.
        """
        with self._transaction(Operation.CHANGE_LABEL, label_id) as state:
            authorize(state, caller, Operation.CHANGE_LABEL, label_id=label_id)
            descriptor = self._require_label(state, label_id)
            descriptor.name = name
            descriptor.url = url
            result = descriptor.model_copy()
        logger.info("Changed label %s (%s)", label_id, name)
        return result

    def remove_label(self, caller: str, label_id: str) -> None:
        """Delete a label that has neither operators nor assets.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
            Unauthorized: If caller is not the admin.
            NotFound: If the label does not exist.
            NotEmpty: If the label still has operators or assets.
        """
        with self._transaction(Operation.REMOVE_LABEL, label_id) as state:
            authorize(state, caller, Operation.REMOVE_LABEL, label_id=label_id)
            descriptor = self._require_label(state, label_id)
            if descriptor.num_operators > 0:
                raise NotEmpty(
                    f"Label '{label_id}' still has {descriptor.num_operators} operators",
                    identifier=label_id,
                )
            if descriptor.num_assets > 0:
                raise NotEmpty(
                    f"Label '{label_id}' is still attached to {descriptor.num_assets} assets",
                    identifier=label_id,
                )
            del state.labels[label_id]
        logger.info("Removed label %s", label_id)

    def get_label(self, label_id: str) -> LabelDescriptor:
        """Return a copy of a label's descriptor.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
            NotFound: If the label does not exist.
        """
        with self._reading("get_label", label_id) as state:
            return self._require_label(state, label_id).model_copy()

    def has_label(self, label_id: str) -> int:
        """Return 1 if the label exists, 0 otherwise.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
        """
        with self._reading("has_label", label_id) as state:
            return int(label_id in state.labels)

    def list_labels(self) -> list[str]:
        """Return all label ids in creation order."""
        with self._reading("list_labels") as state:
            return list(state.labels)

    # Operator index

    def add_operator_to_label(self, caller: str, operator: str, label_id: str) -> list[str]:
        """Allow a principal to attach and detach a label.

        Returns:
            The labels the principal operates after the grant.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
            Unauthorized: If caller is neither admin nor an operator of the label.
            NotFound: If the label does not exist.
            AlreadyExists: If the principal already operates the label.
        """
        with self._transaction(Operation.ADD_OPERATOR_TO_LABEL, label_id) as state:
            authorize(state, caller, Operation.ADD_OPERATOR_TO_LABEL, label_id=label_id)
            descriptor = self._require_label(state, label_id)
            labels = state.operators.setdefault(operator, [])
            if label_id in labels:
                raise AlreadyExists(
                    f"'{operator}' is already an operator of label '{label_id}'",
                    identifier=operator,
                )
            labels.append(label_id)
            descriptor.num_operators += 1
            result = list(labels)
        logger.info("Added operator %s to label %s", operator, label_id)
        return result

    def remove_operator_from_label(self, caller: str, operator: str, label_id: str) -> list[str]:
        """Revoke a principal's right to attach and detach a label.

        Returns:
            The labels the principal still operates.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
            Unauthorized: If caller is neither admin nor the operator itself.
            NotFound: If the label does not exist or the principal does not
                operate it.
        """
        with self._transaction(Operation.REMOVE_OPERATOR_FROM_LABEL, label_id) as state:
            authorize(
                state,
                caller,
                Operation.REMOVE_OPERATOR_FROM_LABEL,
                label_id=label_id,
                operator=operator,
            )
            descriptor = self._require_label(state, label_id)
            labels = state.operators.get(operator, [])
            if label_id not in labels:
                raise NotFound(
                    f"'{operator}' is not an operator of label '{label_id}'",
                    identifier=operator,
                )
            labels.remove(label_id)
            if not labels:
                del state.operators[operator]
            descriptor.num_operators -= 1
            result = list(labels)
        logger.info("Removed operator %s from label %s", operator, label_id)
        return result

    def get_operator_labels(self, operator: str) -> list[str]:
        """Return the labels a principal operates, in the order they were granted."""
        with self._reading("get_operator_labels") as state:
            return list(state.operators.get(operator, []))

    def has_operator_label(self, operator: str, label_id: str) -> int:
        """Return 1 if the principal operates the label, 0 otherwise.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
        """
        with self._reading("has_operator_label", label_id) as state:
            return int(label_id in state.operators.get(operator, []))

    # Asset index

    def _lookup_assets(
        self, caller: str, operation: Operation, label_id: str, assets: list[int]
    ) -> AssetLookup:
        """Ask the oracle about assets without holding the store lock.

        The caller and the label are checked first, so rejected calls never
        reach the oracle. Lookups stop at the first asset that is missing or
        cannot be resolved, since the labeling fails there. The transaction
        that follows repeats every check against the then current state.
        """
        with self._lock:
            self._check_label_id(operation.value, label_id)
            try:
                authorize(self._state, caller, operation, label_id=label_id)
                self._require_label(self._state, label_id)
            except LabelRegistryError as e:
                self._log_rejection(operation.value, e)
                raise

        found: AssetLookup = {}
        for asset in assets:
            if asset in found:
                continue
            try:
                found[asset] = self._oracle.asset_exists(asset)
            except AssetOracleError as e:
                found[asset] = e
                break
            if not found[asset]:
                break
        return found

    def _require_asset(self, asset: int, found: AssetLookup) -> None:
        answer = found[asset]
        if isinstance(answer, AssetOracleError):
            raise answer
        if not answer:
            raise NotFound(f"Asset {asset} does not exist", identifier=asset)

    def add_label_to_asset(self, caller: str, asset: int, label_id: str) -> list[str]:
        """Attach a label to an existing asset.

        Returns:
            The labels of the asset after the change.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
            Unauthorized: If caller is not an operator of the label.
            NotFound: If the label or the asset does not exist.
            AlreadyExists: If the asset already carries the label.
            AssetOracleError: If the oracle cannot tell whether the asset exists.
        """
        found = self._lookup_assets(caller, Operation.ADD_LABEL_TO_ASSET, label_id, [asset])
        with self._transaction(Operation.ADD_LABEL_TO_ASSET, label_id) as state:
            authorize(state, caller, Operation.ADD_LABEL_TO_ASSET, label_id=label_id)
            descriptor = self._require_label(state, label_id)
            self._require_asset(asset, found)
            labels = state.assets.setdefault(asset, [])
            if label_id in labels:
                raise AlreadyExists(
                    f"Asset {asset} already has label '{label_id}'", identifier=asset
                )
            labels.append(label_id)
            descriptor.num_assets += 1
            result = list(labels)
        logger.info("Added label %s to asset %d", label_id, asset)
        return result

    def add_label_to_assets(self, caller: str, assets: list[int], label_id: str) -> LabelDescriptor:
        """Attach a label to several assets, all or nothing.

        Every asset is checked before any of them is labeled.

        Returns:
            A copy of the label's descriptor after the batch.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
            Unauthorized: If caller is not an operator of the label.
            NotFound: If the label or any asset does not exist.
            AlreadyExists: If any asset already carries the label or appears
                twice in the batch.
            AssetOracleError: If the oracle cannot tell whether an asset exists.
        """
        found = self._lookup_assets(caller, Operation.ADD_LABEL_TO_ASSETS, label_id, assets)
        with self._transaction(Operation.ADD_LABEL_TO_ASSETS, label_id) as state:
            authorize(state, caller, Operation.ADD_LABEL_TO_ASSETS, label_id=label_id)
            descriptor = self._require_label(state, label_id)

            seen: set[int] = set()
            for asset in assets:
                self._require_asset(asset, found)
                if asset in seen or label_id in state.assets.get(asset, []):
                    raise AlreadyExists(
                        f"Asset {asset} already has label '{label_id}'", identifier=asset
                    )
                seen.add(asset)

            for asset in assets:
                state.assets.setdefault(asset, []).append(label_id)
            descriptor.num_assets += len(assets)
            result = descriptor.model_copy()
        logger.info("Added label %s to %d assets", label_id, len(assets))
        return result

    def remove_label_from_asset(self, caller: str, asset: int, label_id: str) -> list[str]:
        """Detach a label from an asset.

        Returns:
            The labels the asset still carries.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
            NotFound: If the label does not exist or the asset does not carry it.
            Unauthorized: If caller is not an operator of the label.
        """
        with self._transaction(Operation.REMOVE_LABEL_FROM_ASSET, label_id) as state:
            descriptor = self._require_label(state, label_id)
            authorize(state, caller, Operation.REMOVE_LABEL_FROM_ASSET, label_id=label_id)
            labels = state.assets.get(asset, [])
            if label_id not in labels:
                raise NotFound(f"Asset {asset} does not have label '{label_id}'", identifier=asset)
            labels.remove(label_id)
            if not labels:
                del state.assets[asset]
            descriptor.num_assets -= 1
            result = list(labels)
        logger.info("Removed label %s from asset %d", label_id, asset)
        return result

    def get_asset_labels(self, asset: int) -> list[str]:
        """Return the labels attached to an asset, in the order they were attached."""
        with self._reading("get_asset_labels") as state:
            return list(state.assets.get(asset, []))

    def get_assets_labels(self, assets: list[int]) -> list[list[str]]:
        """Return the label sequences of several assets, in request order."""
        with self._reading("get_assets_labels") as state:
            return [list(state.assets.get(asset, [])) for asset in assets]

    def has_asset_label(self, asset: int, label_id: str) -> int:
        """Return 1 if the asset carries the label, 0 otherwise.

        Raises:
            InvalidIdentifierLength: If label_id has the wrong length.
        """
        with self._reading("has_asset_label", label_id) as state:
            return int(label_id in state.assets.get(asset, []))

    def check_consistency(self) -> list[str]:
        """Compare every label's counters with the index contents.

        Scans both indices, so it is meant for tests and operational checks,
        never for serving requests.

        Returns:
            Human readable descriptions of every mismatch; empty if consistent.
        """
        with self._lock:
            problems: list[str] = []
            operator_counts = dict.fromkeys(self._state.labels, 0)
            asset_counts = dict.fromkeys(self._state.labels, 0)

            for operator, labels in self._state.operators.items():
                for label_id in labels:
                    if label_id not in operator_counts:
                        problems.append(f"operator {operator} references missing label {label_id}")
                    else:
                        operator_counts[label_id] += 1
            for asset, labels in self._state.assets.items():
                for label_id in labels:
                    if label_id not in asset_counts:
                        problems.append(f"asset {asset} references missing label {label_id}")
                    else:
                        asset_counts[label_id] += 1

            for label_id, descriptor in self._state.labels.items():
                if descriptor.num_operators != operator_counts[label_id]:
                    problems.append(
                        f"label {label_id} counts {descriptor.num_operators} operators, "
                        f"index holds {operator_counts[label_id]}"
                    )
                if descriptor.num_assets != asset_counts[label_id]:
                    problems.append(
                        f"label {label_id} counts {descriptor.num_assets} assets, "
                        f"index holds {asset_counts[label_id]}"
                    )
            return problems
