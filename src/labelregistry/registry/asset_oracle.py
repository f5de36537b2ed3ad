"""Asset existence oracles.

Attaching a label to an asset requires confirmation that the asset currently
exists on the resource ledger. The registry only depends on the AssetOracle
protocol; the implementations here cover local development, tests and a
ledger indexer reachable over HTTP.
"""

import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from labelregistry.registry.errors import AssetOracleError

logger = logging.getLogger(__name__)


@runtime_checkable
class AssetOracle(Protocol):
    """Answers whether an asset currently exists on the resource ledger."""

    def asset_exists(self, asset: int) -> bool:
        """Return True if the asset exists, False if it does not or is unsupported."""
        ...


class PermissiveAssetOracle:
    """Treats every non-negative asset id as existing."""

    def asset_exists(self, asset: int) -> bool:
        return asset >= 0


class StaticAssetOracle:
    """In-memory set of live asset ids.

    Example:
        >>> oracle = StaticAssetOracle([13, 14])
        >>> oracle.asset_exists(13)
        True
        >>> oracle.destroy(13)
        >>> oracle.asset_exists(13)
        False
    """

    def __init__(self, assets: Iterable[int] = ()) -> None:
        self._assets: set[int] = set(assets)

    def create(self, asset: int) -> None:
        """Mark an asset as existing."""
        self._assets.add(asset)

    def destroy(self, asset: int) -> None:
        """Mark an asset as destroyed."""
        self._assets.discard(asset)

    def asset_exists(self, asset: int) -> bool:
        return asset in self._assets


class HttpAssetOracle:
    """Asset oracle backed by a ledger indexer HTTP API.

    Looks assets up at ``GET {base_url}/v2/assets/{asset}``. A 404 answer or a
    payload flagged ``deleted`` means the asset does not exist. Transport
    failures are retried with exponential backoff and then reported as
    AssetOracleError, never as a missing asset.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        max_retries: int = 3,
        initial_wait: float = 0.5,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the oracle.

        Args:
            base_url: Indexer base URL, e.g. ``http://localhost:8980``.
            timeout: Per-request timeout in seconds.
            max_retries: Attempts made before giving up on transport errors.
            initial_wait: First backoff delay in seconds.
            transport: Optional httpx transport, used to stub the indexer.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._max_retries = max_retries
        self._initial_wait = initial_wait
        self._transport = transport

    def asset_exists(self, asset: int) -> bool:
        if asset < 0:
            return False

        def before_sleep(retry_state: RetryCallState) -> None:
            logger.warning(
                "Asset lookup for %d failed, attempt %d/%d",
                asset,
                retry_state.attempt_number,
                self._max_retries,
            )

        retryer = Retrying(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_exponential(multiplier=self._initial_wait, max=10.0),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep,
            reraise=True,
        )

        try:
            response = retryer(self._fetch, asset)
        except httpx.TransportError as e:
            logger.error("Asset oracle at %s unreachable: %s", self._base_url, str(e))
            raise AssetOracleError(f"Asset oracle unreachable: {e}", identifier=asset) from e

        if response.status_code == httpx.codes.NOT_FOUND:
            return False
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Asset oracle HTTP error: %s", e.response.status_code)
            raise AssetOracleError(
                f"Asset oracle HTTP error: {e.response.status_code}", identifier=asset
            ) from e

        try:
            payload = response.json()
            return not payload.get("asset", {}).get("deleted", False)
        except (ValueError, AttributeError) as e:
            logger.error("Asset oracle returned malformed payload for asset %d: %s", asset, e)
            raise AssetOracleError(
                f"Asset oracle returned malformed payload: {e}", identifier=asset
            ) from e

    def _fetch(self, asset: int) -> httpx.Response:
        """Issue a single indexer lookup."""
        logger.debug("Looking up asset %d at %s", asset, self._base_url)
        with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
            return client.get(f"{self._base_url}/v2/assets/{asset}")
