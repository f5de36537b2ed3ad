"""Configuration loading for the label registry service.

This module provides Pydantic-based settings loaded from environment variables
and .env files, and builds the asset oracle they describe.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from labelregistry.registry.asset_oracle import (
    AssetOracle,
    HttpAssetOracle,
    PermissiveAssetOracle,
    StaticAssetOracle,
)

logger = logging.getLogger(__name__)


class AssetOracleKind(StrEnum):
    """Supported asset existence oracles."""

    PERMISSIVE = "permissive"
    STATIC = "static"
    HTTP = "http"


class RegistrySettings(BaseSettings):
    """Settings for the label registry service.

    Environment Variables:
        LABEL_REGISTRY_ADMIN: Admin principal of a freshly created registry
        LABEL_REGISTRY_STORAGE_PATH: JSON snapshot file (default: in-memory only)
        LABEL_REGISTRY_ASSET_ORACLE: permissive, static or http (default: permissive)
        LABEL_REGISTRY_ASSET_ORACLE_URL: Indexer base URL for the http oracle
        LABEL_REGISTRY_ASSET_ORACLE_TIMEOUT: Indexer request timeout in seconds
        LABEL_REGISTRY_ASSET_ORACLE_MAX_RETRIES: Indexer attempts per lookup
        LABEL_REGISTRY_KNOWN_ASSETS: Asset ids known to the static oracle

    Example:
        >>> settings = RegistrySettings(admin="alice")
        >>> settings.asset_oracle
        <AssetOracleKind.PERMISSIVE: 'permissive'>
    """

    model_config = SettingsConfigDict(
        env_prefix="LABEL_REGISTRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    admin: str = Field(
        default="admin",
        min_length=1,
        description="Admin principal of a freshly created registry",
    )
    storage_path: Path | None = Field(
        default=None,
        description="JSON snapshot file; None keeps the registry in memory",
    )

    asset_oracle: AssetOracleKind = Field(
        default=AssetOracleKind.PERMISSIVE,
        description="Which asset existence oracle to use",
    )
    asset_oracle_url: str = Field(
        default="http://localhost:8980",
        description="Ledger indexer base URL",
    )
    asset_oracle_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Indexer request timeout in seconds",
    )
    asset_oracle_max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Indexer attempts per lookup",
    )
    known_assets: list[int] = Field(
        default_factory=list,
        description="Asset ids that exist for the static oracle",
    )

    @field_validator("asset_oracle", mode="before")
    @classmethod
    def normalize_oracle(cls, v: Any) -> AssetOracleKind:
        """Normalize oracle string to enum."""
        if isinstance(v, str):
            return AssetOracleKind(v.lower())
        return v

    def build_asset_oracle(self) -> AssetOracle:
        """Create the asset oracle selected by these settings."""
        if self.asset_oracle == AssetOracleKind.HTTP:
            return HttpAssetOracle(
                self.asset_oracle_url,
                timeout=self.asset_oracle_timeout,
                max_retries=self.asset_oracle_max_retries,
            )
        if self.asset_oracle == AssetOracleKind.STATIC:
            return StaticAssetOracle(self.known_assets)
        return PermissiveAssetOracle()


@lru_cache
def get_settings() -> RegistrySettings:
    """Get cached registry settings.

    To reload settings, call get_settings.cache_clear() first.
    """
    settings = RegistrySettings()
    logger.info(
        "Loaded registry settings: admin=%s, storage=%s, oracle=%s",
        settings.admin,
        settings.storage_path,
        settings.asset_oracle.value,
    )
    return settings
