"""Configuration for the GigLedger tax export engine.

This module provides Pydantic Settings-based configuration with environment
variable support and sensible defaults for export runs.

Usage:
    from gigledger_tax.config import GigLedgerConfig

    # Load from environment variables and .env file
    config = GigLedgerConfig()

    # Access export defaults
    print(config.export.include_tips)
    print(config.export.txf_flavor)
"""

import logging
from decimal import Decimal
from typing import Any, Literal

import structlog
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError
from .irs_tables import DE_MINIMIS_SAFE_HARBOR


class ExportSettings(BaseSettings):
    """Defaults applied to every export request.

    Environment Variables:
        GIGLEDGER_EXPORT_INCLUDE_TIPS: Count tips toward gross receipts
        GIGLEDGER_EXPORT_INCLUDE_FEES_AS_DEDUCTION: File platform fees on line 10
            (otherwise they reduce receipts as returns and allowances)
        GIGLEDGER_EXPORT_TIMEZONE: Timezone recorded in package metadata
        GIGLEDGER_EXPORT_APP_VERSION: Version stamped into TXF headers and reports
        GIGLEDGER_EXPORT_TXF_FLAVOR: Default TXF header flavor (turbotax, hrblock)
        GIGLEDGER_EXPORT_ASSET_REVIEW_THRESHOLD: Expense amount that triggers a
            depreciation review flag
    """

    model_config = SettingsConfigDict(
        env_prefix="GIGLEDGER_EXPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    include_tips: bool = Field(
        default=True,
        description="Count tips toward gross receipts",
    )
    include_fees_as_deduction: bool = Field(
        default=True,
        description="File platform fees as commissions and fees",
    )
    timezone: str = Field(
        default="America/New_York",
        description="Timezone recorded in package metadata",
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version stamped into exports",
    )
    txf_flavor: Literal["turbotax", "hrblock"] = Field(
        default="turbotax",
        description="Desktop tax software the TXF header targets",
    )
    asset_review_threshold: Decimal = Field(
        default=DE_MINIMIS_SAFE_HARBOR,
        gt=0,
        description="Expense amount at or above which a depreciation review is suggested",
    )

    @field_validator("timezone", "app_version")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Ensure text settings are not empty."""
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class GigLedgerConfig(BaseSettings):
    """Root configuration for the export engine.

    Environment Variables:
        GIGLEDGER_ENV: Environment name (development, staging, production, test)
        GIGLEDGER_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        config = GigLedgerConfig(export=ExportSettings(include_tips=False))
        engine = TaxExportEngine(config)
    """

    model_config = SettingsConfigDict(
        env_prefix="GIGLEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    export: ExportSettings = Field(default_factory=ExportSettings)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.env == "production"

    @property
    def is_debug(self) -> bool:
        return self.log_level == "DEBUG"


def load_config(**overrides: Any) -> GigLedgerConfig:
    """Load configuration, raising ConfigurationError on invalid values."""
    try:
        return GigLedgerConfig(**overrides)
    except ValidationError as e:
        first = e.errors()[0]
        config_key = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigurationError(
            f"Invalid configuration: {first.get('msg', str(e))}",
            config_key=config_key or None,
            actual=first.get("input"),
        ) from e


def configure_logging(config: GigLedgerConfig) -> None:
    """Filter structlog output at the configured level."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, config.log_level)
        ),
    )
