"""
==============================================================================
Application Settings Module
==============================================================================

Configuration management using Pydantic Settings.

This module implements the Singleton pattern to ensure a single global
configuration instance throughout the application lifecycle.

Configuration Priority (highest to lowest):
------------------------------------------
1. Environment variables
2. .env file
3. Default values

Scan Policy:
-----------
The scan loop retries indefinitely by default. SCAN_MAX_TICKS and
SCAN_MAX_MALFORMED put an upper bound on a session when set.

==============================================================================
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Module logger
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        app_name: Display name for the application
        app_env: Environment mode (development/staging/production)
        debug: Enable debug mode for verbose logging
        host: Server bind address
        port: Server port number
        products_file: Path to product catalog JSON
        cors_origins: Allowed CORS origins (JSON array string)
        camera_index: Default camera device index for server-side scans
        scan_interval_seconds: Sampling interval between scan ticks
        scan_max_ticks: Optional cap on ticks per session
        scan_max_malformed: Optional cap on malformed reads per session
        max_missed_reads: Consecutive failed camera reads treated as device loss
        scan_request_timeout_seconds: Upper bound for HTTP-triggered camera scans
        qr_error_correction: QR error correction level (L, M, Q, H)
        qr_box_size: Pixels per QR module
        qr_border: Quiet zone width in modules
        scan_symbologies: Symbologies the locator looks for

    Example:
        >>> settings = Settings()
        >>> print(settings.scan_interval_seconds)
        0.5
    """

    # =========================================================================
    # PYDANTIC SETTINGS CONFIGURATION
    # =========================================================================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    # =========================================================================
    # APPLICATION SETTINGS
    # =========================================================================
    app_name: str = Field(
        default="Product Scan API",
        description="Display name for the application"
    )

    app_env: str = Field(
        default="development",
        description="Environment mode: development, staging, production"
    )

    debug: bool = Field(
        default=False,
        description="Enable debug mode for verbose logging"
    )

    # =========================================================================
    # SERVER SETTINGS
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Server bind address"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Server port number"
    )

    # =========================================================================
    # CATALOG SETTINGS
    # =========================================================================
    products_file: str = Field(
        default="data/products.json",
        description="Path to product catalog JSON"
    )

    cors_origins: str = Field(
        default='["*"]',
        description="Allowed CORS origins as JSON array string"
    )

    # =========================================================================
    # SCANNER SETTINGS
    # =========================================================================
    camera_index: int = Field(
        default=0,
        ge=0,
        description="Camera device index for server-side scans"
    )

    scan_interval_seconds: float = Field(
        default=0.5,
        gt=0,
        le=10,
        description="Seconds between scan ticks"
    )

    scan_max_ticks: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum ticks per session (unbounded when unset)"
    )

    scan_max_malformed: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum malformed reads per session (unbounded when unset)"
    )

    max_missed_reads: int = Field(
        default=30,
        ge=1,
        description="Consecutive failed reads before the camera counts as lost"
    )

    scan_request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=600,
        description="Upper bound for HTTP-triggered camera scans"
    )

    scan_symbologies: str = Field(
        default="QRCODE",
        description="Comma-separated pyzbar symbology names"
    )

    # =========================================================================
    # LABEL SETTINGS
    # =========================================================================
    qr_error_correction: str = Field(
        default="L",
        description="QR error correction level: L, M, Q, H"
    )

    qr_box_size: int = Field(
        default=8,
        ge=1,
        le=50,
        description="Pixels per QR module"
    )

    qr_border: int = Field(
        default=1,
        ge=0,
        le=10,
        description="Quiet zone width in modules"
    )

    # =========================================================================
    # VALIDATORS
    # =========================================================================
    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, value: str) -> str:
        """
        Validate and normalize application environment.

        Args:
            value: Raw environment value

        Returns:
            Lowercase normalized environment name
        """
        valid_envs = {"development", "staging", "production"}
        normalized = value.lower().strip()

        if normalized not in valid_envs:
            logger.warning(
                f"Unknown environment '{value}', defaulting to 'development'"
            )
            return "development"

        return normalized

    @field_validator("qr_error_correction")
    @classmethod
    def validate_qr_error_correction(cls, value: str) -> str:
        """
        Validate QR error correction level.

        Raises:
            ValueError: If level is not one of L, M, Q, H
        """
        level = value.upper().strip()

        if level not in {"L", "M", "Q", "H"}:
            raise ValueError(
                f"Unsupported QR error correction level: {value}. "
                "Supported: L, M, Q, H"
            )

        return level

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"

    @property
    def products_path(self) -> Path:
        """Get products file as Path object."""
        return Path(self.products_file)

    @property
    def symbology_list(self) -> List[str]:
        """Parse configured symbologies into upper-case names."""
        return [
            name.strip().upper()
            for name in self.scan_symbologies.split(",")
            if name.strip()
        ]

    @property
    def cors_origins_list(self) -> List[str]:
        """
        Parse CORS origins from JSON string to list.

        Returns:
            List of allowed origin strings
        """
        try:
            origins = json.loads(self.cors_origins)
            if isinstance(origins, list):
                return origins
            return ["*"]
        except json.JSONDecodeError:
            logger.warning(
                f"Invalid CORS origins JSON: {self.cors_origins}, "
                "defaulting to ['*']"
            )
            return ["*"]

    def __repr__(self) -> str:
        """String representation for debugging."""
        return (
            f"Settings(app_name={self.app_name!r}, "
            f"app_env={self.app_env!r}, "
            f"debug={self.debug})"
        )


# =============================================================================
# SINGLETON INSTANCE MANAGEMENT
# =============================================================================

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get the global Settings instance (singleton pattern).

    Returns:
        Global Settings instance
    """
    settings = Settings()

    if settings.debug:
        logger.info(f"Configuration loaded: {settings}")

    return settings
