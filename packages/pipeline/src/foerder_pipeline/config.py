"""Configuration system for the Foerder extraction pipeline.

This module provides Pydantic Settings-based configuration with environment
variable support and sensible defaults for the OCR collaborator, the
extraction batch and the local data stores.

Usage:
    from foerder_pipeline.config import FoerderConfig

    # Load from environment variables and .env file
    config = FoerderConfig()

    # Access OCR service settings
    print(config.ocr.base_url)
    print(config.ocr.max_concurrency)

    # Access processing settings
    if config.processing.skip_completed_files:
        print("Only new uploads are sent to OCR")
"""

import logging
from typing import Any, Optional

import structlog
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from foerder_core.exceptions import ConfigurationError


class ExtractionServiceConfig(BaseSettings):
    """OCR extraction service settings.

    Environment Variables:
        FOERDER_OCR_BASE_URL: Base URL of the document-value service
        FOERDER_OCR_ACCESS_TOKEN: Bearer token sent with every request
        FOERDER_OCR_TIMEOUT: Per-file timeout in seconds
        FOERDER_OCR_MAX_CONCURRENCY: Maximum outstanding extraction calls
        FOERDER_OCR_DEFAULT_DOCUMENT_TYPE: Backend type for unmapped document types
    """

    model_config = SettingsConfigDict(
        env_prefix="FOERDER_OCR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the document-value extraction service",
    )
    access_token: Optional[str] = Field(
        default=None,
        description="Bearer token for the extraction service",
    )
    timeout: float = Field(
        default=120.0,
        gt=0,
        description="Timeout for one extraction call in seconds",
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        le=64,
        description="Maximum number of extraction calls in flight",
    )
    default_document_type: str = Field(
        default="werbungskosten_nachweis",
        description="Backend document type used when no mapping exists",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure the URL is an http(s) URL without trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid base URL: {v}. Must start with http:// or https://")
        return v.rstrip("/")


class ProcessingConfig(BaseSettings):
    """Extraction batch settings.

    Environment Variables:
        FOERDER_PROCESSING_SKIP_COMPLETED_FILES: Do not re-send files that
            already carry a non-zero confidence
        FOERDER_PROCESSING_DEBUG_MODE: Enable verbose debug logging
    """

    model_config = SettingsConfigDict(
        env_prefix="FOERDER_PROCESSING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    skip_completed_files: bool = Field(
        default=False,
        description="Skip files that were already extracted successfully",
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable verbose debug logging for development",
    )


class FoerderConfig(BaseSettings):
    """Root configuration for the Foerder pipeline.

    Environment Variables:
        FOERDER_ENV: Environment name (development, staging, production, test)
        FOERDER_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        FOERDER_DATA_DIR: Directory of the JSON file stores

    Example:
        # Load all configuration from environment
        config = FoerderConfig()

        # Override specific settings
        config = FoerderConfig(
            ocr=ExtractionServiceConfig(max_concurrency=8),
            processing=ProcessingConfig(skip_completed_files=True),
        )
    """

    model_config = SettingsConfigDict(
        env_prefix="FOERDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment settings
    env: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    data_dir: str = Field(
        default="./data",
        description="Directory for data files",
    )

    # Nested configuration
    ocr: ExtractionServiceConfig = Field(default_factory=ExtractionServiceConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)

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
        """Check if debug mode is enabled (via processing settings or log level)."""
        return self.processing.debug_mode or self.log_level == "DEBUG"


_ENV_PREFIXES = {
    "ExtractionServiceConfig": "FOERDER_OCR_",
    "ProcessingConfig": "FOERDER_PROCESSING_",
}
_NESTED_PREFIXES = {"ocr": "FOERDER_OCR_", "processing": "FOERDER_PROCESSING_"}


def _env_name(e: ValidationError) -> str:
    """Environment variable behind the first error of a settings ValidationError."""
    location = [str(part) for part in e.errors()[0]["loc"]]
    prefix = _ENV_PREFIXES.get(e.title, "FOERDER_")
    if prefix == "FOERDER_" and len(location) > 1 and location[0] in _NESTED_PREFIXES:
        prefix = _NESTED_PREFIXES[location.pop(0)]
    return prefix + "_".join(location).upper()


def load_config(**overrides: Any) -> FoerderConfig:
    """Load settings from the environment, applying explicit overrides.

    Raises:
        ConfigurationError: If a setting is invalid. The first offending
            setting is reported under its environment variable name.
    """
    try:
        return FoerderConfig(**overrides)
    except ValidationError as e:
        error = e.errors()[0]
        config_key = _env_name(e)
        raise ConfigurationError(
            f"Invalid configuration for {config_key}: {error['msg']}",
            config_key=config_key,
            expected=error["msg"],
            actual=None if config_key.endswith("ACCESS_TOKEN") else error.get("input"),
        ) from e


def configure_logging(config: FoerderConfig) -> None:
    """Configure structlog for the given settings.

    Debug mode lowers the level to DEBUG; production renders JSON lines,
    every other environment renders for the console.
    """
    level_name = "DEBUG" if config.is_debug else config.log_level
    renderer = (
        structlog.processors.JSONRenderer()
        if config.is_production
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level_name)
        ),
        cache_logger_on_first_use=False,
    )
