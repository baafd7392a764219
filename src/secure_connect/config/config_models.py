# secure_connect/config/config_models.py
"""
Configuration models for secure connect bundle loading.

This module provides Pydantic models for the optional configuration file that
tunes how bundles are unpacked and how the metadata service is contacted.
Every section has defaults, so `SecureConnectConfig()` is a complete,
valid configuration and a YAML file only needs to name what it overrides.

Design Decisions:
-----------------
- All models use `extra='forbid'` to catch typos and invalid fields in YAML
  configuration files early, preventing silent misconfiguration.

- No logging occurs within this module because the logging configuration itself
  is defined here. setup_logger() applies LoggingConfig after loading.

- The metadata timeout doubles as the only cancellation mechanism for the
  bootstrap request, so it is bounded on both sides.

Usage:
------
    import yaml
    from secure_connect.config.config_models import SecureConnectConfig

    with open('secure_connect_config.yaml', 'r') as config_file:
        raw_config = yaml.safe_load(config_file)

    config = SecureConnectConfig.model_validate(raw_config)
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# =============================================================================
# Public API
# =============================================================================

__all__: list[str] = [
    'DEFAULT_METADATA_TIMEOUT_SECONDS',
    'LogLevelName',
    'LoggingConfig',
    'MetadataConfig',
    'SecureConnectConfig',
    'StagingConfig',
]

# =============================================================================
# Type Aliases
# =============================================================================

# Standard logging level names; setup_logger resolves them to numbers
LogLevelName = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

DEFAULT_METADATA_TIMEOUT_SECONDS: float = 10.0


# =============================================================================
# Metadata Service Configuration
# =============================================================================


class MetadataConfig(BaseModel):
    """Settings for the HTTPS bootstrap request to the metadata service.

    Attributes:
        timeout_seconds: Upper bound for the whole request (connect, TLS
            handshake, response read). Expiry aborts the pipeline.
    """

    model_config = ConfigDict(extra='forbid')

    timeout_seconds: float = Field(
        default=DEFAULT_METADATA_TIMEOUT_SECONDS,
        gt=0.0,
        le=300.0,
        description='Metadata request timeout in seconds (0-300]',
    )


# =============================================================================
# Staging Configuration
# =============================================================================


class StagingConfig(BaseModel):
    """Settings for the ephemeral directory that holds extracted bundle files.

    The staging directory is always created fresh for each load and removed
    before the load returns. These settings only control where it lives.

    Attributes:
        parent_dir: Directory under which staging directories are created.
            None uses the platform temp directory (tempfile.gettempdir()).
        prefix: Name prefix for each staging directory.
    """

    model_config = ConfigDict(extra='forbid')

    parent_dir: Path | None = Field(
        default=None,
        description='Parent directory for staging; None uses the system temp dir',
    )
    prefix: str = Field(
        default='securezip',
        min_length=1,
        max_length=64,
        description='Name prefix for staging directories',
    )

    @field_validator('parent_dir')
    @classmethod
    def validate_parent_dir_is_directory(cls, parent_dir: Path | None) -> Path | None:
        """Ensure a configured parent directory exists and is a directory.

        Args:
            parent_dir: Candidate parent directory, or None.

        Returns:
            The validated path.

        Raises:
            ValueError: If the path does not exist or is not a directory.
        """
        if parent_dir is None:
            return None

        if not parent_dir.exists():
            raise ValueError(f'Staging parent directory not found: {parent_dir}')
        if not parent_dir.is_dir():
            raise ValueError(f'Staging parent must be a directory: {parent_dir}')

        return parent_dir

    @field_validator('prefix')
    @classmethod
    def validate_prefix_is_plain_name(cls, prefix: str) -> str:
        """Reject prefixes that would place the staging directory elsewhere.

        Args:
            prefix: Directory name prefix.

        Returns:
            The validated prefix.

        Raises:
            ValueError: If the prefix contains a path separator.
        """
        if '/' in prefix or '\\' in prefix:
            raise ValueError(f'Staging prefix must not contain path separators: {prefix!r}')
        return prefix


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Where bundle-load log records go and how much of them to keep.

    The package logger always writes to stdout. A load also runs one HTTPS
    request through httpx, whose loggers ('httpx', 'httpcore') report every
    request line and connection event; http_level bounds those separately so
    that DEBUG output for the pipeline does not drown in transport chatter.

    Attributes:
        level: Minimum level for secure_connect records on the console.
        http_level: Minimum level for httpx and httpcore records.
        file_path: Optional log file receiving the same records.
        file_level: Minimum level for the log file. Only meaningful with
            file_path.
    """

    model_config = ConfigDict(extra='forbid')

    level: LogLevelName = Field(
        default='INFO',
        description='Console level for secure_connect records',
    )
    http_level: LogLevelName = Field(
        default='WARNING',
        description='Level for the httpx/httpcore loggers used by the metadata request',
    )
    file_path: Path | None = Field(
        default=None,
        description='Log file path; None disables file logging',
    )
    file_level: LogLevelName = Field(
        default='DEBUG',
        description='File level, used only when file_path is set',
    )

    @field_validator('level', 'http_level', 'file_level', mode='before')
    @classmethod
    def normalize_level_name(cls, level_value: object) -> object:
        """Accept level names in any case ('debug', 'Info')."""
        if isinstance(level_value, str):
            return level_value.strip().upper()
        return level_value

    @field_validator('file_path')
    @classmethod
    def reject_directory_as_log_file(cls, file_path: Path | None) -> Path | None:
        if file_path is not None and file_path.is_dir():
            raise ValueError(f'Log file path is a directory: {file_path}')
        return file_path


# =============================================================================
# Root Configuration
# =============================================================================


class SecureConnectConfig(BaseModel):
    """Root configuration model for secure connect bundle loading.

    Aggregates all configuration sections. Every section is optional in the
    YAML file; omitted sections take their defaults.

    Attributes:
        metadata: Metadata service request settings.
        staging: Staging directory placement.
        logging: Application logging configuration.
    """

    model_config = ConfigDict(extra='forbid')

    metadata: MetadataConfig = Field(
        default_factory=MetadataConfig,
        description='Metadata service request settings',
    )
    staging: StagingConfig = Field(
        default_factory=StagingConfig,
        description='Staging directory placement',
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description='Application logging configuration',
    )
