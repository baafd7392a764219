"""
Configuration Package for Secure Connect.

Exposes the configuration models and the loader function.
"""

from secure_connect.config.config_models import (
    DEFAULT_METADATA_TIMEOUT_SECONDS,
    LoggingConfig,
    MetadataConfig,
    SecureConnectConfig,
    StagingConfig,
)
from secure_connect.config.loader import load_config

__all__: list[str] = [
    'DEFAULT_METADATA_TIMEOUT_SECONDS',
    'LoggingConfig',
    'MetadataConfig',
    'SecureConnectConfig',
    'StagingConfig',
    'load_config',
]
