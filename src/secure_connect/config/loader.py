# secure_connect/config/loader.py
"""
Locate, parse and validate the bundle loader configuration.

The configuration file is optional. Its location is chosen in this order:

1. The path passed to load_config().
2. The SECURE_CONNECT_CONFIG environment variable.
3. config/secure_connect_config.yaml under the working directory.

A file named by (1) or (2) must exist. The default file may be absent, in
which case every setting takes its model default, so a process can load
bundles with no configuration on disk at all.
"""

import logging
import os
from pathlib import Path
from typing import Any, Final

import yaml
from pydantic import ValidationError

from secure_connect.common.validation import summarize_validation_error
from secure_connect.config.config_models import SecureConnectConfig

__all__: list[str] = ['CONFIG_PATH_ENV_VAR', 'DEFAULT_CONFIG_PATH', 'load_config']

logger: logging.Logger = logging.getLogger(__name__)

CONFIG_PATH_ENV_VAR: Final[str] = 'SECURE_CONNECT_CONFIG'
DEFAULT_CONFIG_PATH: Final[Path] = Path('config/secure_connect_config.yaml')


def _explicit_config_path(config_path: Path | str | None) -> Path | None:
    """Return the path requested by the caller or the environment, if any."""
    if config_path is not None:
        return Path(config_path)

    env_path: str = os.environ.get(CONFIG_PATH_ENV_VAR, '').strip()
    if env_path:
        logger.debug('Using configuration path from %s', CONFIG_PATH_ENV_VAR)
        return Path(env_path)

    return None


def _read_config_document(config_path: Path) -> dict[str, Any]:
    """
    Parse a YAML file into the mapping the models are validated from.

    Raises:
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document root is not a mapping.
    """
    try:
        with config_path.open(encoding='utf-8') as config_file:
            document: Any = yaml.safe_load(config_file)
    except yaml.YAMLError as error:
        error_message: str = f'Failed to parse YAML configuration {config_path}: {error}'
        logger.error(error_message)
        raise yaml.YAMLError(error_message) from error

    if document is None:
        return {}

    if not isinstance(document, dict):
        error_message = (
            f'Configuration root in {config_path} must be a mapping, '
            f'got {type(document).__name__}'
        )
        logger.error(error_message)
        raise ValueError(error_message)

    return document


def load_config(config_path: Path | str | None = None) -> SecureConnectConfig:
    """
    Load the bundle loader configuration.

    Args:
        config_path: YAML file to load. When None, SECURE_CONNECT_CONFIG is
            consulted, then DEFAULT_CONFIG_PATH.

    Returns:
        Validated SecureConnectConfig. Defaults only if no path was requested
        and the default file does not exist.

    Raises:
        FileNotFoundError: If a requested file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
        ValueError: If the document is not a mapping or fails validation.

    Example:
        >>> config = load_config('config/secure_connect_config.yaml')
        >>> config.metadata.timeout_seconds
        10.0
    """
    requested_path: Path | None = _explicit_config_path(config_path)

    if requested_path is None:
        if not DEFAULT_CONFIG_PATH.is_file():
            logger.debug('No configuration at %s, using defaults', DEFAULT_CONFIG_PATH)
            return SecureConnectConfig()
        requested_path = DEFAULT_CONFIG_PATH

    if not requested_path.is_file():
        error_message: str = f'Configuration file not found: {requested_path}'
        logger.error(error_message)
        raise FileNotFoundError(error_message)

    logger.info('Loading secure connect configuration from %s', requested_path)
    document: dict[str, Any] = _read_config_document(requested_path)

    try:
        config: SecureConnectConfig = SecureConnectConfig.model_validate(document)
    except ValidationError as error:
        error_message = (
            f'Configuration validation failed for {requested_path}: '
            f'{summarize_validation_error(error)}'
        )
        logger.error(error_message)
        raise ValueError(error_message) from error

    logger.debug(
        'Configuration loaded: metadata timeout %.1fs, staging under %s',
        config.metadata.timeout_seconds,
        config.staging.parent_dir or 'system temp dir',
    )
    return config
