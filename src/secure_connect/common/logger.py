# secure_connect/common/logger.py
"""
Logging setup for bundle loads.

Two logger trees are involved in a load: the `secure_connect` package, which
reports each pipeline stage, and httpx/httpcore, which carry the metadata
request. setup_logger() gives both the same handlers but separate levels, so
the stage log can run at DEBUG while transport records stay at WARNING.

Handlers are owned by this module: calling setup_logger() again closes the
handlers it attached last time before attaching new ones. Handlers added to
these loggers by other code are left alone.
"""

import logging
import sys
from typing import Final

from secure_connect.config.config_models import LoggingConfig

__all__: list[str] = ['HTTP_LOGGER_NAMES', 'PACKAGE_LOGGER_NAME', 'setup_logger']

PACKAGE_LOGGER_NAME: Final[str] = 'secure_connect'

# Loggers used by the metadata request's HTTP stack
HTTP_LOGGER_NAMES: Final[tuple[str, ...]] = ('httpx', 'httpcore')

LOG_FORMAT: Final[str] = '%(asctime)s %(levelname)-8s %(name)s: %(message)s'
LOG_DATE_FORMAT: Final[str] = '%Y-%m-%d %H:%M:%S'

# Marks handlers created here so a later call can find and replace them
_OWNED_HANDLER_ATTR: Final[str] = '_secure_connect_handler'


def _level_number(level_name: str) -> int:
    return logging.getLevelNamesMapping()[level_name]


def _release_owned_handlers(target_logger: logging.Logger) -> None:
    for handler in list(target_logger.handlers):
        if getattr(handler, _OWNED_HANDLER_ATTR, False):
            target_logger.removeHandler(handler)
            handler.close()


def _build_handlers(config: LoggingConfig) -> list[logging.Handler]:
    """Create the console handler and, if configured, the file handler."""
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler: logging.Handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(_level_number(config.level))
    handlers: list[logging.Handler] = [console_handler]

    if config.file_path is not None:
        config.file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(config.file_path, mode='a', encoding='utf-8')
        file_handler.setLevel(_level_number(config.file_level))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _OWNED_HANDLER_ATTR, True)

    return handlers


def setup_logger(
    config: LoggingConfig | None = None,
    *,
    level: int | None = None,
) -> logging.Logger:
    """
    Route secure_connect and HTTP transport records to stdout and an optional file.

    Args:
        config: Logging section of the loaded configuration. Defaults to
            LoggingConfig(), i.e. INFO for the package, WARNING for httpx.
        level: Overrides config.level for the package logger, for quick
            debugging without a config file.

    Returns:
        The package logger. Module loggers created with
        logging.getLogger(__name__) inherit from it.

    Example:
        >>> setup_logger(level=logging.DEBUG)

        >>> config = load_config()
        >>> setup_logger(config.logging)
    """
    if config is None:
        config = LoggingConfig()

    package_logger: logging.Logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    http_loggers: list[logging.Logger] = [logging.getLogger(name) for name in HTTP_LOGGER_NAMES]

    for target_logger in (package_logger, *http_loggers):
        _release_owned_handlers(target_logger)

    handlers: list[logging.Handler] = _build_handlers(config)
    if level is not None:
        handlers[0].setLevel(level)

    # A logger must pass everything at least one of its handlers wants
    package_logger.setLevel(min(handler.level for handler in handlers))
    for handler in handlers:
        package_logger.addHandler(handler)

    http_level: int = _level_number(config.http_level)
    for http_logger in http_loggers:
        http_logger.setLevel(http_level)
        for handler in handlers:
            http_logger.addHandler(handler)

    if config.file_path is not None:
        package_logger.debug('Logging to file: %s', config.file_path)

    return package_logger
