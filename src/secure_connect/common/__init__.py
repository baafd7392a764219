# secure_connect/common/__init__.py

from secure_connect.common.logger import HTTP_LOGGER_NAMES, PACKAGE_LOGGER_NAME, setup_logger
from secure_connect.common.validation import summarize_validation_error

__all__: list[str] = [
    'HTTP_LOGGER_NAMES',
    'PACKAGE_LOGGER_NAME',
    'setup_logger',
    'summarize_validation_error',
]
