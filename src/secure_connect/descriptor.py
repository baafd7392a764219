# secure_connect/descriptor.py
"""
Bundle descriptor parsing.

Reads config.json from the root of a staged bundle and decodes it into a
BundleDescriptor. Decode failures are errors; they never yield a default
descriptor.
"""

import logging
from pathlib import Path

from pydantic import ValidationError

from secure_connect.common import summarize_validation_error
from secure_connect.exceptions import (
    DescriptorMalformedError,
    DescriptorMissingError,
)
from secure_connect.models import DESCRIPTOR_FILENAME, BundleDescriptor

__all__: list[str] = ['parse_descriptor']

logger: logging.Logger = logging.getLogger(__name__)


def parse_descriptor(staging_dir: Path) -> BundleDescriptor:
    """
    Load and decode the bundle descriptor from a staging directory.

    Args:
        staging_dir: Root of the extracted bundle.

    Returns:
        The decoded descriptor. Unknown keys are ignored and missing keys
        keep their zero value; call `validate_endpoint()` before use.

    Raises:
        DescriptorMissingError: If config.json is absent.
        DescriptorMalformedError: If the file is unreadable, not valid JSON,
            not a JSON object, or has fields of the wrong type.
    """
    descriptor_path: Path = staging_dir / DESCRIPTOR_FILENAME

    if not descriptor_path.is_file():
        logger.error('Bundle is missing %s', DESCRIPTOR_FILENAME)
        raise DescriptorMissingError(descriptor_path)

    try:
        raw_descriptor: bytes = descriptor_path.read_bytes()
    except OSError as error:
        logger.error('Cannot read %s: %s', DESCRIPTOR_FILENAME, error)
        raise DescriptorMalformedError(descriptor_path, str(error)) from error

    try:
        descriptor: BundleDescriptor = BundleDescriptor.model_validate_json(raw_descriptor)
    except ValidationError as error:
        reason: str = summarize_validation_error(error)
        logger.error('Invalid %s: %s', DESCRIPTOR_FILENAME, reason)
        raise DescriptorMalformedError(descriptor_path, reason) from error

    logger.debug(
        'Parsed descriptor: host=%r, port=%d',
        descriptor.host,
        descriptor.port,
    )
    return descriptor
