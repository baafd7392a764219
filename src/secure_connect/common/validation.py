# secure_connect/common/validation.py
"""Helpers for reporting Pydantic validation failures."""

from pydantic import ValidationError

__all__: list[str] = ['summarize_validation_error']


def summarize_validation_error(error: ValidationError) -> str:
    """
    Flatten a ValidationError into one line, e.g. "port: Input should be a valid integer".

    Args:
        error: The validation error raised by a model.

    Returns:
        Semicolon-separated "location: message" pairs; "<root>" marks errors
        about the document itself (invalid JSON, wrong top-level type).
    """
    return '; '.join(
        f'{".".join(str(part) for part in detail["loc"]) or "<root>"}: {detail["msg"]}'
        for detail in error.errors()
    )
