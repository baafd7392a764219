# secure_connect/exceptions.py
"""
Exception hierarchy for the secure connect bundle pipeline.

Every failure in the bundle-to-connection-parameters pipeline surfaces as a
subclass of SecureConnectError. Each error records the pipeline stage that
failed so callers can report a single descriptive message without inspecting
the concrete type.

Stages:
    - extract: opening the archive and staging its entries on disk
    - descriptor: reading and validating config.json
    - credentials: loading certificate, key and CA into a TLS context
    - metadata: the HTTPS bootstrap request to the metadata service
    - staging: creating or removing the ephemeral staging directory
"""

from pathlib import Path

__all__: list[str] = [
    'ArchiveUnreadableError',
    'CredentialLoadFailedError',
    'DescriptorIncompleteError',
    'DescriptorMalformedError',
    'DescriptorMissingError',
    'MetadataMalformedError',
    'MetadataRequestRejectedError',
    'MetadataUnreachableError',
    'SecureConnectError',
    'StagingIOFailureError',
    'UnsafeArchiveEntryError',
]


class SecureConnectError(Exception):
    """
    Base exception for secure connect bundle failures.

    Catch this to handle every pipeline failure. The concrete subclass
    identifies what went wrong; `stage` identifies where.

    Attributes:
        stage: Name of the pipeline stage that raised the error.
    """

    stage: str = 'pipeline'

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __str__(self) -> str:
        return f'[{self.stage}] {self.message}'


# =============================================================================
# Extraction and Staging
# =============================================================================


class ArchiveUnreadableError(SecureConnectError):
    """
    Raised when the bundle archive cannot be opened or is corrupt.

    Attributes:
        bundle_path: Path of the archive that failed to open or decompress.
    """

    stage = 'extract'

    def __init__(self, bundle_path: Path | str, reason: str) -> None:
        self.bundle_path: Path = Path(bundle_path)
        super().__init__(f'Cannot read bundle archive {str(bundle_path)!r}: {reason}')


class UnsafeArchiveEntryError(SecureConnectError):
    """
    Raised when an archive entry would be written outside the staging root.

    Attributes:
        entry_name: The raw entry name as stored in the archive.
    """

    stage = 'extract'

    def __init__(self, entry_name: str) -> None:
        self.entry_name: str = entry_name
        super().__init__(
            f'Archive entry {entry_name!r} resolves outside the staging directory'
        )


class StagingIOFailureError(SecureConnectError):
    """
    Raised when the staging directory cannot be created, written or removed.

    Attributes:
        path: The file or directory involved in the failed operation.
    """

    stage = 'staging'

    def __init__(self, path: Path | str, reason: str) -> None:
        self.path: Path = Path(path)
        super().__init__(f'Staging I/O failed for {str(path)!r}: {reason}')


# =============================================================================
# Descriptor
# =============================================================================


class DescriptorMissingError(SecureConnectError):
    """
    Raised when the bundle does not contain a config.json descriptor.

    Attributes:
        descriptor_path: Where the descriptor was expected.
    """

    stage = 'descriptor'

    def __init__(self, descriptor_path: Path) -> None:
        self.descriptor_path: Path = descriptor_path
        super().__init__(f'Bundle descriptor not found: {descriptor_path.name}')


class DescriptorMalformedError(SecureConnectError):
    """
    Raised when the descriptor cannot be decoded into a BundleDescriptor.

    Attributes:
        descriptor_path: Path of the descriptor that failed to decode.
    """

    stage = 'descriptor'

    def __init__(self, descriptor_path: Path | None, reason: str) -> None:
        self.descriptor_path: Path | None = descriptor_path
        super().__init__(f'Bundle descriptor is malformed: {reason}')


class DescriptorIncompleteError(DescriptorMalformedError):
    """
    Raised when the descriptor decodes but lacks usable host or port values.

    Attributes:
        missing_fields: Descriptor fields left at their zero value.
    """

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields: list[str] = missing_fields
        super().__init__(
            None,
            f'missing or invalid required field(s): {", ".join(missing_fields)}',
        )


# =============================================================================
# Credentials
# =============================================================================


class CredentialLoadFailedError(SecureConnectError):
    """
    Raised when certificate, key or CA material cannot be loaded.

    Covers unreadable files, malformed PEM data, a private key that does not
    match its certificate, and credential paths escaping the staging root.

    Attributes:
        credential_path: The credential file that failed, if known.
    """

    stage = 'credentials'

    def __init__(self, credential_path: Path | str | None, reason: str) -> None:
        self.credential_path: Path | None = (
            Path(credential_path) if credential_path is not None else None
        )
        super().__init__(f'Failed to load TLS credentials: {reason}')


# =============================================================================
# Metadata Service
# =============================================================================


class MetadataUnreachableError(SecureConnectError):
    """
    Raised on connection, timeout or TLS handshake failure.

    Attributes:
        url: The metadata endpoint that could not be reached.
    """

    stage = 'metadata'

    def __init__(self, url: str, reason: str) -> None:
        self.url: str = url
        super().__init__(f'Metadata service {url} unreachable: {reason}')


class MetadataRequestRejectedError(SecureConnectError):
    """
    Raised when the metadata service answers with a non-2xx status.

    Attributes:
        url: The metadata endpoint that was queried.
        status_code: HTTP status code returned by the service.
        response_body: Truncated response body for debugging.
    """

    stage = 'metadata'

    def __init__(
        self,
        url: str,
        status_code: int,
        response_body: str | None = None,
    ) -> None:
        self.url: str = url
        self.status_code: int = status_code
        self.response_body: str | None = response_body
        super().__init__(f'Metadata service {url} rejected request: HTTP {status_code}')


class MetadataMalformedError(SecureConnectError):
    """
    Raised when the metadata response body cannot be decoded.

    Attributes:
        url: The metadata endpoint that returned the body.
    """

    stage = 'metadata'

    def __init__(self, url: str, reason: str) -> None:
        self.url: str = url
        super().__init__(f'Metadata response from {url} is malformed: {reason}')
