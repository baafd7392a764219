# secure_connect/extractor.py
"""
Archive extraction into an ephemeral staging directory.

Python's ssl module loads client certificates and keys from file paths only,
so the bundle's credential files have to exist on disk while the TLS context
is built. This module provides the scoped directory that holds them and the
extraction routine that fills it.

Staging Lifetime:
-----------------
StagingArea is a context manager. The directory is created with
tempfile.mkdtemp (owner-only permissions) on entry and removed with
shutil.rmtree on exit, whether the block completed or raised. Each load gets
its own directory, so concurrent loads never share state.

Path Safety:
------------
Every entry name is resolved against the staging root before anything is
written. Names that escape the root (`../../evil`, absolute paths) raise
UnsafeArchiveEntryError, and because all names are checked up front, a bundle
with one unsafe entry writes nothing at all.

Usage:
------
    with StagingArea() as staging:
        written_files = extract_bundle('secure-connect-db.zip', staging)
        ...
    # staging.path no longer exists here
"""

import logging
import os
import shutil
import tempfile
import zipfile
import zlib
from pathlib import Path
from types import TracebackType
from typing import Final, Self

from secure_connect.config import StagingConfig
from secure_connect.exceptions import (
    ArchiveUnreadableError,
    StagingIOFailureError,
    UnsafeArchiveEntryError,
)

__all__: list[str] = ['StagingArea', 'extract_bundle', 'resolve_within']

logger: logging.Logger = logging.getLogger(__name__)

# Unix permission bits live in the high 16 bits of ZipInfo.external_attr
UNIX_MODE_SHIFT: Final[int] = 16
PERMISSION_MASK: Final[int] = 0o777

# Errors raised while decompressing a damaged or unsupported entry
ARCHIVE_READ_ERRORS: Final[tuple[type[Exception], ...]] = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    RuntimeError,
)


def resolve_within(root: Path, relative_name: str) -> Path | None:
    """
    Resolve a relative name under root, refusing anything that escapes it.

    Args:
        root: Directory the name must stay inside.
        relative_name: Archive entry name or descriptor-relative path.

    Returns:
        The resolved absolute path, or None if it lies outside root or is
        root itself.
    """
    resolved_root: Path = root.resolve()
    candidate: Path = (resolved_root / relative_name).resolve()

    if candidate == resolved_root or not candidate.is_relative_to(resolved_root):
        return None
    return candidate


# =============================================================================
# Staging Area
# =============================================================================


class StagingArea:
    """
    Ephemeral, exclusively owned directory for extracted bundle files.

    Attributes:
        path: The staging directory (only valid inside the `with` block).
    """

    def __init__(self, config: StagingConfig | None = None) -> None:
        """
        Prepare a staging area; nothing is created until the block is entered.

        Args:
            config: Placement settings. None uses the system temp directory
                with the default 'securezip' prefix.
        """
        self._config: StagingConfig = config or StagingConfig()
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        """
        The live staging directory.

        Raises:
            RuntimeError: If accessed outside the context manager.
        """
        if self._path is None:
            raise RuntimeError('StagingArea is not active; use it as a context manager')
        return self._path

    @property
    def is_active(self) -> bool:
        """Whether the staging directory currently exists on disk."""
        return self._path is not None

    def __enter__(self) -> Self:
        """Create the staging directory."""
        parent_dir: Path | None = self._config.parent_dir

        try:
            created: str = tempfile.mkdtemp(
                prefix=self._config.prefix,
                dir=parent_dir,
            )
        except OSError as error:
            location: Path | str = parent_dir or tempfile.gettempdir()
            logger.error('Could not create staging directory in %s: %s', location, error)
            raise StagingIOFailureError(location, str(error)) from error

        self._path = Path(created)
        logger.debug('Created staging directory %s', self._path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Remove the staging directory and everything in it."""
        staging_path: Path | None = self._path
        self._path = None

        if staging_path is None:
            return

        try:
            shutil.rmtree(staging_path)
        except OSError as error:
            logger.error('Failed to remove staging directory %s: %s', staging_path, error)
            # An error already propagating takes precedence over cleanup failure
            if exc_type is None:
                raise StagingIOFailureError(staging_path, str(error)) from error
            return

        logger.debug('Removed staging directory %s', staging_path)


# =============================================================================
# Extraction
# =============================================================================


def extract_bundle(bundle_path: Path | str, staging_area: StagingArea) -> list[Path]:
    """
    Unpack every entry of a bundle archive into the staging area.

    File contents are copied byte for byte and Unix permission bits recorded
    in the archive are applied where the platform supports them.

    Args:
        bundle_path: Path to the secure connect bundle (zip container).
        staging_area: An active StagingArea to extract into.

    Returns:
        Paths of the regular files written, in archive order.

    Raises:
        ArchiveUnreadableError: If the archive is missing, not a zip file,
            or an entry fails to decompress.
        UnsafeArchiveEntryError: If any entry name escapes the staging root.
        StagingIOFailureError: If writing to the staging directory fails.
    """
    bundle_path = Path(bundle_path)
    staging_root: Path = staging_area.path

    logger.info('Extracting bundle %s', bundle_path.name)

    try:
        archive = zipfile.ZipFile(bundle_path)
    except (zipfile.BadZipFile, OSError) as error:
        logger.error('Cannot open bundle archive %s: %s', bundle_path, error)
        raise ArchiveUnreadableError(bundle_path, str(error)) from error

    with archive:
        entry_targets: list[tuple[zipfile.ZipInfo, Path | None]] = [
            (entry, _resolve_entry_target(staging_root, entry))
            for entry in archive.infolist()
        ]

        written_files: list[Path] = []
        for entry, target_path in entry_targets:
            if target_path is None:
                continue
            if _write_entry(archive, entry, target_path, bundle_path):
                written_files.append(target_path)

    logger.info(
        'Extracted %d file(s) from %s into staging',
        len(written_files),
        bundle_path.name,
    )
    return written_files


def _resolve_entry_target(staging_root: Path, entry: zipfile.ZipInfo) -> Path | None:
    """
    Compute where an entry lands, rejecting names that leave the staging root.

    Returns:
        Destination path, or None for a directory entry naming the root itself.

    Raises:
        UnsafeArchiveEntryError: If the entry would be written outside root.
    """
    target_path: Path | None = resolve_within(staging_root, entry.filename)

    if target_path is not None:
        return target_path

    # "./" style directory entries are harmless no-ops
    if entry.is_dir() and (staging_root / entry.filename).resolve() == staging_root.resolve():
        return None

    logger.error('Rejected unsafe archive entry %r', entry.filename)
    raise UnsafeArchiveEntryError(entry.filename)


def _write_entry(
    archive: zipfile.ZipFile,
    entry: zipfile.ZipInfo,
    target_path: Path,
    bundle_path: Path,
) -> bool:
    """
    Write one archive entry to disk.

    Returns:
        True if a regular file was written, False for directory entries.
    """
    try:
        if entry.is_dir():
            target_path.mkdir(parents=True, exist_ok=True)
            return False

        target_path.parent.mkdir(parents=True, exist_ok=True)

        with archive.open(entry) as source, target_path.open('wb') as destination:
            shutil.copyfileobj(source, destination)

        _apply_permissions(entry, target_path)

    except ARCHIVE_READ_ERRORS as error:
        logger.error('Failed to decompress entry %r: %s', entry.filename, error)
        raise ArchiveUnreadableError(
            bundle_path, f'entry {entry.filename!r}: {error}'
        ) from error
    except OSError as error:
        logger.error('Failed to stage entry %r: %s', entry.filename, error)
        raise StagingIOFailureError(target_path, str(error)) from error

    logger.debug('Staged %s (%d bytes)', entry.filename, entry.file_size)
    return True


def _apply_permissions(entry: zipfile.ZipInfo, target_path: Path) -> None:
    """Apply the entry's recorded Unix permission bits, if any."""
    mode: int = (entry.external_attr >> UNIX_MODE_SHIFT) & PERMISSION_MASK

    # Archives built on Windows carry no Unix mode
    if mode == 0 or os.name != 'posix':
        return

    target_path.chmod(mode)
