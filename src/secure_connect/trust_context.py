# secure_connect/trust_context.py
"""
TLS client context construction from bundle credentials.

Two layers:

- build_ssl_context() turns three file paths into an SSLContext configured
  for mutual TLS. It knows nothing about bundles.
- build_bundle_trust_context() resolves the descriptor's credential
  locations inside the staging directory and wraps the result in a
  TrustContext.

Design Notes:
    - PROTOCOL_TLS_CLIENT gives CERT_REQUIRED and check_hostname=True by
      default; only peer name checking is ever switched off.
    - The ssl module only accepts file paths for certificate chains, which
      is why the credentials are staged on disk at all.
    - Keys are loaded with an empty password so an encrypted key fails
      immediately instead of blocking on an interactive prompt.
"""

import logging
import ssl
from pathlib import Path
from ssl import SSLContext

from secure_connect.exceptions import CredentialLoadFailedError
from secure_connect.extractor import resolve_within
from secure_connect.models import BundleDescriptor, TrustContext

__all__: list[str] = ['build_bundle_trust_context', 'build_ssl_context']

logger: logging.Logger = logging.getLogger(__name__)


def _empty_key_password() -> bytes:
    return b''


def build_ssl_context(
    cert_path: Path | str,
    key_path: Path | str,
    ca_path: Path | str,
    enforce_peer_verification: bool = True,
) -> SSLContext:
    """
    Create a client SSLContext for mutual TLS.

    Args:
        cert_path: PEM client certificate.
        key_path: PEM private key matching the certificate.
        ca_path: PEM CA certificate(s) used to verify the server.
        enforce_peer_verification: Whether the server certificate must match
            the hostname being connected to.

    Returns:
        SSLContext with CA and client credentials loaded. Chain verification
        is always required.

    Raises:
        CredentialLoadFailedError: If a file is unreadable, its PEM content
            is malformed, or the key does not match the certificate.
    """
    ssl_context: SSLContext = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
    ssl_context.check_hostname = enforce_peer_verification

    try:
        ssl_context.load_verify_locations(cafile=str(ca_path))
    except OSError as error:
        logger.error('Cannot load CA certificate %s: %s', Path(ca_path).name, error)
        raise CredentialLoadFailedError(ca_path, f'CA certificate: {error}') from error

    try:
        ssl_context.load_cert_chain(
            certfile=str(cert_path),
            keyfile=str(key_path),
            password=_empty_key_password,
        )
    except (OSError, ValueError) as error:
        logger.error(
            'Cannot load client certificate %s with key %s: %s',
            Path(cert_path).name,
            Path(key_path).name,
            error,
        )
        raise CredentialLoadFailedError(
            key_path, f'client certificate/key: {error}'
        ) from error

    logger.debug(
        'Built SSLContext: peer_verification=%s, ca_certs=%d',
        enforce_peer_verification,
        len(ssl_context.get_ca_certs()),
    )
    return ssl_context


def _resolve_credential(staging_dir: Path, field_name: str, location: str) -> Path:
    """
    Map a descriptor credential location to a file inside staging_dir.

    Raises:
        CredentialLoadFailedError: If the location is empty, escapes the
            staging directory, or names no regular file.
    """
    if not location.strip():
        logger.error('Descriptor field %s is empty', field_name)
        raise CredentialLoadFailedError(None, f'descriptor field {field_name} is empty')

    credential_path: Path | None = resolve_within(staging_dir, location)
    if credential_path is None:
        logger.error('Descriptor field %s points outside the bundle: %r', field_name, location)
        raise CredentialLoadFailedError(
            None, f'{field_name} {location!r} points outside the bundle'
        )

    if not credential_path.is_file():
        logger.error('Bundle has no file for %s: %r', field_name, location)
        raise CredentialLoadFailedError(
            credential_path, f'{field_name} {location!r} not found in bundle'
        )

    return credential_path


def build_bundle_trust_context(
    descriptor: BundleDescriptor,
    staging_dir: Path,
    enforce_peer_verification: bool = True,
) -> TrustContext:
    """
    Build a TrustContext from the credentials a descriptor names.

    Args:
        descriptor: Parsed bundle descriptor.
        staging_dir: Root of the extracted bundle.
        enforce_peer_verification: Whether to verify the server hostname.
            The bootstrap metadata request always uses True.

    Returns:
        TrustContext wrapping the loaded SSLContext.

    Raises:
        CredentialLoadFailedError: If any credential is missing, outside the
            bundle, or cannot be loaded.
    """
    cert_path: Path = _resolve_credential(
        staging_dir, 'certLocation', descriptor.cert_location
    )
    key_path: Path = _resolve_credential(staging_dir, 'keyLocation', descriptor.key_location)
    ca_path: Path = _resolve_credential(
        staging_dir, 'caCertLocation', descriptor.ca_cert_location
    )

    ssl_context: SSLContext = build_ssl_context(
        cert_path=cert_path,
        key_path=key_path,
        ca_path=ca_path,
        enforce_peer_verification=enforce_peer_verification,
    )

    logger.info('Loaded bundle credentials (peer verification: %s)', enforce_peer_verification)
    return TrustContext(ssl_context)
