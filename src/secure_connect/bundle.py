# secure_connect/bundle.py
"""
Secure connect bundle loading.

Turns a bundle archive into contact points and an SNI/TLS configuration:

    1. Extract the archive into a fresh staging directory
    2. Parse config.json
    3. Load the credential trio into a strict TrustContext
    4. GET https://{host}:{port}/metadata with that context
    5. Relax peer name verification and assemble the BundleResult

Stages run strictly in order and the first failure aborts the load. The
staging directory, which holds the private key, is removed before
load_secure_connect_bundle returns or raises.

Usage:
------
    from secure_connect import load_secure_connect_bundle

    result = load_secure_connect_bundle('secure-connect-db.zip')
    result.contact_points
    result.sni_config.proxy_address
"""

import logging
from pathlib import Path

from secure_connect.assembler import assemble_result
from secure_connect.config import SecureConnectConfig
from secure_connect.descriptor import parse_descriptor
from secure_connect.extractor import StagingArea, extract_bundle
from secure_connect.metadata import fetch_cluster_metadata
from secure_connect.models import BundleDescriptor, BundleResult, ClusterMetadata, TrustContext
from secure_connect.trust_context import build_bundle_trust_context

__all__: list[str] = ['load_secure_connect_bundle']

logger: logging.Logger = logging.getLogger(__name__)


def load_secure_connect_bundle(
    bundle_path: Path | str,
    config: SecureConnectConfig | None = None,
) -> BundleResult:
    """
    Resolve connection parameters from a secure connect bundle.

    Args:
        bundle_path: Path to the bundle archive.
        config: Optional loader settings (metadata timeout, staging location).
            Defaults to SecureConnectConfig().

    Returns:
        BundleResult with contact points and a relaxed trust context.

    Raises:
        SecureConnectError: The subclass identifies the failing stage:
            ArchiveUnreadableError, UnsafeArchiveEntryError,
            StagingIOFailureError, DescriptorMissingError,
            DescriptorMalformedError, CredentialLoadFailedError,
            MetadataUnreachableError, MetadataRequestRejectedError,
            MetadataMalformedError.
    """
    config = config or SecureConnectConfig()
    bundle_path = Path(bundle_path)

    logger.info('Loading secure connect bundle %s', bundle_path.name)

    with StagingArea(config.staging) as staging:
        extract_bundle(bundle_path, staging)

        descriptor: BundleDescriptor = parse_descriptor(staging.path)
        descriptor.validate_endpoint()

        trust_context: TrustContext = build_bundle_trust_context(
            descriptor,
            staging.path,
            enforce_peer_verification=True,
        )

    # Credentials are loaded into memory; the staging directory is gone here
    metadata: ClusterMetadata = fetch_cluster_metadata(
        descriptor,
        trust_context,
        timeout_seconds=config.metadata.timeout_seconds,
    )

    result: BundleResult = assemble_result(metadata, trust_context)

    logger.info(
        'Bundle %s resolved: %d contact point(s) via %s',
        bundle_path.name,
        len(result.contact_points),
        result.sni_config.proxy_address,
    )
    return result
