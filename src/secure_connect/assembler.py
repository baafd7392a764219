# secure_connect/assembler.py
"""Final step of a bundle load: relax the trust context and package the result."""

import logging

from secure_connect.models import BundleResult, ClusterMetadata, SNIConfig, TrustContext

__all__: list[str] = ['assemble_result']

logger: logging.Logger = logging.getLogger(__name__)


def assemble_result(metadata: ClusterMetadata, trust_context: TrustContext) -> BundleResult:
    """
    Build the BundleResult handed to the cluster configuration.

    After the bootstrap request, connections go to the SNI proxy rather than
    the descriptor's host, so the certificate name no longer matches the
    connection target. Peer name verification is turned off here; the chain
    is still verified against the bundle CA, and each connection names its
    node through SNI.

    Args:
        metadata: Decoded metadata service response.
        trust_context: The strict trust context used for the bootstrap
            request. It is relaxed in place.

    Returns:
        Contact points plus SNI configuration with the relaxed context.
    """
    trust_context.relax_peer_verification()

    contact_info = metadata.contact_info
    result = BundleResult(
        contact_points=list(contact_info.contact_points),
        sni_config=SNIConfig(
            proxy_address=contact_info.sni_proxy_address,
            trust_context=trust_context,
        ),
    )

    logger.debug(
        'Assembled result: %d contact point(s), proxy=%s',
        len(result.contact_points),
        result.sni_config.proxy_address,
    )
    return result
