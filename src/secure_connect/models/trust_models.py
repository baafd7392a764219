# secure_connect/models/trust_models.py
"""
TLS trust context wrapper.

A TrustContext owns one ssl.SSLContext loaded with the bundle's client
certificate, private key and CA. It starts strict (chain and peer name are
verified) for the bootstrap request and is relaxed exactly once afterwards,
when connections are routed through the SNI proxy instead of the host named
in the descriptor. Relaxing only turns off hostname matching; the certificate
chain is still verified against the bundle CA.
"""

import logging
import ssl
from ssl import SSLContext
from typing import Any

__all__: list[str] = ['TrustContext']

logger: logging.Logger = logging.getLogger(__name__)


class TrustContext:
    """
    Client TLS configuration built from bundle credentials.

    The wrapped SSLContext is shared, not copied: relaxing peer verification
    changes the same context the metadata request used, so all loaded
    material stays identical across the transition.

    Example:
        >>> trust_context = TrustContext(ssl_context)
        >>> trust_context.peer_verification_enabled
        True
        >>> trust_context.relax_peer_verification()
        >>> trust_context.peer_verification_enabled
        False
    """

    def __init__(self, ssl_context: SSLContext) -> None:
        self._ssl_context: SSLContext = ssl_context

    @property
    def ssl_context(self) -> SSLContext:
        """The underlying SSLContext, suitable for httpx or socket wrapping."""
        return self._ssl_context

    @property
    def peer_verification_enabled(self) -> bool:
        """Whether the peer's certificate must match the connection hostname."""
        return self._ssl_context.check_hostname

    @property
    def chain_verification_enabled(self) -> bool:
        """Whether the peer's certificate chain is validated against the CA."""
        return self._ssl_context.verify_mode == ssl.CERT_REQUIRED

    def ca_certificates(self) -> list[dict[str, Any]]:
        """Return the CA certificates loaded into the context."""
        return self._ssl_context.get_ca_certs()

    def relax_peer_verification(self) -> None:
        """
        Stop matching the peer certificate against the connection hostname.

        Chain verification stays enabled. Calling this on an already relaxed
        context has no effect.
        """
        if not self._ssl_context.check_hostname:
            logger.debug('Trust context already relaxed')
            return

        self._ssl_context.check_hostname = False
        logger.debug('Peer name verification disabled; chain verification retained')

    def __repr__(self) -> str:
        return (
            f'TrustContext(peer_verification={self.peer_verification_enabled}, '
            f'ca_certs={len(self.ca_certificates())})'
        )
