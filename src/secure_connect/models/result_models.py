# secure_connect/models/result_models.py
"""
Terminal artifacts of the bundle pipeline.

BundleResult is what a bundle load hands to the cluster configuration: the
contact points to connect to and the SNI configuration (proxy address plus the
relaxed trust context) used to reach each of them through the proxy.
"""

from typing import Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from secure_connect.models.trust_models import TrustContext

__all__: list[str] = ['DEFAULT_PROXY_PORT', 'BundleResult', 'SNIConfig']

DEFAULT_PROXY_PORT: Final[int] = 443


class SNIConfig(BaseModel):
    """
    How to reach cluster nodes through the SNI proxy.

    Each connection is opened to proxy_address and names its target node via
    the TLS SNI extension, using trust_context for the handshake.

    Attributes:
        proxy_address: host:port of the SNI proxy.
        trust_context: Relaxed trust context built from the bundle.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    proxy_address: str = Field(min_length=1)
    trust_context: TrustContext

    @field_validator('proxy_address')
    @classmethod
    def validate_proxy_address(cls, proxy_address: str) -> str:
        """Reject blank proxy addresses.

        Raises:
            ValueError: If the address is whitespace-only.
        """
        if not proxy_address.strip():
            raise ValueError('proxy_address cannot be blank')
        return proxy_address.strip()

    def _split_address(self) -> tuple[str, str | None]:
        address: str = self.proxy_address

        # Bracketed IPv6 literal, optionally followed by :port
        if address.startswith('['):
            host, _, remainder = address[1:].partition(']')
            port_text: str | None = remainder[1:] if remainder.startswith(':') else None
            return host, port_text

        # Bare IPv6 literal without a port
        if address.count(':') > 1:
            return address, None

        host, separator, port_text = address.rpartition(':')
        if not separator:
            return address, None
        return host, port_text

    @property
    def proxy_host(self) -> str:
        """Hostname (or IP literal) of the proxy, without brackets or port."""
        return self._split_address()[0]

    @property
    def proxy_port(self) -> int:
        """
        TCP port of the proxy; 443 when the address carries none.

        Raises:
            ValueError: If the port component is not an integer.
        """
        port_text: str | None = self._split_address()[1]
        if not port_text:
            return DEFAULT_PROXY_PORT

        try:
            return int(port_text)
        except ValueError as parse_error:
            raise ValueError(
                f'Invalid port in proxy address {self.proxy_address!r}'
            ) from parse_error

    def server_hostname_for(self, host_id: str) -> str:
        """
        SNI server name to send when connecting to host_id through the proxy.

        The proxy routes on this name, so it is the node identifier itself
        (a contact point or a host ID discovered later), never the proxy host.

        Raises:
            ValueError: If host_id is blank.
        """
        server_hostname: str = host_id.strip()
        if not server_hostname:
            raise ValueError('host_id cannot be blank')
        return server_hostname


class BundleResult(BaseModel):
    """
    Connection parameters resolved from a secure connect bundle.

    Attributes:
        contact_points: Cluster node addresses to connect to.
        sni_config: Proxy address and trust context for those connections.
    """

    model_config = ConfigDict(frozen=True)

    contact_points: list[str] = Field(min_length=1)
    sni_config: SNIConfig
