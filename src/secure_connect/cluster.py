# secure_connect/cluster.py
"""
Cluster configuration built from resolved bundle parameters.

ClusterConfig is the value a driver session is created from. The bundle
pipeline never mutates it; instead a BundleResult is passed in explicitly:

    result = load_secure_connect_bundle('secure-connect-db.zip')
    cluster = ClusterConfig.from_bundle_result(result)

or in one step:

    cluster = ClusterConfig.from_secure_connect_bundle('secure-connect-db.zip')

When an SNI configuration is present, every connection is dialed to the
proxy and names its target node through SNI; see connection_target().
"""

import logging
from pathlib import Path
from ssl import SSLContext
from typing import Any, Final, NamedTuple, Self

from pydantic import BaseModel, ConfigDict, Field

from secure_connect.bundle import load_secure_connect_bundle
from secure_connect.config import SecureConnectConfig
from secure_connect.models import BundleResult, SNIConfig

__all__: list[str] = ['DEFAULT_CQL_PORT', 'ClusterConfig', 'ConnectionTarget']

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CQL_PORT: Final[int] = 9042
DEFAULT_TIMEOUT_SECONDS: Final[float] = 11.0


class ConnectionTarget(NamedTuple):
    """Where to open a socket for one node and what to send as SNI."""

    address: str
    port: int
    server_hostname: str
    ssl_context: SSLContext | None


class ClusterConfig(BaseModel):
    """
    Connection settings for a cluster.

    Attributes:
        hosts: Contact points used to discover the cluster.
        port: Native protocol port for direct (non-proxied) connections.
        sni_config: Proxy routing and TLS settings; None for direct access.
        connect_timeout_seconds: Timeout for establishing each connection.
        request_timeout_seconds: Timeout for individual requests.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    hosts: list[str] = Field(min_length=1)
    port: int = Field(default=DEFAULT_CQL_PORT, ge=1, le=65535)
    sni_config: SNIConfig | None = None
    connect_timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0.0)
    request_timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0.0)

    @classmethod
    def from_bundle_result(cls, result: BundleResult, **overrides: Any) -> Self:
        """
        Create a configuration that reaches the cluster through the SNI proxy.

        Args:
            result: Output of load_secure_connect_bundle().
            **overrides: Other ClusterConfig fields (timeouts, port).

        Returns:
            ClusterConfig with hosts and sni_config taken from the result.
        """
        return cls(
            hosts=list(result.contact_points),
            sni_config=result.sni_config,
            **overrides,
        )

    @classmethod
    def from_secure_connect_bundle(
        cls,
        bundle_path: Path | str,
        config: SecureConnectConfig | None = None,
        **overrides: Any,
    ) -> Self:
        """
        Load a bundle and build the cluster configuration from it.

        Raises:
            SecureConnectError: If any stage of the bundle load fails.
        """
        result: BundleResult = load_secure_connect_bundle(bundle_path, config=config)
        cluster_config = cls.from_bundle_result(result, **overrides)

        logger.info(
            'Cluster configured from bundle with %d host(s) via proxy %s',
            len(cluster_config.hosts),
            result.sni_config.proxy_address,
        )
        return cluster_config

    @property
    def uses_sni_proxy(self) -> bool:
        """Whether connections are routed through an SNI proxy."""
        return self.sni_config is not None

    def connection_target(self, host: str) -> ConnectionTarget:
        """
        Describe how to connect to one node.

        Through a proxy, the socket goes to the proxy address and the node
        is named via SNI. Without one, the socket goes to the node itself.

        Args:
            host: A contact point or discovered node identifier.

        Returns:
            Socket address, port, SNI server name and TLS context (None for
            plaintext direct connections).
        """
        if self.sni_config is None:
            return ConnectionTarget(
                address=host,
                port=self.port,
                server_hostname=host,
                ssl_context=None,
            )

        return ConnectionTarget(
            address=self.sni_config.proxy_host,
            port=self.sni_config.proxy_port,
            server_hostname=self.sni_config.server_hostname_for(host),
            ssl_context=self.sni_config.trust_context.ssl_context,
        )
