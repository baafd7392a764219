#!/usr/bin/env python3
"""
Example usage of secure connect bundle loading.

Loads a bundle, prints the resolved contact points and proxy address, and
shows the connection target a driver would use for each node.

Usage:
    python examples/connect_example.py path/to/secure-connect-db.zip
"""

import sys

from secure_connect import ClusterConfig, SecureConnectError, load_config, setup_logger


def main(bundle_path: str) -> int:
    """Load the bundle and describe the resulting cluster configuration."""
    config = load_config()
    setup_logger(config.logging)

    try:
        cluster = ClusterConfig.from_secure_connect_bundle(bundle_path, config=config)
    except SecureConnectError as error:
        print(f'Bundle load failed at stage {error.stage!r}: {error}', file=sys.stderr)
        return 1

    if cluster.sni_config is not None:
        print(f'SNI proxy: {cluster.sni_config.proxy_address}')
    print(f'Contact points: {len(cluster.hosts)}')

    for host in cluster.hosts:
        target = cluster.connection_target(host)
        print(f'  {host} -> {target.address}:{target.port} (SNI {target.server_hostname})')

    return 0


if __name__ == '__main__':
    if len(sys.argv) != 2:  # noqa: PLR2004
        print(__doc__, file=sys.stderr)
        sys.exit(2)
    sys.exit(main(sys.argv[1]))
