"""
Secure Connect - secure connect bundle loading for database clients.

Turns a distributable "secure connect bundle" archive into the parameters a
client needs to reach a managed cluster through an SNI proxy over mutual TLS:

1. **Bundle Loading**: archive to connection parameters
   - Extracts the bundle into a scoped, self-deleting staging directory
   - Parses the config.json descriptor
   - Builds a mutual TLS context from the bundled certificate, key and CA
   - Resolves contact points and the proxy address from the metadata service

2. **Cluster Configuration**: explicit hand-off to the driver layer
   - ClusterConfig.from_bundle_result() / from_secure_connect_bundle()
   - Per-node connection targets (proxy address + SNI server name)

Quick Start:
    >>> from secure_connect import ClusterConfig, load_secure_connect_bundle
    >>>
    >>> result = load_secure_connect_bundle('secure-connect-db.zip')
    >>> result.contact_points
    ['10.0.0.1', '10.0.0.2']
    >>> cluster = ClusterConfig.from_bundle_result(result)

Errors:
    Every failure raises a subclass of SecureConnectError whose `stage`
    attribute names the step that failed. No staging files survive a call.
"""

__version__ = '0.1.0'

from secure_connect.bundle import load_secure_connect_bundle
from secure_connect.cluster import ClusterConfig, ConnectionTarget
from secure_connect.common import setup_logger
from secure_connect.config import SecureConnectConfig, load_config
from secure_connect.exceptions import (
    ArchiveUnreadableError,
    CredentialLoadFailedError,
    DescriptorIncompleteError,
    DescriptorMalformedError,
    DescriptorMissingError,
    MetadataMalformedError,
    MetadataRequestRejectedError,
    MetadataUnreachableError,
    SecureConnectError,
    StagingIOFailureError,
    UnsafeArchiveEntryError,
)
from secure_connect.models import (
    BundleDescriptor,
    BundleResult,
    ClusterMetadata,
    SNIConfig,
    TrustContext,
)

__all__: list[str] = [
    'ArchiveUnreadableError',
    'BundleDescriptor',
    'BundleResult',
    'ClusterConfig',
    'ClusterMetadata',
    'ConnectionTarget',
    'CredentialLoadFailedError',
    'DescriptorIncompleteError',
    'DescriptorMalformedError',
    'DescriptorMissingError',
    'MetadataMalformedError',
    'MetadataRequestRejectedError',
    'MetadataUnreachableError',
    'SNIConfig',
    'SecureConnectConfig',
    'SecureConnectError',
    'StagingIOFailureError',
    'TrustContext',
    'UnsafeArchiveEntryError',
    '__version__',
    'load_config',
    'load_secure_connect_bundle',
    'setup_logger',
]
