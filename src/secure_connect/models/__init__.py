# secure_connect/models/__init__.py

from secure_connect.models.bundle_models import (
    DESCRIPTOR_FILENAME,
    METADATA_PATH,
    BundleDescriptor,
)
from secure_connect.models.metadata_models import ClusterMetadata, ContactInfo
from secure_connect.models.result_models import (
    DEFAULT_PROXY_PORT,
    BundleResult,
    SNIConfig,
)
from secure_connect.models.trust_models import TrustContext

__all__: list[str] = [
    'DEFAULT_PROXY_PORT',
    'DESCRIPTOR_FILENAME',
    'METADATA_PATH',
    'BundleDescriptor',
    'BundleResult',
    'ClusterMetadata',
    'ContactInfo',
    'SNIConfig',
    'TrustContext',
]
