# secure_connect/models/metadata_models.py
"""
Response models for the cluster metadata service.

The metadata service answers GET /metadata with the cluster topology:

    {
        "version": 1,
        "region": "us-east1",
        "contact_info": {
            "type": "sni_proxy",
            "localDC": "dc1",
            "contact_points": ["<host id>", ...],
            "sni_proxy_address": "proxy.example.com:29042"
        }
    }

Only contact_points and sni_proxy_address are needed to connect, so they are
required; a response without them is malformed rather than an empty topology.
"""

from pydantic import BaseModel, ConfigDict, Field

__all__: list[str] = ['ClusterMetadata', 'ContactInfo']


class ContactInfo(BaseModel):
    """
    Routing information for reaching the cluster through the SNI proxy.

    Attributes:
        contact_type: Routing scheme reported by the service ("type").
        local_dc: Datacenter local to the proxy ("localDC").
        contact_points: Addresses (host identifiers) of cluster nodes.
        sni_proxy_address: host:port of the SNI proxy.
    """

    model_config = ConfigDict(extra='ignore', frozen=True, populate_by_name=True)

    contact_type: str = Field(default='', alias='type')
    local_dc: str = Field(default='', alias='localDC')
    contact_points: list[str] = Field(min_length=1)
    sni_proxy_address: str = Field(min_length=1)


class ClusterMetadata(BaseModel):
    """
    Decoded metadata service response.

    Attributes:
        version: Metadata document version.
        region: Cloud region hosting the cluster.
        contact_info: Contact points and proxy address.
    """

    model_config = ConfigDict(extra='ignore', frozen=True)

    version: int = 0
    region: str = ''
    contact_info: ContactInfo
