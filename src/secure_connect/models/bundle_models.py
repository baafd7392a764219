# secure_connect/models/bundle_models.py
"""
Bundle descriptor model.

The descriptor (config.json at the root of a secure connect bundle) names the
metadata service endpoint and the archive-relative locations of the TLS
credential trio. Field names on the wire are camelCase; attributes are
snake_case with aliases.

Missing fields decode to their zero value ('' or 0) so that a descriptor can
be inspected after decoding, but a zero-valued host or port is never usable:
call `validate_endpoint()` before building the metadata URL.
"""

import ipaddress
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from secure_connect.exceptions import DescriptorIncompleteError

__all__: list[str] = ['DESCRIPTOR_FILENAME', 'METADATA_PATH', 'BundleDescriptor']

DESCRIPTOR_FILENAME: Final[str] = 'config.json'
METADATA_PATH: Final[str] = '/metadata'

PORT_MIN: Final[int] = 1
PORT_MAX: Final[int] = 65535

# Characters that would end the authority part of the URL or hide part of it
URL_DELIMITERS: Final[frozenset[str]] = frozenset('/?#@[]\\%')


def _is_usable_host(host: str) -> bool:
    """Whether host can be placed in a URL authority without changing its structure."""
    if not host or any(character.isspace() for character in host):
        return False
    if any(character in URL_DELIMITERS for character in host):
        return False

    # A colon is only allowed as part of an IPv6 literal
    if ':' in host:
        try:
            ipaddress.IPv6Address(host)
        except ValueError:
            return False

    return True


class BundleDescriptor(BaseModel):
    """
    Decoded contents of a bundle's config.json.

    Unknown keys (bundles carry extra fields such as keystore passwords) are
    ignored. Credential locations are relative to the bundle root.

    Attributes:
        host: Hostname of the metadata service.
        port: TCP port of the metadata service.
        ca_cert_location: Path of the CA certificate inside the bundle.
        key_location: Path of the client private key inside the bundle.
        cert_location: Path of the client certificate inside the bundle.
    """

    model_config = ConfigDict(extra='ignore', frozen=True, populate_by_name=True)

    host: str = ''
    port: int = 0
    ca_cert_location: str = Field(default='', alias='caCertLocation')
    key_location: str = Field(default='', alias='keyLocation')
    cert_location: str = Field(default='', alias='certLocation')

    def validate_endpoint(self) -> None:
        """
        Reject descriptors whose host or port were missing or unusable.

        Raises:
            DescriptorIncompleteError: If host is blank, contains URL
                delimiters or whitespace, or port is outside the valid TCP
                range.
        """
        missing_fields: list[str] = []

        if not _is_usable_host(self.host):
            missing_fields.append('host')
        if not PORT_MIN <= self.port <= PORT_MAX:
            missing_fields.append('port')

        if missing_fields:
            raise DescriptorIncompleteError(missing_fields)

    @property
    def metadata_url(self) -> str:
        """
        The metadata endpoint, https://{host}:{port}/metadata.

        IPv6 literals are bracketed so the port separator stays unambiguous.

        Raises:
            DescriptorIncompleteError: If host or port are unusable.
        """
        self.validate_endpoint()

        url_host: str = self.host
        if ':' in url_host:
            url_host = f'[{url_host}]'

        return f'https://{url_host}:{self.port}{METADATA_PATH}'
