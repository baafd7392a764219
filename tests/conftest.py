"""
Shared pytest fixtures for secure_connect tests.

Provides a throwaway PKI (CA, client certificate, matching and mismatched
keys), a factory for building bundle archives, and configuration pointing the
staging directory at a per-test location so cleanup can be asserted.
"""

import ipaddress
import json
import zipfile
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from secure_connect.config import SecureConnectConfig, StagingConfig
from secure_connect.models import TrustContext
from secure_connect.trust_context import build_ssl_context

BundleFactory = Callable[..., Path]

METADATA_HOST: str = 'db.example.com'
METADATA_PORT: int = 29080
METADATA_URL: str = f'https://{METADATA_HOST}:{METADATA_PORT}/metadata'


# =============================================================================
# PKI Fixtures
# =============================================================================


@dataclass(frozen=True)
class BundlePKI:
    """PEM-encoded credential material for tests."""

    ca_cert: bytes
    client_cert: bytes
    client_key: bytes
    other_key: bytes
    encrypted_client_key: bytes
    server_key: bytes
    server_cert: bytes
    mismatched_server_cert: bytes
    untrusted_server_cert: bytes


def _private_key_pem(
    key: ec.EllipticCurvePrivateKey,
    encryption: serialization.KeySerializationEncryption | None = None,
) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=encryption or serialization.NoEncryption(),
    )


def _server_certificate(
    issuer_name: x509.Name,
    issuer_key: ec.EllipticCurvePrivateKey,
    server_key: ec.EllipticCurvePrivateKey,
    alt_names: list[x509.GeneralName],
    now: datetime,
) -> bytes:
    """Issue a TLS server certificate for alt_names, signed by issuer_key."""
    certificate: x509.Certificate = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, 'metadata-service')]))
        .issuer_name(issuer_name)
        .public_key(server_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(x509.SubjectAlternativeName(alt_names), critical=False)
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]),
            critical=False,
        )
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_key.public_key()),
            critical=False,
        )
        .sign(issuer_key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM)


@pytest.fixture(scope='session')
def pki() -> BundlePKI:
    """
    Provide a CA plus client and server certificates signed by it.

    Returns:
        BundlePKI with PEM bytes. other_key does not match client_cert.
        server_cert is valid for 127.0.0.1 and mismatched_server_cert names
        another host. untrusted_server_cert is issued outside the CA. All
        server certificates use server_key.
    """
    now: datetime = datetime.now(UTC)

    ca_key = ec.generate_private_key(ec.SECP256R1())
    ca_name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, 'Test Bundle CA')])
    ca_cert: x509.Certificate = (
        x509.CertificateBuilder()
        .subject_name(ca_name)
        .issuer_name(ca_name)
        .public_key(ca_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=False,
                content_commitment=False,
                key_encipherment=False,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=True,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .sign(ca_key, hashes.SHA256())
    )

    client_key = ec.generate_private_key(ec.SECP256R1())
    client_cert: x509.Certificate = (
        x509.CertificateBuilder()
        .subject_name(x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, 'bundle-client')]))
        .issuer_name(ca_name)
        .public_key(client_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(ca_key, hashes.SHA256())
    )

    other_key = ec.generate_private_key(ec.SECP256R1())

    server_key = ec.generate_private_key(ec.SECP256R1())
    loopback: list[x509.GeneralName] = [
        x509.IPAddress(ipaddress.ip_address('127.0.0.1')),
        x509.DNSName('localhost'),
    ]
    untrusted_name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, 'Untrusted CA')])

    return BundlePKI(
        ca_cert=ca_cert.public_bytes(serialization.Encoding.PEM),
        client_cert=client_cert.public_bytes(serialization.Encoding.PEM),
        client_key=_private_key_pem(client_key),
        other_key=_private_key_pem(other_key),
        encrypted_client_key=_private_key_pem(
            client_key, serialization.BestAvailableEncryption(b'bundle-password')
        ),
        server_key=_private_key_pem(server_key),
        server_cert=_server_certificate(ca_name, ca_key, server_key, loopback, now),
        mismatched_server_cert=_server_certificate(
            ca_name, ca_key, server_key, [x509.DNSName('other.example.com')], now
        ),
        untrusted_server_cert=_server_certificate(
            untrusted_name, server_key, server_key, loopback, now
        ),
    )


@pytest.fixture
def credential_files(tmp_path: Path, pki: BundlePKI) -> dict[str, Path]:
    """
    Write the PKI to disk.

    Returns:
        Mapping with 'cert', 'key', 'ca', 'other_key' and 'encrypted_key' paths.
    """
    credentials_dir: Path = tmp_path / 'credentials'
    credentials_dir.mkdir()

    files: dict[str, bytes] = {
        'cert': pki.client_cert,
        'key': pki.client_key,
        'ca': pki.ca_cert,
        'other_key': pki.other_key,
        'encrypted_key': pki.encrypted_client_key,
    }

    paths: dict[str, Path] = {}
    for name, content in files.items():
        path: Path = credentials_dir / f'{name}.pem'
        path.write_bytes(content)
        paths[name] = path

    return paths


@pytest.fixture
def trust_context(credential_files: dict[str, Path]) -> TrustContext:
    """Provide a strict TrustContext built from the test PKI."""
    return TrustContext(
        build_ssl_context(
            cert_path=credential_files['cert'],
            key_path=credential_files['key'],
            ca_path=credential_files['ca'],
            enforce_peer_verification=True,
        )
    )


# =============================================================================
# Bundle Fixtures
# =============================================================================


@pytest.fixture
def descriptor_document() -> dict[str, Any]:
    """Provide a complete config.json document, including fields the loader ignores."""
    return {
        'host': METADATA_HOST,
        'port': METADATA_PORT,
        'certLocation': 'cert',
        'keyLocation': 'key',
        'caCertLocation': 'ca.crt',
        'keyStoreLocation': 'identity.jks',
        'keyStorePassword': 'not-used',
    }


@pytest.fixture
def make_bundle(tmp_path: Path) -> BundleFactory:
    """
    Provide a factory that writes a bundle zip from a name->content mapping.

    Content may be bytes, str, a dict (serialized as JSON), or a ZipInfo
    paired with bytes to control permissions.
    """
    bundles_dir: Path = tmp_path / 'bundles'
    bundles_dir.mkdir()

    def _make(
        entries: dict[str, Any],
        name: str = 'secure-connect-test.zip',
    ) -> Path:
        bundle_path: Path = bundles_dir / name
        with zipfile.ZipFile(bundle_path, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
            for entry_name, content in entries.items():
                if isinstance(content, tuple):
                    zip_info, payload = content
                    archive.writestr(zip_info, payload)
                elif isinstance(content, dict):
                    archive.writestr(entry_name, json.dumps(content))
                else:
                    archive.writestr(entry_name, content)
        return bundle_path

    return _make


@pytest.fixture
def valid_bundle(
    make_bundle: BundleFactory,
    pki: BundlePKI,
    descriptor_document: dict[str, Any],
) -> Path:
    """Provide a well-formed bundle archive."""
    return make_bundle(
        {
            'config.json': descriptor_document,
            'cert': pki.client_cert,
            'key': pki.client_key,
            'ca.crt': pki.ca_cert,
            'identity.jks': b'\x00binary keystore\x00',
        }
    )


@pytest.fixture
def staging_parent(tmp_path: Path) -> Path:
    """Provide an empty directory that holds staging directories."""
    parent: Path = tmp_path / 'staging'
    parent.mkdir()
    return parent


@pytest.fixture
def loader_config(staging_parent: Path) -> SecureConnectConfig:
    """Provide loader configuration that stages under staging_parent."""
    return SecureConnectConfig(staging=StagingConfig(parent_dir=staging_parent))


# =============================================================================
# HTTP Fixtures
# =============================================================================


@pytest.fixture
def metadata_payload() -> dict[str, Any]:
    """Provide a representative metadata service response body."""
    return {
        'version': 1,
        'region': 'us-east1',
        'contact_info': {
            'type': 'sni_proxy',
            'localDC': 'dc1',
            'contact_points': [
                '4a3c2e8e-0000-4000-8000-000000000001',
                '4a3c2e8e-0000-4000-8000-000000000002',
            ],
            'sni_proxy_address': 'proxy.example.com:29042',
        },
    }


ResponseFactory = Callable[..., httpx.Response]


@pytest.fixture
def metadata_url() -> str:
    """Provide the metadata URL derived from descriptor_document."""
    return METADATA_URL


@pytest.fixture
def make_response() -> ResponseFactory:
    """Provide a factory for real httpx.Response objects bound to a GET request."""

    def _make(status_code: int, url: str = METADATA_URL, **kwargs: Any) -> httpx.Response:
        return httpx.Response(status_code, request=httpx.Request('GET', url), **kwargs)

    return _make
