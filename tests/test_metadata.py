"""
Tests for secure_connect.metadata module.

Tests MetadataClient status handling, transport error mapping, response
decoding, the whole-request deadline, and how fetch_cluster_metadata wires
the trust context into httpx.
"""
# pyright: reportPrivateUsage=false

import socket
import threading
import time
from collections.abc import Callable, Iterator
from typing import Any
from unittest.mock import MagicMock, patch

import httpx
import pytest

from secure_connect.exceptions import (
    DescriptorIncompleteError,
    MetadataMalformedError,
    MetadataRequestRejectedError,
    MetadataUnreachableError,
)
from secure_connect.metadata import MetadataClient, fetch_cluster_metadata
from secure_connect.models import BundleDescriptor, ClusterMetadata, TrustContext

ResponseFactory = Callable[..., httpx.Response]


def _sent_url(mock_send: MagicMock) -> str:
    """Return the URL of the request handed to a patched Client.send."""
    request: httpx.Request = mock_send.call_args.kwargs.get('request') or (
        mock_send.call_args.args[0]
    )
    return str(request.url)


def _stream_returning(mock_client: MagicMock, response: httpx.Response) -> None:
    """Make a mocked httpx.Client yield response from client.stream()."""
    mock_client.stream.return_value.__enter__.return_value = response


class TestMetadataClientSuccess:
    """Test successful metadata responses."""

    def test_decodes_full_response(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
        metadata_payload: dict[str, Any],
        metadata_url: str,
    ) -> None:
        """Should decode every metadata field."""

        response: httpx.Response = make_response(200, json=metadata_payload)

        with (
            MetadataClient(trust_context) as client,
            patch.object(client._http_client, 'send', return_value=response) as mock_send,
        ):
            metadata: ClusterMetadata = client.fetch_metadata(metadata_url)

        mock_send.assert_called_once()
        assert _sent_url(mock_send) == metadata_url
        assert metadata.version == 1
        assert metadata.region == 'us-east1'
        assert metadata.contact_info.contact_type == 'sni_proxy'
        assert metadata.contact_info.local_dc == 'dc1'
        assert len(metadata.contact_info.contact_points) == 2  # noqa: PLR2004
        assert metadata.contact_info.sni_proxy_address == 'proxy.example.com:29042'

    def test_decodes_minimal_response(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
        metadata_url: str,
    ) -> None:
        """Should accept a response carrying only the routing fields."""

        response: httpx.Response = make_response(
            200,
            json={
                'contact_info': {
                    'contact_points': ['10.0.0.1'],
                    'sni_proxy_address': 'proxy.h:443',
                }
            },
        )

        with (
            MetadataClient(trust_context) as client,
            patch.object(client._http_client, 'send', return_value=response),
        ):
            metadata: ClusterMetadata = client.fetch_metadata(metadata_url)

        assert metadata.version == 0
        assert metadata.contact_info.contact_points == ['10.0.0.1']

    def test_accepts_other_2xx(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
        metadata_payload: dict[str, Any],
        metadata_url: str,
    ) -> None:
        """Should treat any 2xx status as success."""

        response: httpx.Response = make_response(203, json=metadata_payload)

        with (
            MetadataClient(trust_context) as client,
            patch.object(client._http_client, 'send', return_value=response),
        ):
            metadata: ClusterMetadata = client.fetch_metadata(metadata_url)

        assert metadata.region == 'us-east1'


class TestMetadataClientRejection:
    """Test non-2xx status handling."""

    @pytest.mark.parametrize('status_code', [500, 503, 404, 401, 301, 302])
    def test_non_success_status_raises(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
        metadata_payload: dict[str, Any],
        metadata_url: str,
        status_code: int,
    ) -> None:
        """Should raise MetadataRequestRejectedError carrying the status."""

        # A plausible body must not rescue a failed status
        response: httpx.Response = make_response(status_code, json=metadata_payload)

        with (
            MetadataClient(trust_context) as client,
            patch.object(client._http_client, 'send', return_value=response),
            pytest.raises(MetadataRequestRejectedError) as exc_info,
        ):
            client.fetch_metadata(metadata_url)

        assert exc_info.value.status_code == status_code
        assert exc_info.value.url == metadata_url
        assert exc_info.value.stage == 'metadata'

    def test_rejection_keeps_body_preview(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
        metadata_url: str,
    ) -> None:
        """Should keep a truncated response body for diagnostics."""

        response: httpx.Response = make_response(500, text='upstream exploded' * 100)

        with (
            MetadataClient(trust_context) as client,
            patch.object(client._http_client, 'send', return_value=response),
            pytest.raises(MetadataRequestRejectedError) as exc_info,
        ):
            client.fetch_metadata(metadata_url)

        assert exc_info.value.response_body is not None
        assert exc_info.value.response_body.startswith('upstream exploded')
        assert len(exc_info.value.response_body) == 500  # noqa: PLR2004


class TestMetadataClientTransportErrors:
    """Test connection, timeout and TLS failures."""

    @pytest.mark.parametrize(
        'transport_error',
        [
            httpx.ConnectTimeout('connect timed out'),
            httpx.ReadTimeout('read timed out'),
            httpx.ConnectError('connection refused'),
            httpx.ConnectError('[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed'),
            httpx.RemoteProtocolError('server disconnected'),
        ],
    )
    def test_transport_errors_raise_unreachable(
        self,
        trust_context: TrustContext,
        metadata_url: str,
        transport_error: httpx.RequestError,
    ) -> None:
        """Should map every transport failure to MetadataUnreachableError."""

        with (
            MetadataClient(trust_context) as client,
            patch.object(client._http_client, 'send', side_effect=transport_error),
            pytest.raises(MetadataUnreachableError) as exc_info,
        ):
            client.fetch_metadata(metadata_url)

        assert exc_info.value.url == metadata_url
        assert exc_info.value.__cause__ is transport_error

    def test_timeout_message_names_bound(
        self,
        trust_context: TrustContext,
        metadata_url: str,
    ) -> None:
        """Should report the configured timeout."""

        with (
            MetadataClient(trust_context, timeout_seconds=2.5) as client,
            patch.object(client._http_client, 'send', side_effect=httpx.ReadTimeout('slow')),
            pytest.raises(MetadataUnreachableError, match=r'timed out after 2\.5s'),
        ):
            client.fetch_metadata(metadata_url)


class TestMetadataClientMalformed:
    """Test response decoding failures."""

    @pytest.mark.parametrize(
        'body',
        [
            'not json',
            '',
            '[]',
            '{"version": 1}',
            '{"contact_info": {}}',
            '{"contact_info": {"contact_points": [], "sni_proxy_address": "p:1"}}',
            '{"contact_info": {"contact_points": ["a"], "sni_proxy_address": ""}}',
            '{"contact_info": {"contact_points": "10.0.0.1", "sni_proxy_address": "p:1"}}',
        ],
    )
    def test_malformed_body_raises(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
        metadata_url: str,
        body: str,
    ) -> None:
        """Should raise MetadataMalformedError rather than return empty routing."""

        response: httpx.Response = make_response(200, text=body)

        with (
            MetadataClient(trust_context) as client,
            patch.object(client._http_client, 'send', return_value=response),
            pytest.raises(MetadataMalformedError) as exc_info,
        ):
            client.fetch_metadata(metadata_url)

        assert exc_info.value.url == metadata_url

    def test_oversized_body_raises(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
        metadata_payload: dict[str, Any],
        metadata_url: str,
    ) -> None:
        """Should stop reading once the body exceeds the size cap."""

        response: httpx.Response = make_response(200, json=metadata_payload)

        with (
            MetadataClient(trust_context, max_response_bytes=64) as client,
            patch.object(client._http_client, 'send', return_value=response),
            pytest.raises(MetadataMalformedError, match='exceeds 64 bytes'),
        ):
            client.fetch_metadata(metadata_url)


# =============================================================================
# Whole-Request Deadline
# =============================================================================


TRICKLED_BODY: bytes = b'{"a": 1}'
TRICKLE_INTERVAL_SECONDS: float = 0.4


@pytest.fixture
def trickling_server() -> Iterator[str]:
    """
    Serve one plain HTTP response whose body arrives a byte at a time.

    Each byte lands well inside any per-read timeout, so only a deadline on
    the whole request can cut the exchange short.

    Yields:
        URL of the endpoint.
    """
    listener: socket.socket = socket.create_server(('127.0.0.1', 0))
    listener.settimeout(5.0)
    port: int = listener.getsockname()[1]
    stop = threading.Event()

    def serve() -> None:
        try:
            connection, _ = listener.accept()
        except OSError:
            return
        with connection:
            try:
                connection.recv(65536)
                connection.sendall(
                    b'HTTP/1.1 200 OK\r\n'
                    b'Content-Type: application/json\r\n'
                    b'Content-Length: ' + str(len(TRICKLED_BODY)).encode() + b'\r\n'
                    b'\r\n'
                )
                for byte in TRICKLED_BODY:
                    if stop.wait(TRICKLE_INTERVAL_SECONDS):
                        return
                    connection.sendall(bytes([byte]))
            except OSError:
                return

    server_thread = threading.Thread(target=serve, daemon=True)
    server_thread.start()

    yield f'http://127.0.0.1:{port}/metadata'

    stop.set()
    server_thread.join(timeout=5.0)
    listener.close()


class TestMetadataClientDeadline:
    """Test that the timeout bounds the whole request."""

    def test_trickled_body_is_cut_off(
        self,
        trust_context: TrustContext,
        trickling_server: str,
    ) -> None:
        """Should give up once the deadline passes, even while bytes keep arriving."""

        started: float = time.monotonic()

        with (
            MetadataClient(trust_context, timeout_seconds=1.0) as client,
            pytest.raises(MetadataUnreachableError, match='timed out after 1s'),
        ):
            client.fetch_metadata(trickling_server)

        elapsed: float = time.monotonic() - started
        # The full body would take 8 * 0.4s = 3.2s to arrive
        assert elapsed < 2.0  # noqa: PLR2004


class TestFetchClusterMetadata:
    """Test fetch_cluster_metadata() wiring."""

    def test_uses_trust_context_and_timeout(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
        metadata_payload: dict[str, Any],
    ) -> None:
        """Should hand the SSLContext and a bounded timeout to httpx."""

        descriptor = BundleDescriptor(host='db.example.com', port=9042)
        expected_url: str = 'https://db.example.com:9042/metadata'

        with patch('secure_connect.metadata.httpx.Client') as mock_client_class:
            _stream_returning(
                mock_client_class.return_value,
                make_response(200, url=expected_url, json=metadata_payload),
            )

            metadata: ClusterMetadata = fetch_cluster_metadata(descriptor, trust_context)

        client_kwargs: dict[str, Any] = mock_client_class.call_args.kwargs
        assert client_kwargs['verify'] is trust_context.ssl_context
        assert client_kwargs['timeout'] == httpx.Timeout(10.0)
        assert client_kwargs['follow_redirects'] is False
        assert client_kwargs['trust_env'] is False

        mock_client_class.return_value.stream.assert_called_once_with('GET', expected_url)
        mock_client_class.return_value.close.assert_called_once()
        assert metadata.contact_info.sni_proxy_address == 'proxy.example.com:29042'

    def test_custom_timeout(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
        metadata_payload: dict[str, Any],
    ) -> None:
        """Should pass a caller-supplied timeout through."""

        descriptor = BundleDescriptor(host='db.example.com', port=9042)

        with patch('secure_connect.metadata.httpx.Client') as mock_client_class:
            _stream_returning(
                mock_client_class.return_value,
                make_response(200, json=metadata_payload),
            )

            fetch_cluster_metadata(descriptor, trust_context, timeout_seconds=3.0)

        assert mock_client_class.call_args.kwargs['timeout'] == httpx.Timeout(3.0)

    def test_incomplete_descriptor_never_sends_request(
        self,
        trust_context: TrustContext,
    ) -> None:
        """Should reject a zero-valued host before creating a client."""

        descriptor = BundleDescriptor(host='', port=0)

        with (
            patch('secure_connect.metadata.httpx.Client') as mock_client_class,
            pytest.raises(DescriptorIncompleteError),
        ):
            fetch_cluster_metadata(descriptor, trust_context)

        mock_client_class.assert_not_called()

    def test_client_closed_on_failure(
        self,
        trust_context: TrustContext,
        make_response: ResponseFactory,
    ) -> None:
        """Should close the HTTP client even when the request is rejected."""

        descriptor = BundleDescriptor(host='db.example.com', port=9042)

        with patch('secure_connect.metadata.httpx.Client') as mock_client_class:
            _stream_returning(mock_client_class.return_value, make_response(500))

            with pytest.raises(MetadataRequestRejectedError):
                fetch_cluster_metadata(descriptor, trust_context)

        mock_client_class.return_value.close.assert_called_once()
