# secure_connect/metadata.py
"""
HTTPS client for the cluster metadata service.

Performs the single bootstrap request of a bundle load: GET /metadata on the
host named in the bundle descriptor, authenticated with the bundle's client
certificate and verified against the bundle's CA and hostname.

Failure Behavior:
-----------------
There are no retries. The first failure is mapped onto the error taxonomy
and raised:
- Timeouts, connection errors, TLS handshake errors: MetadataUnreachableError
- Any status outside 2xx (redirects are not followed): MetadataRequestRejectedError
- Body that is not JSON, lacks the routing fields, or exceeds
  MAX_RESPONSE_BYTES: MetadataMalformedError

Deadline:
---------
httpx timeouts apply to each network operation separately, so a server that
trickles its body can outlive them indefinitely. The response is therefore
streamed and checked against a monotonic deadline, set when the request
starts, after the headers and after every chunk. A single stalled operation
is still cut off by the per-operation timeout, so a request never runs longer
than twice the configured timeout. Expiry is the only way to interrupt it.
"""

import logging
import time
from types import TracebackType
from typing import Final, Self

import httpx
from pydantic import ValidationError

from secure_connect.common import summarize_validation_error
from secure_connect.config import DEFAULT_METADATA_TIMEOUT_SECONDS
from secure_connect.exceptions import (
    MetadataMalformedError,
    MetadataRequestRejectedError,
    MetadataUnreachableError,
)
from secure_connect.models import BundleDescriptor, ClusterMetadata, TrustContext

__all__: list[str] = ['MAX_RESPONSE_BYTES', 'MetadataClient', 'fetch_cluster_metadata']

logger: logging.Logger = logging.getLogger(__name__)

RESPONSE_BODY_PREVIEW_CHARS: Final[int] = 500

# Metadata documents are a few hundred bytes; anything this large is not one
MAX_RESPONSE_BYTES: Final[int] = 1024 * 1024


class MetadataClient:
    """
    One-shot HTTPS client bound to a bundle's trust context.

    The underlying httpx.Client uses the TrustContext's SSLContext directly,
    so the client certificate is presented and the server is verified exactly
    as the context dictates.

    Example:
        >>> with MetadataClient(trust_context) as client:
        ...     metadata = client.fetch_metadata(descriptor.metadata_url)
        ...     print(metadata.contact_info.sni_proxy_address)
    """

    def __init__(
        self,
        trust_context: TrustContext,
        timeout_seconds: float = DEFAULT_METADATA_TIMEOUT_SECONDS,
        max_response_bytes: int = MAX_RESPONSE_BYTES,
    ) -> None:
        """
        Initialize the metadata client.

        Args:
            trust_context: Strict trust context built from the bundle.
            timeout_seconds: Deadline for the whole request, from connect
                to the last body byte.
            max_response_bytes: Largest response body that will be read.
        """
        self._trust_context: TrustContext = trust_context
        self._timeout_seconds: float = timeout_seconds
        self._max_response_bytes: int = max_response_bytes

        if not trust_context.peer_verification_enabled:
            logger.warning('Metadata client created with peer name verification disabled')

        # trust_env=False: no proxy or CA settings from the environment; the
        # request goes straight to the bundle's host, verified by its CA only
        self._http_client: httpx.Client = httpx.Client(
            verify=trust_context.ssl_context,
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=False,
            trust_env=False,
            headers={'Accept': 'application/json'},
        )

        logger.debug('Initialized MetadataClient: timeout=%.1fs', timeout_seconds)

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the HTTP client. Safe to call multiple times."""
        self._http_client.close()
        logger.debug('MetadataClient closed')

    def __enter__(self) -> Self:
        """Enter context manager, returning self."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager, closing the HTTP client."""
        self.close()

    # -------------------------------------------------------------------------
    # Request Execution
    # -------------------------------------------------------------------------

    def fetch_metadata(self, url: str) -> ClusterMetadata:
        """
        Fetch and decode cluster metadata.

        Args:
            url: Full metadata endpoint URL.

        Returns:
            Decoded ClusterMetadata.

        Raises:
            MetadataUnreachableError: On timeout, connection or TLS failure,
                or when the deadline passes while the body is still arriving.
            MetadataRequestRejectedError: On a non-2xx status.
            MetadataMalformedError: If the body is too large or cannot be
                decoded.
        """
        logger.info('Requesting cluster metadata from %s', url)

        deadline: float = time.monotonic() + self._timeout_seconds
        status_code, body = self._send_request(url, deadline)
        return self._handle_response(url, status_code, body)

    def _send_request(self, url: str, deadline: float) -> tuple[int, bytes]:
        """
        Send the GET request and read the body under the deadline.

        Returns:
            Status code and raw body bytes.

        Raises:
            MetadataUnreachableError: On any httpx transport failure or once
                the deadline has passed.
            MetadataMalformedError: If the body exceeds the size cap.
        """
        try:
            with self._http_client.stream('GET', url) as response:
                self._check_deadline(url, deadline)
                body: bytes = self._read_body(url, response, deadline)
                return response.status_code, body
        except httpx.TimeoutException as error:
            logger.error(
                'Metadata request timed out after %.1fs: %s',
                self._timeout_seconds,
                url,
            )
            raise MetadataUnreachableError(
                url, f'timed out after {self._timeout_seconds:g}s'
            ) from error
        except httpx.RequestError as error:
            logger.error('Metadata request failed: %s - %s', url, error)
            raise MetadataUnreachableError(url, str(error) or type(error).__name__) from error

    def _read_body(self, url: str, response: httpx.Response, deadline: float) -> bytes:
        chunks: list[bytes] = []
        received: int = 0

        for chunk in response.iter_bytes():
            received += len(chunk)
            if received > self._max_response_bytes:
                logger.error(
                    'Metadata response from %s exceeds %d bytes', url, self._max_response_bytes
                )
                raise MetadataMalformedError(
                    url, f'response body exceeds {self._max_response_bytes} bytes'
                )
            chunks.append(chunk)
            self._check_deadline(url, deadline)

        return b''.join(chunks)

    def _check_deadline(self, url: str, deadline: float) -> None:
        """
        Raises:
            MetadataUnreachableError: If the request deadline has passed.
        """
        if time.monotonic() <= deadline:
            return

        logger.error(
            'Metadata request exceeded its %.1fs deadline: %s', self._timeout_seconds, url
        )
        raise MetadataUnreachableError(url, f'timed out after {self._timeout_seconds:g}s')

    def _handle_response(self, url: str, status_code: int, body: bytes) -> ClusterMetadata:
        """
        Validate status and decode the response body.

        Raises:
            MetadataRequestRejectedError: On a non-2xx status.
            MetadataMalformedError: If the body is not valid metadata.
        """
        if not httpx.codes.is_success(status_code):
            response_preview: str = body.decode('utf-8', errors='replace')[
                :RESPONSE_BODY_PREVIEW_CHARS
            ]
            logger.error(
                'Metadata service returned HTTP %d: %s',
                status_code,
                response_preview,
            )
            raise MetadataRequestRejectedError(
                url=url,
                status_code=status_code,
                response_body=response_preview,
            )

        try:
            metadata: ClusterMetadata = ClusterMetadata.model_validate_json(body)
        except ValidationError as error:
            reason: str = summarize_validation_error(error)
            logger.error('Invalid metadata response from %s: %s', url, reason)
            raise MetadataMalformedError(url, reason) from error

        logger.info(
            'Resolved %d contact point(s) via proxy %s (region=%r, local_dc=%r)',
            len(metadata.contact_info.contact_points),
            metadata.contact_info.sni_proxy_address,
            metadata.region,
            metadata.contact_info.local_dc,
        )
        return metadata


def fetch_cluster_metadata(
    descriptor: BundleDescriptor,
    trust_context: TrustContext,
    timeout_seconds: float = DEFAULT_METADATA_TIMEOUT_SECONDS,
) -> ClusterMetadata:
    """
    Resolve cluster metadata for a bundle.

    Args:
        descriptor: Bundle descriptor naming the metadata host and port.
        trust_context: Strict trust context for the handshake.
        timeout_seconds: Deadline for the whole request.

    Returns:
        Decoded ClusterMetadata.

    Raises:
        DescriptorIncompleteError: If host or port are unusable.
        MetadataUnreachableError: On timeout, connection or TLS failure.
        MetadataRequestRejectedError: On a non-2xx status.
        MetadataMalformedError: If the body cannot be decoded.
    """
    metadata_url: str = descriptor.metadata_url

    with MetadataClient(trust_context, timeout_seconds=timeout_seconds) as client:
        return client.fetch_metadata(metadata_url)
