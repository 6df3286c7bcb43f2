"""HTTP transport for the Home Hub JSON API."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .auth import JSON_REQUEST_PATH
from .errors import TransportError

# Configure module logger
logger = logging.getLogger(__name__)


class HTTPTransport:
    """Posts serialized envelopes to the hub and returns the raw reply.

    Attributes:
        base_url: Hub base URL, e.g. ``http://192.168.1.254``.

    Example:
        >>> transport = HTTPTransport("http://192.168.1.254")
        >>> reply = transport.send(b'{"request": {...}}')
    """

    DEFAULT_TIMEOUT = 10.0

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """Initialize the transport.

        Args:
            base_url: Hub base URL.
            timeout: HTTP request timeout in seconds.
            transport: Optional httpx transport, used to stub the hub.
        """
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self._timeout, transport=self._transport)

    def send(self, body: bytes) -> bytes:
        """Post one request envelope.

        Args:
            body: Serialized request envelope.

        Returns:
            The raw reply body.

        Raises:
            TransportError: On connection failure, timeout or non-2xx status.
        """
        url = f"{self.base_url}{JSON_REQUEST_PATH}"
        logger.debug("Request to %s: %s", url, body.decode(errors="replace"))
        try:
            with self._client() as client:
                resp = client.post(
                    url,
                    data={"req": body.decode()},
                    headers={
                        "Accept": "application/json, text/javascript, */*; q=0.01",
                        "X-Requested-With": "XMLHttpRequest",
                    },
                )
                resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {url} timed out") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Hub returned HTTP {e.response.status_code} for {url}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {url} failed: {e}") from e

        logger.debug("Response from %s: %s", url, resp.text)
        return resp.content

    def download(self, uri: str) -> str:
        """Fetch a file the hub has prepared, such as the event log.

        Args:
            uri: Path returned by the hub, relative to the base URL.

        Returns:
            The file contents as text.

        Raises:
            TransportError: On connection failure, timeout or non-2xx status.
        """
        url = f"{self.base_url}/{uri.lstrip('/')}"
        try:
            with self._client() as client:
                resp = client.get(url)
                resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise TransportError(f"Download of {url} timed out") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Hub returned HTTP {e.response.status_code} for {url}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Download of {url} failed: {e}") from e

        logger.debug("Downloaded %d bytes from %s", len(resp.content), url)
        return resp.text
