"""HTTP transport shared by the collector and the sync client.

One attempt per call, a fixed total timeout, and best-effort JSON decoding:
bodies that do not parse as JSON come back as raw text, tagged with
``is_json=False``.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Network-level failure talking to an upstream or remote endpoint."""


class RequestTimeoutError(TransportError):
    """Request did not complete within the transport timeout."""


@dataclass(frozen=True)
class Response:
    """Decoded HTTP response.

    ``data`` is the parsed JSON value when ``is_json`` is true, otherwise the
    raw body text.
    """

    status: int
    data: Any
    is_json: bool

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def decode_body(status: int, text: str) -> Response:
    """Parse ``text`` as JSON, falling back to the raw text."""
    try:
        return Response(status=status, data=json.loads(text), is_json=True)
    except (json.JSONDecodeError, ValueError):
        return Response(status=status, data=text, is_json=False)


class Transport:
    """Issues authenticated JSON requests over a shared aiohttp session."""

    def __init__(self, token: str | None = None, timeout: float = 10.0, session: aiohttp.ClientSession | None = None):
        """Initialize transport.

        Args:
            token: Bearer token sent as ``Authorization``; ``None`` sends no auth header
            timeout: Total wall-clock timeout per request, in seconds
            session: Existing session to use instead of creating one lazily
        """
        self.token = token
        self.timeout = timeout
        self._session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self):
        """Close the underlying HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    def build_headers(self, headers: dict[str, str] | None = None) -> dict[str, str]:
        """Merge default headers with caller headers; caller wins on conflict."""
        merged = {"Content-Type": "application/json"}
        if self.token:
            merged["Authorization"] = f"Bearer {self.token}"
        if headers:
            merged.update(headers)
        return merged

    async def request(
        self,
        url: str,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: Any = None,
    ) -> Response:
        """Send a single request and decode the response body.

        Raises:
            RequestTimeoutError: The request exceeded ``self.timeout``.
            TransportError: Connection or protocol failure.
        """
        data = json.dumps(body) if body is not None else None
        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                headers=self.build_headers(headers),
                data=data,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as resp:
                text = await resp.text(errors="replace")
                return decode_body(resp.status, text)
        except TimeoutError as e:
            raise RequestTimeoutError(f"{method} {url} timed out after {self.timeout}s") from e
        except (aiohttp.ClientError, OSError) as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
