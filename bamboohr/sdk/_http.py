"""Internal HTTP transport for the BambooHR client.

This module performs exactly one authenticated HTTP attempt per call. It
never judges the status code; retrying and error normalization happen
further up.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass
from typing import Any, Iterable

import httpx

from ._logging import redact
from .exceptions import NetworkError, RequestTimeoutError

logger = logging.getLogger(__name__)


def basic_credential(api_key: str) -> str:
    """Base64 of ``{api_key}:x``, the value after ``Basic`` in the auth header."""
    return base64.b64encode(f"{api_key}:x".encode()).decode("ascii")


@dataclass
class TimeoutConfig:
    """Configuration for HTTP request timeouts.

    ``total`` is the wall-clock limit for one attempt; ``connect`` only
    bounds connection setup inside that window.
    """

    total: float = 30.0
    connect: float = 10.0


class HTTPClient:
    """Async HTTP transport with connection pooling and error mapping.

    Parameters
    ----------
    base_url : str
        Prefix joined with every endpoint
    api_key : str
        BambooHR API key, sent as the Basic auth username
    timeout_config : TimeoutConfig, optional
        Per-attempt timeouts
    transport : httpx.AsyncBaseTransport, optional
        Transport handed to ``httpx.AsyncClient``; tests pass an
        ``httpx.MockTransport`` here
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_config: TimeoutConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client: httpx.AsyncClient | None = None
        self.base_url = base_url.rstrip("/")
        self.timeout_config = timeout_config or TimeoutConfig()
        self._transport = transport
        self._credential = basic_credential(api_key)
        self._secrets = (api_key, self._credential)

    @property
    def secrets(self) -> Iterable[str]:
        """Values that must never appear in messages or logs."""
        return self._secrets

    def build_headers(
        self, method: str, body: Any = None, *, accept_json: bool = True
    ) -> dict[str, str]:
        headers = {"Authorization": f"Basic {self._credential}"}
        if accept_json:
            headers["Accept"] = "application/json"
        if method.upper() == "POST" and body:
            headers["Content-Type"] = "application/json"
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            connect = min(self.timeout_config.connect, self.timeout_config.total)
            timeout = httpx.Timeout(self.timeout_config.total, connect=connect)
            self._client = httpx.AsyncClient(timeout=timeout, transport=self._transport)
        return self._client

    async def send(
        self,
        method: str,
        endpoint: str,
        *,
        body: Any = None,
        headers: dict[str, str] | None = None,
        accept_json: bool = True,
    ) -> httpx.Response:
        """Make one HTTP attempt and return the raw response.

        Raises
        ------
        RequestTimeoutError
            If no response arrived within ``timeout_config.total`` seconds
        NetworkError
            For any other transport failure
        """
        method = method.upper()
        request_headers = self.build_headers(method, body, accept_json=accept_json)
        if headers:
            request_headers.update(headers)

        content = json.dumps(body) if method == "POST" and body else None
        url = f"{self.base_url}{endpoint}"
        client = self._get_client()

        logger.debug("%s %s", method, endpoint)
        try:
            return await asyncio.wait_for(
                client.request(method, url, headers=request_headers, content=content),
                timeout=self.timeout_config.total,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise RequestTimeoutError(endpoint, self.timeout_config.total, exc) from exc
        except httpx.HTTPError as exc:
            detail = redact(str(exc) or exc.__class__.__name__, self._secrets)
            raise NetworkError(
                endpoint, exc, message=f"Network error connecting to BambooHR API: {detail}"
            ) from exc
        except (httpx.InvalidURL, httpx.StreamError) as exc:
            detail = redact(str(exc) or exc.__class__.__name__, self._secrets)
            raise NetworkError(
                endpoint, exc, message=f"Invalid request to BambooHR API: {detail}"
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def aclose(self) -> None:
        """Alias for close() to match expected interface."""
        await self.close()
