"""Async client for the BambooHR REST API."""

from __future__ import annotations

import asyncio
import logging
import random as _random
from typing import Any, Awaitable, Callable, Optional

import httpx

from ._cache import MISS, ResponseCache, build_cache_key
from ._http import HTTPClient, TimeoutConfig
from ._logging import register_secret
from ._parsing import error_for_response, parse_json_body
from ._retry import RetryPolicy, run_with_retry
from .config import ClientConfig
from .exceptions import BambooHRError, ImageTooLargeError, InvalidImageDataError
from .images import validate_image_buffer

logger = logging.getLogger(__name__)


class BambooHRClient:
    """Async client for reading data from the BambooHR API.

    GET responses are cached for ``config.cache_timeout_ms``. Rate limits
    (429) and server errors (5xx) are retried with backoff, as are
    transient network failures. Anything that still fails is raised as a
    :class:`~bamboohr.sdk.exceptions.BambooHRError` subclass.

    Parameters
    ----------
    config : ClientConfig
        Validated, immutable client configuration
    transport : httpx.AsyncBaseTransport, optional
        Custom httpx transport, mainly for tests
    sleep : callable, optional
        Coroutine used between retries. Default is ``asyncio.sleep``
    random : callable, optional
        Source of jitter in ``[0, 1)``. Default is ``random.random``
    clock : callable, optional
        Millisecond clock for cache expiry. Default is a monotonic clock

    Examples
    --------
    >>> async with BambooHRClient(ClientConfig.from_environment()) as client:
    ...     directory = await client.get("/employees/directory")
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        random: Callable[[], float] = _random.random,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config
        api_key = config.api_key.get_secret_value()

        self._http = HTTPClient(
            config.base_url,
            api_key,
            TimeoutConfig(total=config.request_timeout_seconds),
            transport=transport,
        )
        for secret in self._http.secrets:
            register_secret(secret)

        self._cache = (
            ResponseCache(config.cache_timeout_ms, clock)
            if clock is not None
            else ResponseCache(config.cache_timeout_ms)
        )
        self._policy = RetryPolicy(
            max_retry_attempts=config.max_retry_attempts,
            base_delay_ms=config.retry_base_delay_ms,
            max_delay_ms=config.retry_max_delay_ms,
        )
        self._sleep = sleep
        self._random = random

    async def __aenter__(self) -> "BambooHRClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ---------------- Public API -----------------

    async def get(
        self,
        endpoint: str,
        *,
        skip_cache: bool = False,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET *endpoint* and return the decoded JSON body.

        Parameters
        ----------
        endpoint : str
            Path and query relative to the base URL, e.g.
            ``"/employees/directory"``
        skip_cache : bool, optional
            Bypass the response cache for this call. Default is False
        headers : dict, optional
            Extra request headers

        Returns
        -------
        Any
            The JSON payload exactly as BambooHR returned it, or ``None``
            for an empty body

        Raises
        ------
        ClientError, RateLimitedError, ServerError
            For non-success status codes
        NetworkError
            If no response could be obtained (including timeouts)
        MalformedResponseError
            If the body is not valid JSON
        """
        key = build_cache_key("GET", endpoint)
        if not skip_cache:
            cached = self._cache.get(key)
            if cached is not MISS:
                logger.debug("Cache hit: %s", endpoint)
                return cached

        data = await self._request("GET", endpoint, headers=headers)

        if not skip_cache:
            self._cache.set(key, data)
        return data

    async def post(
        self, endpoint: str, body: Any, *, headers: dict[str, str] | None = None
    ) -> Any:
        """POST a JSON *body* to *endpoint* and return the decoded response.

        POST responses are never cached. Errors are the same as for
        :meth:`get`.
        """
        return await self._request("POST", endpoint, body=body, headers=headers)

    async def get_binary(self, endpoint: str, *, max_bytes: int | None = None) -> bytes:
        """Download raw bytes (an employee photo) from *endpoint*.

        Binary downloads skip the cache and JSON decoding but are retried
        like any other request.

        Parameters
        ----------
        endpoint : str
            Path relative to the base URL
        max_bytes : int, optional
            Reject payloads larger than this. Pass
            ``config.max_inline_image_bytes`` when the bytes will be
            inlined as a data URI

        Raises
        ------
        InvalidImageDataError
            If the payload is empty or too small to be an image
        ImageTooLargeError
            If the payload exceeds *max_bytes*
        """
        response = await self._execute("GET", endpoint, accept_json=False)
        data = response.content

        problem = validate_image_buffer(data)
        if problem:
            raise InvalidImageDataError(endpoint, problem)
        if max_bytes is not None and len(data) > max_bytes:
            raise ImageTooLargeError(endpoint, len(data), max_bytes)

        logger.info("Fetched %d bytes from %s", len(data), endpoint)
        return data

    def clear_cache(self) -> None:
        """Drop every cached response."""
        self._cache.clear()
        logger.debug("Response cache cleared")

    def get_cache_stats(self) -> dict[str, Any]:
        """Number and keys of the unexpired cache entries."""
        entries = self._cache.live_keys()
        return {"size": len(entries), "entries": entries}

    def get_base_url(self) -> str:
        return self.config.base_url

    async def aclose(self) -> None:
        """Close the underlying HTTP client.

        Should be called when done with the client to properly clean up
        connections. Can also be used as an async context manager to
        handle this automatically.
        """
        await self._http.aclose()

    # ---------------- internal -----------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        response = await self._execute(method, endpoint, body=body, headers=headers)
        try:
            data = parse_json_body(response.text, endpoint)
        except BambooHRError:
            logger.error("Unusable response body from %s %s", method, endpoint)
            raise

        logger.info("%s %s succeeded (%s)", method, endpoint, response.status_code)
        return data

    async def _execute(
        self,
        method: str,
        endpoint: str,
        *,
        body: Any = None,
        headers: dict[str, str] | None = None,
        accept_json: bool = True,
    ) -> httpx.Response:
        """Run the retry loop and turn a final failure into a typed error."""

        async def attempt() -> httpx.Response:
            return await self._http.send(
                method, endpoint, body=body, headers=headers, accept_json=accept_json
            )

        try:
            response = await run_with_retry(
                attempt,
                self._policy,
                endpoint=endpoint,
                sleep=self._sleep,
                random=self._random,
            )
        except BambooHRError as exc:
            logger.error("%s %s failed: %s", method, endpoint, exc.message)
            raise

        if not response.is_success:
            error = error_for_response(response, endpoint, self._http.secrets)
            logger.error("%s %s failed: %s", method, endpoint, error.message)
            raise error

        return response
