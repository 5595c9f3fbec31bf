"""Exception classes for the BambooHR client.

Every failure the client can produce is raised as a subclass of
:class:`BambooHRError`, so callers can catch all client errors with a
single except clause. Messages are self-contained and never include the
API key or the Authorization header.
"""

from __future__ import annotations

from .images import format_bytes


class BambooHRError(Exception):
    """Base exception for all BambooHR client errors.

    Attributes
    ----------
    message : str
        Human-readable, secret-free description of the failure
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NetworkError(BambooHRError):
    """Raised when no HTTP response could be obtained.

    This covers DNS failures, refused or reset connections and any other
    transport-level problem that happens before a status line arrives.

    Attributes
    ----------
    endpoint : str
        The API endpoint (path and query) that was requested
    original_error : Exception
        The underlying exception raised by the HTTP library
    """

    def __init__(self, endpoint: str, original_error: Exception, message: str | None = None):
        self.endpoint = endpoint
        self.original_error = original_error
        detail = str(original_error) or original_error.__class__.__name__
        super().__init__(message or f"Network error connecting to BambooHR API: {detail}")


class RequestTimeoutError(NetworkError):
    """Raised when a single attempt exceeds the configured wall-clock limit.

    Attributes
    ----------
    timeout_seconds : float
        The per-attempt timeout that elapsed
    """

    def __init__(self, endpoint: str, timeout_seconds: float, original_error: Exception):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            endpoint,
            original_error,
            message=(
                f"BambooHR API request timeout: no response after "
                f"{timeout_seconds:g} seconds: {endpoint}"
            ),
        )


class HTTPError(BambooHRError):
    """Raised when the API answers with a non-success status code.

    Attributes
    ----------
    status_code : int
        The HTTP status code (e.g., 400, 401, 404, 500)
    reason : str
        The HTTP reason phrase
    body : str
        The (redacted) response body, possibly empty
    endpoint : str
        The API endpoint that was requested
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        *,
        reason: str = "",
        body: str = "",
        endpoint: str = "",
    ):
        self.status_code = status_code
        self.reason = reason
        self.body = body
        self.endpoint = endpoint
        super().__init__(message)


class ClientError(HTTPError):
    """Raised for 4xx responses other than 429. Never retried."""


class RateLimitedError(HTTPError):
    """Raised for 429 responses once the retry budget is exhausted."""


class ServerError(HTTPError):
    """Raised for 5xx responses once the retry budget is exhausted."""


class MalformedResponseError(BambooHRError):
    """Raised when a successful response does not contain valid JSON.

    Attributes
    ----------
    endpoint : str
        The API endpoint that was requested
    kind : str
        ``"html"`` when an HTML page came back instead of JSON,
        ``"truncated"`` when the JSON looks cut off, ``"invalid_json"``
        otherwise
    """

    def __init__(self, endpoint: str, kind: str, message: str):
        self.endpoint = endpoint
        self.kind = kind
        super().__init__(message)


class InvalidImageDataError(BambooHRError):
    """Raised when a binary download is empty or too small to be an image."""

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Invalid image data from {endpoint}: {reason}")


class ImageTooLargeError(BambooHRError):
    """Raised when a binary download exceeds the inline size limit.

    Attributes
    ----------
    size : int
        Size of the downloaded buffer in bytes
    limit : int
        The maximum size accepted, in bytes
    """

    def __init__(self, endpoint: str, size: int, limit: int):
        self.endpoint = endpoint
        self.size = size
        self.limit = limit
        super().__init__(
            f"Image from {endpoint} is {format_bytes(size)}, "
            f"which exceeds the {format_bytes(limit)} limit"
        )
