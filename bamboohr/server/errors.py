"""Turning client errors into user-facing tool responses.

Each failure is put into an :class:`ErrorCategory`, which selects the
headline, the numbered troubleshooting steps and the retry note shown to
the assistant.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from bamboohr.sdk.exceptions import (
    BambooHRError,
    HTTPError,
    ImageTooLargeError,
    InvalidImageDataError,
    MalformedResponseError,
    NetworkError,
    RequestTimeoutError,
)

from .responses import ToolResponse, utc_timestamp

logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    NETWORK = "network"
    TIMEOUT = "timeout"
    API_ERROR = "api_error"
    UNKNOWN = "unknown"


STATUS_CATEGORIES = {
    400: ErrorCategory.VALIDATION,
    401: ErrorCategory.AUTHENTICATION,
    403: ErrorCategory.AUTHENTICATION,
    404: ErrorCategory.NOT_FOUND,
    429: ErrorCategory.RATE_LIMIT,
    504: ErrorCategory.TIMEOUT,
}

RETRYABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.RATE_LIMIT,
        ErrorCategory.NETWORK,
        ErrorCategory.TIMEOUT,
        ErrorCategory.API_ERROR,
    }
)

USER_MESSAGES = {
    ErrorCategory.AUTHENTICATION: (
        "Authentication failed for {operation}. "
        "Please verify your BambooHR API key and subdomain."
    ),
    ErrorCategory.RATE_LIMIT: (
        "Rate limit exceeded for {operation}. Automatic retries did not succeed."
    ),
    ErrorCategory.NOT_FOUND: (
        "No data found for {operation}. Please verify your search criteria."
    ),
    ErrorCategory.VALIDATION: (
        "Invalid parameters provided for {operation}. Please check your input."
    ),
    ErrorCategory.NETWORK: (
        "Network error during {operation}. Please check your internet connection."
    ),
    ErrorCategory.TIMEOUT: (
        "Request timeout during {operation}. The operation took too long to complete."
    ),
    ErrorCategory.API_ERROR: "BambooHR API error during {operation}. Please try again later.",
    ErrorCategory.UNKNOWN: (
        "Unexpected error during {operation}. Please contact support if this persists."
    ),
}

TROUBLESHOOTING_STEPS = {
    ErrorCategory.AUTHENTICATION: [
        "Verify BAMBOO_API_KEY is correctly set",
        "Verify BAMBOO_SUBDOMAIN matches your BambooHR instance",
        "Check that your API key has not expired",
        "Ensure your API key has the required permissions",
        "Confirm subdomain format (no .bamboohr.com suffix)",
    ],
    ErrorCategory.RATE_LIMIT: [
        "Wait a moment and try again",
        "Consider reducing the frequency of requests",
        "Check if other tools are using the same API key",
    ],
    ErrorCategory.NOT_FOUND: [
        "Verify the employee/data exists in BambooHR",
        "Check spelling and format of search terms",
        "Try broader search criteria",
        "Confirm you have access to the requested data",
    ],
    ErrorCategory.VALIDATION: [
        "Check parameter format (dates should be YYYY-MM-DD)",
        "Verify required parameters are provided",
        "Check parameter value ranges and constraints",
    ],
    ErrorCategory.NETWORK: [
        "Check your internet connection",
        "Verify you can access https://api.bamboohr.com",
        "Check firewall and proxy settings",
    ],
    ErrorCategory.TIMEOUT: [
        "Try again with a smaller date range",
        "Consider breaking large requests into smaller ones",
        "Check your network connection speed",
    ],
    ErrorCategory.API_ERROR: [
        "Check BambooHR service status",
        "Try again in a few minutes",
        "Verify your request format is correct",
        "Contact BambooHR support if issue persists",
    ],
    ErrorCategory.UNKNOWN: [
        "Check the server logs for more details",
        "Try again in a few minutes",
        "Provide the exact operation that failed when reporting the issue",
    ],
}


def categorize_error(error: BaseException) -> ErrorCategory:
    """Map an exception raised by the client to an :class:`ErrorCategory`."""
    if isinstance(error, RequestTimeoutError):
        return ErrorCategory.TIMEOUT
    if isinstance(error, NetworkError):
        return ErrorCategory.NETWORK
    if isinstance(error, HTTPError):
        if error.status_code in STATUS_CATEGORIES:
            return STATUS_CATEGORIES[error.status_code]
        if error.status_code >= 500:
            return ErrorCategory.API_ERROR
        return ErrorCategory.VALIDATION
    if isinstance(error, MalformedResponseError):
        # The gateway serves HTML pages for rejected credentials
        if error.kind == "html":
            return ErrorCategory.AUTHENTICATION
        return ErrorCategory.API_ERROR
    if isinstance(error, (InvalidImageDataError, ImageTooLargeError)):
        return ErrorCategory.VALIDATION
    if isinstance(error, BambooHRError):
        return ErrorCategory.API_ERROR
    return ErrorCategory.UNKNOWN


def handle_bamboo_error(
    error: BaseException,
    operation: str,
    tool_name: str,
    *,
    endpoint: Optional[str] = None,
    parameters: Optional[dict[str, Any]] = None,
) -> ToolResponse:
    """Build the ``isError`` response for a failed tool call.

    Parameters
    ----------
    error : BaseException
        The exception raised while serving the call
    operation : str
        Human-readable name of what was attempted, e.g. "employee search"
    tool_name : str
        Name of the MCP tool
    endpoint : str, optional
        BambooHR endpoint involved, for the log record
    parameters : dict, optional
        Tool arguments, for the log record

    Returns
    -------
    ToolResponse
        Text with the headline, the failure detail, troubleshooting steps
        and a retry note
    """
    category = categorize_error(error)
    retryable = category in RETRYABLE_CATEGORIES
    detail = error.message if isinstance(error, BambooHRError) else None

    logger.error(
        "%s failed in %s (category=%s, retryable=%s, endpoint=%s, parameters=%s): %s",
        operation,
        tool_name,
        category.value,
        retryable,
        endpoint,
        parameters,
        detail or repr(error),
    )

    steps = "\n".join(
        f"{index}. {step}" for index, step in enumerate(TROUBLESHOOTING_STEPS[category], start=1)
    )
    retry_note = (
        "This error may be temporary and could resolve with a retry."
        if retryable
        else "This error requires manual intervention."
    )

    text = f"**{USER_MESSAGES[category].format(operation=operation)}**\n\n"
    if detail:
        text += f"Details: {detail}\n\n"
    text += f"**Troubleshooting Steps:**\n{steps}\n\n**Note:** {retry_note}"

    return ToolResponse.from_text(
        text,
        meta={
            "error": True,
            "errorType": category.value,
            "isRetryable": retryable,
            "operation": operation,
            "toolName": tool_name,
            "timestamp": utc_timestamp(),
        },
        is_error=True,
    )
