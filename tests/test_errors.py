"""Test error categorization and error responses."""

import pytest

from bamboohr.server.errors import ErrorCategory, categorize_error, handle_bamboo_error
from bamboohr.sdk.exceptions import (
    BambooHRError,
    ClientError,
    ImageTooLargeError,
    MalformedResponseError,
    NetworkError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
)


@pytest.mark.parametrize(
    "error, category",
    [
        (RequestTimeoutError("/x", 30, TimeoutError()), ErrorCategory.TIMEOUT),
        (NetworkError("/x", OSError("ECONNREFUSED")), ErrorCategory.NETWORK),
        (ClientError(400, "bad"), ErrorCategory.VALIDATION),
        (ClientError(401, "no"), ErrorCategory.AUTHENTICATION),
        (ClientError(403, "no"), ErrorCategory.AUTHENTICATION),
        (ClientError(404, "gone"), ErrorCategory.NOT_FOUND),
        (ClientError(422, "bad"), ErrorCategory.VALIDATION),
        (RateLimitedError(429, "slow down"), ErrorCategory.RATE_LIMIT),
        (ServerError(500, "boom"), ErrorCategory.API_ERROR),
        (ServerError(504, "slow"), ErrorCategory.TIMEOUT),
        (MalformedResponseError("/x", "html", "HTML"), ErrorCategory.AUTHENTICATION),
        (MalformedResponseError("/x", "truncated", "cut"), ErrorCategory.API_ERROR),
        (ImageTooLargeError("/x", 10, 5), ErrorCategory.VALIDATION),
        (BambooHRError("other"), ErrorCategory.API_ERROR),
        (KeyError("bug"), ErrorCategory.UNKNOWN),
    ],
)
def test_categorize_error(error, category):
    assert categorize_error(error) is category


def test_handle_bamboo_error_text():
    error = RateLimitedError(429, "BambooHR API error: 429 Too Many Requests")

    response = handle_bamboo_error(error, "employee search", "bamboo_find_employee")

    assert response.is_error is True
    lines = response.text.splitlines()
    assert lines[0] == "**Rate limit exceeded for employee search. Automatic retries did not succeed.**"
    assert "Details: BambooHR API error: 429 Too Many Requests" in lines
    assert "1. Wait a moment and try again" in lines
    assert lines[-1] == "**Note:** This error may be temporary and could resolve with a retry."


def test_handle_bamboo_error_meta():
    response = handle_bamboo_error(
        ClientError(401, "BambooHR API error: 401 Unauthorized"),
        "dataset discovery",
        "bamboo_discover_datasets",
        endpoint="/datasets",
    )
    meta = response.content[0].meta
    assert meta["errorType"] == "authentication"
    assert meta["isRetryable"] is False
    assert meta["toolName"] == "bamboo_discover_datasets"
    assert meta["operation"] == "dataset discovery"
    assert "timestamp" in meta
    assert response.text.endswith("**Note:** This error requires manual intervention.")


def test_unexpected_error_has_no_details():
    response = handle_bamboo_error(RuntimeError("internal state"), "custom report operation", "x")
    assert "Details:" not in response.text
    assert "internal state" not in response.text


def test_to_dict_uses_mcp_names():
    data = handle_bamboo_error(ServerError(500, "boom"), "op", "tool").to_dict()
    assert data["isError"] is True
    assert data["content"][0]["type"] == "text"
    assert data["content"][0]["_meta"]["errorType"] == "api_error"
    assert "_links" not in data
