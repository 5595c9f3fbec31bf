"""Turning raw HTTP responses into data or normalized errors."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

import httpx

from ._logging import redact
from .exceptions import (
    ClientError,
    HTTPError,
    MalformedResponseError,
    RateLimitedError,
    ServerError,
)

logger = logging.getLogger(__name__)

# Raw (non-JSON) error bodies are cut to this many characters
MAX_ERROR_TEXT = 500


def extract_error_message(payload: Any) -> str:
    """Pick the most useful message out of a decoded JSON error body.

    BambooHR is inconsistent about the shape of error bodies, so the
    candidates are tried in order: a bare string, ``message``, ``error``,
    ``errors`` (joined), ``detail``, and finally the JSON itself.
    """
    if isinstance(payload, str):
        return payload
    if isinstance(payload, dict):
        if payload.get("message"):
            return str(payload["message"])
        if payload.get("error"):
            error = payload["error"]
            return error if isinstance(error, str) else json.dumps(error)
        if isinstance(payload.get("errors"), list) and payload["errors"]:
            return ", ".join(
                item if isinstance(item, str) else json.dumps(item) for item in payload["errors"]
            )
        if payload.get("detail"):
            return str(payload["detail"])
    return json.dumps(payload)


def build_error_message(response: httpx.Response, secrets: Iterable[str] = ()) -> str:
    """Compose ``BambooHR API error: {status} {reason} - {message}``."""
    message = f"BambooHR API error: {response.status_code} {response.reason_phrase}"

    try:
        text = response.text
    except Exception:  # undecodable body: keep just the status line
        logger.debug("Could not read error body for status %s", response.status_code)
        return message

    if text:
        try:
            detail = extract_error_message(json.loads(text))
        except ValueError:
            detail = text if len(text) <= MAX_ERROR_TEXT else f"{text[:MAX_ERROR_TEXT]}..."
        message = f"{message} - {detail}"

    return redact(message, secrets)


def error_for_response(
    response: httpx.Response, endpoint: str, secrets: Iterable[str] = ()
) -> HTTPError:
    """Build the typed error for a non-success *response*."""
    secrets = list(secrets)
    message = build_error_message(response, secrets)

    if response.status_code == 429:
        error_cls: type[HTTPError] = RateLimitedError
    elif response.status_code >= 500:
        error_cls = ServerError
    else:
        error_cls = ClientError

    try:
        body = redact(response.text, secrets)
    except Exception:
        body = ""

    return error_cls(
        response.status_code,
        message,
        reason=response.reason_phrase,
        body=body,
        endpoint=endpoint,
    )


def parse_json_body(text: str, endpoint: str) -> Any:
    """Decode a successful response body.

    An empty body decodes to ``None``. Anything that is not JSON raises
    :class:`MalformedResponseError`, with HTML pages and cut-off JSON
    called out separately because they point at different root causes.
    """
    if not text or not text.strip():
        logger.debug("Empty response from BambooHR API: %s", endpoint)
        return None

    try:
        return json.loads(text)
    except ValueError as exc:
        stripped = text.strip()
        logger.error(
            "Failed to parse BambooHR API response: %s (length %d, preview %r): %s",
            endpoint,
            len(text),
            stripped[:200],
            exc,
        )

        if stripped.startswith("<"):
            raise MalformedResponseError(
                endpoint,
                "html",
                "BambooHR returned HTML instead of JSON. This usually indicates an "
                f"authentication or server error. Endpoint: {endpoint}",
            ) from exc

        if stripped.startswith(("{", "[")):
            raise MalformedResponseError(
                endpoint,
                "truncated",
                "Incomplete JSON response from BambooHR API. Response was truncated "
                f"or corrupted. Endpoint: {endpoint}",
            ) from exc

        raise MalformedResponseError(
            endpoint,
            "invalid_json",
            f"Invalid JSON response from BambooHR API: {exc}",
        ) from exc
