"""Test secret redaction in log output."""

import logging
import sys

from bamboohr.sdk._logging import REDACTED, RedactingFilter, redact


def test_redact_replaces_every_occurrence():
    assert redact("key=abc and abc", ["abc"]) == f"key={REDACTED} and {REDACTED}"


def test_redact_ignores_empty_secrets():
    assert redact("nothing here", ["", None]) == "nothing here"


def make_record(msg, *args):
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_filter_scrubs_formatted_message():
    record = make_record("Authorization: Basic %s", "c2VjcmV0Ong=")
    RedactingFilter(["c2VjcmV0Ong="]).filter(record)
    assert record.getMessage() == f"Authorization: Basic {REDACTED}"


def test_filter_without_secrets_leaves_record():
    record = make_record("GET %s", "/datasets")
    assert RedactingFilter().filter(record)
    assert record.args == ("/datasets",)


def test_add_secret_deduplicates():
    redacting = RedactingFilter(["a"])
    redacting.add_secret("a")
    redacting.add_secret("")
    redacting.add_secret("b")
    assert redacting.secrets == ["a", "b"]


def test_filter_scrubs_traceback():
    try:
        raise RuntimeError("request failed for key sk-secret")
    except RuntimeError:
        record = logging.LogRecord(
            "test", logging.ERROR, __file__, 1, "Unexpected failure", None, sys.exc_info()
        )

    RedactingFilter(["sk-secret"]).filter(record)
    output = logging.Formatter().format(record)

    assert "RuntimeError" in output
    assert "sk-secret" not in output
    assert REDACTED in output
