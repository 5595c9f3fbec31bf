"""Test the retry decision logic and loop."""

import httpx
import pytest
from email.utils import format_datetime
from datetime import datetime, timedelta, timezone

from bamboohr.sdk._retry import (
    RaiseError,
    RetryAfter,
    RetryPolicy,
    ReturnResponse,
    backoff_delay,
    decide,
    is_retryable_error,
    retry_after_delay,
    run_with_retry,
)
from bamboohr.sdk.exceptions import NetworkError, RequestTimeoutError

POLICY = RetryPolicy(max_retry_attempts=3, base_delay_ms=1_000, max_delay_ms=30_000)


class TestBackoffDelay:
    """Test exponential backoff with jitter."""

    def test_exponential_without_jitter(self):
        """Test random() == 0.5 yields the pure exponential value."""
        delays = [backoff_delay(n, POLICY, random=lambda: 0.5) for n in range(4)]
        assert delays == [1_000, 2_000, 4_000, 8_000]

    @pytest.mark.parametrize("rand", [0.0, 0.25, 0.75, 0.999])
    def test_jitter_bounds(self, rand):
        """Test jitter stays within +/-12.5% of the exponential value."""
        delay = backoff_delay(2, POLICY, random=lambda: rand)
        assert 4_000 * 0.875 <= delay <= 4_000 * 1.125

    def test_clamped_to_max(self):
        """Test large attempts never exceed the maximum delay."""
        assert backoff_delay(10, POLICY, random=lambda: 0.999) == 30_000


class TestRetryAfterDelay:
    """Test Retry-After header handling."""

    def test_integer_seconds(self):
        assert retry_after_delay("2", POLICY) == 2_000

    def test_integer_seconds_clamped(self):
        assert retry_after_delay("120", POLICY) == 30_000

    def test_negative_seconds_clamped_to_zero(self):
        assert retry_after_delay("-5", POLICY) == 0

    def test_http_date(self):
        """Test an HTTP date is converted relative to now."""
        now = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now + timedelta(seconds=5), usegmt=True)
        assert retry_after_delay(header, POLICY, now=now.timestamp()) == 5_000

    def test_http_date_in_past(self):
        now = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now - timedelta(seconds=30), usegmt=True)
        assert retry_after_delay(header, POLICY, now=now.timestamp()) == 0

    @pytest.mark.parametrize("header", [None, "", "soon", "Thu, 99 Foo 2024"])
    def test_fallback(self, header):
        """Test missing or unparseable headers fall back to twice the base delay."""
        assert retry_after_delay(header, POLICY) == 2_000

    @pytest.mark.parametrize("header", ["5.0", "5 ", "5s"])
    def test_leading_integer_seconds(self, header):
        """Test a fraction or suffix after the seconds is ignored."""
        policy = RetryPolicy(max_retry_attempts=3, base_delay_ms=100, max_delay_ms=30_000)
        assert retry_after_delay(header, policy) == 5_000

    def test_fallback_clamped(self):
        policy = RetryPolicy(max_retry_attempts=3, base_delay_ms=1_000, max_delay_ms=1_500)
        assert retry_after_delay(None, policy) == 1_500


class TestRetryableErrors:
    """Test classification of network failures."""

    @pytest.mark.parametrize(
        "message",
        [
            "Network error connecting to BambooHR API: boom",
            "read ECONNRESET",
            "getaddrinfo ENOTFOUND api.bamboohr.com",
            "connect ECONNREFUSED",
            "Connection reset by peer",
            "socket hang up",
            "BambooHR API request timeout: no response after 30 seconds: /x",
            "The read operation timed out",
        ],
    )
    def test_retryable(self, message):
        assert is_retryable_error(Exception(message))

    @pytest.mark.parametrize("message", ["invalid literal for int()", "permission denied"])
    def test_not_retryable(self, message):
        assert not is_retryable_error(Exception(message))


class TestDecide:
    """Test the pure retry decision."""

    def test_success_returned(self):
        response = httpx.Response(200)
        assert decide(response, 0, POLICY) == ReturnResponse(response)

    @pytest.mark.parametrize("status", [400, 401, 403, 404])
    def test_client_errors_returned_immediately(self, status):
        response = httpx.Response(status)
        assert decide(response, 0, POLICY) == ReturnResponse(response)

    def test_rate_limit_uses_retry_after(self):
        response = httpx.Response(429, headers={"Retry-After": "3"})
        decision = decide(response, 0, POLICY)
        assert isinstance(decision, RetryAfter)
        assert decision.delay_ms == 3_000
        assert "429" in decision.reason

    @pytest.mark.parametrize("status", [500, 502, 503, 599])
    def test_server_errors_back_off(self, status):
        decision = decide(httpx.Response(status), 1, POLICY, random=lambda: 0.5)
        assert decision == RetryAfter(2_000, f"server error ({status})")

    def test_final_attempt_returns_failed_response(self):
        response = httpx.Response(503)
        assert decide(response, POLICY.max_retry_attempts, POLICY) == ReturnResponse(response)

    def test_retryable_error_backs_off(self):
        error = NetworkError("/x", OSError("Connection refused"))
        decision = decide(error, 0, POLICY, random=lambda: 0.5)
        assert isinstance(decision, RetryAfter)
        assert decision.delay_ms == 1_000

    def test_timeout_is_retried(self):
        error = RequestTimeoutError("/x", 30, TimeoutError())
        assert isinstance(decide(error, 0, POLICY), RetryAfter)

    def test_non_retryable_error_raised(self):
        error = ValueError("bad input")
        assert decide(error, 0, POLICY) == RaiseError(error)

    def test_final_attempt_raises_error(self):
        error = NetworkError("/x", OSError("Connection refused"))
        assert decide(error, POLICY.max_retry_attempts, POLICY) == RaiseError(error)


class TestRunWithRetry:
    """Test the retry loop."""

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        responses = iter([httpx.Response(500), httpx.Response(429), httpx.Response(200)])
        delays = []

        async def send():
            return next(responses)

        async def sleep(seconds):
            delays.append(seconds)

        response = await run_with_retry(send, POLICY, sleep=sleep, random=lambda: 0.5)

        assert response.status_code == 200
        assert delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_exhausted_network_error_raised(self):
        calls = 0

        async def send():
            nonlocal calls
            calls += 1
            raise NetworkError("/x", OSError("Connection reset"))

        async def sleep(seconds):
            pass

        with pytest.raises(NetworkError):
            await run_with_retry(send, POLICY, sleep=sleep)
        assert calls == POLICY.total_attempts

    @pytest.mark.asyncio
    async def test_unexpected_exception_not_retried(self):
        calls = 0

        async def send():
            nonlocal calls
            calls += 1
            raise KeyError("bug")

        with pytest.raises(KeyError):
            await run_with_retry(send, POLICY)
        assert calls == 1

    @pytest.mark.asyncio
    async def test_retry_logged(self, caplog):
        responses = iter([httpx.Response(503), httpx.Response(200)])

        async def send():
            return next(responses)

        async def sleep(seconds):
            pass

        with caplog.at_level("WARNING", logger="bamboohr.sdk._retry"):
            await run_with_retry(send, POLICY, endpoint="/datasets", sleep=sleep, random=lambda: 0.5)

        assert "attempt 1/4" in caplog.text
        assert "1000ms" in caplog.text
        assert "server error (503)" in caplog.text
