"""
Tests for mistral_ocr/retry.py
"""

import asyncio

import pytest

from mistral_ocr.errors import ApiHttpError, RateLimitExceeded
from mistral_ocr.retry import backoff_delay_ms, call_with_retry, is_rate_limit_error
from mistral_ocr.types import RequestSpec

REQUEST = RequestSpec(method="POST", url="/v1/ocr", json={"model": "mistral-ocr-latest"})


class Recorder:
    outcomes_default = ApiHttpError(429, "Too Many Requests")

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.attempts = 0
        self.delays = []

    async def call(self, request):
        self.attempts += 1
        outcome = self.outcomes.pop(0) if self.outcomes else self.outcomes_default
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def sleep(self, seconds):
        self.delays.append(seconds)


class TestIsRateLimitError:
    def test_status_code(self):
        assert is_rate_limit_error(ApiHttpError(429, "slow down"))

    def test_message_text(self):
        assert is_rate_limit_error(RuntimeError("Request failed with status code 429"))

    def test_other_errors(self):
        assert not is_rate_limit_error(ApiHttpError(500, "boom"))
        assert not is_rate_limit_error(ValueError("bad"))

    def test_status_wins_over_message_text(self):
        error = ApiHttpError(404, '{"detail":"not found"}', method="GET", url="/v1/files/7f3a4291-aa/url")
        assert not is_rate_limit_error(error)
        assert not is_rate_limit_error(ApiHttpError(500, '{"request_id":"req-4290"}'))


class TestBackoff:
    def test_exponential(self):
        assert backoff_delay_ms(0, 1000, 0.0) == 1000
        assert backoff_delay_ms(1, 1000, 0.0) == 2000
        assert backoff_delay_ms(2, 1000, 0.5) == 4500


class TestCallWithRetry:
    def test_success_first_try(self):
        rec = Recorder([{"id": "file-1"}])
        result = asyncio.run(call_with_retry(rec.call, REQUEST, sleep=rec.sleep))
        assert result == {"id": "file-1"}
        assert rec.attempts == 1
        assert rec.delays == []

    def test_recovers_after_rate_limit(self):
        rec = Recorder([ApiHttpError(429, "Too Many Requests"), ApiHttpError(429, "Too Many Requests"), {"ok": True}])
        result = asyncio.run(call_with_retry(rec.call, REQUEST, sleep=rec.sleep, jitter=lambda: 0.0))
        assert result == {"ok": True}
        assert rec.attempts == 3
        assert rec.delays == [1.0, 2.0]

    def test_exhausted_raises_rate_limit_exceeded(self):
        rec = Recorder([])
        with pytest.raises(RateLimitExceeded) as exc_info:
            asyncio.run(call_with_retry(rec.call, REQUEST, max_retries=3, sleep=rec.sleep))

        assert rec.attempts == 4
        assert len(rec.delays) == 3
        assert rec.delays == sorted(rec.delays)
        assert "rate limit exceeded" in exc_info.value.message
        assert exc_info.value.description
        assert isinstance(exc_info.value.cause, ApiHttpError)

    def test_delays_non_decreasing_with_worst_case_jitter(self):
        jitters = iter([0.999, 0.0, 0.999])
        rec = Recorder([])
        with pytest.raises(RateLimitExceeded):
            asyncio.run(call_with_retry(rec.call, REQUEST, sleep=rec.sleep, jitter=lambda: next(jitters)))
        assert rec.delays[0] <= rec.delays[1] <= rec.delays[2]

    def test_zero_retries(self):
        rec = Recorder([])
        with pytest.raises(RateLimitExceeded):
            asyncio.run(call_with_retry(rec.call, REQUEST, max_retries=0, sleep=rec.sleep))
        assert rec.attempts == 1
        assert rec.delays == []

    def test_other_errors_not_retried(self):
        rec = Recorder([ApiHttpError(500, "Internal Server Error")])
        with pytest.raises(ApiHttpError) as exc_info:
            asyncio.run(call_with_retry(rec.call, REQUEST, sleep=rec.sleep))
        assert exc_info.value.status == 500
        assert rec.attempts == 1
        assert rec.delays == []

    def test_not_found_with_429_in_url_not_retried(self):
        error = ApiHttpError(404, '{"detail":"not found"}', method="GET", url="/v1/files/7f3a4291-aa/url")
        rec = Recorder([error])
        request = RequestSpec(method="GET", url="/v1/files/7f3a4291-aa/url", qs={"expiry": 24})
        with pytest.raises(ApiHttpError) as exc_info:
            asyncio.run(call_with_retry(rec.call, request, sleep=rec.sleep))
        assert exc_info.value.status == 404
        assert rec.attempts == 1
        assert rec.delays == []
