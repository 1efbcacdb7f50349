"""Tests for the fixed-delay retry wrapper."""

import asyncio
import json
import time

import pytest

from acs_seed.application.retry import retry
from acs_seed.exceptions import RetriesExhausted, SubmissionError


class Flaky:
    """Fails ``failures`` times, then returns ``value``."""

    def __init__(self, failures, value="ok", error_factory=None):
        self.failures = failures
        self.value = value
        self.calls = 0
        self.error_factory = error_factory or (lambda n: SubmissionError(f"attempt {n} failed", status_code=503))

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error_factory(self.calls)
        return self.value


def read_events(logger, event):
    if not logger.log_file.exists():
        return []
    with open(logger.log_file, encoding="utf-8") as f:
        entries = [json.loads(line) for line in f]
    return [e for e in entries if e["event"] == event]


class TestRetry:

    @pytest.mark.parametrize("failures", [0, 1, 4, 9])
    def test_succeeds_after_k_failures(self, logger, failures):
        op = Flaky(failures)
        reported = []

        result = asyncio.run(retry(op, max_attempts=10, delay_ms=0,
                                   on_failure=lambda attempt, e: reported.append(attempt), logger=logger))

        assert result == "ok"
        assert op.calls == failures + 1
        assert reported == list(range(1, failures + 1))
        assert len(read_events(logger, "retry_attempt_failed")) == failures

    def test_exhaustion_raises_with_attempts_and_cause(self, logger):
        op = Flaky(failures=100)

        with pytest.raises(RetriesExhausted) as exc_info:
            asyncio.run(retry(op, max_attempts=4, delay_ms=0, logger=logger))

        error = exc_info.value
        assert error.attempts == 4
        assert isinstance(error.cause, SubmissionError)
        assert str(error.cause) == "attempt 4 failed"
        assert error.__cause__ is error.cause
        assert op.calls == 4
        assert len(read_events(logger, "retry_attempt_failed")) == 4

    def test_default_policy_is_ten_attempts(self, logger):
        op = Flaky(failures=100)

        with pytest.raises(RetriesExhausted) as exc_info:
            asyncio.run(retry(op, delay_ms=0, logger=logger))

        assert exc_info.value.attempts == 10
        assert op.calls == 10

    def test_fixed_delay_between_attempts_only(self, logger):
        op = Flaky(failures=2)

        start = time.monotonic()
        asyncio.run(retry(op, max_attempts=3, delay_ms=20, logger=logger))
        elapsed = time.monotonic() - start

        # two delays, none after the successful third attempt
        assert elapsed >= 0.035

    def test_failure_reported_before_delay(self, logger, monkeypatch):
        events = []

        async def fake_sleep(seconds):
            events.append(f"sleep {seconds}")

        async def op():
            events.append("attempt")
            raise RuntimeError("nope")

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        with pytest.raises(RetriesExhausted):
            asyncio.run(retry(op, max_attempts=3, delay_ms=50,
                              on_failure=lambda attempt, e: events.append(f"report {attempt}"),
                              logger=logger))

        assert events == [
            "attempt", "report 1", "sleep 0.05",
            "attempt", "report 2", "sleep 0.05",
            "attempt", "report 3",
        ]

    def test_non_matching_errors_propagate_immediately(self, logger):
        op = Flaky(failures=5, error_factory=lambda n: KeyError(n))

        with pytest.raises(KeyError):
            asyncio.run(retry(op, max_attempts=5, delay_ms=0, retry_on=(SubmissionError,), logger=logger))

        assert op.calls == 1

    def test_log_entry_carries_attempt_details(self, logger):
        op = Flaky(failures=1)

        asyncio.run(retry(op, max_attempts=3, delay_ms=0, logger=logger, label="create_user:7"))

        (entry,) = read_events(logger, "retry_attempt_failed")
        assert entry["level"] == "warning"
        assert entry["data"]["label"] == "create_user:7"
        assert entry["data"]["attempt"] == 1
        assert entry["data"]["error_type"] == "SubmissionError"

    def test_invalid_max_attempts(self, logger):
        with pytest.raises(ValueError):
            asyncio.run(retry(Flaky(0), max_attempts=0, logger=logger))
