"""Unit tests for bounded fixed-delay fetch retries."""

from __future__ import annotations

import pyarrow as pa
import pytest

from core.errors import SyncSourceError
from core.types import RetryPolicy
from ingest.fetch_retry import fetch_with_retry
from survey_fakes import FakeSurveySource, RecordingSleep


def test_transient_failures_below_limit_then_success() -> None:
    """Failing attempts-1 times then succeeding should yield ok."""
    table = pa.table({"SEQN": [1]})
    source = FakeSurveySource({"DEMO_B": table}, transient_failures={"DEMO_B": 2})
    sleep = RecordingSleep()

    outcome = fetch_with_retry(source, "DEMO_B", RetryPolicy(max_attempts=3, delay_seconds=5.0), sleep)

    assert outcome.kind == "ok"
    assert outcome.attempts == 3
    assert outcome.retry_count == 2
    assert sleep.delays == [5.0, 5.0]


def test_exhausted_retries_report_failed() -> None:
    """Failing on every attempt should report failed without raising."""
    source = FakeSurveySource({}, transient_failures={"DEMO_C": 5})
    sleep = RecordingSleep()

    outcome = fetch_with_retry(source, "DEMO_C", RetryPolicy(max_attempts=3, delay_seconds=1.0), sleep)

    assert outcome.kind == "failed"
    assert outcome.attempts == 3
    assert outcome.last_error == "timeout fetching DEMO_C"
    assert len(source.calls) == 3
    assert sleep.delays == [1.0, 1.0]


def test_absent_table_is_never_retried() -> None:
    """A None result should be absent after exactly one attempt."""
    source = FakeSurveySource({})
    sleep = RecordingSleep()

    outcome = fetch_with_retry(source, "DEMO_K", RetryPolicy(), sleep)

    assert outcome.kind == "absent"
    assert outcome.retry_count == 0
    assert source.calls == ["DEMO_K"]
    assert sleep.delays == []


def test_non_transient_errors_propagate() -> None:
    """Non-retryable source errors should not be swallowed."""

    class _BrokenSource:
        def fetch(self, table_code: str):
            raise SyncSourceError(f"schema error in {table_code}")

    with pytest.raises(SyncSourceError):
        fetch_with_retry(_BrokenSource(), "DEMO", RetryPolicy(), RecordingSleep())
