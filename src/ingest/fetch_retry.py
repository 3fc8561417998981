"""Bounded fixed-delay retry for cycle fetches.

Only transient failures are retried. A table that does not exist in a
cycle is reported as absent on the first attempt and never retried.
"""

from __future__ import annotations

import time
from typing import Callable

from core.errors import TransientSourceError
from core.logging_config import get_logger
from core.types import FetchOutcome, RetryPolicy
from ingest.sources import SurveyDataSource

_LOGGER = get_logger(__name__)


def fetch_with_retry(
    source: SurveyDataSource,
    table_code: str,
    policy: RetryPolicy,
    sleep: Callable[[float], None] = time.sleep,
) -> FetchOutcome:
    """Fetch one cycle table, retrying transient failures.

    Args:
        source: Survey data collaborator.
        table_code: Upstream table code for the cycle.
        policy: Attempt bound and fixed delay.
        sleep: Sleep callable, injectable for tests.

    Returns:
        Outcome tagged ``ok``, ``absent``, or ``failed``.

    Raises:
        SyncSourceError: For non-transient source failures.
    """
    last_error: str | None = None
    for attempt in range(1, policy.max_attempts + 1):
        try:
            table = source.fetch(table_code)
        except TransientSourceError as error:
            last_error = str(error)
            if attempt < policy.max_attempts:
                _LOGGER.warning(
                    "cycle_fetch_retry",
                    table_code=table_code,
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    delay_seconds=policy.delay_seconds,
                    error=last_error,
                )
                sleep(policy.delay_seconds)
            continue
        if table is None:
            return FetchOutcome(table_code=table_code, kind="absent", attempts=attempt)
        return FetchOutcome(
            table_code=table_code,
            kind="ok",
            table=table,
            attempts=attempt,
            last_error=last_error,
        )
    return FetchOutcome(
        table_code=table_code,
        kind="failed",
        attempts=policy.max_attempts,
        last_error=last_error,
    )
