"""Shared typed models.

This module defines immutable data models used by the merge engine,
the publishing pipeline, and the orchestrator to keep interfaces explicit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

import pyarrow as pa

from core.constants import DEFAULT_BATCH_SIZE, DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_DELAY_SECONDS

FetchOutcomeKind = Literal["ok", "absent", "failed"]
ChangeStatus = Literal["new", "changed", "unchanged"]
DatasetStatus = Literal["new", "changed", "unchanged", "failed"]


@dataclass(frozen=True)
class SurveyCycle:
    """One collection period of the survey.

    Attributes:
        suffix: Table-name suffix letter, empty for the first cycle.
        start_year: First calendar year of the cycle.
    """

    suffix: str
    start_year: int

    def table_code(self, table_name: str) -> str:
        """Return the upstream table code for this cycle."""
        base_name = table_name.upper()
        if not self.suffix:
            return base_name
        return f"{base_name}_{self.suffix}"


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-delay retry settings for transient fetch failures.

    Attributes:
        max_attempts: Total attempts per cycle, including the first.
        delay_seconds: Sleep between consecutive attempts.
    """

    max_attempts: int = DEFAULT_RETRY_ATTEMPTS
    delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS


@dataclass(frozen=True)
class FetchOutcome:
    """Result of fetching one cycle table with retries.

    Attributes:
        table_code: Upstream table code that was requested.
        kind: ``ok``, ``absent`` (table never existed), or ``failed``
            (retries exhausted on transient errors).
        table: Fetched table when ``kind`` is ``ok``.
        attempts: Number of fetch attempts made.
        last_error: Message of the last transient error, if any.
    """

    table_code: str
    kind: FetchOutcomeKind
    table: pa.Table | None = None
    attempts: int = 1
    last_error: str | None = None

    @property
    def retry_count(self) -> int:
        """Number of retries beyond the first attempt."""
        return max(self.attempts - 1, 0)


@dataclass(frozen=True)
class MergeResult:
    """Accumulated dataset for one table family.

    Attributes:
        table_name: Upper-case table family name.
        table: Merged table, empty when no cycle produced data.
        skipped_cycles: Table codes skipped after exhausted retries.
        absent_cycles: Table codes that do not exist upstream.
        retry_count: Total retries across all cycles.
        failure_reasons: Human-readable reasons for skipped or empty results.
        diagnostics: Translation and harmonization decisions, in order.
        reference_cycle: Table code whose codebook supplied labels.
    """

    table_name: str
    table: pa.Table
    skipped_cycles: tuple[str, ...] = ()
    absent_cycles: tuple[str, ...] = ()
    retry_count: int = 0
    failure_reasons: tuple[str, ...] = ()
    diagnostics: tuple[str, ...] = ()
    reference_cycle: str | None = None

    @property
    def is_empty(self) -> bool:
        """Whether no cycle contributed rows."""
        return self.table.num_rows == 0

    @property
    def is_complete(self) -> bool:
        """Whether every existing cycle was fetched successfully."""
        return not self.skipped_cycles


@dataclass(frozen=True)
class DatasetJob:
    """One dataset catalog entry.

    Attributes:
        name: Lower-case table family name, also the publish key stem.
        description: Human-readable dataset description.
        category: Catalog category used for batching.
        notes: Optional free-form maintainer notes.
    """

    name: str
    description: str
    category: str
    notes: str | None = None


@dataclass(frozen=True)
class CategorySlice:
    """Contiguous run of jobs from one category inside a batch."""

    category: str
    jobs: tuple[DatasetJob, ...]


@dataclass(frozen=True)
class Batch:
    """Ordered, size-bounded group of dataset jobs.

    Attributes:
        number: One-based batch number.
        slices: Category-ordered contiguous slices.
    """

    number: int
    slices: tuple[CategorySlice, ...]

    @property
    def jobs(self) -> tuple[DatasetJob, ...]:
        """All jobs of the batch in processing order."""
        return tuple(job for batch_slice in self.slices for job in batch_slice.jobs)

    @property
    def size(self) -> int:
        """Number of jobs in the batch."""
        return sum(len(batch_slice.jobs) for batch_slice in self.slices)


@dataclass(frozen=True)
class SyncOptions:
    """Run controls for one orchestrator invocation.

    Attributes:
        dry_run: Fetch, merge, and detect changes without publishing.
        dataset_names: Explicit subset that bypasses batching.
        batch_number: One-based batch to run; all batches when omitted.
        max_batch_size: Maximum datasets per batch.
        selected_columns: Optional column allow-list applied to every cycle.
    """

    dry_run: bool = False
    dataset_names: tuple[str, ...] | None = None
    batch_number: int | None = None
    max_batch_size: int = DEFAULT_BATCH_SIZE
    selected_columns: tuple[str, ...] | None = None


@dataclass(frozen=True)
class DatasetOutcome:
    """Per-dataset decision row for the run summary."""

    name: str
    status: DatasetStatus
    uploaded: bool = False
    row_count: int = 0
    column_count: int = 0
    fingerprint: str | None = None
    skipped_cycles: tuple[str, ...] = ()
    error: str | None = None


@dataclass
class RunSummary:
    """Mutable run counters collected by the orchestrator."""

    start_time: str
    dry_run: bool
    end_time: str | None = None
    duration_minutes: float = 0.0
    halted: bool = False
    halt_reason: str | None = None
    outcomes: list[DatasetOutcome] = field(default_factory=list)

    @property
    def datasets_processed(self) -> int:
        """Count datasets that reached a decision."""
        return len(self.outcomes)

    @property
    def changed_datasets(self) -> list[str]:
        """Names of new or changed datasets."""
        return [row.name for row in self.outcomes if row.status in ("new", "changed")]

    @property
    def failed_datasets(self) -> list[str]:
        """Names of datasets that failed."""
        return [row.name for row in self.outcomes if row.status == "failed"]

    @property
    def datasets_changed(self) -> int:
        """Count new or changed datasets."""
        return len(self.changed_datasets)

    @property
    def datasets_unchanged(self) -> int:
        """Count datasets whose fingerprint matched."""
        return sum(1 for row in self.outcomes if row.status == "unchanged")

    @property
    def datasets_failed(self) -> int:
        """Count failed datasets."""
        return len(self.failed_datasets)

    @property
    def datasets_uploaded(self) -> int:
        """Count datasets published and verified."""
        return sum(1 for row in self.outcomes if row.uploaded)
