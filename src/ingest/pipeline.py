"""Sync orchestration across the dataset catalog.

This module sequences merge, change detection, publishing, and
fingerprint commits per dataset and per batch, and collects the run
summary. Per-dataset failures are recorded and the run continues; a
failed read-back verification halts the run.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Sequence

from core.config import SyncConfig
from core.errors import CycleSyncError, SyncConfigError, SyncIntegrityError
from core.logging_config import get_logger
from core.types import DatasetJob, DatasetOutcome, MergeResult, RunSummary, SyncOptions
from ingest.batch_scheduler import select_jobs
from ingest.cycle_merge import pull_cycles
from ingest.sources import CodebookSource, SurveyDataSource
from store.change_detection import compute_fingerprint, detect_change
from store.checksum_store import ChecksumStore
from store.object_store import ObjectStore
from store.publisher import publish_dataset

_LOGGER = get_logger(__name__)


class _RunHalted(Exception):
    """Integrity failure with the failed dataset outcome attached."""

    def __init__(self, outcome: DatasetOutcome) -> None:
        super().__init__(outcome.error)
        self.outcome = outcome


class SyncPipelineRunner:
    """Stateful runner for one sync invocation."""

    def __init__(
        self,
        config: SyncConfig,
        options: SyncOptions,
        source: SurveyDataSource,
        codebooks: CodebookSource,
        object_store: ObjectStore | None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not options.dry_run and object_store is None:
            raise SyncConfigError(
                "Cannot publish without an object store. "
                "Configure R2 credentials or an output directory, or run with --dry-run."
            )
        self._config = config
        self._options = options
        self._source = source
        self._codebooks = codebooks
        self._object_store = object_store
        self._sleep = sleep
        self._checksums = ChecksumStore(config.checksums_path)

    def run(self, jobs: Sequence[DatasetJob]) -> RunSummary:
        """Process the selected batches and return the run summary.

        Raises:
            SyncConfigError: If the batch selection is invalid.
        """
        batches = select_jobs(
            jobs,
            self._options.max_batch_size,
            batch_number=self._options.batch_number,
            dataset_names=self._options.dataset_names,
        )
        summary = RunSummary(start_time=_utc_now(), dry_run=self._options.dry_run)
        started_at = time.monotonic()
        for index, batch in enumerate(batches):
            if index > 0 and self._config.batch_delay_seconds > 0:
                _LOGGER.info("batch_pause", delay_seconds=self._config.batch_delay_seconds)
                self._sleep(self._config.batch_delay_seconds)
            _LOGGER.info(
                "batch_started",
                batch_number=batch.number,
                batch_size=batch.size,
                categories=[batch_slice.category for batch_slice in batch.slices],
            )
            for job in batch.jobs:
                if not self._process_job(job, summary):
                    break
            if summary.halted:
                break
        summary.end_time = _utc_now()
        summary.duration_minutes = (time.monotonic() - started_at) / 60
        _log_run_completion(summary)
        return summary

    def _process_job(self, job: DatasetJob, summary: RunSummary) -> bool:
        """Run one dataset and record its outcome. Returns False to halt."""
        try:
            outcome = self._sync_dataset(job)
        except _RunHalted as halt:
            summary.halted = True
            summary.halt_reason = halt.outcome.error
            _record(summary, halt.outcome)
            _LOGGER.error("run_halted", dataset_name=job.name, error=halt.outcome.error)
            return False
        except CycleSyncError as error:
            outcome = DatasetOutcome(name=job.name, status="failed", error=str(error))
        _record(summary, outcome)
        return True

    def _sync_dataset(self, job: DatasetJob) -> DatasetOutcome:
        merge = pull_cycles(
            job.name,
            self._source,
            self._codebooks,
            self._config.retry_policy,
            selected_columns=self._options.selected_columns,
            sleep=self._sleep,
        )
        _log_merge(job.name, merge)
        table = merge.table
        if merge.is_empty or not merge.is_complete:
            return DatasetOutcome(
                name=job.name,
                status="failed",
                row_count=table.num_rows,
                column_count=table.num_columns,
                skipped_cycles=merge.skipped_cycles,
                error="; ".join(merge.failure_reasons),
            )
        fingerprint = compute_fingerprint(table)
        status = detect_change(job.name, fingerprint, self._checksums)
        uploaded = False
        if status != "unchanged" and not self._options.dry_run and self._object_store:
            try:
                publish_dataset(job.name, table, self._object_store)
            except SyncIntegrityError as error:
                raise _RunHalted(
                    DatasetOutcome(
                        name=job.name,
                        status="failed",
                        row_count=table.num_rows,
                        column_count=table.num_columns,
                        fingerprint=fingerprint,
                        error=str(error),
                    )
                ) from error
            self._checksums.update(job.name, fingerprint)
            uploaded = True
        return DatasetOutcome(
            name=job.name,
            status=status,
            uploaded=uploaded,
            row_count=table.num_rows,
            column_count=table.num_columns,
            fingerprint=fingerprint,
        )


def run_sync(
    config: SyncConfig,
    options: SyncOptions,
    jobs: Sequence[DatasetJob],
    source: SurveyDataSource,
    codebooks: CodebookSource,
    object_store: ObjectStore | None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunSummary:
    """Sync catalog datasets and return the run summary.

    Args:
        config: Runtime configuration.
        options: Run controls.
        jobs: Dataset catalog entries.
        source: Survey data collaborator.
        codebooks: Codebook collaborator.
        object_store: Publish destination, optional for dry runs.
        sleep: Sleep callable for retry and batch delays.

    Returns:
        Run summary with one outcome per processed dataset.

    Raises:
        SyncConfigError: If run controls are invalid.
    """
    runner = SyncPipelineRunner(config, options, source, codebooks, object_store, sleep=sleep)
    return runner.run(jobs)


def _record(summary: RunSummary, outcome: DatasetOutcome) -> None:
    summary.outcomes.append(outcome)
    _LOGGER.info(
        "dataset_decision",
        dataset_name=outcome.name,
        status=outcome.status,
        uploaded=outcome.uploaded,
        row_count=outcome.row_count,
        column_count=outcome.column_count,
        skipped_cycles=list(outcome.skipped_cycles),
        error=outcome.error,
    )


def _log_merge(dataset_name: str, merge: MergeResult) -> None:
    for line in merge.diagnostics:
        _LOGGER.info("merge_diagnostic", dataset_name=dataset_name, detail=line)
    _LOGGER.info(
        "dataset_merged",
        dataset_name=dataset_name,
        row_count=merge.table.num_rows,
        reference_cycle=merge.reference_cycle,
        absent_cycles=list(merge.absent_cycles),
        skipped_cycles=list(merge.skipped_cycles),
        retry_count=merge.retry_count,
    )


def _log_run_completion(summary: RunSummary) -> None:
    _LOGGER.info(
        "sync_completed",
        dry_run=summary.dry_run,
        halted=summary.halted,
        processed=summary.datasets_processed,
        changed=summary.datasets_changed,
        unchanged=summary.datasets_unchanged,
        failed=summary.datasets_failed,
        uploaded=summary.datasets_uploaded,
    )


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()
