"""Integration tests for the sync orchestrator."""

from __future__ import annotations

import pyarrow as pa
import pytest

from core.config import SyncConfig
from core.errors import SyncConfigError, SyncStoreError
from core.types import DatasetJob, SyncOptions
from ingest.pipeline import run_sync
from store.checksum_store import ChecksumStore
from store.publisher import serialize_table
from survey_fakes import (
    FakeCodebookSource,
    FakeSurveySource,
    MemoryObjectStore,
    RecordingSleep,
    demo_table,
)

_JOBS = (
    DatasetJob(name="demo", description="Demographics", category="questionnaire"),
    DatasetJob(name="bmx", description="Body measures", category="examination"),
)


def _config(tmp_path, batch_delay_seconds: float = 0.0) -> SyncConfig:
    return SyncConfig(
        data_root=tmp_path,
        catalog_path=tmp_path / "datasets.yml",
        source_dir=None,
        output_dir=None,
        bucket="nhanes-data",
        retry_attempts=3,
        retry_delay_seconds=5.0,
        batch_size=20,
        batch_delay_seconds=batch_delay_seconds,
        credentials=None,
    )


def _source(**transient_failures: int) -> FakeSurveySource:
    return FakeSurveySource(
        {
            "DEMO": demo_table([1, 2], riagendr=[1, 2]),
            "DEMO_B": demo_table([3], riagendr=[2]),
            "BMX": demo_table([1, 2], bmxwt=[70.0, 81.5]),
            "BMX_B": demo_table([3], bmxwt=[64.2]),
        },
        transient_failures=transient_failures,
    )


def test_first_run_publishes_then_second_run_is_unchanged(tmp_path) -> None:
    """Only new or changed datasets should be uploaded."""
    config = _config(tmp_path)
    store = MemoryObjectStore()
    codebooks = FakeCodebookSource({"DEMO_B": {"RIAGENDR": {"1": "Male", "2": "Female"}}})

    first = run_sync(config, SyncOptions(), _JOBS, _source(), codebooks, store, RecordingSleep())
    second = run_sync(config, SyncOptions(), _JOBS, _source(), codebooks, store, RecordingSleep())

    assert first.changed_datasets == ["bmx", "demo"]
    assert first.datasets_uploaded == 2
    assert sorted(store.objects) == ["bmx.parquet", "demo.parquet"]
    assert second.datasets_unchanged == 2
    assert second.datasets_uploaded == 0
    assert sorted(ChecksumStore(config.checksums_path).load()) == ["bmx", "demo"]


def test_dry_run_never_publishes_or_commits(tmp_path) -> None:
    """Dry runs should detect changes without side effects."""
    config = _config(tmp_path)

    summary = run_sync(
        config,
        SyncOptions(dry_run=True),
        _JOBS,
        _source(),
        FakeCodebookSource(),
        None,
        RecordingSleep(),
    )

    assert summary.datasets_changed == 2
    assert summary.datasets_uploaded == 0
    assert not config.checksums_path.exists()


def test_integrity_failure_halts_run_and_keeps_fingerprint(tmp_path) -> None:
    """A failed read-back should stop the run before later datasets."""
    config = _config(tmp_path)
    truncated = serialize_table(pa.table({"year": pa.array([1999], type=pa.int32())}))
    store = MemoryObjectStore(readback=lambda payload: truncated)

    summary = run_sync(
        config, SyncOptions(), _JOBS, _source(), FakeCodebookSource(), store, RecordingSleep()
    )

    assert summary.halted
    assert summary.datasets_processed == 1
    assert summary.failed_datasets == ["bmx"]
    assert "Verification failed for bmx.parquet" in (summary.halt_reason or "")
    assert ChecksumStore(config.checksums_path).load() == {}


def test_unparseable_readback_halts_run(tmp_path) -> None:
    """A published object that cannot be decoded should halt like a failed check."""
    config = _config(tmp_path)
    store = MemoryObjectStore(readback=lambda payload: payload[:20])

    summary = run_sync(
        config, SyncOptions(), _JOBS, _source(), FakeCodebookSource(), store, RecordingSleep()
    )

    assert summary.halted
    assert summary.datasets_processed == 1
    assert list(store.objects) == ["bmx.parquet"]
    assert "read-back failed" in (summary.halt_reason or "")
    halted = summary.outcomes[0]
    assert halted.name == "bmx"
    assert halted.status == "failed"
    assert halted.row_count == 3
    assert halted.column_count == 3
    assert halted.fingerprint is not None
    assert ChecksumStore(config.checksums_path).load() == {}


def test_incomplete_dataset_is_not_published(tmp_path) -> None:
    """Exhausted retries should fail one dataset while others continue."""
    config = _config(tmp_path)
    store = MemoryObjectStore()
    sleep = RecordingSleep()

    summary = run_sync(
        config, SyncOptions(), _JOBS, _source(BMX_B=3), FakeCodebookSource(), store, sleep
    )

    outcomes = {row.name: row for row in summary.outcomes}
    assert outcomes["bmx"].status == "failed"
    assert outcomes["bmx"].skipped_cycles == ("BMX_B",)
    assert outcomes["demo"].uploaded
    assert list(store.objects) == ["demo.parquet"]
    assert sleep.delays == [5.0, 5.0]


def test_store_errors_fail_dataset_and_continue(tmp_path) -> None:
    """Upload errors should be recorded without halting the run."""

    class _RejectingStore(MemoryObjectStore):
        def put(self, key: str, payload: bytes) -> None:
            if key == "bmx.parquet":
                raise SyncStoreError("bucket unavailable")
            super().put(key, payload)

    summary = run_sync(
        _config(tmp_path),
        SyncOptions(),
        _JOBS,
        _source(),
        FakeCodebookSource(),
        _RejectingStore(),
        RecordingSleep(),
    )

    assert not summary.halted
    assert summary.failed_datasets == ["bmx"]
    assert summary.datasets_uploaded == 1


def test_batches_are_separated_by_delay(tmp_path) -> None:
    """Consecutive batches should be separated by the configured pause."""
    sleep = RecordingSleep()

    summary = run_sync(
        _config(tmp_path, batch_delay_seconds=60.0),
        SyncOptions(dry_run=True, max_batch_size=1),
        _JOBS,
        _source(),
        FakeCodebookSource(),
        None,
        sleep,
    )

    assert [row.name for row in summary.outcomes] == ["bmx", "demo"]
    assert sleep.delays == [60.0]


def test_publishing_requires_object_store(tmp_path) -> None:
    """Non-dry runs without a store should fail before processing."""
    with pytest.raises(SyncConfigError):
        run_sync(
            _config(tmp_path),
            SyncOptions(),
            _JOBS,
            _source(),
            FakeCodebookSource(),
            None,
            RecordingSleep(),
        )
