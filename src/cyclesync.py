"""Public SDK surface for cyclesync.

This module provides a stable import path for library users.
It re-exports the merge engine, the orchestrator, and typed models.
"""

from __future__ import annotations

from core.config import SyncConfig
from core.dataset_catalog import load_dataset_catalog
from core.run_summary import render_run_summary, save_run_summary
from core.types import DatasetJob, MergeResult, RetryPolicy, RunSummary, SyncOptions
from ingest.batch_scheduler import plan_batches, select_jobs
from ingest.cycle_merge import pull_cycles
from ingest.local_source import DirectorySurveySource
from ingest.pipeline import run_sync
from store.change_detection import compute_fingerprint, detect_change
from store.object_store import LocalObjectStore, S3ObjectStore
from store.publisher import publish_dataset, verify_round_trip

__all__ = [
    "DatasetJob",
    "DirectorySurveySource",
    "LocalObjectStore",
    "MergeResult",
    "RetryPolicy",
    "RunSummary",
    "S3ObjectStore",
    "SyncConfig",
    "SyncOptions",
    "compute_fingerprint",
    "detect_change",
    "load_dataset_catalog",
    "plan_batches",
    "publish_dataset",
    "pull_cycles",
    "render_run_summary",
    "run_sync",
    "save_run_summary",
    "select_jobs",
    "verify_round_trip",
]
