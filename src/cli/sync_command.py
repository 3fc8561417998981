"""Sync command wiring for the cyclesync CLI."""

from __future__ import annotations

import argparse
from typing import Any

from core.config import SyncConfig
from core.dataset_catalog import load_dataset_catalog
from core.errors import CycleSyncError, SyncConfigError
from core.run_summary import render_run_summary, save_run_summary
from core.types import SyncOptions
from ingest.local_source import DirectorySurveySource
from ingest.pipeline import run_sync
from store.object_store import LocalObjectStore, ObjectStore, S3ObjectStore, create_r2_client


def add_sync_command(subparsers: Any) -> None:
    """Register sync subcommand."""
    parser = subparsers.add_parser(
        "sync",
        help="Merge survey cycles and publish changed datasets",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch, merge, and detect changes without publishing",
    )
    parser.add_argument("--datasets", help="Comma-separated dataset names, bypasses batching")
    parser.add_argument("--batch", type=int, help="One-based batch number to process")
    parser.add_argument("--batch-size", type=int, help="Override CYCLESYNC_BATCH_SIZE")
    parser.add_argument("--catalog", help="Override CYCLESYNC_CATALOG_PATH")
    parser.add_argument("--source-dir", help="Override CYCLESYNC_SOURCE_DIR")
    parser.add_argument("--output-dir", help="Publish to a local directory instead of R2")


def run_sync_command(config: SyncConfig, args: argparse.Namespace) -> int:
    """Execute one sync run and print the summary."""
    try:
        options = _build_options(config, args)
        jobs = load_dataset_catalog(config.catalog_path)
        source = _build_source(config)
        object_store = _build_object_store(config, options.dry_run)
        summary = run_sync(config, options, jobs, source, source, object_store)
    except CycleSyncError as error:
        print(f"sync_error={error}")
        return 1
    summary_path = save_run_summary(summary, config.summary_path)
    print(render_run_summary(summary))
    print(f"summary_path={summary_path}")
    return 1 if summary.halted or summary.datasets_failed else 0


def _build_options(config: SyncConfig, args: argparse.Namespace) -> SyncOptions:
    dataset_names = None
    if args.datasets:
        dataset_names = tuple(name.strip() for name in args.datasets.split(",") if name.strip())
    batch_size = args.batch_size if args.batch_size is not None else config.batch_size
    if batch_size < 1:
        raise SyncConfigError(f"Invalid --batch-size {batch_size}: expected a positive integer.")
    return SyncOptions(
        dry_run=args.dry_run,
        dataset_names=dataset_names,
        batch_number=args.batch,
        max_batch_size=batch_size,
    )


def _build_source(config: SyncConfig) -> DirectorySurveySource:
    if config.source_dir is None:
        raise SyncConfigError(
            "No survey source configured. Set CYCLESYNC_SOURCE_DIR or pass --source-dir."
        )
    if not config.source_dir.is_dir():
        raise SyncConfigError(
            f"Survey source directory not found: {config.source_dir}. "
            "Provide an existing directory of cycle tables."
        )
    return DirectorySurveySource(config.source_dir)


def _build_object_store(config: SyncConfig, dry_run: bool) -> ObjectStore | None:
    if dry_run:
        return None
    if config.output_dir is not None:
        return LocalObjectStore(config.output_dir)
    credentials = config.require_credentials()
    return S3ObjectStore(create_r2_client(credentials), config.bucket)
