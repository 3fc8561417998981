"""Cyclesync CLI entry points.
This module exposes the sync command and maps argparse options onto
the runtime configuration.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import Sequence

from cli.sync_command import add_sync_command, run_sync_command
from core.config import SyncConfig
from core.errors import SyncConfigError


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="cyclesync", description="Survey cycle sync CLI")
    parser.add_argument("--data-root", help="Override CYCLESYNC_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_sync_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the cyclesync CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = _build_config(args)
    except SyncConfigError as error:
        print(f"config_error={error}")
        return 1
    if args.command == "sync":
        return run_sync_command(config, args)
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(args: argparse.Namespace) -> SyncConfig:
    """Build config from the environment with command-line overrides."""
    config = SyncConfig.from_env()
    overrides: dict[str, Path] = {}
    if args.data_root:
        overrides["data_root"] = _resolve(args.data_root)
    if getattr(args, "catalog", None):
        overrides["catalog_path"] = Path(args.catalog).expanduser()
    if getattr(args, "source_dir", None):
        overrides["source_dir"] = _resolve(args.source_dir)
    if getattr(args, "output_dir", None):
        overrides["output_dir"] = _resolve(args.output_dir)
    return replace(config, **overrides) if overrides else config


def _resolve(raw_path: str) -> Path:
    return Path(raw_path).expanduser().resolve()
