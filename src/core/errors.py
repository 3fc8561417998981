"""Cyclesync exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type so the orchestrator can tell
recoverable per-dataset failures apart from run-halting ones.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from store.verification_types import VerificationResult


class CycleSyncError(Exception):
    """Base exception for all cyclesync failures."""


class SyncConfigError(CycleSyncError):
    """Raised for invalid runtime configuration or missing credentials."""


class SyncCatalogError(SyncConfigError):
    """Raised when the YAML dataset catalog is missing or malformed."""


class SyncDependencyError(CycleSyncError):
    """Raised when an optional runtime dependency is missing."""


class SyncSourceError(CycleSyncError):
    """Raised by survey or codebook sources for non-retryable failures."""


class TransientSourceError(SyncSourceError):
    """Raised by sources for retryable network or timeout failures."""


class SyncMergeError(CycleSyncError):
    """Raised when cycle tables cannot be folded into one dataset."""


class SyncStoreError(CycleSyncError):
    """Raised for object store and checksum store failures."""


class SyncIntegrityError(CycleSyncError):
    """Raised when a published artifact fails read-back verification."""

    def __init__(self, message: str, result: "VerificationResult | None" = None) -> None:
        super().__init__(message)
        self.result = result
