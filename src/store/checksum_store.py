"""Persisted dataset fingerprints.

This module stores the last published fingerprint of every dataset in a
flat JSON map so later runs can skip unchanged datasets.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from core.errors import SyncStoreError


class ChecksumStore:
    """Filesystem-backed ``{dataset_name: fingerprint}`` map."""

    def __init__(self, checksums_path: Path) -> None:
        self._checksums_path = checksums_path

    def load(self) -> dict[str, str]:
        """Read every stored fingerprint. A missing file is an empty store.

        Raises:
            SyncStoreError: If the file exists but is not a JSON object of strings.
        """
        if not self._checksums_path.exists():
            return {}
        try:
            payload = json.loads(self._checksums_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            raise SyncStoreError(
                f"Failed to read checksum store at {self._checksums_path}: {error}. "
                "Fix or delete the file to rebuild fingerprints on the next run."
            ) from error
        if not isinstance(payload, dict) or not all(
            isinstance(value, str) for value in payload.values()
        ):
            raise SyncStoreError(
                f"Invalid checksum store at {self._checksums_path}: expected an object "
                "mapping dataset names to fingerprints."
            )
        return {str(name): value for name, value in payload.items()}

    def get(self, dataset_name: str) -> str | None:
        """Return the stored fingerprint for one dataset, if any."""
        return self.load().get(dataset_name)

    def update(self, dataset_name: str, fingerprint: str) -> None:
        """Record one fingerprint with a read-modify-write and atomic replace."""
        checksums = self.load()
        checksums[dataset_name] = fingerprint
        self._checksums_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._checksums_path.with_name(f"{self._checksums_path.name}.tmp")
        temp_path.write_text(json.dumps(checksums, indent=2, sort_keys=True) + "\n", encoding="utf-8")
        os.replace(temp_path, self._checksums_path)
