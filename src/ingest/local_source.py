"""Directory-backed survey and codebook sources.

Per-cycle tables live at ``<root>/<TABLE_CODE>.parquet`` and codebooks at
``<root>/codebooks/<TABLE_CODE>.json``. A missing file means the table or
codebook does not exist for that cycle.
"""

from __future__ import annotations

import json
from pathlib import Path

import pyarrow as pa
import pyarrow.parquet as pq

from core.constants import PUBLISHED_FILE_SUFFIX
from core.errors import SyncSourceError, TransientSourceError
from transforms.label_translation import RawCodebook

CODEBOOKS_DIR_NAME = "codebooks"


class DirectorySurveySource:
    """Survey data and codebook source over a local directory."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def fetch(self, table_code: str) -> pa.Table | None:
        """Read one cycle table, or ``None`` when the file is absent.

        Raises:
            TransientSourceError: If the file exists but cannot be read.
            SyncSourceError: If the file is not valid Parquet.
        """
        table_path = self._root / f"{table_code}{PUBLISHED_FILE_SUFFIX}"
        if not table_path.exists():
            return None
        try:
            return pq.read_table(table_path)
        except pa.ArrowInvalid as error:
            raise SyncSourceError(
                f"Failed to parse cycle table at {table_path}: {error}. "
                "Replace the file with a valid Parquet export."
            ) from error
        except OSError as error:
            raise TransientSourceError(
                f"Failed to read cycle table at {table_path}: {error}."
            ) from error

    def translations_for(self, table_code: str) -> RawCodebook | None:
        """Read one cycle codebook, or ``None`` when the file is absent.

        Raises:
            SyncSourceError: If the codebook is unreadable or malformed.
        """
        codebook_path = self._root / CODEBOOKS_DIR_NAME / f"{table_code}.json"
        if not codebook_path.exists():
            return None
        try:
            payload = json.loads(codebook_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as error:
            raise SyncSourceError(
                f"Failed to read codebook at {codebook_path}: {error}. "
                "Fix the JSON file or remove it."
            ) from error
        if not isinstance(payload, dict):
            raise SyncSourceError(
                f"Invalid codebook at {codebook_path}: expected an object of variables."
            )
        return {
            str(variable): {str(code): str(label) for code, label in codes.items()}
            for variable, codes in payload.items()
            if isinstance(codes, dict)
        }
