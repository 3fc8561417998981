"""Content fingerprinting and change classification.

The fingerprint is computed from table content, never from a serialized
file, so it is stable across Parquet writer versions and independent of
the order in which cycles were fetched.
"""

from __future__ import annotations

import hashlib
import json
from typing import Sequence

import pyarrow as pa

from core.constants import HASH_ALGORITHM, STRUCTURAL_COLUMNS
from core.types import ChangeStatus
from store.checksum_store import ChecksumStore


def compute_fingerprint(
    table: pa.Table,
    sort_columns: Sequence[str] = STRUCTURAL_COLUMNS,
) -> str:
    """Return a deterministic hex digest of table content.

    Rows are ordered by ``sort_columns`` (ties broken by the full row) and
    columns by name. The digest covers column names, Arrow types, and each
    row serialized as canonical JSON.

    Args:
        table: Merged dataset.
        sort_columns: Row ordering keys, skipped when absent.

    Returns:
        Hex digest string.
    """
    column_names = sorted(table.column_names)
    canonical = table.select(column_names)
    digest = hashlib.new(HASH_ALGORITHM)
    for field in canonical.schema:
        digest.update(f"{field.name}:{field.type}\n".encode("utf-8"))
    key_names = [name for name in sort_columns if name in column_names]
    rows: list[tuple[tuple[tuple[bool, object], ...], str]] = []
    for row in canonical.to_pylist():
        sort_key = tuple(_null_last(row[name]) for name in key_names)
        payload = json.dumps([row[name] for name in column_names], default=str)
        rows.append((sort_key, payload))
    rows.sort()
    for _, payload in rows:
        digest.update(payload.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


def detect_change(dataset_name: str, fingerprint: str, store: ChecksumStore) -> ChangeStatus:
    """Classify a dataset against its last published fingerprint."""
    previous = store.get(dataset_name)
    if previous is None:
        return "new"
    if previous != fingerprint:
        return "changed"
    return "unchanged"


def _null_last(value: object) -> tuple[bool, object]:
    return (value is None, value if value is not None else 0)
