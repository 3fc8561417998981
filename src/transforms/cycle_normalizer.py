"""Cycle table normalization.

This module stamps each raw cycle table with its survey year and
canonicalizes column names so every cycle uses the same lower-case keys.
"""

from __future__ import annotations

import re
from typing import Iterable

import pyarrow as pa

from core.constants import ID_COLUMN, YEAR_COLUMN

_NON_ALPHANUMERIC = re.compile(r"[^0-9a-z]+")


def normalize_cycle_table(
    table: pa.Table,
    year: int,
    selected_columns: Iterable[str] | None = None,
) -> pa.Table:
    """Prepend the cycle year and canonicalize column names.

    Args:
        table: Raw cycle table as returned by the survey source.
        year: Cycle start year.
        selected_columns: Optional allow-list matched case-insensitively.
            The identifier column is always kept when present.

    Returns:
        Table with ``year`` first and lower-case column names.
    """
    if selected_columns is not None:
        table = _select_columns(table, selected_columns)
    table = table.rename_columns(canonical_column_names(table.column_names))
    if YEAR_COLUMN in table.column_names:
        table = table.remove_column(table.column_names.index(YEAR_COLUMN))
    year_column = pa.array([year] * table.num_rows, type=pa.int32())
    return table.add_column(0, pa.field(YEAR_COLUMN, pa.int32()), year_column)


def canonical_column_names(column_names: Iterable[str]) -> list[str]:
    """Return snake_case lower-case names, de-duplicated with suffixes."""
    canonical: list[str] = []
    seen: dict[str, int] = {}
    for column_name in column_names:
        base_name = _NON_ALPHANUMERIC.sub("_", column_name.strip().lower()).strip("_") or "x"
        count = seen.get(base_name, 0) + 1
        seen[base_name] = count
        canonical.append(base_name if count == 1 else f"{base_name}_{count}")
    return canonical


def _select_columns(table: pa.Table, selected_columns: Iterable[str]) -> pa.Table:
    wanted = {name.lower() for name in selected_columns}
    wanted.add(ID_COLUMN)
    keep = [name for name in table.column_names if name.lower() in wanted]
    return table.select(keep)
