"""Column type harmonization between cycle tables.

This module reconciles representation mismatches so two tables sharing
column names can be concatenated without error or data loss. Any
mismatch involving a categorical column resolves to text: dictionary
indices are unrelated to the upstream codes and must never surface as
numbers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

import pyarrow as pa

from core.constants import STRUCTURAL_COLUMNS
from transforms.column_representation import (
    AllMissing,
    Categorical,
    Numeric,
    all_missing_like,
    classify_column,
    to_numeric,
    to_text,
    wider_numeric_type,
)

HarmonizeRule = Literal["adopt_missing", "categorical_to_text", "numeric_promotion", "text_fallback"]


@dataclass(frozen=True)
class ColumnChange:
    """One harmonization decision for a shared column."""

    column: str
    rule: HarmonizeRule
    existing_kind: str
    new_kind: str

    def describe(self) -> str:
        """Render the decision as one diagnostic line."""
        return f"[harmonize] {self.column}: {self.existing_kind} vs {self.new_kind} -> {self.rule}"


@dataclass(frozen=True)
class HarmonizeResult:
    """Both tables with harmonized column types."""

    existing: pa.Table
    new: pa.Table
    changes: tuple[ColumnChange, ...]


def harmonize_column_types(
    existing: pa.Table,
    new: pa.Table,
    skip_columns: Iterable[str] = STRUCTURAL_COLUMNS,
) -> HarmonizeResult:
    """Coerce shared columns of two tables to a common representation.

    Resolution order for each shared, non-skipped column:

    1. One side entirely missing: it adopts the other side's type.
    2. Either side categorical: both become text labels.
    3. Both numeric with different types: both widen.
    4. Anything else: both become text.

    Args:
        existing: Accumulated table from prior cycles.
        new: Cycle table being appended.
        skip_columns: Columns left untouched, handled by the caller.

    Returns:
        Harmonized tables plus one change record per coerced column.
    """
    skipped = set(skip_columns)
    changes: list[ColumnChange] = []
    new_names = set(new.column_names)
    for column_name in existing.column_names:
        if column_name in skipped or column_name not in new_names:
            continue
        existing_column = existing.column(column_name)
        new_column = new.column(column_name)
        existing_repr = classify_column(existing_column)
        new_repr = classify_column(new_column)
        involves_categorical = isinstance(existing_repr, Categorical) or isinstance(
            new_repr, Categorical
        )
        if existing_column.type == new_column.type and not involves_categorical:
            continue
        if isinstance(existing_repr, AllMissing):
            rule: HarmonizeRule = "adopt_missing"
            existing_column = all_missing_like(len(existing_column), new_column.type)
        elif isinstance(new_repr, AllMissing):
            rule = "adopt_missing"
            new_column = all_missing_like(len(new_column), existing_column.type)
        elif involves_categorical:
            rule = "categorical_to_text"
            existing_column = to_text(existing_column)
            new_column = to_text(new_column)
        elif isinstance(existing_repr, Numeric) and isinstance(new_repr, Numeric):
            rule = "numeric_promotion"
            target_type = wider_numeric_type(existing_column.type, new_column.type)
            existing_column = to_numeric(existing_column, target_type)
            new_column = to_numeric(new_column, target_type)
        else:
            rule = "text_fallback"
            existing_column = to_text(existing_column)
            new_column = to_text(new_column)
        existing = _replace_column(existing, column_name, existing_column)
        new = _replace_column(new, column_name, new_column)
        changes.append(
            ColumnChange(
                column=column_name,
                rule=rule,
                existing_kind=existing_repr.kind,
                new_kind=new_repr.kind,
            )
        )
    return HarmonizeResult(existing=existing, new=new, changes=tuple(changes))


def decode_categorical_columns(table: pa.Table) -> pa.Table:
    """Convert every categorical column to text labels."""
    for column_name in table.column_names:
        column = table.column(column_name)
        if pa.types.is_dictionary(column.type):
            table = _replace_column(table, column_name, to_text(column))
    return table


def _replace_column(table: pa.Table, column_name: str, column: pa.ChunkedArray) -> pa.Table:
    index = table.column_names.index(column_name)
    return table.set_column(index, pa.field(column_name, column.type), column)
