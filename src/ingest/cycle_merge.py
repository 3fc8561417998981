"""Cycle merge accumulator.

This module drives the per-cycle fetch loop for one table family and
folds every cycle into a single type-consistent table:

fetch -> normalize -> translate -> decode categoricals -> harmonize -> concat

Cycles that exhaust their retries are recorded separately from cycles in
which the table never existed, so callers can refuse to publish an
incomplete dataset without treating expected gaps as failures.
"""

from __future__ import annotations

import time
from typing import Callable, Iterable

import pyarrow as pa
import pyarrow.compute as pc

from core.constants import ID_COLUMN, STRUCTURAL_COLUMNS
from core.errors import SyncMergeError
from core.types import MergeResult, RetryPolicy
from ingest.cycle_catalog import build_cycle_catalog, table_codes
from ingest.fetch_retry import fetch_with_retry
from ingest.sources import CodebookSource, SurveyDataSource
from transforms.column_representation import wider_numeric_type
from transforms.cycle_normalizer import normalize_cycle_table
from transforms.label_translation import (
    ReferenceTranslations,
    find_reference_translations,
    translate_numeric_columns,
)
from transforms.type_harmonization import decode_categorical_columns, harmonize_column_types

STRUCTURAL_INTEGER_TYPE = pa.int32()


class CycleMergeAccumulator:
    """Running merge state for one table family."""

    def __init__(self, table_name: str, reference: ReferenceTranslations | None) -> None:
        self._table_name = table_name
        self._reference = reference
        self._combined: pa.Table | None = None
        self._diagnostics: list[str] = []

    @property
    def diagnostics(self) -> tuple[str, ...]:
        """Translation and harmonization decisions so far."""
        return tuple(self._diagnostics)

    def fold(self, table_code: str, cycle_table: pa.Table) -> None:
        """Fold one normalized cycle table into the accumulated table.

        Args:
            table_code: Cycle table code, used in diagnostics.
            cycle_table: Table already passed through the normalizer.

        Raises:
            SyncMergeError: If the harmonized tables still cannot be joined.
        """
        translations = self._reference.translations if self._reference else None
        translation = translate_numeric_columns(cycle_table, translations)
        for column_name in translation.translated_columns:
            self._diagnostics.append(
                f"[translate] {table_code}.{column_name}: labels from "
                f"{self._reference.table_code if self._reference else '-'}"
            )
        cycle_table = decode_categorical_columns(translation.table)
        if self._combined is None or self._combined.num_rows == 0:
            self._combined = cycle_table
            return
        existing, cycle_table = _align_structural_columns(self._combined, cycle_table)
        harmonized = harmonize_column_types(existing, cycle_table)
        for change in harmonized.changes:
            self._diagnostics.append(f"{change.describe()} ({table_code})")
        try:
            self._combined = pa.concat_tables(
                [harmonized.existing, harmonized.new], promote_options="default"
            )
        except (pa.ArrowInvalid, pa.ArrowTypeError) as error:
            raise SyncMergeError(
                f"Failed to append {table_code} to {self._table_name} after harmonization: "
                f"{error}. Inspect the cycle schema for an unsupported column type."
            ) from error

    def finalize(self) -> pa.Table:
        """Return the merged table with int32 structural columns."""
        if self._combined is None:
            return pa.table({})
        return coerce_structural_columns(self._combined)


def pull_cycles(
    table_name: str,
    source: SurveyDataSource,
    codebooks: CodebookSource,
    retry_policy: RetryPolicy,
    selected_columns: Iterable[str] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> MergeResult:
    """Fetch and merge every cycle of one table family.

    Args:
        table_name: Table family name, any case.
        source: Survey data collaborator.
        codebooks: Codebook collaborator used for the reference cycle.
        retry_policy: Attempt bound and fixed delay for transient errors.
        selected_columns: Optional column allow-list.
        sleep: Sleep callable, injectable for tests.

    Returns:
        Merge result. An empty table with failure reasons when no cycle
        produced data; ``is_complete`` is false when any cycle failed.

    Raises:
        SyncSourceError: For non-transient source failures.
        SyncMergeError: If harmonized cycles still cannot be joined.
    """
    family = table_name.upper()
    columns = tuple(selected_columns) if selected_columns is not None else None
    reference = find_reference_translations(codebooks, table_codes(family, newest_first=True))
    accumulator = CycleMergeAccumulator(family, reference)
    skipped_cycles: list[str] = []
    absent_cycles: list[str] = []
    failure_reasons: list[str] = []
    retry_count = 0
    for cycle in build_cycle_catalog():
        table_code = cycle.table_code(family)
        outcome = fetch_with_retry(source, table_code, retry_policy, sleep=sleep)
        retry_count += outcome.retry_count
        if outcome.kind == "failed":
            skipped_cycles.append(table_code)
            failure_reasons.append(
                f"{table_code} failed after {outcome.attempts} attempts: {outcome.last_error}"
            )
            continue
        if outcome.kind == "absent" or outcome.table is None:
            absent_cycles.append(table_code)
            continue
        normalized = normalize_cycle_table(outcome.table, cycle.start_year, columns)
        accumulator.fold(table_code, normalized)
    merged = accumulator.finalize()
    if merged.num_rows == 0:
        failure_reasons.append(f"{family}: no data retrieved from any cycle")
    return MergeResult(
        table_name=family,
        table=merged,
        skipped_cycles=tuple(skipped_cycles),
        absent_cycles=tuple(absent_cycles),
        retry_count=retry_count,
        failure_reasons=tuple(failure_reasons),
        diagnostics=accumulator.diagnostics,
        reference_cycle=reference.table_code if reference else None,
    )


def coerce_structural_columns(table: pa.Table) -> pa.Table:
    """Cast the year and identifier columns to the fixed integer type.

    Raises:
        SyncMergeError: If a structural column holds non-integral values.
    """
    for column_name in STRUCTURAL_COLUMNS:
        if column_name not in table.column_names:
            continue
        column = table.column(column_name)
        if column.type == STRUCTURAL_INTEGER_TYPE:
            continue
        try:
            cast_column = pc.cast(column, STRUCTURAL_INTEGER_TYPE)
        except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as error:
            raise SyncMergeError(
                f"Failed to cast structural column '{column_name}' to int32: {error}. "
                f"Check that every cycle stores whole-number {ID_COLUMN} values."
            ) from error
        index = table.column_names.index(column_name)
        table = table.set_column(index, pa.field(column_name, STRUCTURAL_INTEGER_TYPE), cast_column)
    return table


def _align_structural_columns(
    existing: pa.Table,
    new: pa.Table,
) -> tuple[pa.Table, pa.Table]:
    """Give both tables a common numeric type for structural columns."""
    for column_name in STRUCTURAL_COLUMNS:
        if column_name not in existing.column_names or column_name not in new.column_names:
            continue
        existing_type = existing.schema.field(column_name).type
        new_type = new.schema.field(column_name).type
        if existing_type == new_type:
            continue
        if pa.types.is_null(existing_type) or pa.types.is_null(new_type):
            continue
        target_type = wider_numeric_type(existing_type, new_type)
        existing = _cast_column(existing, column_name, target_type)
        new = _cast_column(new, column_name, target_type)
    return existing, new


def _cast_column(table: pa.Table, column_name: str, target_type: pa.DataType) -> pa.Table:
    index = table.column_names.index(column_name)
    try:
        cast_column = pc.cast(table.column(column_name), target_type)
    except (pa.ArrowInvalid, pa.ArrowNotImplementedError) as error:
        raise SyncMergeError(
            f"Structural column '{column_name}' is not numeric: {error}. "
            "Check the upstream identifier column type."
        ) from error
    return table.set_column(index, pa.field(column_name, target_type), cast_column)
