"""Cross-cycle label translation.

Some cycles ship without a parseable codebook, so their categorical
variables arrive as bare numeric codes while sibling cycles carry text
labels. This module borrows the codebook of a reference cycle and applies
its code-to-label mappings to those untranslated numeric columns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Protocol

import pyarrow as pa

from core.constants import MISSING_CODE_MARKER
from core.errors import SyncSourceError
from transforms.column_representation import (
    Numeric,
    classify_column,
    format_number,
    is_range_marker,
)

RawCodebook = Mapping[str, Mapping[str, str]]


class CodebookSource(Protocol):
    """Collaborator that returns codebook translations for a table code."""

    def translations_for(self, table_code: str) -> RawCodebook | None:
        """Return ``{variable: {code: label}}`` or ``None`` when absent."""


@dataclass(frozen=True)
class VariableTranslation:
    """Code-to-label mapping for one variable.

    Attributes:
        variable: Upper-case variable name from the codebook.
        labels: Numeric code to label text.
        continuous: Whether the codebook marks a range of values.
    """

    variable: str
    labels: Mapping[float, str]
    continuous: bool = False


TranslationTable = Mapping[str, VariableTranslation]


@dataclass(frozen=True)
class ReferenceTranslations:
    """Translation table borrowed from the newest available cycle."""

    table_code: str
    translations: TranslationTable


@dataclass(frozen=True)
class TranslationResult:
    """Translated table and the columns that were rewritten."""

    table: pa.Table
    translated_columns: tuple[str, ...]


def build_translation_table(raw_codebook: RawCodebook) -> dict[str, VariableTranslation]:
    """Build typed translations from a raw codebook mapping.

    The missing-value row and non-numeric codes are dropped. Range of
    values entries mark the variable as continuous and are excluded from
    the label mapping.

    Args:
        raw_codebook: ``{variable: {code text: description}}``.

    Returns:
        Translations keyed by upper-case variable name.
    """
    table: dict[str, VariableTranslation] = {}
    for variable, rows in raw_codebook.items():
        labels: dict[float, str] = {}
        continuous = False
        for raw_code, description in rows.items():
            code_text = str(raw_code).strip()
            label = str(description)
            if code_text == MISSING_CODE_MARKER:
                continue
            if is_range_marker(label):
                continuous = True
                continue
            code = _parse_code(code_text)
            if code is None:
                continue
            labels[code] = label
        table[variable.upper()] = VariableTranslation(
            variable=variable.upper(),
            labels=labels,
            continuous=continuous,
        )
    return table


def find_reference_translations(
    codebooks: CodebookSource,
    table_codes_newest_first: Iterable[str],
) -> ReferenceTranslations | None:
    """Search cycles newest to oldest for the first non-empty codebook.

    Args:
        codebooks: Codebook collaborator.
        table_codes_newest_first: Candidate table codes, newest first.

    Returns:
        The reference translations, or ``None`` if no cycle has one.
    """
    for table_code in table_codes_newest_first:
        try:
            raw_codebook = codebooks.translations_for(table_code)
        except SyncSourceError:
            continue
        if not raw_codebook:
            continue
        return ReferenceTranslations(
            table_code=table_code,
            translations=build_translation_table(raw_codebook),
        )
    return None


def translate_numeric_columns(
    table: pa.Table,
    translations: TranslationTable | None,
) -> TranslationResult:
    """Apply reference labels to numeric columns that lack them.

    A column is left unchanged when it is already categorical or text,
    entirely missing, has no usable codes, or is continuous. Continuous
    variables are skipped because labelling only their top-coded value
    would turn the whole column into text.

    Args:
        table: Normalized cycle table with lower-case column names.
        translations: Reference translations keyed by upper-case variable.

    Returns:
        Table with translated columns converted to text labels.
    """
    if not translations:
        return TranslationResult(table=table, translated_columns=())
    translated_columns: list[str] = []
    for variable, translation in translations.items():
        column_name = variable.lower()
        if column_name not in table.column_names:
            continue
        column = table.column(column_name)
        representation = classify_column(column)
        if not isinstance(representation, Numeric):
            continue
        if translation.continuous or not translation.labels:
            continue
        labelled = _apply_labels(column.to_pylist(), translation.labels)
        index = table.column_names.index(column_name)
        table = table.set_column(index, column_name, pa.array(labelled, type=pa.string()))
        translated_columns.append(column_name)
    return TranslationResult(table=table, translated_columns=tuple(translated_columns))


def _apply_labels(
    values: list[float | int | None],
    labels: Mapping[float, str],
) -> list[str | None]:
    labelled: list[str | None] = []
    for value in values:
        if value is None:
            labelled.append(None)
            continue
        numeric_value = float(value)
        label = labels.get(numeric_value)
        labelled.append(label if label is not None else format_number(value))
    return labelled


def _parse_code(code_text: str) -> float | None:
    try:
        return float(code_text)
    except ValueError:
        return None
