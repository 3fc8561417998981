"""Column representation variant and conversions.

This module decides, once per column, how a cycle table stores a variable
and owns every conversion between representations. Translation and
harmonization consult this variant instead of inspecting Arrow types.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Union

import pyarrow as pa
import pyarrow.compute as pc

from core.constants import RANGE_OF_VALUES_MARKER

ColumnData = Union[pa.Array, pa.ChunkedArray]


@dataclass(frozen=True)
class Categorical:
    """Column of labelled codes stored as an Arrow dictionary."""

    labels: tuple[str, ...]

    @property
    def kind(self) -> str:
        return "categorical"


@dataclass(frozen=True)
class Numeric:
    """Integer or floating point column with at least one value."""

    precision: str

    @property
    def kind(self) -> str:
        return "numeric"


@dataclass(frozen=True)
class Text:
    """Strings, plus any other non-numeric primitive such as booleans."""

    @property
    def kind(self) -> str:
        return "text"


@dataclass(frozen=True)
class AllMissing:
    """Column whose every value is null."""

    @property
    def kind(self) -> str:
        return "all_missing"


ColumnRepresentation = Union[Categorical, Numeric, Text, AllMissing]


def classify_column(column: ColumnData) -> ColumnRepresentation:
    """Classify one column into its representation.

    Args:
        column: Arrow array or chunked array.

    Returns:
        The tagged representation. All-null columns are ``AllMissing``
        regardless of their storage type.
    """
    if column.null_count == len(column):
        return AllMissing()
    column_type = column.type
    if pa.types.is_dictionary(column_type):
        return Categorical(labels=_dictionary_labels(column))
    if pa.types.is_integer(column_type):
        return Numeric(precision="integer")
    if pa.types.is_floating(column_type) or pa.types.is_decimal(column_type):
        return Numeric(precision="floating")
    return Text()


def to_text(column: ColumnData) -> pa.ChunkedArray:
    """Convert a column to strings without exposing categorical ordinals.

    Dictionary columns are decoded to their labels, numbers use the
    decimal-string form from :func:`format_number`, nulls stay null.
    """
    chunked = _as_chunked(column)
    if pa.types.is_string(chunked.type):
        return chunked
    if pa.types.is_dictionary(chunked.type):
        chunked = _decode_dictionary(chunked)
        if pa.types.is_string(chunked.type):
            return chunked
    if pa.types.is_null(chunked.type):
        return pa.chunked_array([pa.nulls(len(chunked), type=pa.string())])
    values = [_value_to_text(value) for value in chunked.to_pylist()]
    return pa.chunked_array([pa.array(values, type=pa.string())])


def to_numeric(column: ColumnData, target_type: pa.DataType) -> pa.ChunkedArray:
    """Cast a numeric column to a wider numeric type."""
    return pc.cast(_as_chunked(column), target_type)


def all_missing_like(length: int, target_type: pa.DataType) -> pa.ChunkedArray:
    """Build an all-null column of the given type."""
    return pa.chunked_array([pa.nulls(length, type=target_type)], type=target_type)


def wider_numeric_type(left: pa.DataType, right: pa.DataType) -> pa.DataType:
    """Return the promotion target for two numeric types."""
    if pa.types.is_integer(left) and pa.types.is_integer(right):
        return pa.int64()
    return pa.float64()


def format_number(value: float | int) -> str:
    """Render a numeric code in decimal-string form.

    Integral values drop the fractional part (``3.0`` becomes ``"3"``);
    other values use the shortest round-tripping representation.
    """
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, int):
        return str(value)
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def is_range_marker(description: str) -> bool:
    """Return whether a codebook description marks a continuous variable."""
    return RANGE_OF_VALUES_MARKER in description


def _value_to_text(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def _dictionary_labels(column: ColumnData) -> tuple[str, ...]:
    chunked = _as_chunked(column)
    labels: list[str] = []
    seen: set[str] = set()
    for chunk in chunked.chunks:
        for label in chunk.dictionary.to_pylist():
            text = str(label)
            if text not in seen:
                seen.add(text)
                labels.append(text)
    return tuple(labels)


def _decode_dictionary(chunked: pa.ChunkedArray) -> pa.ChunkedArray:
    value_type = chunked.type.value_type
    decoded_chunks = [chunk.dictionary_decode() for chunk in chunked.chunks]
    return pa.chunked_array(decoded_chunks, type=value_type)


def _as_chunked(column: ColumnData) -> pa.ChunkedArray:
    if isinstance(column, pa.ChunkedArray):
        return column
    return pa.chunked_array([column], type=column.type)
