"""Unit tests for column representation classification and conversion."""

from __future__ import annotations

import pyarrow as pa
import pytest

from transforms.column_representation import (
    AllMissing,
    Categorical,
    Numeric,
    Text,
    classify_column,
    format_number,
    to_text,
    wider_numeric_type,
)


def test_classify_dictionary_column_as_categorical() -> None:
    """Dictionary columns should expose their labels."""
    column = pa.array(["Low", "High", "Low"]).dictionary_encode()

    representation = classify_column(column)

    assert representation == Categorical(labels=("Low", "High"))


@pytest.mark.parametrize(
    ("column", "expected"),
    [
        (pa.array([1, 2], type=pa.int32()), Numeric(precision="integer")),
        (pa.array([1.5, None]), Numeric(precision="floating")),
        (pa.array(["a", "b"]), Text()),
        (pa.array([True, False]), Text()),
        (pa.array([None, None], type=pa.float64()), AllMissing()),
        (pa.array([], type=pa.int64()), AllMissing()),
    ],
)
def test_classify_column_kinds(column: pa.Array, expected: object) -> None:
    """Each storage type should map to exactly one representation."""
    assert classify_column(column) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [(3.0, "3"), (2.5, "2.5"), (99, "99"), (-1.0, "-1"), (0.1, "0.1")],
)
def test_format_number_uses_decimal_string_form(value: float, expected: str) -> None:
    """Integral floats should drop their fractional part."""
    assert format_number(value) == expected


def test_to_text_decodes_labels_not_ordinals() -> None:
    """Categorical columns should convert to labels, never dictionary indices."""
    column = pa.array(["Low", "High", None]).dictionary_encode()

    converted = to_text(column)

    assert converted.to_pylist() == ["Low", "High", None]


def test_to_text_formats_numbers() -> None:
    """Numeric columns should convert to decimal strings with nulls kept."""
    converted = to_text(pa.array([1.0, None, 2.5]))

    assert converted.to_pylist() == ["1", None, "2.5"]


def test_wider_numeric_type_prefers_int64_for_integers() -> None:
    """Two integer types should promote to int64, anything else to float64."""
    assert wider_numeric_type(pa.int8(), pa.int32()) == pa.int64()
    assert wider_numeric_type(pa.int64(), pa.float32()) == pa.float64()
