"""Unit tests for the cycle merge accumulator."""

from __future__ import annotations

import pyarrow as pa

from core.types import RetryPolicy
from ingest.cycle_merge import CycleMergeAccumulator, pull_cycles
from transforms.cycle_normalizer import normalize_cycle_table
from survey_fakes import FakeCodebookSource, FakeSurveySource, RecordingSleep, demo_table

_POLICY = RetryPolicy(max_attempts=3, delay_seconds=5.0)


def test_categorical_and_numeric_cycles_merge_to_text() -> None:
    """Labelled 1999 values and bare 2001 codes should merge as four text rows."""
    source = FakeSurveySource(
        {
            "DEMO": demo_table([1, 2], level=pa.array(["Low", "High"]).dictionary_encode()),
            "DEMO_B": demo_table([3, 4], level=[1, 2]),
        }
    )

    result = pull_cycles("demo", source, FakeCodebookSource(), _POLICY, sleep=RecordingSleep())

    assert result.table.num_rows == 4
    assert result.table.schema.field("level").type == pa.string()
    assert set(result.table.column("level").to_pylist()) == {"Low", "High", "1", "2"}
    assert result.table.column("year").to_pylist() == [1999, 1999, 2001, 2001]
    assert result.is_complete
    assert any("text_fallback" in line for line in result.diagnostics)
    assert not any("categorical" in line for line in result.diagnostics)


def test_reference_codebook_labels_untranslated_cycles() -> None:
    """Numeric codes should receive labels from the newest codebook."""
    source = FakeSurveySource(
        {
            "DEMO": demo_table([1, 2], riagendr=[1, 2]),
            "DEMO_L": demo_table([3], riagendr=[2]),
        }
    )
    codebooks = FakeCodebookSource({"DEMO_L": {"RIAGENDR": {"1": "Male", "2": "Female"}}})

    result = pull_cycles("DEMO", source, codebooks, _POLICY, sleep=RecordingSleep())

    assert result.reference_cycle == "DEMO_L"
    assert result.table.column("riagendr").to_pylist() == ["Male", "Female", "Female"]
    assert codebooks.calls[:4] == ["DEMO_P", "DEMO_O", "DEMO_N", "DEMO_M"]


def test_exhausted_retries_mark_cycle_skipped() -> None:
    """A cycle failing on every attempt should make the result incomplete."""
    source = FakeSurveySource(
        {"DEMO": demo_table([1], x=[1.0]), "DEMO_B": demo_table([2], x=[2.0])},
        transient_failures={"DEMO_B": 3},
    )
    sleep = RecordingSleep()

    result = pull_cycles("demo", source, FakeCodebookSource(), _POLICY, sleep=sleep)

    assert result.skipped_cycles == ("DEMO_B",)
    assert not result.is_complete
    assert result.table.num_rows == 1
    assert result.retry_count == 2
    assert sleep.delays == [5.0, 5.0]
    assert "DEMO_B failed after 3 attempts" in result.failure_reasons[0]


def test_transient_failures_below_limit_do_not_skip() -> None:
    """Recovering before the attempt limit should leave no skipped cycle."""
    source = FakeSurveySource(
        {"DEMO": demo_table([1], x=[1.0]), "DEMO_B": demo_table([2], x=[2.0])},
        transient_failures={"DEMO_B": 2},
    )

    result = pull_cycles("demo", source, FakeCodebookSource(), _POLICY, sleep=RecordingSleep())

    assert result.skipped_cycles == ()
    assert result.retry_count == 2
    assert result.table.num_rows == 2


def test_always_absent_table_yields_empty_result() -> None:
    """A table missing from every cycle should not retry or skip."""
    source = FakeSurveySource({})
    sleep = RecordingSleep()

    result = pull_cycles("nope", source, FakeCodebookSource(), _POLICY, sleep=sleep)

    assert result.is_empty
    assert result.skipped_cycles == ()
    assert result.retry_count == 0
    assert len(result.absent_cycles) == 15
    assert sleep.delays == []
    assert result.failure_reasons == ("NOPE: no data retrieved from any cycle",)


def test_structural_columns_end_as_int32() -> None:
    """Mixed identifier storage types should be aligned and cast to int32."""
    source = FakeSurveySource(
        {
            "DEMO": pa.table({"SEQN": pa.array([1, 2], type=pa.int64())}),
            "DEMO_B": pa.table({"SEQN": pa.array([3.0, 4.0])}),
        }
    )

    result = pull_cycles("demo", source, FakeCodebookSource(), _POLICY, sleep=RecordingSleep())

    assert result.table.schema.field("seqn").type == pa.int32()
    assert result.table.schema.field("year").type == pa.int32()
    assert result.table.column("seqn").to_pylist() == [1, 2, 3, 4]


def test_columns_missing_from_a_cycle_are_null_filled() -> None:
    """Columns introduced in later cycles should be null for earlier rows."""
    source = FakeSurveySource(
        {
            "DEMO": demo_table([1], bmxwt=[70.0]),
            "DEMO_C": demo_table([2], bmxwt=[71.0], bmxwaist=[90.5]),
        }
    )

    result = pull_cycles("demo", source, FakeCodebookSource(), _POLICY, sleep=RecordingSleep())

    assert result.table.column_names == ["year", "seqn", "bmxwt", "bmxwaist"]
    assert result.table.column("bmxwaist").to_pylist() == [None, 90.5]


def test_selected_columns_limit_output() -> None:
    """The column allow-list should apply to every cycle."""
    source = FakeSurveySource(
        {"DEMO": demo_table([1], bmxwt=[70.0], bmxht=[180.0])},
    )

    result = pull_cycles(
        "demo",
        source,
        FakeCodebookSource(),
        _POLICY,
        selected_columns=["BMXHT"],
        sleep=RecordingSleep(),
    )

    assert result.table.column_names == ["year", "seqn", "bmxht"]


def test_accumulator_never_holds_dictionary_columns() -> None:
    """Categorical columns should be decoded before every fold."""
    cycles = [
        ("DEMO", 1999, demo_table([1, 2], level=pa.array(["Low", "High"]).dictionary_encode())),
        ("DEMO_B", 2001, demo_table([3])),
        ("DEMO_C", 2003, demo_table([4], level=pa.array([None], type=pa.float64()))),
        ("DEMO_D", 2005, demo_table([5], level=[7])),
    ]
    accumulator = CycleMergeAccumulator("DEMO", None)

    for table_code, year, raw in cycles:
        accumulator.fold(table_code, normalize_cycle_table(raw, year))
        folded = accumulator.finalize()
        assert not any(pa.types.is_dictionary(field.type) for field in folded.schema)

    assert accumulator.finalize().column("level").to_pylist() == ["Low", "High", None, None, "7"]
    assert not any("categorical" in line for line in accumulator.diagnostics)
