"""Unit tests for dataset batch scheduling."""

from __future__ import annotations

import pytest

from core.errors import SyncConfigError
from core.types import DatasetJob
from ingest.batch_scheduler import plan_batches, select_jobs


def _jobs(category: str, count: int) -> list[DatasetJob]:
    return [
        DatasetJob(name=f"{category[:4]}_{index}", description="", category=category)
        for index in range(count)
    ]


def _catalog() -> list[DatasetJob]:
    # Catalog order intentionally differs from category order.
    return _jobs("questionnaire", 24) + _jobs("dietary", 5) + _jobs("laboratory", 16)


def test_forty_five_jobs_make_three_contiguous_batches() -> None:
    """5/16/24 jobs with max 20 should yield exactly three batches."""
    batches = plan_batches(_catalog(), 20)

    assert [batch.size for batch in batches] == [20, 20, 5]
    assert [batch.number for batch in batches] == [1, 2, 3]
    assert [(s.category, len(s.jobs)) for s in batches[0].slices] == [
        ("dietary", 5),
        ("laboratory", 15),
    ]
    assert [(s.category, len(s.jobs)) for s in batches[1].slices] == [
        ("laboratory", 1),
        ("questionnaire", 19),
    ]
    assert [(s.category, len(s.jobs)) for s in batches[2].slices] == [("questionnaire", 5)]


def test_batches_preserve_catalog_order_within_category() -> None:
    """Flattened batches should list each category in catalog order."""
    catalog = _catalog()

    flattened = [job for batch in plan_batches(catalog, 20) for job in batch.jobs]

    assert flattened[:5] == [job for job in catalog if job.category == "dietary"]
    assert len(flattened) == len(catalog)


def test_unknown_categories_follow_known_ones_alphabetically() -> None:
    """Categories outside the fixed order should sort after it."""
    catalog = _jobs("zeta", 1) + _jobs("alpha", 1) + _jobs("examination", 1)

    batch = plan_batches(catalog, 10)[0]

    assert [s.category for s in batch.slices] == ["examination", "alpha", "zeta"]


def test_select_single_batch_is_one_based() -> None:
    """Batch 2 should be the second planned batch."""
    selected = select_jobs(_catalog(), 20, batch_number=2)

    assert len(selected) == 1
    assert selected[0].number == 2


@pytest.mark.parametrize("batch_number", [0, 4])
def test_select_rejects_out_of_range_batch(batch_number: int) -> None:
    """Batch numbers outside the plan should be configuration errors."""
    with pytest.raises(SyncConfigError):
        select_jobs(_catalog(), 20, batch_number=batch_number)


def test_plan_rejects_non_positive_batch_size() -> None:
    """A zero batch size should be a configuration error."""
    with pytest.raises(SyncConfigError):
        plan_batches(_catalog(), 0)


def test_explicit_names_bypass_batching() -> None:
    """Named datasets should form one batch in catalog order."""
    catalog = _catalog()

    selected = select_jobs(catalog, 20, batch_number=3, dataset_names=["diet_1", "QUES_0", "missing"])

    assert len(selected) == 1
    assert [job.name for job in selected[0].jobs] == ["ques_0", "diet_1"]
