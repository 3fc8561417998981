"""Dataset batch scheduling.

This module partitions the dataset catalog into size-bounded batches so
a run can be split across rate-limited invocations.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from core.constants import DEFAULT_CATEGORY_ORDER
from core.errors import SyncConfigError
from core.logging_config import get_logger
from core.types import Batch, CategorySlice, DatasetJob

_LOGGER = get_logger(__name__)


def plan_batches(
    jobs: Sequence[DatasetJob],
    max_batch_size: int,
    category_order: Sequence[str] = DEFAULT_CATEGORY_ORDER,
) -> tuple[Batch, ...]:
    """Lay jobs out by category and cut consecutive size-bounded batches.

    Jobs keep catalog order inside their category. Categories missing from
    ``category_order`` follow it alphabetically.

    Args:
        jobs: Catalog jobs in catalog order.
        max_batch_size: Maximum jobs per batch.
        category_order: Preferred category order.

    Returns:
        Batches numbered from 1.

    Raises:
        SyncConfigError: If ``max_batch_size`` is not positive.
    """
    if max_batch_size < 1:
        raise SyncConfigError(
            f"Invalid batch size: expected a positive integer, got {max_batch_size}."
        )
    ordered_jobs = _order_by_category(jobs, category_order)
    batch_count = -(-len(ordered_jobs) // max_batch_size)
    batches: list[Batch] = []
    for index in range(batch_count):
        chunk = ordered_jobs[index * max_batch_size : (index + 1) * max_batch_size]
        batches.append(Batch(number=index + 1, slices=_slice_by_category(chunk)))
    return tuple(batches)


def select_jobs(
    jobs: Sequence[DatasetJob],
    max_batch_size: int,
    batch_number: int | None = None,
    dataset_names: Iterable[str] | None = None,
) -> tuple[Batch, ...]:
    """Resolve run controls into the batches to process.

    Explicit dataset names bypass batching and yield one batch holding the
    matching jobs in catalog order. Otherwise the selected batch, or every
    batch, is returned.

    Raises:
        SyncConfigError: If the batch number or batch size is invalid.
    """
    if dataset_names is not None:
        return (_named_batch(jobs, dataset_names),)
    batches = plan_batches(jobs, max_batch_size)
    if batch_number is None:
        return batches
    if batch_number < 1 or batch_number > len(batches):
        raise SyncConfigError(
            f"Invalid batch number {batch_number}: catalog has {len(batches)} batches "
            f"of at most {max_batch_size} datasets. Pick a batch between 1 and {len(batches)}."
        )
    return (batches[batch_number - 1],)


def _named_batch(jobs: Sequence[DatasetJob], dataset_names: Iterable[str]) -> Batch:
    wanted = {name.strip().lower() for name in dataset_names if name.strip()}
    selected = [job for job in jobs if job.name in wanted]
    unknown = sorted(wanted - {job.name for job in selected})
    if unknown:
        _LOGGER.warning("unknown_datasets_requested", dataset_names=unknown)
    return Batch(number=1, slices=_slice_by_category(selected))


def _order_by_category(
    jobs: Sequence[DatasetJob],
    category_order: Sequence[str],
) -> list[DatasetJob]:
    known = list(category_order)
    extra = sorted({job.category for job in jobs} - set(known))
    ordered: list[DatasetJob] = []
    for category in known + extra:
        ordered.extend(job for job in jobs if job.category == category)
    return ordered


def _slice_by_category(jobs: Sequence[DatasetJob]) -> tuple[CategorySlice, ...]:
    slices: list[CategorySlice] = []
    for job in jobs:
        if slices and slices[-1].category == job.category:
            previous = slices[-1]
            slices[-1] = CategorySlice(category=previous.category, jobs=previous.jobs + (job,))
            continue
        slices.append(CategorySlice(category=job.category, jobs=(job,)))
    return tuple(slices)
