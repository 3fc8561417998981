"""Survey cycle catalog.

The survey is released in two-year cycles starting in 1999. The first
cycle's tables carry no suffix, later cycles use letter suffixes, and the
2019 cycle (``K``) was never released and is permanently excluded.
"""

from __future__ import annotations

from core.constants import (
    CYCLE_SUFFIXES,
    CYCLE_YEAR_STEP,
    FIRST_CYCLE_YEAR,
    RETIRED_CYCLE_SUFFIXES,
)
from core.types import SurveyCycle


def build_cycle_catalog() -> tuple[SurveyCycle, ...]:
    """Return every fetchable cycle, oldest first."""
    cycles = [SurveyCycle(suffix="", start_year=FIRST_CYCLE_YEAR)]
    for index, suffix in enumerate(CYCLE_SUFFIXES, 1):
        if suffix in RETIRED_CYCLE_SUFFIXES:
            continue
        start_year = FIRST_CYCLE_YEAR + CYCLE_YEAR_STEP * index
        cycles.append(SurveyCycle(suffix=suffix, start_year=start_year))
    return tuple(cycles)


def table_codes(table_name: str, newest_first: bool = False) -> list[str]:
    """Return upstream table codes for a table family across all cycles."""
    codes = [cycle.table_code(table_name) for cycle in build_cycle_catalog()]
    if newest_first:
        codes.reverse()
    return codes
