"""Collaborator protocols for upstream survey data.

The survey source returns one raw table per cycle code. A ``None`` return
means the table does not exist in that cycle, which is expected and is
distinct from a raised :class:`core.errors.TransientSourceError`.
"""

from __future__ import annotations

from typing import Protocol

import pyarrow as pa

from transforms.label_translation import CodebookSource, RawCodebook

__all__ = ["CodebookSource", "RawCodebook", "SurveyDataSource"]


class SurveyDataSource(Protocol):
    """Collaborator that fetches one raw cycle table."""

    def fetch(self, table_code: str) -> pa.Table | None:
        """Return the raw table, or ``None`` when the cycle lacks it.

        Raises:
            TransientSourceError: For retryable network or timeout failures.
            SyncSourceError: For non-retryable upstream failures.
        """
