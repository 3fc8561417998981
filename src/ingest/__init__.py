"""Survey cycle ingestion.

This module fetches per-cycle tables, folds them into one dataset,
and orchestrates batched sync runs.
"""
