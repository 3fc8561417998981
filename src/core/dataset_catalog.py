"""Typed dataset catalog parsing.

This module loads and validates the YAML catalog that lists every table
family to sync. The catalog is read once at startup; any problem with it
is a configuration error that stops the run before fetching begins.
"""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence, cast

from core.errors import SyncCatalogError, SyncDependencyError
from core.types import DatasetJob

_ALLOWED_ENTRY_KEYS = {"name", "description", "category", "notes"}


def load_dataset_catalog(catalog_path: str | Path) -> tuple[DatasetJob, ...]:
    """Load and validate a YAML dataset catalog from disk.

    Args:
        catalog_path: File path to a YAML file with a ``datasets`` list.

    Returns:
        Dataset jobs in catalog order.

    Raises:
        SyncDependencyError: If PyYAML is unavailable.
        SyncCatalogError: If the file is invalid or schema checks fail.
    """
    payload = _load_yaml_payload(Path(catalog_path))
    root_mapping = _expect_mapping(payload, "catalog root")
    raw_datasets = root_mapping.get("datasets")
    if raw_datasets is None:
        raise SyncCatalogError(
            "Dataset catalog missing required field 'datasets'. Add a non-empty list."
        )
    rows = _expect_sequence(raw_datasets, "catalog datasets")
    if len(rows) == 0:
        raise SyncCatalogError("Dataset catalog field 'datasets' must include at least one entry.")
    jobs = tuple(_parse_entry(row, index) for index, row in enumerate(rows))
    _validate_unique_names(jobs)
    return jobs


def _load_yaml_payload(catalog_file: Path) -> object:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise SyncDependencyError(
            "Dataset catalog support requires PyYAML. Install with 'pip install pyyaml'."
        ) from error
    resolved_file = catalog_file.expanduser().resolve()
    if not resolved_file.exists():
        raise SyncCatalogError(
            f"Configuration file not found: {resolved_file}. Provide a valid catalog path."
        )
    try:
        payload = cast(object, yaml.safe_load(resolved_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise SyncCatalogError(
            f"Failed to read catalog at {resolved_file}: {error}. Check file permissions."
        ) from error
    except yaml.YAMLError as error:
        raise SyncCatalogError(
            f"Failed to parse YAML catalog at {resolved_file}: {error}. Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise SyncCatalogError(f"Catalog at {resolved_file} is empty. Define 'datasets'.")
    return payload


def _parse_entry(value: object, index: int) -> DatasetJob:
    context = f"catalog entry #{index + 1}"
    mapping = _expect_mapping(value, context)
    unknown_keys = sorted(set(mapping) - _ALLOWED_ENTRY_KEYS)
    if unknown_keys:
        raise SyncCatalogError(f"Invalid {context}: unknown fields {', '.join(unknown_keys)}.")
    name = _required_string(mapping, "name", context)
    return DatasetJob(
        name=name.lower(),
        description=_optional_string(mapping, "description", context) or "",
        category=_required_string(mapping, "category", context).lower(),
        notes=_optional_string(mapping, "notes", context),
    )


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise SyncCatalogError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise SyncCatalogError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _expect_sequence(value: object, context: str) -> Sequence[object]:
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray)):
        return value
    raise SyncCatalogError(f"Invalid {context}: expected list, got {type(value).__name__}.")


def _required_string(mapping: Mapping[str, object], field_name: str, context: str) -> str:
    value = _optional_string(mapping, field_name, context)
    if value is None:
        raise SyncCatalogError(f"Invalid {context}: missing required field '{field_name}'.")
    return value


def _optional_string(mapping: Mapping[str, object], field_name: str, context: str) -> str | None:
    raw_value = mapping.get(field_name)
    if raw_value is None:
        return None
    if isinstance(raw_value, str):
        normalized_value = raw_value.strip()
        return normalized_value if normalized_value else None
    raise SyncCatalogError(f"Invalid {context}: field '{field_name}' must be a string.")


def _validate_unique_names(jobs: tuple[DatasetJob, ...]) -> None:
    seen: set[str] = set()
    duplicates: list[str] = []
    for job in jobs:
        if job.name in seen:
            duplicates.append(job.name)
        seen.add(job.name)
    if duplicates:
        raise SyncCatalogError(
            f"Dataset catalog lists duplicate names: {', '.join(sorted(set(duplicates)))}."
        )
