"""Dataset publishing with read-back verification.

A dataset is written to the object store as Parquet, read back, and
compared with the source table. Any failed check raises
:class:`core.errors.SyncIntegrityError`; callers commit the fingerprint
only after this module returns.
"""

from __future__ import annotations

import io

import pyarrow as pa
import pyarrow.parquet as pq

from core.constants import STRUCTURAL_COLUMNS
from core.errors import SyncIntegrityError, SyncStoreError
from core.logging_config import get_logger
from store.object_store import ObjectStore, object_key
from store.verification_types import VerificationCheck, VerificationResult

_LOGGER = get_logger(__name__)


def serialize_table(table: pa.Table) -> bytes:
    """Encode a table as Parquet bytes."""
    buffer = io.BytesIO()
    pq.write_table(table, buffer)
    return buffer.getvalue()


def deserialize_table(payload: bytes) -> pa.Table:
    """Decode Parquet bytes into a table.

    Raises:
        SyncStoreError: If the payload is not valid Parquet.
    """
    try:
        return pq.read_table(io.BytesIO(payload))
    except (pa.ArrowInvalid, OSError) as error:
        raise SyncStoreError(
            f"Failed to parse published Parquet payload: {error}. "
            "The object may be truncated; republish the dataset."
        ) from error


def verify_round_trip(source: pa.Table, readback: pa.Table, key: str = "") -> VerificationResult:
    """Compare a read-back table with the table that was published."""
    checks = (
        VerificationCheck(
            check_id="row_count",
            passed=source.num_rows == readback.num_rows,
            details=f"source={source.num_rows} readback={readback.num_rows}",
        ),
        VerificationCheck(
            check_id="column_count",
            passed=source.num_columns == readback.num_columns,
            details=f"source={source.num_columns} readback={readback.num_columns}",
        ),
        VerificationCheck(
            check_id="column_names",
            passed=source.column_names == readback.column_names,
            details=_column_name_details(source, readback),
        ),
        VerificationCheck(
            check_id="structural_columns",
            passed=all(name in readback.column_names for name in STRUCTURAL_COLUMNS),
            details=f"required={','.join(STRUCTURAL_COLUMNS)}",
        ),
        VerificationCheck(
            check_id="nonzero_rows",
            passed=readback.num_rows > 0,
            details=f"readback={readback.num_rows}",
        ),
    )
    return VerificationResult(object_key=key, checks=checks)


def publish_dataset(
    dataset_name: str,
    table: pa.Table,
    object_store: ObjectStore,
) -> VerificationResult:
    """Upload a dataset, read it back, and verify it.

    Args:
        dataset_name: Catalog dataset name.
        table: Merged dataset to publish.
        object_store: Destination store.

    Returns:
        Successful verification result.

    Raises:
        SyncStoreError: If the upload fails.
        SyncIntegrityError: If the object cannot be read back or any
            verification check fails.
    """
    key = object_key(dataset_name)
    object_store.put(key, serialize_table(table))
    try:
        readback = deserialize_table(object_store.get(key))
    except SyncStoreError as error:
        result = VerificationResult(
            object_key=key,
            checks=(VerificationCheck(check_id="readback", passed=False, details=str(error)),),
        )
        raise SyncIntegrityError(
            f"Verification failed for {key}: read-back failed after upload ({error}). "
            "The previous fingerprint was kept; inspect the bucket before rerunning.",
            result,
        ) from error
    result = verify_round_trip(table, readback, key)
    if not result.success:
        failed = ", ".join(f"{check.check_id} ({check.details})" for check in result.failed_checks)
        raise SyncIntegrityError(
            f"Verification failed for {key}: {failed}. "
            "The previous fingerprint was kept; inspect the bucket before rerunning.",
            result,
        )
    _LOGGER.info(
        "dataset_published",
        dataset_name=dataset_name,
        object_key=key,
        row_count=readback.num_rows,
        column_count=readback.num_columns,
    )
    return result


def _column_name_details(source: pa.Table, readback: pa.Table) -> str:
    if source.column_names == readback.column_names:
        return f"{source.num_columns} columns match"
    missing = [name for name in source.column_names if name not in readback.column_names]
    extra = [name for name in readback.column_names if name not in source.column_names]
    return f"missing={missing} extra={extra}"
