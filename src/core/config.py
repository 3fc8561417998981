"""Runtime configuration model for cyclesync.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    CHECKSUMS_FILE_NAME,
    DEFAULT_BATCH_DELAY_SECONDS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_BUCKET,
    DEFAULT_CATALOG_PATH,
    DEFAULT_DATA_ROOT,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
    R2_CREDENTIAL_VARIABLES,
    SUMMARY_FILE_NAME,
)
from core.errors import SyncConfigError
from core.types import RetryPolicy


@dataclass(frozen=True)
class R2Credentials:
    """Scoped write credentials for the R2 object store."""

    account_id: str
    access_key_id: str
    secret_access_key: str


@dataclass(frozen=True)
class SyncConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root for the checksum store and run summary.
        catalog_path: YAML dataset catalog path.
        source_dir: Optional local directory of per-cycle tables.
        output_dir: Optional local publish directory used instead of R2.
        bucket: Destination bucket name for R2 publishing.
        retry_attempts: Maximum fetch attempts per cycle.
        retry_delay_seconds: Fixed delay between fetch attempts.
        batch_size: Maximum datasets per batch.
        batch_delay_seconds: Pause between consecutive batches.
        credentials: R2 credentials when all variables are set.
    """

    data_root: Path
    catalog_path: Path
    source_dir: Path | None
    output_dir: Path | None
    bucket: str
    retry_attempts: int
    retry_delay_seconds: float
    batch_size: int
    batch_delay_seconds: float
    credentials: R2Credentials | None

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            SyncConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("CYCLESYNC_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        catalog_value = os.getenv("CYCLESYNC_CATALOG_PATH", str(DEFAULT_CATALOG_PATH))
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            catalog_path=Path(catalog_value).expanduser(),
            source_dir=_optional_path(os.getenv("CYCLESYNC_SOURCE_DIR")),
            output_dir=_optional_path(os.getenv("CYCLESYNC_OUTPUT_DIR")),
            bucket=os.getenv("CYCLESYNC_BUCKET", DEFAULT_BUCKET),
            retry_attempts=_parse_positive_int(
                "CYCLESYNC_RETRY_ATTEMPTS", str(DEFAULT_RETRY_ATTEMPTS)
            ),
            retry_delay_seconds=_parse_non_negative_float(
                "CYCLESYNC_RETRY_DELAY", str(DEFAULT_RETRY_DELAY_SECONDS)
            ),
            batch_size=_parse_positive_int("CYCLESYNC_BATCH_SIZE", str(DEFAULT_BATCH_SIZE)),
            batch_delay_seconds=_parse_non_negative_float(
                "CYCLESYNC_BATCH_DELAY", str(DEFAULT_BATCH_DELAY_SECONDS)
            ),
            credentials=_read_credentials(),
        )

    @property
    def checksums_path(self) -> Path:
        """Path of the persisted fingerprint map."""
        return self.data_root / CHECKSUMS_FILE_NAME

    @property
    def summary_path(self) -> Path:
        """Path of the machine-readable run summary."""
        return self.data_root / SUMMARY_FILE_NAME

    @property
    def retry_policy(self) -> RetryPolicy:
        """Fetch retry policy threaded into the merge engine."""
        return RetryPolicy(
            max_attempts=self.retry_attempts,
            delay_seconds=self.retry_delay_seconds,
        )

    def require_credentials(self) -> R2Credentials:
        """Return R2 credentials or fail with the missing variable names.

        Raises:
            SyncConfigError: If any credential variable is unset.
        """
        if self.credentials is not None:
            return self.credentials
        missing = [name for name in R2_CREDENTIAL_VARIABLES if not os.getenv(name)]
        raise SyncConfigError(
            "Cannot find required environment variables for R2 authentication: "
            f"{', '.join(missing) or ', '.join(R2_CREDENTIAL_VARIABLES)}. "
            "Set them in the environment or run with --dry-run."
        )


def _optional_path(raw_value: str | None) -> Path | None:
    if not raw_value:
        return None
    return Path(raw_value).expanduser().resolve()


def _read_credentials() -> R2Credentials | None:
    values = [os.getenv(name, "") for name in R2_CREDENTIAL_VARIABLES]
    if not all(values):
        return None
    account_id, access_key_id, secret_access_key = values
    return R2Credentials(
        account_id=account_id,
        access_key_id=access_key_id,
        secret_access_key=secret_access_key,
    )


def _parse_positive_int(variable: str, default: str) -> int:
    """Parse a positive integer environment value.

    Args:
        variable: Environment variable name.
        default: Value used when the variable is unset.

    Returns:
        Parsed integer.

    Raises:
        SyncConfigError: If value is not a positive integer.
    """
    raw_value = os.getenv(variable, default)
    try:
        value = int(raw_value)
    except ValueError as error:
        raise SyncConfigError(
            f"Invalid {variable} value: expected integer, got '{raw_value}'. "
            f"Set {variable} to a positive whole number."
        ) from error
    if value < 1:
        raise SyncConfigError(
            f"Invalid {variable} value: expected a positive integer, got {value}."
        )
    return value


def _parse_non_negative_float(variable: str, default: str) -> float:
    """Parse a non-negative seconds value from the environment."""
    raw_value = os.getenv(variable, default)
    try:
        value = float(raw_value)
    except ValueError as error:
        raise SyncConfigError(
            f"Invalid {variable} value: expected seconds, got '{raw_value}'. "
            f"Set {variable} to a numeric value."
        ) from error
    if value < 0:
        raise SyncConfigError(f"Invalid {variable} value: seconds cannot be negative.")
    return value
