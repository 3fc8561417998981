"""Core constants used across cyclesync modules.

This module centralizes cycle catalog, naming, and default settings.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DATA_ROOT = Path(".cyclesync")
DEFAULT_CATALOG_PATH = Path("datasets.yml")
CHECKSUMS_FILE_NAME = ".checksums.json"
SUMMARY_FILE_NAME = "workflow_summary.json"
PUBLISHED_FILE_SUFFIX = ".parquet"
DEFAULT_BUCKET = "nhanes-data"
R2_ENDPOINT_TEMPLATE = "https://{account_id}.r2.cloudflarestorage.com"
R2_REGION = "auto"
R2_CREDENTIAL_VARIABLES = ("R2_ACCOUNT_ID", "R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY")

YEAR_COLUMN = "year"
ID_COLUMN = "seqn"
STRUCTURAL_COLUMNS = (YEAR_COLUMN, ID_COLUMN)

FIRST_CYCLE_YEAR = 1999
CYCLE_YEAR_STEP = 2
CYCLE_SUFFIXES = ("B", "C", "D", "E", "F", "G", "H", "I", "J", "K", "L", "M", "N", "O", "P")
RETIRED_CYCLE_SUFFIXES = ("K",)

MISSING_CODE_MARKER = "."
RANGE_OF_VALUES_MARKER = "Range of Values"

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_SECONDS = 5.0
DEFAULT_BATCH_SIZE = 20
DEFAULT_BATCH_DELAY_SECONDS = 60.0
DEFAULT_CATEGORY_ORDER = ("dietary", "examination", "laboratory", "questionnaire")
HASH_ALGORITHM = "sha256"
