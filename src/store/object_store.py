"""Object store adapters for published datasets.

This module encapsulates boto3 client creation for S3-compatible R2
endpoints plus a directory-backed store for local runs and tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from core.config import R2Credentials
from core.constants import PUBLISHED_FILE_SUFFIX, R2_ENDPOINT_TEMPLATE, R2_REGION
from core.errors import SyncDependencyError, SyncStoreError


class ObjectStore(Protocol):
    """Collaborator that stores and returns raw object bytes."""

    def put(self, key: str, payload: bytes) -> None:
        """Write one object, replacing any previous version."""

    def get(self, key: str) -> bytes:
        """Read one object back."""


def object_key(dataset_name: str) -> str:
    """Return the bucket-root key for a published dataset."""
    return f"{dataset_name.lower()}{PUBLISHED_FILE_SUFFIX}"


def create_r2_client(credentials: R2Credentials) -> Any:
    """Create a boto3 S3 client bound to the account's R2 endpoint.

    Args:
        credentials: Scoped R2 write credentials.

    Returns:
        Boto3 S3 client.

    Raises:
        SyncDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise SyncDependencyError(
            "Publishing requires boto3, but it is not installed. "
            "Install boto3 or run with --dry-run."
        ) from error
    session = boto3.session.Session(
        aws_access_key_id=credentials.access_key_id,
        aws_secret_access_key=credentials.secret_access_key,
        region_name=R2_REGION,
    )
    endpoint_url = R2_ENDPOINT_TEMPLATE.format(account_id=credentials.account_id)
    return session.client("s3", endpoint_url=endpoint_url)


class S3ObjectStore:
    """Object store over an S3-compatible bucket."""

    def __init__(self, s3_client: Any, bucket: str) -> None:
        self._client = s3_client
        self._bucket = bucket

    def put(self, key: str, payload: bytes) -> None:
        """Upload one object.

        Raises:
            SyncStoreError: If the upload fails.
        """
        try:
            self._client.put_object(Bucket=self._bucket, Key=key, Body=payload)
        except Exception as error:
            raise SyncStoreError(
                f"Failed to upload s3://{self._bucket}/{key}: {error}. "
                "Check R2 credentials and bucket permissions."
            ) from error

    def get(self, key: str) -> bytes:
        """Download one object.

        Raises:
            SyncStoreError: If the download fails.
        """
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except Exception as error:
            raise SyncStoreError(
                f"Failed to read back s3://{self._bucket}/{key}: {error}. "
                "Check R2 credentials and bucket permissions."
            ) from error


class LocalObjectStore:
    """Object store over a local directory."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def put(self, key: str, payload: bytes) -> None:
        object_path = self._root / key
        try:
            object_path.parent.mkdir(parents=True, exist_ok=True)
            object_path.write_bytes(payload)
        except OSError as error:
            raise SyncStoreError(
                f"Failed to write {object_path}: {error}. Check the output directory."
            ) from error

    def get(self, key: str) -> bytes:
        object_path = self._root / key
        try:
            return object_path.read_bytes()
        except OSError as error:
            raise SyncStoreError(
                f"Failed to read back {object_path}: {error}. Check the output directory."
            ) from error
