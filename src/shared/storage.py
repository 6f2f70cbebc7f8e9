"""S3/MinIO read helpers for Signal Artifact Workflows.

The analysis pipeline writes artifacts into date partitions:
    s3://ttb-artifacts/daily/2026-02-08/signals_AAPL_20260208_063000.json
    s3://ttb-artifacts/daily/2026-02-08/AAPL_gemini_analysis_20260208_064500.json
and spread reports into a flat folder:
    s3://ttb-artifacts/spreads-yo/AAPL_spread_analysis_20260208_070000.md

This module only lists and downloads. Nothing is ever written back.
Uses boto3 with lazy imports to avoid issues in test environments
without S3 access. botocore failures surface as ArtifactStoreError.
"""

import logging
from typing import List, Optional

from src.shared.config import (
    MINIO_ENDPOINT,
    MINIO_ACCESS_KEY,
    MINIO_SECRET_KEY,
    S3_REGION,
    ARTIFACT_BUCKET,
    DAILY_PREFIX,
)
from src.shared.errors import ArtifactStoreError

logger = logging.getLogger(__name__)


def get_s3_client():
    """Get a boto3 S3 client configured for MinIO.

    Uses in-cluster endpoint by default (minio.flyte.svc.cluster.local:9000).
    Override via MINIO_ENDPOINT env var for local development.

    Raises:
        ArtifactStoreError: The client could not be built, e.g. an
            invalid endpoint URL.
    """
    import boto3
    from botocore.client import Config
    from botocore.exceptions import BotoCoreError

    try:
        return boto3.client(
            "s3",
            endpoint_url=MINIO_ENDPOINT,
            aws_access_key_id=MINIO_ACCESS_KEY,
            aws_secret_access_key=MINIO_SECRET_KEY,
            config=Config(signature_version="s3v4"),
            region_name=S3_REGION,
        )
    except (BotoCoreError, ValueError) as e:
        raise ArtifactStoreError("connect", MINIO_ENDPOINT, e) from e


def build_partition_prefix(date: str, prefix: Optional[str] = None) -> str:
    """Build the key prefix of one daily partition.

    Args:
        date: Date string in YYYY-MM-DD format.
        prefix: Root of the daily layout (default: from config).

    Returns:
        Prefix like: daily/2026-02-08/
    """
    parts = date.split("-")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid date format '{date}', expected YYYY-MM-DD")

    root = prefix if prefix is not None else DAILY_PREFIX
    return f"{root}{date}/"


def list_keys(
    prefix: str,
    bucket: Optional[str] = None,
    client=None,
) -> List[str]:
    """List every object key under a prefix (all pages).

    Args:
        prefix: Key prefix, e.g. "daily/" for one flattened listing.
        bucket: S3 bucket name. Default: from config.
        client: boto3 S3 client. Default: get_s3_client().

    Returns:
        Object keys in listing order (S3 returns them lexically sorted).
    """
    from botocore.exceptions import BotoCoreError, ClientError

    bucket = bucket or ARTIFACT_BUCKET
    client = client or get_s3_client()

    keys = []
    try:
        paginator = client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                keys.append(obj["Key"])
    except (BotoCoreError, ClientError) as e:
        raise ArtifactStoreError("list", f"s3://{bucket}/{prefix}", e) from e

    logger.debug("Listed %d keys under s3://%s/%s", len(keys), bucket, prefix)
    return keys


def list_common_prefixes(
    prefix: str,
    bucket: Optional[str] = None,
    client=None,
) -> List[str]:
    """List the immediate "folders" under a prefix using a "/" delimiter.

    Returns:
        Prefixes like ["daily/2026-02-07/", "daily/2026-02-08/"].
    """
    from botocore.exceptions import BotoCoreError, ClientError

    bucket = bucket or ARTIFACT_BUCKET
    client = client or get_s3_client()

    prefixes = []
    try:
        paginator = client.get_paginator("list_objects_v2")
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix, Delimiter="/"):
            for entry in page.get("CommonPrefixes", []):
                prefixes.append(entry["Prefix"])
    except (BotoCoreError, ClientError) as e:
        raise ArtifactStoreError("list", f"s3://{bucket}/{prefix}", e) from e

    return prefixes


def read_object_text(
    key: str,
    bucket: Optional[str] = None,
    client=None,
) -> str:
    """Download one object and decode it as UTF-8.

    Args:
        key: Full object key.
        bucket: S3 bucket name. Default: from config.
        client: boto3 S3 client. Default: get_s3_client().

    Returns:
        Object contents as text.
    """
    from botocore.exceptions import BotoCoreError, ClientError

    bucket = bucket or ARTIFACT_BUCKET
    client = client or get_s3_client()

    try:
        response = client.get_object(Bucket=bucket, Key=key)
        body = response["Body"].read()
    except (BotoCoreError, ClientError) as e:
        raise ArtifactStoreError("download", f"s3://{bucket}/{key}", e) from e

    logger.debug("Downloaded s3://%s/%s (%d bytes)", bucket, key, len(body))
    return body.decode("utf-8")
