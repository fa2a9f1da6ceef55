from __future__ import annotations

import logging
from typing import Any

import boto3

from bucketsync.config import BucketSyncConfig
from bucketsync.models import RemoteEntry


logger = logging.getLogger(__name__)


class ListingTruncatedError(RuntimeError):
    """Raised when the bucket listing did not fit in a single response."""


def create_client(config: BucketSyncConfig) -> Any:
    return boto3.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
        aws_access_key_id=config.credentials.access_key_id,
        aws_secret_access_key=config.credentials.secret_access_key,
    )


def listing_prefix(key_prefix: str) -> str | None:
    prefix = key_prefix.strip("/")
    return f"{prefix}/" if prefix else None


def _entry_from_object(obj: dict[str, Any]) -> RemoteEntry:
    return RemoteEntry(
        key=str(obj["Key"]),
        etag=str(obj.get("ETag", "")),
        size=int(obj.get("Size", 0)),
    )


def list_bucket(client: Any, bucket: str, key_prefix: str = "") -> list[RemoteEntry]:
    """Return every object of ``bucket`` under ``key_prefix`` from one listing call.

    Raises:
        ListingTruncatedError: If the backend paginated the result.
    """
    params: dict[str, Any] = {"Bucket": bucket}
    prefix = listing_prefix(key_prefix)
    if prefix is not None:
        params["Prefix"] = prefix

    response = client.list_objects(**params)
    if response.get("IsTruncated"):
        raise ListingTruncatedError(
            f"Listing of s3://{bucket}/{prefix or ''} is truncated; paginated buckets are not supported"
        )

    contents = response.get("Contents") or []
    logger.debug(
        "List result context: %s",
        {key: value for key, value in response.items() if key not in {"Contents", "ResponseMetadata"}},
    )
    return [_entry_from_object(obj) for obj in contents]
