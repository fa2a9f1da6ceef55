"""Shared fixtures for bucketsync tests."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import boto3
import pytest
from moto import mock_aws

from tests.helpers import BUCKET, REGION, FakeS3Client


@pytest.fixture
def fake_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    """Create a small source tree."""
    root = tmp_path / "site"
    (root / "css").mkdir(parents=True)
    (root / "index.html").write_bytes(b"<html>hello</html>")
    (root / "css" / "style.css").write_bytes(b"body { color: red; }")
    return root


@pytest.fixture
def metadata_file(tmp_path: Path) -> Path:
    path = tmp_path / "metadata.json"
    path.write_text(
        json.dumps({"index.html": {"CacheControl": "no-cache"}, "missing.txt": None}),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def env_file(tmp_path: Path, source_dir: Path, metadata_file: Path) -> Path:
    """Write a config document pointing at ``source_dir`` with relative paths."""
    env_path = tmp_path / "env.json"
    env_path.write_text(
        json.dumps(
            {
                "region": REGION,
                "bucket": BUCKET,
                "copySourceDirectory": source_dir.name,
                "metadataFile": metadata_file.name,
                "credentials": {"accessKeyId": "testing", "secretAccessKey": "testing"},
            }
        ),
        encoding="utf-8",
    )
    return env_path


@pytest.fixture
def aws_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SECURITY_TOKEN", "AWS_SESSION_TOKEN"):
        monkeypatch.setenv(name, "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", REGION)


@pytest.fixture
def s3_client(aws_env: None) -> Iterator[Any]:
    """moto-backed S3 client with an empty test bucket."""
    with mock_aws():
        client = boto3.client("s3", region_name=REGION)
        client.create_bucket(Bucket=BUCKET)
        yield client
