"""Builders and fakes shared across the test modules."""

from __future__ import annotations

import hashlib
import threading
from typing import Any

from bucketsync.models import LocalEntry, RemoteEntry


BUCKET = "test-bucket"
REGION = "us-east-1"


def md5_hex(data: bytes) -> str:
    return hashlib.md5(data).hexdigest()


def local_entry(key: str, checksum: str = "0" * 32, size: int = 1, content_type: str = "text/plain") -> LocalEntry:
    return LocalEntry(key=key, checksum=checksum, content_type=content_type, size=size)


def remote_entry(key: str, checksum: str = "0" * 32, size: int = 1) -> RemoteEntry:
    return RemoteEntry(key=key, etag=f'"{checksum}"', size=size)


class FakeS3Client:
    """Records put/delete calls; ``failures`` maps key -> number of calls that raise first."""

    def __init__(self, failures: dict[str, int] | None = None) -> None:
        self.failures = dict(failures or {})
        self.puts: list[dict[str, Any]] = []
        self.deletes: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def _maybe_fail(self, key: str) -> None:
        with self._lock:
            remaining = self.failures.get(key, 0)
            if remaining:
                self.failures[key] = remaining - 1
                raise ConnectionError(f"simulated failure for {key}")

    def put_object(self, **kwargs: Any) -> dict[str, Any]:
        self._maybe_fail(kwargs["Key"])
        body = kwargs.pop("Body").read()
        with self._lock:
            self.puts.append({**kwargs, "Body": body})
        return {"ETag": f'"{md5_hex(body)}"'}

    def delete_object(self, **kwargs: Any) -> dict[str, Any]:
        self._maybe_fail(kwargs["Key"])
        with self._lock:
            self.deletes.append(kwargs)
        return {}

    @property
    def put_keys(self) -> list[str]:
        return [call["Key"] for call in self.puts]

    @property
    def delete_keys(self) -> list[str]:
        return [call["Key"] for call in self.deletes]
