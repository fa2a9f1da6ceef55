from __future__ import annotations

import hashlib
import mimetypes
from collections.abc import Iterator
from pathlib import Path

from bucketsync.models import LocalEntry


HASH_ALGORITHM = "md5"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _hash_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.new(HASH_ALGORITHM)
    with path.open("rb") as fh:
        while True:
            chunk = fh.read(chunk_size)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def guess_content_type(path: Path) -> str:
    content_type, _ = mimetypes.guess_type(path.name)
    return content_type or DEFAULT_CONTENT_TYPE


def iter_local_entries(root: Path) -> Iterator[LocalEntry]:
    """Lazily walk ``root`` and yield one entry per regular file.

    Discovery happens up front in sorted order; hashing is deferred until the
    consumer pulls the next entry. Keys are POSIX paths relative to ``root``.
    """
    root = root.resolve()
    if not root.is_dir():
        raise FileNotFoundError(f"Source directory does not exist: {root}")

    for file_path in sorted(root.rglob("*")):
        if not file_path.is_file():
            continue
        relative_path = file_path.relative_to(root).as_posix()
        yield LocalEntry(
            key=relative_path,
            checksum=_hash_file(file_path),
            content_type=guess_content_type(file_path),
            size=file_path.stat().st_size,
        )


def scan_local_files(root: Path) -> list[LocalEntry]:
    return list(iter_local_entries(root))
