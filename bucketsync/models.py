from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True, slots=True)
class LocalEntry:
    key: str
    checksum: str
    content_type: str
    size: int


@dataclass(frozen=True, slots=True)
class RemoteEntry:
    key: str
    etag: str
    size: int


class CompareType(Enum):
    UNCHANGED = "Unchanged"
    NEW_LOCALLY = "NewLocally"
    REMOVED_LOCALLY = "RemovedLocally"
    CHANGED = "Changed"


class ComparisonInvariantError(RuntimeError):
    """Raised when a comparison is built with neither a local nor a remote side."""


def quote_checksum(checksum: str) -> str:
    """Render a hex checksum the way S3 reports a single-part ETag."""
    return f'"{checksum}"'


def classify(remote: RemoteEntry | None, local: LocalEntry | None) -> CompareType:
    if remote is not None and local is not None:
        if remote.etag == quote_checksum(local.checksum):
            return CompareType.UNCHANGED
        return CompareType.CHANGED
    if remote is not None:
        return CompareType.REMOVED_LOCALLY
    if local is not None:
        return CompareType.NEW_LOCALLY
    raise ComparisonInvariantError("Expected either a remote or a local entry, got neither")


@dataclass(frozen=True, slots=True)
class ComparisonRecord:
    key: str
    local: LocalEntry | None = None
    remote: RemoteEntry | None = None
    classification: CompareType = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "classification", classify(self.remote, self.local))

    @property
    def size(self) -> int:
        return self.local.size if self.local is not None else 0


class TransferResultType(Enum):
    ERROR = 0
    SUCCESS = 1
    NOOP = 2


@dataclass(frozen=True, slots=True)
class TransferResult:
    type: TransferResultType
    size: int = 0

    @property
    def is_error(self) -> bool:
        return self.type is TransferResultType.ERROR
