from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping

from bucketsync.models import CompareType, ComparisonRecord


class WorkQueue:
    """Ordered set of comparison records waiting for a worker.

    Removing a key is the ownership transfer: whoever removes it executes it,
    and a removed key never comes back.
    """

    def __init__(self, records: Iterable[ComparisonRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._pending: dict[str, ComparisonRecord] = {}
        for record in records:
            self._pending[record.key] = record

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def __bool__(self) -> bool:
        return len(self) > 0

    def records(self) -> list[ComparisonRecord]:
        with self._lock:
            return list(self._pending.values())

    def next_key(self) -> str | None:
        with self._lock:
            return next(iter(self._pending), None)

    def remove(self, key: str) -> ComparisonRecord | None:
        with self._lock:
            return self._pending.pop(key, None)

    def claim(self) -> ComparisonRecord | None:
        """Take exclusive ownership of the next pending record, or None when drained."""
        while True:
            key = self.next_key()
            if key is None:
                return None
            record = self.remove(key)
            if record is not None:
                return record


def build_work_queue(comparisons: Mapping[str, ComparisonRecord], *, force: bool) -> WorkQueue:
    return WorkQueue(
        record
        for record in comparisons.values()
        if force or record.classification is not CompareType.UNCHANGED
    )
