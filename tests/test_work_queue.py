"""Tests for the shared work queue."""

from __future__ import annotations

import threading
from collections import Counter

import pytest

from bucketsync.compare import compare_bucket
from bucketsync.models import CompareType, ComparisonRecord
from bucketsync.work_queue import WorkQueue, build_work_queue
from tests.helpers import local_entry, remote_entry


def _records(count: int) -> list[ComparisonRecord]:
    return [ComparisonRecord(key=f"file-{index:04d}", local=local_entry(f"file-{index:04d}")) for index in range(count)]


class TestWorkQueue:
    """Tests for WorkQueue claim mechanics."""

    def test_claim_in_insertion_order(self) -> None:
        queue = WorkQueue(_records(3))

        assert [queue.claim().key for _ in range(3)] == ["file-0000", "file-0001", "file-0002"]

    def test_claim_on_empty_returns_none(self) -> None:
        queue = WorkQueue()
        assert queue.claim() is None
        assert not queue

    def test_removed_key_never_returns(self) -> None:
        queue = WorkQueue(_records(2))
        claimed = queue.remove("file-0000")

        assert claimed is not None
        assert queue.remove("file-0000") is None
        assert queue.next_key() == "file-0001"
        assert len(queue) == 1

    @pytest.mark.parametrize("workers", [1, 4, 16])
    def test_concurrent_claims_are_exclusive(self, workers: int) -> None:
        """Each key is handed to exactly one claimer."""
        queue = WorkQueue(_records(500))
        claimed: list[list[str]] = [[] for _ in range(workers)]
        barrier = threading.Barrier(workers)

        def drain(slot: int) -> None:
            barrier.wait()
            while (record := queue.claim()) is not None:
                claimed[slot].append(record.key)

        threads = [threading.Thread(target=drain, args=(slot,)) for slot in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        counts = Counter(key for keys in claimed for key in keys)
        assert len(counts) == 500
        assert set(counts.values()) == {1}
        assert len(queue) == 0


class TestBuildWorkQueue:
    """Tests for build_work_queue()."""

    def _comparisons(self) -> dict[str, ComparisonRecord]:
        return compare_bucket(
            [remote_entry("same", "1" * 32), remote_entry("diff", "1" * 32), remote_entry("gone")],
            [local_entry("same", "1" * 32), local_entry("diff", "2" * 32), local_entry("new")],
        )

    def test_skips_unchanged_without_force(self) -> None:
        queue = build_work_queue(self._comparisons(), force=False)

        records = queue.records()
        assert [record.key for record in records] == ["diff", "new", "gone"]
        assert all(record.classification is not CompareType.UNCHANGED for record in records)

    def test_keeps_unchanged_with_force(self) -> None:
        queue = build_work_queue(self._comparisons(), force=True)

        assert [record.key for record in queue.records()] == ["same", "diff", "new", "gone"]
