from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bucketsync.compare import compare_bucket
from bucketsync.config import BucketSyncConfig, MetadataDocument, load_metadata
from bucketsync.coordinator import ResultListener, RunCoordinator
from bucketsync.models import ComparisonRecord
from bucketsync.remote import list_bucket
from bucketsync.scanner import iter_local_entries
from bucketsync.transfer import TransferWorker
from bucketsync.work_queue import WorkQueue, build_work_queue


logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 4


@dataclass(slots=True)
class SyncPlan:
    bucket: str
    source_dir: Path
    comparisons: dict[str, ComparisonRecord]
    metadata: MetadataDocument


@dataclass(slots=True)
class PreparedRun:
    queue: WorkQueue
    coordinator: RunCoordinator
    total_files: int
    total_bytes: int


def plan_sync(config: BucketSyncConfig, client: Any) -> SyncPlan:
    source_dir = config.source_path
    if not source_dir.is_dir():
        raise FileNotFoundError(f"Configured copySourceDirectory does not exist: {source_dir}")
    metadata = load_metadata(config.metadata_path)

    remote_entries = list_bucket(client, config.bucket, config.key_prefix)
    logger.info("Listed %d object(s) in s3://%s", len(remote_entries), config.bucket)

    comparisons = compare_bucket(
        remote_entries,
        iter_local_entries(source_dir),
        key_prefix=config.key_prefix,
    )

    return SyncPlan(
        bucket=config.bucket,
        source_dir=source_dir,
        comparisons=comparisons,
        metadata=metadata,
    )


def prepare_run(
    plan: SyncPlan,
    client: Any,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    force: bool = False,
    listeners: Sequence[ResultListener] = (),
) -> PreparedRun:
    if concurrency < 1:
        raise ValueError("concurrency must be a number >= 1")

    queue = build_work_queue(plan.comparisons, force=force)
    pending = queue.records()
    workers = [
        TransferWorker(
            str(index),
            queue,
            bucket=plan.bucket,
            client=client,
            source_dir=plan.source_dir,
            metadata=plan.metadata,
            force=force,
        )
        for index in range(concurrency)
    ]
    return PreparedRun(
        queue=queue,
        coordinator=RunCoordinator(workers, listeners=listeners),
        total_files=len(pending),
        total_bytes=sum(record.size for record in pending),
    )


def execute_sync(
    plan: SyncPlan,
    client: Any,
    *,
    concurrency: int = DEFAULT_CONCURRENCY,
    force: bool = False,
    listeners: Sequence[ResultListener] = (),
) -> RunCoordinator:
    """Apply ``plan`` to the bucket and hand back the finished coordinator."""
    prepared = prepare_run(plan, client, concurrency=concurrency, force=force, listeners=listeners)
    prepared.coordinator.run()
    return prepared.coordinator
