from __future__ import annotations

import base64
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bucketsync.config import ObjectMetadata
from bucketsync.models import (
    CompareType,
    ComparisonInvariantError,
    ComparisonRecord,
    LocalEntry,
    TransferResult,
    TransferResultType,
)
from bucketsync.work_queue import WorkQueue


logger = logging.getLogger(__name__)

NOOP_RESULT = TransferResult(TransferResultType.NOOP, 0)
ERROR_RESULT = TransferResult(TransferResultType.ERROR, 0)


class UnknownClassificationError(RuntimeError):
    """Raised when a record carries a classification the engine cannot act on."""


@dataclass(frozen=True, slots=True)
class LatestError:
    worker_id: str
    record: ComparisonRecord
    error: BaseException


def checksum_to_content_md5(checksum: str) -> str:
    """Re-encode a hex md5 digest as the base64 ``Content-MD5`` header value."""
    return base64.b64encode(bytes.fromhex(checksum)).decode("ascii")


class TransferWorker:
    """Drains a shared :class:`WorkQueue`, uploading or deleting one record at a time.

    Failures are kept per record in this worker's error log, oldest first. A
    record leaves the log only through a successful :meth:`retry`.
    """

    def __init__(
        self,
        worker_id: str,
        queue: WorkQueue,
        *,
        bucket: str,
        client: Any,
        source_dir: Path,
        metadata: Mapping[str, ObjectMetadata | None] | None = None,
        force: bool = False,
    ) -> None:
        self.worker_id = worker_id
        self.queue = queue
        self.bucket = bucket
        self.client = client
        self.source_dir = source_dir
        self.metadata = metadata or {}
        self.force = force
        self._runs = 0
        self._errors: dict[ComparisonRecord, list[BaseException]] = {}

    @property
    def run_count(self) -> int:
        return self._runs

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def errors(self) -> dict[ComparisonRecord, list[BaseException]]:
        return {record: list(history) for record, history in self._errors.items()}

    def latest_errors(self) -> Iterator[LatestError]:
        for record, history in self._errors.items():
            yield LatestError(worker_id=self.worker_id, record=record, error=history[-1])

    def run(self) -> Iterator[TransferResult]:
        if self._runs:
            logger.warning(
                "Worker %s is being run again rather than retried; the queue is likely already drained",
                self.worker_id,
            )
        self._runs += 1

        while True:
            record = self.queue.claim()
            if record is None:
                return
            yield self.execute_transfer(record)

    def retry(self) -> Iterator[TransferResult]:
        for record in list(self._errors):
            result = self.execute_transfer(record)
            if not result.is_error:
                del self._errors[record]
                logger.info("Worker %s: retry of %s succeeded", self.worker_id, record.key)
            yield result

    def execute_transfer(self, record: ComparisonRecord) -> TransferResult:
        classification = record.classification
        if classification is CompareType.UNCHANGED and not self.force:
            return NOOP_RESULT

        if classification in (CompareType.NEW_LOCALLY, CompareType.CHANGED, CompareType.UNCHANGED):
            ok = self._put(record)
        elif classification is CompareType.REMOVED_LOCALLY:
            ok = self._delete(record)
        else:
            raise UnknownClassificationError(f"Unexpected classification for {record.key!r}: {classification!r}")

        if not ok:
            return ERROR_RESULT
        return TransferResult(TransferResultType.SUCCESS, record.size)

    def _put_kwargs(self, record: ComparisonRecord, local: LocalEntry) -> dict[str, Any]:
        """Build ``put_object`` arguments for ``record``.

        A ``ContentType`` from the metadata document replaces the type guessed
        from the file name.
        """
        kwargs: dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": record.key,
            "ContentMD5": checksum_to_content_md5(local.checksum),
            "ContentType": local.content_type,
        }
        extra = self.metadata.get(record.key)
        if extra is not None:
            kwargs.update(extra.put_kwargs())
        return kwargs

    def _put(self, record: ComparisonRecord) -> bool:
        local = record.local
        if local is None:
            raise ComparisonInvariantError(f"Cannot upload {record.key!r}: it has no local entry")
        try:
            kwargs = self._put_kwargs(record, local)
            local_path = self.source_dir / local.key
            with local_path.open("rb") as body:
                self.client.put_object(Body=body, **kwargs)
        except Exception as exc:
            self._add_error(record, exc)
            return False
        return True

    def _delete(self, record: ComparisonRecord) -> bool:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=record.key)
        except Exception as exc:
            self._add_error(record, exc)
            return False
        return True

    def _add_error(self, record: ComparisonRecord, error: BaseException) -> None:
        history = self._errors.setdefault(record, [])
        history.append(error)
        logger.warning(
            "Worker %s: %s failed for %s (attempt %d): %s",
            self.worker_id,
            record.classification.value,
            record.key,
            len(history),
            error,
        )
