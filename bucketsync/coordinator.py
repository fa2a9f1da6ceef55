from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from bucketsync.models import TransferResult
from bucketsync.transfer import LatestError, TransferWorker


logger = logging.getLogger(__name__)

ResultListener = Callable[[str, TransferResult], None]


class SuccessTracker:
    """Folds each worker's result stream into a single success flag."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._succeeded: dict[str, bool] = {}

    def __call__(self, worker_id: str, result: TransferResult) -> None:
        with self._lock:
            self._succeeded[worker_id] = self._succeeded.get(worker_id, True) and not result.is_error

    def start(self, worker_ids: Iterable[str]) -> None:
        with self._lock:
            self._succeeded = {worker_id: True for worker_id in worker_ids}

    def worker_succeeded(self, worker_id: str) -> bool:
        with self._lock:
            return self._succeeded.get(worker_id, True)

    @property
    def all_succeeded(self) -> bool:
        with self._lock:
            return all(self._succeeded.values())


class RunCoordinator:
    def __init__(
        self,
        workers: Sequence[TransferWorker],
        *,
        listeners: Sequence[ResultListener] = (),
    ) -> None:
        if not workers:
            raise ValueError("RunCoordinator needs at least one worker")
        self.workers = list(workers)
        self.tracker = SuccessTracker()
        self._listeners: list[ResultListener] = [self.tracker, *listeners]
        self._abort = threading.Event()

    def add_listener(self, listener: ResultListener) -> None:
        self._listeners.append(listener)

    def _dispatch(self, worker_id: str, result: TransferResult) -> None:
        for listener in self._listeners:
            listener(worker_id, result)

    def _drain(self, worker: TransferWorker, stream: Callable[[TransferWorker], Iterator[TransferResult]]) -> None:
        # The next record is only claimed when the loop asks for another result.
        try:
            for result in stream(worker):
                self._dispatch(worker.worker_id, result)
                if self._abort.is_set():
                    logger.debug("Worker %s stopping: run aborted", worker.worker_id)
                    return
        except Exception:
            self._abort.set()
            raise

    def _run_all(self, stream: Callable[[TransferWorker], Iterator[TransferResult]]) -> bool:
        self._abort.clear()
        self.tracker.start(worker.worker_id for worker in self.workers)
        with ThreadPoolExecutor(
            max_workers=len(self.workers), thread_name_prefix="bucketsync-worker"
        ) as executor:
            futures: dict[Future[None], str] = {
                executor.submit(self._drain, worker, stream): worker.worker_id
                for worker in self.workers
            }
            try:
                for future in as_completed(futures):
                    future.result()
            except Exception:
                self._abort.set()
                for future in futures:
                    future.cancel()
                raise
        return self.tracker.all_succeeded

    def run(self) -> bool:
        """Run every worker until the shared queue is drained.

        Returns True when no worker observed an error result.
        """
        logger.info("Starting %d transfer worker(s)", len(self.workers))
        succeeded = self._run_all(lambda worker: worker.run())
        logger.info("Transfer run finished: %s", "success" if succeeded else "with errors")
        return succeeded

    def retry(self) -> bool:
        """Re-attempt every record currently in any worker's error log.

        Returns True when every retried record went through.
        """
        if not self.has_errors:
            return True
        logger.info("Retrying failed transfers")
        return self._run_all(lambda worker: worker.retry())

    @property
    def has_errors(self) -> bool:
        return any(worker.has_errors for worker in self.workers)

    @property
    def succeeded(self) -> bool:
        return not self.has_errors

    def latest_errors(self) -> Iterator[LatestError]:
        for worker in self.workers:
            yield from worker.latest_errors()
