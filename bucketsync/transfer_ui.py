from __future__ import annotations

import threading

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeRemainingColumn,
)

from bucketsync.models import TransferResult


class TransferProgressUI:
    """Files, bytes and errors bars fed by transfer results.

    Usable as a coordinator result listener; nothing in the run depends on it.
    """

    def __init__(
        self,
        total_files: int,
        total_bytes: int,
        *,
        console: Console | None = None,
    ) -> None:
        self.total_files = total_files
        self.total_bytes = total_bytes
        self._lock = threading.Lock()
        self._progress = Progress(
            TextColumn("[bold]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("{task.fields[detail]}"),
            TimeRemainingColumn(),
            console=console,
            transient=False,
            expand=True,
        )
        self._files_task = self._progress.add_task("Files", total=total_files, detail="")
        self._bytes_task = self._progress.add_task("Bytes", total=max(total_bytes, 1), detail="")
        self._errors_task = self._progress.add_task(
            "[red]Errors", total=max(total_files, 1), detail=""
        )
        self.files_done = 0
        self.bytes_done = 0
        self.errors = 0

    def __enter__(self) -> "TransferProgressUI":
        self._progress.__enter__()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._progress.__exit__(exc_type, exc, tb)

    def __call__(self, worker_id: str, result: TransferResult) -> None:
        self.report(result)

    def report(self, result: TransferResult) -> None:
        with self._lock:
            if result.is_error:
                self.errors += 1
                self._progress.update(self._errors_task, advance=1, detail=f"{self.errors}")
                return
            self.files_done += 1
            self.bytes_done += result.size
            self._progress.update(
                self._files_task, advance=1, detail=f"{self.files_done}/{self.total_files}"
            )
            self._progress.update(self._bytes_task, advance=result.size, detail=f"{self.bytes_done} B")
