"""
Per-storage execution lanes.

Writes run on a single-thread executor, so they execute one at a time in
submission order. Reads run on a multi-thread executor and may overlap each
other. The two lanes do not exclude each other: a read can run while a write
to the same key is in flight.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, TypeVar

from kvdisk.logging import get_logger, log_context

logger = get_logger(__name__)

R = TypeVar("R")


class OperationScheduler:
    """Serial write lane plus concurrent read lane for one storage."""

    def __init__(self, name: str, read_workers: int = 4) -> None:
        self.name = name
        self._write_lane = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"{name}.WriteQueue"
        )
        self._read_lane = ThreadPoolExecutor(
            max_workers=read_workers, thread_name_prefix=f"{name}.ReadQueue"
        )
        self._lock = threading.Lock()
        self._closed = False
        self._local = threading.local()

    @property
    def closed(self) -> bool:
        return self._closed

    def _run(
        self,
        operation: str,
        fn: Callable[[], R],
        callback: Callable[[R], None] | None,
    ) -> R:
        self._local.in_task = True
        try:
            with log_context(storage=self.name, operation=operation):
                return self._complete(fn(), callback)
        finally:
            self._local.in_task = False

    def _complete(self, result: R, callback: Callable[[R], None] | None) -> R:
        if callback is not None:
            try:
                callback(result)
            except Exception:
                logger.exception("Completion callback raised")
        return result

    def _submit(
        self,
        lane: ThreadPoolExecutor,
        operation: str,
        fn: Callable[[], R],
        callback: Callable[[R], None] | None,
    ) -> Future[R]:
        with self._lock:
            if self._closed:
                raise RuntimeError(f"Storage {self.name} is closed")
            return lane.submit(self._run, operation, fn, callback)

    def submit_write(
        self,
        operation: str,
        fn: Callable[[], R],
        callback: Callable[[R], None] | None = None,
    ) -> Future[R]:
        """Queue ``fn`` on the write lane; ``callback`` gets its result before the future resolves."""
        return self._submit(self._write_lane, operation, fn, callback)

    def submit_read(
        self,
        operation: str,
        fn: Callable[[], R],
        callback: Callable[[R], None] | None = None,
    ) -> Future[R]:
        """Queue ``fn`` on the read lane."""
        return self._submit(self._read_lane, operation, fn, callback)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; with ``wait`` block until queued work has run.

        Called from one of this scheduler's own tasks or callbacks, the
        lanes shut down without waiting. Work already queued still runs.
        """
        with self._lock:
            self._closed = True
        if getattr(self._local, "in_task", False):
            wait = False
        self._write_lane.shutdown(wait=wait)
        self._read_lane.shutdown(wait=wait)
