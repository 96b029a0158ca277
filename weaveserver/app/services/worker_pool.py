from __future__ import annotations

# Fixed-size worker pool for weave jobs.
#
# N slots, fixed at construction. Jobs submitted while every slot is busy wait
# in arrival order; the queue lives in process memory only, so queued and
# running jobs are lost if the process dies.

import asyncio
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from .job_engine import JobEngine, JobRequest, JobResult, validate_request
from .job_errors import JobValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoolStats:
    size: int
    active: int
    queued: int


class WorkerPool:
    # Bounded dispatcher in front of JobEngine.execute_job.
    def __init__(self, *, engine: JobEngine, size: int):
        if size < 1:
            raise ValueError("worker pool size must be >= 1")
        self._engine = engine
        self._size = int(size)
        self._executor = ThreadPoolExecutor(max_workers=self._size, thread_name_prefix="weave-worker")
        self._lock = threading.Lock()
        self._active = 0
        self._queued = 0
        self._closed = False

    def stats(self) -> PoolStats:
        with self._lock:
            return PoolStats(size=self._size, active=self._active, queued=self._queued)

    def submit(self, request: JobRequest) -> Future[JobResult]:
        # Reject invalid requests before they take a place in the queue.
        validate_request(request)
        with self._lock:
            if self._closed:
                raise RuntimeError("worker_pool_closed")
            self._queued += 1
            # ThreadPoolExecutor hands work out in FIFO order.
            future = self._executor.submit(self._run_slot, request)
        # Outside the lock: the callback runs inline if the future is already done.
        future.add_done_callback(self._forget_cancelled)
        return future

    def run(self, request: JobRequest) -> JobResult:
        return self.submit(request).result()

    async def run_async(self, request: JobRequest) -> JobResult:
        return await asyncio.wrap_future(self.submit(request))

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)

    def _forget_cancelled(self, future: Future[JobResult]) -> None:
        # A cancelled future never reaches _run_slot, so it is still counted as queued.
        if future.cancelled():
            with self._lock:
                self._queued -= 1

    def _run_slot(self, request: JobRequest) -> JobResult:
        with self._lock:
            self._queued -= 1
            self._active += 1
        try:
            return self._engine.execute_job(request)
        except JobValidationError:
            raise
        except Exception:
            logger.exception("weave job crashed session=%s", request.session_dir)
            raise
        finally:
            with self._lock:
                self._active -= 1
