from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from weaveserver.app.services.job_engine import JobRequest, JobResult
from weaveserver.app.services.job_errors import JobValidationError
from weaveserver.app.services.worker_pool import WorkerPool


@dataclass
class RecordingEngine:
    delay: float = 0.05
    lock: threading.Lock = field(default_factory=threading.Lock)
    running: int = 0
    peak: int = 0
    order: list[str] = field(default_factory=list)

    def execute_job(self, request: JobRequest) -> JobResult:
        with self.lock:
            self.running += 1
            self.peak = max(self.peak, self.running)
            self.order.append(request.session_dir.name)
        try:
            time.sleep(self.delay)
            return JobResult(file_names=(request.session_dir.name,), outputs=("",), main_file_index=0)
        finally:
            with self.lock:
                self.running -= 1


def _req(tmp_path: Path, name: str) -> JobRequest:
    return JobRequest(
        tool="clava",
        source_code="int x;",
        source_filename="main.cpp",
        script_code="// script",
        session_dir=tmp_path / name,
    )


def test_pool_bounds_concurrency_and_runs_everything(tmp_path: Path) -> None:
    engine = RecordingEngine()
    pool = WorkerPool(engine=engine, size=3)  # type: ignore[arg-type]
    try:
        futures = [pool.submit(_req(tmp_path, f"s{i}")) for i in range(12)]
        results = [f.result(timeout=30) for f in futures]
    finally:
        pool.shutdown()

    assert [r.file_names[0] for r in results] == [f"s{i}" for i in range(12)]
    assert engine.peak <= 3
    assert len(engine.order) == 12


def test_single_slot_is_fifo(tmp_path: Path) -> None:
    engine = RecordingEngine(delay=0.01)
    pool = WorkerPool(engine=engine, size=1)  # type: ignore[arg-type]
    try:
        futures = [pool.submit(_req(tmp_path, f"s{i}")) for i in range(5)]
        for f in futures:
            f.result(timeout=30)
    finally:
        pool.shutdown()

    assert engine.order == [f"s{i}" for i in range(5)]
    assert engine.peak == 1


def test_invalid_request_rejected_at_submit(tmp_path: Path) -> None:
    engine = RecordingEngine()
    pool = WorkerPool(engine=engine, size=1)  # type: ignore[arg-type]
    bad = JobRequest(tool="", source_code="x", source_filename="", script_code="y", session_dir=tmp_path / "s")
    try:
        with pytest.raises(JobValidationError):
            pool.submit(bad)
    finally:
        pool.shutdown()
    assert engine.order == []


def test_stats_and_shutdown(tmp_path: Path) -> None:
    engine = RecordingEngine(delay=0.2)
    pool = WorkerPool(engine=engine, size=1)  # type: ignore[arg-type]
    futures = [pool.submit(_req(tmp_path, f"s{i}")) for i in range(3)]

    stats = pool.stats()
    assert stats.size == 1
    assert stats.active + stats.queued == 3

    for f in futures:
        f.result(timeout=30)
    assert pool.stats().active == 0
    assert pool.stats().queued == 0

    pool.shutdown()
    with pytest.raises(RuntimeError):
        pool.submit(_req(tmp_path, "late"))


def test_cancelled_queued_future_leaves_queue(tmp_path: Path) -> None:
    engine = RecordingEngine(delay=0.3)
    pool = WorkerPool(engine=engine, size=1)  # type: ignore[arg-type]
    try:
        first = pool.submit(_req(tmp_path, "first"))
        second = pool.submit(_req(tmp_path, "second"))
        assert second.cancel()

        first.result(timeout=30)
        assert pool.stats().queued == 0
        assert pool.stats().active == 0
        assert engine.order == ["first"]
    finally:
        pool.shutdown()


def test_cancelled_awaiter_leaves_queue(tmp_path: Path) -> None:
    engine = RecordingEngine(delay=0.3)
    pool = WorkerPool(engine=engine, size=1)  # type: ignore[arg-type]

    async def scenario() -> None:
        running = asyncio.ensure_future(pool.run_async(_req(tmp_path, "running")))
        waiting = asyncio.ensure_future(pool.run_async(_req(tmp_path, "waiting")))
        await asyncio.sleep(0.05)
        waiting.cancel()
        await asyncio.gather(waiting, return_exceptions=True)
        await running

    try:
        asyncio.run(scenario())
        assert pool.stats().queued == 0
        assert pool.stats().active == 0
        assert engine.order == ["running"]
    finally:
        pool.shutdown()

def test_pool_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        WorkerPool(engine=RecordingEngine(), size=0)  # type: ignore[arg-type]


def test_pool_with_real_engine_cleans_every_session(engine, make_request) -> None:
    pool = WorkerPool(engine=engine, size=2)
    requests = [make_request(f"emit out{i}.cpp {i}\n") for i in range(5)]
    try:
        results = [pool.run(req) for req in requests[:1]]
        results += [f.result(timeout=60) for f in [pool.submit(req) for req in requests[1:]]]
    finally:
        pool.shutdown()

    for i, (req, result) in enumerate(zip(requests, results)):
        assert result.exception_occurred is False
        assert result.file_names == (f"out{i}.cpp",)
        assert not req.session_dir.exists()
