from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from .services.worker_pool import WorkerPool


def get_worker_pool(request: Request) -> WorkerPool:
    pool = getattr(request.app.state, "worker_pool", None)
    if pool is None:
        raise RuntimeError("worker_pool_not_ready")
    return pool


WorkerPoolDep = Annotated[WorkerPool, Depends(get_worker_pool)]
