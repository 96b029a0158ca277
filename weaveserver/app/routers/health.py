from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from ..deps import WorkerPoolDep


router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    workers: int
    active: int
    queued: int


@router.get("/health", response_model=HealthResponse)
def health(pool: WorkerPoolDep) -> HealthResponse:
    stats = pool.stats()
    return HealthResponse(status="healthy", workers=stats.size, active=stats.active, queued=stats.queued)
