from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .exceptions import install_exception_handlers
from .routers import health, weave
from .services.job_engine import EngineConfig, JobEngine
from .services.worker_pool import WorkerPool
from .settings import SETTINGS, Settings

logger = logging.getLogger(__name__)


def build_worker_pool(settings: Settings) -> WorkerPool:
    engine = JobEngine(
        EngineConfig(
            launcher=settings.tool_launcher,
            script_ext=settings.script_ext,
            timeout_seconds=settings.effective_timeout(),
            max_console_log_bytes=settings.max_console_log_bytes,
        )
    )
    return WorkerPool(engine=engine, size=settings.worker_count)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    pool: WorkerPool | None = getattr(app.state, "worker_pool", None)
    if pool is not None:
        pool.shutdown(wait=True)


def create_app(settings: Settings = SETTINGS) -> FastAPI:
    settings.ensure_dirs()

    app = FastAPI(title="weaveserver", version="0.1.0", lifespan=lifespan)
    install_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(weave.router, prefix="/api")

    # One pool per app; routes reach it through deps.get_worker_pool.
    app.state.temp_root = Path(settings.temp_root)
    app.state.worker_pool = build_worker_pool(settings)
    logger.info(
        "weaveserver ready temp_root=%s workers=%d launcher=%s timeout=%s",
        settings.temp_root,
        settings.worker_count,
        settings.tool_launcher,
        settings.effective_timeout(),
    )
    return app


app = create_app()
