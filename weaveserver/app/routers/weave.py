from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from typing import Annotated

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict, Field

from ..deps import WorkerPoolDep
from ..services.archive import zip_job_outputs
from ..services.job_engine import JobRequest, JobResult
from ..services.job_errors import JobValidationError
from ..utils.errors import http_error


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/weave", tags=["weave"])


class WeaveResult(BaseModel):
    # Wire names are the ones the web editor already consumes.
    model_config = ConfigDict(populate_by_name=True)

    file_names: list[str] = Field(default_factory=list, alias="fileNames")
    outputs: list[str] = Field(default_factory=list)
    main_file: int = Field(-1, alias="mainFile")
    console: str = ""
    exception_occurred: bool = Field(False, alias="exceptionOccured")

    @classmethod
    def from_job_result(cls, result: JobResult) -> "WeaveResult":
        return cls(
            file_names=list(result.file_names),
            outputs=list(result.outputs),
            main_file=result.main_file_index,
            console=result.console_log,
            exception_occurred=result.exception_occurred,
        )


class WeaveResponse(BaseModel):
    result: WeaveResult


def parse_flags(raw: str) -> tuple[str, ...]:
    try:
        flags = json.loads(raw or "[]")
    except ValueError:
        http_error(400, "invalid_flags", "flags must be a JSON array of strings")
    if not isinstance(flags, list) or not all(isinstance(flag, str) for flag in flags):
        http_error(400, "invalid_flags", "flags must be a JSON array of strings")
    return tuple(flags)


def new_session_dir(temp_root: Path) -> Path:
    return temp_root / uuid.uuid4().hex


def weave_job_request(
    request: Request,
    tool: Annotated[str, Form()] = "",
    source_code: Annotated[str, Form(alias="sourceCode")] = "",
    source_filename: Annotated[str, Form(alias="sourceFilename")] = "",
    script: Annotated[str, Form()] = "",
    flags: Annotated[str, Form()] = "[]",
) -> JobRequest:
    session_dir = new_session_dir(Path(request.app.state.temp_root))
    logger.info("weave request received session=%s tool=%s", session_dir.name, tool)
    logger.debug("sourceFilename=%r flags=%s", source_filename, flags)
    return JobRequest(
        tool=tool.strip(),
        source_code=source_code,
        source_filename=source_filename,
        script_code=script,
        args=parse_flags(flags),
        session_dir=session_dir,
    )


JobRequestDep = Annotated[JobRequest, Depends(weave_job_request)]


async def run_weave_job(*, pool: WorkerPoolDep, job: JobRequest) -> JobResult:
    try:
        return await pool.run_async(job)
    except JobValidationError:
        raise
    except Exception as exc:
        logger.exception("weave job failed unexpectedly session=%s", job.session_dir.name)
        return JobResult.failed(str(exc))


@router.post("", response_model=WeaveResponse)
async def weave(pool: WorkerPoolDep, job: JobRequestDep):
    result = await run_weave_job(pool=pool, job=job)
    return WeaveResponse(result=WeaveResult.from_job_result(result))


@router.post("/archive", response_model=WeaveResponse)
async def weave_archive(pool: WorkerPoolDep, job: JobRequestDep):
    result = await run_weave_job(pool=pool, job=job)
    if result.exception_occurred:
        return WeaveResponse(result=WeaveResult.from_job_result(result))
    return Response(
        content=zip_job_outputs(result),
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="woven_code.zip"'},
    )
