from __future__ import annotations

import io
import zipfile

from weaveserver.app.services.archive import zip_job_outputs
from weaveserver.app.services.job_engine import JobResult


def test_zip_job_outputs_keeps_result_order() -> None:
    result = JobResult(file_names=("b.h", "a.cpp"), outputs=("B", "A"), main_file_index=1)

    with zipfile.ZipFile(io.BytesIO(zip_job_outputs(result))) as zf:
        assert zf.namelist() == ["woven_code/b.h", "woven_code/a.cpp"]
        assert zf.read("woven_code/a.cpp") == b"A"


def test_zip_job_outputs_empty_result() -> None:
    with zipfile.ZipFile(io.BytesIO(zip_job_outputs(JobResult()))) as zf:
        assert zf.namelist() == []
