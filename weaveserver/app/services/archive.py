from __future__ import annotations

import io
import zipfile
from pathlib import PurePosixPath

from .job_engine import JobResult
from .session_paths import WOVEN_DIR_NAME


def zip_job_outputs(result: JobResult, *, folder: str = WOVEN_DIR_NAME) -> bytes:
    """
    Pack a job's woven files into an in-memory zip.

    Files are stored under `<folder>/` in result order.
    """

    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        for name, content in zip(result.file_names, result.outputs):
            zf.writestr(str(PurePosixPath(folder) / name), content)
    return buf.getvalue()
