from __future__ import annotations

"""Per-job session directories.

Every weave job gets `<base>/<session_id>`; nothing else ever writes there, so
concurrent jobs need no locking. `session_dir` guarantees removal on every exit
path of the job, including raised faults.
"""

import contextlib
import logging
import shutil
from pathlib import Path
from typing import Iterator

from .job_errors import SessionDirError

logger = logging.getLogger(__name__)


def acquire(base: Path, session_id: str) -> Path:
    path = Path(base) / session_id
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SessionDirError(exc.errno, f"cannot create session dir {path}: {exc.strerror or exc}") from exc
    logger.debug("session dir created: %s", path)
    return path


def release(path: Path) -> None:
    """Remove a session directory tree. Missing paths are not an error."""

    path = Path(path)
    if not path.exists():
        return
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        return
    except OSError as exc:
        raise SessionDirError(exc.errno, f"cannot remove session dir {path}: {exc.strerror or exc}") from exc
    logger.debug("session dir removed: %s", path)


@contextlib.contextmanager
def session_dir(base: Path, session_id: str) -> Iterator[Path]:
    path = acquire(base, session_id)
    try:
        yield path
    except BaseException:
        # The job's own error wins over a failed removal.
        try:
            release(path)
        except SessionDirError:
            logger.exception("session dir removal failed while handling job error: %s", path)
        raise
    release(path)
