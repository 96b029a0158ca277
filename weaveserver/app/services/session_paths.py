#
# Session path helpers (per-job filesystem layout).
#
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

WOVEN_DIR_NAME = "woven_code"
SCRIPT_STEM = "exec"


@dataclass(frozen=True)
class SessionPaths:
    root: Path
    source_file: Path
    script_file: Path
    woven_dir: Path


def get_session_paths(*, session_dir: Path, source_filename: str, script_ext: str) -> SessionPaths:
    ext = script_ext.lstrip(".")
    return SessionPaths(
        root=session_dir,
        source_file=session_dir / source_filename,
        script_file=session_dir / f"{SCRIPT_STEM}.{ext}",
        woven_dir=session_dir / WOVEN_DIR_NAME,
    )
