from __future__ import annotations

# Remove session directories left behind under the temp root.
#
# Jobs release their own directory, so anything older than the TTL belongs to
# a job that was running when the server process died.

import argparse
import time
from pathlib import Path

from .services import session_dirs
from .services.job_errors import SessionDirError
from .settings import SETTINGS


def _is_stale(session_dir: Path, *, now: float, ttl_seconds: float) -> bool:
    try:
        mtime = session_dir.stat().st_mtime
    except FileNotFoundError:
        return False
    return now - mtime >= ttl_seconds


def _cleanup_session_dir(session_dir: Path, *, dry_run: bool) -> bool:
    if dry_run:
        print(f"[dry-run] would remove session dir {session_dir}")
        return True
    try:
        session_dirs.release(session_dir)
    except SessionDirError as exc:
        print(f"[cleanup] failed to remove {session_dir}: {exc}")
        return False
    print(f"[cleanup] removed session dir {session_dir}")
    return True


def cleanup_stale_sessions(*, temp_root: Path, ttl_seconds: float, dry_run: bool = False, now: float | None = None) -> list[Path]:
    now = time.time() if now is None else now
    removed: list[Path] = []
    if not temp_root.exists():
        return removed
    for session_dir in temp_root.iterdir():
        if not session_dir.is_dir():
            continue
        if not _is_stale(session_dir, now=now, ttl_seconds=ttl_seconds):
            continue
        if _cleanup_session_dir(session_dir, dry_run=dry_run):
            removed.append(session_dir)
    return removed


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--temp-root", default=SETTINGS.temp_root)
    ap.add_argument("--ttl-minutes", type=int, default=SETTINGS.session_ttl_minutes)
    ap.add_argument("--dry-run", action="store_true")
    args = ap.parse_args(argv)

    cleanup_stale_sessions(
        temp_root=Path(args.temp_root),
        ttl_seconds=args.ttl_minutes * 60,
        dry_run=args.dry_run,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
