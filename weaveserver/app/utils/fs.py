from __future__ import annotations

import os
from pathlib import Path


def write_text_durable(path: Path, text: str) -> None:
    # Returns only once the bytes are on disk; the weaver reads these files right after.
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")
