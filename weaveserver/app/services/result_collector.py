from __future__ import annotations

"""Collect woven output files from a finished session directory."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..utils.fs import read_text
from .job_errors import ResultCollectionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectedOutputs:
    file_names: tuple[str, ...]
    outputs: tuple[str, ...]
    main_file_index: int


def collect_woven_outputs(*, woven_dir: Path, source_filename: str) -> CollectedOutputs:
    """Read every file in a session's `woven_code` directory.

    Entries keep `os.listdir` order; no sorting is applied, so the fallback
    main file (index 0) is whatever the filesystem lists first.

    Raises:
        ResultCollectionError: the directory is missing or a file cannot be read.
    """

    woven_dir = Path(woven_dir)
    try:
        entries = os.listdir(woven_dir)
    except OSError as exc:
        raise ResultCollectionError(exc.errno, f"Error reading directory '{woven_dir}': {exc.strerror or exc}") from exc

    logger.debug("found files in '%s': %s", woven_dir, entries)

    file_names: list[str] = []
    outputs: list[str] = []
    main_file_index = -1
    for name in entries:
        path = woven_dir / name
        if path.is_dir():
            continue
        try:
            data = read_text(path)
        except OSError as exc:
            raise ResultCollectionError(exc.errno, f"Error reading file '{path}': {exc.strerror or exc}") from exc
        if name == source_filename and main_file_index == -1:
            main_file_index = len(file_names)
        file_names.append(name)
        outputs.append(data)

    if main_file_index == -1 and file_names:
        main_file_index = 0

    return CollectedOutputs(file_names=tuple(file_names), outputs=tuple(outputs), main_file_index=main_file_index)
