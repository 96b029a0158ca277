from __future__ import annotations

"""Weaver subprocess runner.

Runs the external weaving tool as a child process in its own process group,
captures stdout/stderr in full and classifies the outcome:

1. launch failure (executable missing, spawn error) -> failed
2. deadline exceeded -> process group killed, failed
3. non-zero exit code -> failed
4. stderr mentions "error" (case-insensitive) -> failed
5. otherwise -> succeeded

Rule 4 catches tools that print errors but still exit 0. It also matches
harmless messages that merely contain the word, and is kept as-is for
compatibility with existing clients.
"""

import logging
import os
import re
import shlex
import signal
import subprocess
from dataclasses import dataclass
from typing import Literal

from ._console_log import cap_console_log, decode_stream, join_log

logger = logging.getLogger(__name__)

STDERR_ERROR_RE = re.compile(r"error", re.IGNORECASE)
KILL_GRACE_SECONDS = 5.0

WeaverStatus = Literal["succeeded", "failed"]


def stop_process_tree(process: subprocess.Popen[bytes], *, sig: int = signal.SIGTERM) -> None:
    """Signal a weaver process and its process group.

    Args:
        process: Running process handle.
        sig: Signal to deliver.
    """

    try:
        os.killpg(os.getpgid(process.pid), sig)
    except OSError:
        try:
            process.send_signal(sig)
        except ProcessLookupError:
            return


@dataclass(frozen=True)
class WeaverRunConfig:
    """Configuration for `run_weaver`."""

    launcher: str
    argv: list[str]
    timeout_seconds: float | None = None
    max_log_bytes: int = 5_242_880


@dataclass(frozen=True)
class WeaverOutcome:
    status: WeaverStatus
    console_log: str
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = None
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


def format_command(cmd: list[str]) -> str:
    return " ".join(shlex.quote(part) for part in cmd)


def classify_exit(*, cmd: list[str], stdout: str, stderr: str, exit_code: int) -> tuple[WeaverStatus, str]:
    """Classify a finished weaver run. Returns (status, console_log)."""

    if exit_code != 0:
        description = f"Command failed (exit code {exit_code}): {format_command(cmd)}"
        if stderr:
            description += f"\n{stderr}"
        return "failed", join_log(stdout, description)
    if stderr and STDERR_ERROR_RE.search(stderr):
        return "failed", join_log(stdout, f"Weaver reported errors on stderr:\n{stderr}")
    return "succeeded", stdout


def _kill_and_drain(process: subprocess.Popen[bytes]) -> tuple[bytes, bytes]:
    stop_process_tree(process)
    try:
        return process.communicate(timeout=KILL_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        stop_process_tree(process, sig=signal.SIGKILL)
        return process.communicate()


def run_weaver(*, config: WeaverRunConfig) -> WeaverOutcome:
    """Run the weaver and wait for it to finish (or hit the deadline).

    Args:
        config: Runner config.

    Returns:
        The classified outcome. Never raises for tool failures.
    """

    cmd = [config.launcher, *config.argv]
    logger.info("running command: %s", format_command(cmd))

    try:
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            stdin=subprocess.DEVNULL,
            start_new_session=True,
        )
    except (OSError, ValueError, subprocess.SubprocessError) as exc:
        logger.warning("weaver launch failed: %s", exc)
        return WeaverOutcome(
            status="failed",
            console_log=f"Failed to launch weaver: {type(exc).__name__}: {exc}",
        )

    try:
        raw_out, raw_err = process.communicate(timeout=config.timeout_seconds)
    except subprocess.TimeoutExpired:
        raw_out, raw_err = _kill_and_drain(process)
        stdout = decode_stream(raw_out)
        description = f"Weaver timed out after {config.timeout_seconds:g}s and was terminated: {format_command(cmd)}"
        logger.warning("weaver timed out pid=%s after %ss", process.pid, config.timeout_seconds)
        return WeaverOutcome(
            status="failed",
            console_log=cap_console_log(join_log(stdout, description), max_bytes=config.max_log_bytes),
            stdout=stdout,
            stderr=decode_stream(raw_err),
            exit_code=process.returncode,
            timed_out=True,
        )
    except BaseException:
        # Interrupted while waiting; do not leave the tool running.
        _kill_and_drain(process)
        raise

    stdout = decode_stream(raw_out)
    stderr = decode_stream(raw_err)
    exit_code = int(process.returncode or 0)
    status, console_log = classify_exit(cmd=cmd, stdout=stdout, stderr=stderr, exit_code=exit_code)
    logger.info("weaver finished pid=%s exit_code=%s status=%s", process.pid, exit_code, status)
    return WeaverOutcome(
        status=status,
        console_log=cap_console_log(console_log, max_bytes=config.max_log_bytes),
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
    )
