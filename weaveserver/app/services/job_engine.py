from __future__ import annotations

# Weave job execution.
#
# One job = one session directory + one weaver subprocess. The protocol is
# strictly sequential:
#
#   validate -> materialize inputs -> invoke weaver -> collect -> cleanup
#
# Expected failures (I/O, weaver errors, timeouts) come back as a JobResult with
# `exception_occurred=True`. Validation errors are raised as JobValidationError
# before anything touches the filesystem. Anything else propagates, but only
# after the session directory has been released.

import logging
import pathlib
import typing
from dataclasses import dataclass

from ..utils.fs import write_text_durable
from . import session_dirs
from .job_errors import JobValidationError, ResultCollectionError, SessionDirError
from .result_collector import collect_woven_outputs
from .session_paths import get_session_paths
from .weaver_runner import WeaverOutcome, WeaverRunConfig, run_weaver

logger = logging.getLogger(__name__)

# Written when the request carries no source file name.
FALLBACK_SOURCE_FILENAME = "source"


@dataclass(frozen=True)
class JobRequest:
    tool: str
    source_code: str
    source_filename: str
    script_code: str
    session_dir: pathlib.Path
    args: tuple[str, ...] = ()


@dataclass(frozen=True)
class JobResult:
    file_names: tuple[str, ...] = ()
    outputs: tuple[str, ...] = ()
    main_file_index: int = -1
    console_log: str = ""
    exception_occurred: bool = False

    @classmethod
    def failed(cls, console_log: str) -> "JobResult":
        return cls(console_log=console_log, exception_occurred=True)


@dataclass(frozen=True)
class EngineConfig:
    launcher: str = "npx"
    script_ext: str = "js"
    timeout_seconds: float | None = None
    max_console_log_bytes: int = 5_242_880
    run_mode: str = "classic"


def validate_request(request: JobRequest) -> None:
    if not request.tool:
        raise JobValidationError("tool", "Missing required parameters: tool")
    if not request.source_code:
        raise JobValidationError("sourceCode", "Missing required parameters: sourceCode")
    if not request.script_code:
        raise JobValidationError("scriptCode", "Missing required parameters: scriptCode")

    name = request.source_filename
    if name and (name in (".", "..") or "/" in name or "\\" in name or "\x00" in name):
        raise JobValidationError("sourceFilename", f"Invalid source file name: {name!r}")


def build_weaver_argv(
    *,
    tool: str,
    run_mode: str,
    script_path: pathlib.Path,
    input_path: pathlib.Path,
    output_dir: pathlib.Path,
    args: typing.Sequence[str],
) -> list[str]:
    return [
        tool,
        run_mode,
        str(script_path),
        "-p",
        str(input_path),
        "-o",
        str(output_dir),
        *args,
    ]


class JobEngine:
    # Run weave jobs end-to-end inside their own session directory.
    def __init__(self, config: EngineConfig):
        self._config = config

    def execute_job(self, request: JobRequest) -> JobResult:
        validate_request(request)

        session_root = pathlib.Path(request.session_dir)
        logger.info("job started session=%s tool=%s", session_root.name, request.tool)

        try:
            with session_dirs.session_dir(session_root.parent, session_root.name) as root:
                result = self._run_in_session(request=request, root=root)
        except SessionDirError as exc:
            # Creation failed, or removal failed after the job had finished normally.
            logger.error("session dir error session=%s: %s", session_root.name, exc)
            return JobResult.failed(str(exc))

        logger.info(
            "job finished session=%s exception_occurred=%s files=%d",
            session_root.name,
            result.exception_occurred,
            len(result.file_names),
        )
        return result

    def _run_in_session(self, *, request: JobRequest, root: pathlib.Path) -> JobResult:
        paths = get_session_paths(
            session_dir=root,
            source_filename=request.source_filename or FALLBACK_SOURCE_FILENAME,
            script_ext=self._config.script_ext,
        )

        try:
            write_text_durable(paths.source_file, request.source_code)
            write_text_durable(paths.script_file, request.script_code)
        except OSError as exc:
            logger.error("writing job inputs failed session=%s: %s", root.name, exc)
            return JobResult.failed(f"Error writing job inputs: {exc}")

        argv = build_weaver_argv(
            tool=request.tool,
            run_mode=self._config.run_mode,
            script_path=paths.script_file,
            input_path=paths.source_file,
            output_dir=paths.root,
            args=request.args,
        )
        outcome = self.run_weaver(argv=argv)
        if not outcome.succeeded:
            return JobResult.failed(outcome.console_log)

        try:
            collected = collect_woven_outputs(woven_dir=paths.woven_dir, source_filename=request.source_filename)
        except ResultCollectionError as exc:
            logger.error("collecting woven outputs failed session=%s: %s", root.name, exc)
            return JobResult(console_log=outcome.console_log, exception_occurred=True)

        return JobResult(
            file_names=collected.file_names,
            outputs=collected.outputs,
            main_file_index=collected.main_file_index,
            console_log=outcome.console_log,
            exception_occurred=False,
        )

    def run_weaver(self, *, argv: list[str]) -> WeaverOutcome:
        # Separate method so tests can substitute the subprocess.
        return run_weaver(
            config=WeaverRunConfig(
                launcher=self._config.launcher,
                argv=argv,
                timeout_seconds=self._config.timeout_seconds,
                max_log_bytes=self._config.max_console_log_bytes,
            )
        )
