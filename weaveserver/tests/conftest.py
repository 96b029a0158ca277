from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

FAKE_WEAVER = Path(__file__).resolve().parent / "fake_weaver.py"


def _init_test_env() -> None:
    """
    Initialize isolated test env before importing weaveserver modules.

    This must run at module import time, because settings are created during
    module import and read env vars only once.
    """

    root = Path(tempfile.mkdtemp(prefix="weaveserver-pytest-"))
    os.environ["WEAVESERVER_TEMP_ROOT"] = str(root / "temp")
    os.environ["WEAVESERVER_TOOL_LAUNCHER"] = sys.executable
    os.environ.setdefault("WEAVESERVER_WORKER_COUNT", "2")
    os.environ.setdefault("WEAVESERVER_JOB_TIMEOUT_SECONDS", "30")


_init_test_env()


@pytest.fixture(scope="session")
def fake_tool() -> str:
    return str(FAKE_WEAVER)


@pytest.fixture(scope="session")
def client():
    from weaveserver.app.main import app  # noqa: WPS433

    return TestClient(app)


@pytest.fixture
def engine():
    from weaveserver.app.services.job_engine import EngineConfig, JobEngine  # noqa: WPS433

    return JobEngine(EngineConfig(launcher=sys.executable, timeout_seconds=30))


@pytest.fixture
def make_request(tmp_path: Path, fake_tool: str):
    from weaveserver.app.services.job_engine import JobRequest  # noqa: WPS433

    def _make(
        script: str,
        *,
        source_code: str = "int main() { return 0; }\n",
        source_filename: str = "main.cpp",
        tool: str | None = None,
        args: tuple[str, ...] = (),
    ) -> JobRequest:
        return JobRequest(
            tool=fake_tool if tool is None else tool,
            source_code=source_code,
            source_filename=source_filename,
            script_code=script,
            args=args,
            session_dir=tmp_path / "temp" / uuid4().hex,
        )

    return _make
