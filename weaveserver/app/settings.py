from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="WEAVESERVER_", extra="ignore")

    # Paths
    temp_root: str = "temp"

    # Worker pool
    worker_count: int = 6

    # Weaver tool
    # The request's `tool` is passed as the first argument to the launcher,
    # e.g. `npx clava classic ...`.
    tool_launcher: str = "npx"
    script_ext: str = "js"
    # Seconds before a running tool is killed and the job is failed. 0 disables the deadline.
    job_timeout_seconds: float = 300.0

    # Output limits
    max_console_log_bytes: int = 5_242_880  # 5MB

    # HTTP
    cors_allow_origins: tuple[str, ...] = ("*",)

    # Sweeper
    session_ttl_minutes: int = 60

    def ensure_dirs(self) -> None:
        Path(self.temp_root).mkdir(parents=True, exist_ok=True)

    def effective_timeout(self) -> float | None:
        return self.job_timeout_seconds if self.job_timeout_seconds > 0 else None


SETTINGS = Settings()
