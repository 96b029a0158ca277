#
# Error helpers.
#
from __future__ import annotations

from typing import Any

from fastapi import HTTPException


def error_body(code: str, message: str, **extra: Any) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    error.update(extra)
    return {"error": error}


def http_error(status_code: int, code: str, message: str):
    raise HTTPException(status_code=status_code, detail=error_body(code, message))
