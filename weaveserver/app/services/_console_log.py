from __future__ import annotations

"""Console log helpers for weaver processes."""

TRUNCATED_MARKER = "\n[weaveserver] console log truncated\n"


def decode_stream(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def cap_console_log(text: str, *, max_bytes: int) -> str:
    """Keep the head of `text` within `max_bytes` UTF-8 bytes."""
    raw = text.encode("utf-8")
    if max_bytes <= 0 or len(raw) <= max_bytes:
        return text
    marker = TRUNCATED_MARKER.encode("utf-8")
    if max_bytes < len(marker):
        # No room for the marker.
        return raw[:max_bytes].decode("utf-8", errors="ignore")
    head = raw[: max_bytes - len(marker)]
    return head.decode("utf-8", errors="ignore") + TRUNCATED_MARKER


def join_log(stdout: str, description: str) -> str:
    if not description:
        return stdout
    return f"{stdout}\n\n{description}"
