from __future__ import annotations

import logging
from typing import Any

DEFAULT_STREAM_ID = "n/a"


def stream_id_of(conn: Any) -> str | None:
    return getattr(conn, "stream_id", None)


def log_event(
    logger: logging.Logger,
    message: str,
    *,
    room: str | None,
    extra: dict[str, Any] | None = None,
    stream_id: str | None = None,
    level: int = logging.INFO,
    exc_info: BaseException | None = None,
) -> None:
    """Emit a structured log message ensuring stream_id is always present."""
    extra_payload = dict(extra or {})
    extra_payload.setdefault("room", room)
    resolved_stream_id = extra_payload.get("stream_id") or stream_id or DEFAULT_STREAM_ID
    extra_payload["stream_id"] = resolved_stream_id
    logger.log(level, message, extra=extra_payload, exc_info=exc_info)
