from __future__ import annotations

import json
import re
from typing import Any

from roomcast.errors import SerializationError

LINE_BREAK = re.compile(r"\r\n|\r|\n")
KEEPALIVE_FRAME = b": keepalive\n\n"


def serialize_data(data: Any) -> str:
    """Render a payload as the text carried by `data:` lines.

    Binary payloads are sent as their decoded text; everything else is JSON.
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data).decode("utf-8", errors="replace")
    try:
        return json.dumps(data, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(f"Cannot serialize event data: {e}") from e


def encode_frame(
    event: str | None,
    data: Any,
    *,
    id: str | None = None,
    retry: int | None = None,
    default_event: str = "message",
) -> bytes:
    lines = []
    if event is not None and event != default_event:
        lines.append(f"event: {event}")
    if id is not None:
        lines.append(f"id: {id}")
    if retry is not None:
        lines.append(f"retry: {retry}")
    for chunk in LINE_BREAK.split(serialize_data(data)):
        lines.append(f"data: {chunk}")
    return ("\n".join(lines) + "\n\n").encode("utf-8")
