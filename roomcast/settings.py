from __future__ import annotations

import os
from dataclasses import dataclass


def _env(key: str, default: str) -> str:
    v = os.getenv(key)
    return v if v is not None and v != "" else default


def _env_int(key: str, default: int) -> int:
    v = os.getenv(key)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Server
    host: str = _env("ROOMCAST_HOST", "127.0.0.1")
    port: int = _env_int("ROOMCAST_PORT", 30450)

    # Frames
    default_event: str = _env("ROOMCAST_DEFAULT_EVENT", "message")

    # Streams
    stream_queue_size: int = _env_int("ROOMCAST_QUEUE_SIZE", 256)
    keepalive_sec: int = _env_int("ROOMCAST_KEEPALIVE_SEC", 15)


settings = Settings()
