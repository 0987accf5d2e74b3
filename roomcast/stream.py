from __future__ import annotations

import asyncio
import uuid
from typing import AsyncIterator, Awaitable, Callable, Dict, Mapping, Optional, Protocol, Union

from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from roomcast.errors import WriteError
from roomcast.frames import KEEPALIVE_FRAME
from roomcast.settings import settings


class Streamable(Protocol):
    """What the broadcaster needs from a connection."""

    @property
    def headers_sent(self) -> bool: ...

    def send_headers(self, status: int, headers: Mapping[str, str]) -> None: ...

    def disable_buffering(self) -> None: ...

    def write(self, chunk: bytes) -> Union[None, Awaitable[None]]: ...


_CLOSE = object()


class EventStream:
    """Queue-backed SSE connection served through a Starlette StreamingResponse.

    The broadcaster writes frames without blocking; the response body drains
    them to the client. Writes fail once the stream is closed or its queue is
    full, so a slow client only loses its own frames.
    """

    def __init__(
        self,
        *,
        queue_size: Optional[int] = None,
        keepalive_sec: Optional[float] = None,
    ) -> None:
        self.stream_id = uuid.uuid4().hex
        self.status_code = 200
        self.headers: Dict[str, str] = {}
        self.keepalive_sec = keepalive_sec if keepalive_sec is not None else settings.keepalive_sec
        self._queue: asyncio.Queue = asyncio.Queue(
            maxsize=queue_size if queue_size is not None else settings.stream_queue_size
        )
        self._headers_sent = False
        self._closed = False

    @property
    def headers_sent(self) -> bool:
        return self._headers_sent

    @property
    def closed(self) -> bool:
        return self._closed

    def send_headers(self, status: int, headers: Mapping[str, str]) -> None:
        if self._headers_sent:
            raise RuntimeError("headers are already sent")
        self.status_code = status
        self.headers.update(headers)
        self._headers_sent = True

    def disable_buffering(self) -> None:
        # Reverse proxies (nginx) buffer responses unless told otherwise.
        self.headers["X-Accel-Buffering"] = "no"

    def write(self, chunk: bytes) -> None:
        if self._closed:
            raise WriteError("stream is closed")
        try:
            self._queue.put_nowait(chunk)
        except asyncio.QueueFull as e:
            raise WriteError("stream queue is full") from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSE)
        except asyncio.QueueFull:
            # The reader stops on the closed flag once the backlog drains.
            pass

    async def frames(self) -> AsyncIterator[bytes]:
        while True:
            if self._closed and self._queue.empty():
                return
            try:
                chunk = await asyncio.wait_for(self._queue.get(), timeout=self.keepalive_sec)
            except asyncio.TimeoutError:
                yield KEEPALIVE_FRAME
                continue
            if chunk is _CLOSE:
                return
            yield chunk

    def response(self, on_close: Optional[Callable[[], None]] = None) -> StreamingResponse:
        """Build the streaming response.

        ``on_close`` runs once, either when the body ends or, if the client went
        away before the body started, from the response background task.
        """
        finished = False

        def finish() -> None:
            nonlocal finished
            if finished:
                return
            finished = True
            self.close()
            if on_close is not None:
                on_close()

        async def body() -> AsyncIterator[bytes]:
            try:
                async for chunk in self.frames():
                    yield chunk
            finally:
                finish()

        async def cleanup() -> None:
            finish()

        headers = {k: v for k, v in self.headers.items() if k.lower() != "content-type"}
        return StreamingResponse(
            body(),
            status_code=self.status_code,
            headers=headers,
            media_type=self.headers.get("Content-Type", "text/event-stream"),
            background=BackgroundTask(cleanup),
        )
