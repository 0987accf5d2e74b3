"""
Room-based broadcaster for Server-Sent-Events connections.

Connections subscribe to named rooms; publishing to a room writes one
encoded frame to each of its subscribers. Delivery failures are isolated
per subscriber and surfaced through the publish callback or the
``error`` signal, never raised out of ``publish()``.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import threading
import weakref
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError

from roomcast.errors import (
    HEADERS_SENT_WARNING,
    DeliveryError,
    InvalidArgumentError,
    SerializationError,
    WriteError,
)
from roomcast.frames import encode_frame
from roomcast.logging_setup import log_event, stream_id_of
from roomcast.schemas import PublishOptions
from roomcast.settings import settings

if TYPE_CHECKING:
    from roomcast.stream import Streamable

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}

# Marks an omitted positional argument; ``None`` is a valid payload.
MISSING: Any = object()

PublishCallback = Callable[[Optional[BaseException], Any], None]


@dataclass(frozen=True)
class PublishRecord:
    room: str
    event: Optional[str]
    data: Any = None
    id: Optional[str] = None
    retry: Optional[int] = None
    callback: Optional[PublishCallback] = None


def _check_room(room: Any) -> None:
    if not isinstance(room, str) or not room:
        raise InvalidArgumentError("room must be a non-empty string")


def _coerce_options(value: Any) -> PublishOptions:
    if isinstance(value, PublishOptions):
        return value
    try:
        return PublishOptions.model_validate(dict(value))
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid publish options: {e}") from e


def normalize_publish_args(
    room: Any,
    event: Any,
    data: Any = MISSING,
    callback: Any = None,
) -> PublishRecord:
    """Validate every accepted ``publish()`` shape and fold it into one record.

    Accepted shapes::

        (room, "name")
        (room, "name", data)
        (room, "name", callback)
        (room, "name", data, callback)
        (room, options)
        (room, options, callback)

    where ``options`` is a mapping or a ``PublishOptions``.
    """
    _check_room(room)

    if isinstance(event, (PublishOptions, Mapping)):
        if data is not MISSING:
            if not callable(data) or callback is not None:
                raise InvalidArgumentError(
                    "cannot combine an options argument with a separate data argument"
                )
            callback = data
        options = _coerce_options(event)
    elif isinstance(event, str):
        if data is not MISSING and callable(data) and callback is None:
            data, callback = MISSING, data
        options = _coerce_options({"event": event or None})
        options = options.model_copy(update={"data": None if data is MISSING else data})
    else:
        raise InvalidArgumentError("event must be an event name or an options object")

    if callback is not None and not callable(callback):
        raise InvalidArgumentError("callback must be callable")

    return PublishRecord(
        room=room,
        event=options.event or None,
        data=options.data,
        id=options.id,
        retry=options.retry_ms,
        callback=callback,
    )


def _as_write_error(exc: BaseException) -> DeliveryError:
    if isinstance(exc, DeliveryError):
        return exc
    err = WriteError(f"Write failed: {exc}")
    err.__cause__ = exc
    return err


class Broadcaster:
    """Room registry and fan-out publisher.

    Emits two signals:

    - ``warning(description, conn)`` when a subscriber's headers were sent
      outside this broadcaster; the write is skipped and the subscriber kept.
    - ``error(err, conn)`` for a failed delivery when ``publish()`` was called
      without a callback.
    """

    def __init__(self, *, default_event: Optional[str] = None) -> None:
        self.default_event = default_event or settings.default_event
        self._rooms: Dict[str, List[Streamable]] = {}
        # Connections whose stream head this broadcaster sent, keyed by id().
        # Objects without weakref support are held until they leave their last room.
        self._opened: "weakref.WeakValueDictionary[int, Any]" = weakref.WeakValueDictionary()
        self._opened_strong: Dict[int, Any] = {}
        self._listeners: Dict[str, List[Callable[..., Any]]] = {}
        self._pending_writes: set = set()
        self._lock = threading.Lock()

    # ------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------

    @property
    def rooms(self) -> Dict[str, List[Streamable]]:
        """Snapshot of the registry: room name -> subscribers in delivery order."""
        with self._lock:
            return {room: list(members) for room, members in self._rooms.items()}

    def subscriber_count(self, room: str) -> int:
        with self._lock:
            return len(self._rooms.get(room, ()))

    def subscribe(self, room: str, conn: Streamable, ack: Optional[Callable[[], Any]] = None) -> "Broadcaster":
        _check_room(room)
        if conn is None:
            raise InvalidArgumentError("conn is required")
        if ack is not None and not callable(ack):
            raise InvalidArgumentError("ack must be callable")

        with self._lock:
            if any(member is conn for member in self._rooms.get(room, ())):
                return self
            if not conn.headers_sent:
                conn.disable_buffering()
                conn.send_headers(200, dict(SSE_HEADERS))
                self._remember_opened(conn)
            members = self._rooms.setdefault(room, [])
            members.append(conn)
            count = len(members)

        log_event(
            logger,
            "Subscriber joined room",
            room=room,
            stream_id=stream_id_of(conn),
            extra={"subscribers": count},
        )
        if ack is not None:
            ack()
        return self

    def unsubscribe(self, room: str, conn: Streamable) -> "Broadcaster":
        with self._lock:
            members = self._rooms.get(room)
            if not members:
                return self
            for index, member in enumerate(members):
                if member is conn:
                    del members[index]
                    break
            else:
                return self
            count = len(members)
            if not members:
                del self._rooms[room]
            if self._opened_strong.get(id(conn)) is conn and not self._is_member(conn):
                del self._opened_strong[id(conn)]

        log_event(
            logger,
            "Subscriber left room",
            room=room,
            stream_id=stream_id_of(conn),
            extra={"subscribers": count},
        )
        return self

    # ------------------------------------------------------------
    # Publish
    # ------------------------------------------------------------

    def publish(
        self,
        room: Any = None,
        event: Any = None,
        data: Any = MISSING,
        callback: Optional[PublishCallback] = None,
    ) -> "Broadcaster":
        record = normalize_publish_args(room, event, data, callback)
        with self._lock:
            members = list(self._rooms.get(record.room, ()))

        log_event(
            logger,
            "Publishing event",
            room=record.room,
            extra={"event": record.event or self.default_event, "subscribers": len(members)},
            level=logging.DEBUG,
        )
        self._fan_out(record, members)
        return self

    def _fan_out(self, record: PublishRecord, members: List[Streamable]) -> None:
        frame: Optional[bytes] = None
        encode_error: Optional[SerializationError] = None

        for conn in members:
            if self._is_stale(conn):
                self._warn(HEADERS_SENT_WARNING, conn, record.room)
                continue

            if frame is None and encode_error is None:
                try:
                    frame = encode_frame(
                        record.event,
                        record.data,
                        id=record.id,
                        retry=record.retry,
                        default_event=self.default_event,
                    )
                except SerializationError as e:
                    encode_error = e

            if encode_error is not None:
                self._settle(record, conn, encode_error)
                continue

            self._write(record, conn, frame)

    def _remember_opened(self, conn: Streamable) -> None:
        try:
            self._opened[id(conn)] = conn
        except TypeError:
            self._opened_strong[id(conn)] = conn

    def _opened_here(self, conn: Streamable) -> bool:
        key = id(conn)
        return self._opened.get(key) is conn or self._opened_strong.get(key) is conn

    def _is_member(self, conn: Streamable) -> bool:
        return any(member is conn for members in self._rooms.values() for member in members)

    def _is_stale(self, conn: Streamable) -> bool:
        return bool(conn.headers_sent) and not self._opened_here(conn)

    def _write(self, record: PublishRecord, conn: Streamable, frame: bytes) -> None:
        try:
            result = conn.write(frame)
        except Exception as e:
            self._settle(record, conn, _as_write_error(e))
            return

        if inspect.isawaitable(result):
            self._track(record, conn, result)
        else:
            self._settle(record, conn, None)

    def _track(self, record: PublishRecord, conn: Any, pending: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            if inspect.iscoroutine(pending):
                pending.close()
            self._settle(record, conn, _as_write_error(e))
            return

        future = asyncio.ensure_future(pending, loop=loop)
        self._pending_writes.add(future)

        def done(fut: "asyncio.Future[Any]") -> None:
            self._pending_writes.discard(fut)
            if fut.cancelled():
                self._settle(record, conn, WriteError("Write cancelled"))
                return
            exc = fut.exception()
            self._settle(record, conn, _as_write_error(exc) if exc is not None else None)

        future.add_done_callback(done)

    def _settle(self, record: PublishRecord, conn: Any, error: Optional[DeliveryError]) -> None:
        if record.callback is not None:
            try:
                record.callback(error, conn)
            except Exception as e:
                log_event(
                    logger,
                    "Publish callback failed",
                    room=record.room,
                    stream_id=stream_id_of(conn),
                    level=logging.ERROR,
                    exc_info=e,
                )
            return

        if error is None:
            return
        if not self.emit("error", error, conn):
            log_event(
                logger,
                "Unhandled delivery error",
                room=record.room,
                stream_id=stream_id_of(conn),
                level=logging.ERROR,
                exc_info=error,
            )

    def _warn(self, description: str, conn: Any, room: str) -> None:
        log_event(
            logger,
            description,
            room=room,
            stream_id=stream_id_of(conn),
            level=logging.WARNING,
        )
        self.emit("warning", description, conn)

    # ------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------

    def on(self, signal: str, listener: Callable[..., Any]) -> "Broadcaster":
        with self._lock:
            self._listeners.setdefault(signal, []).append(listener)
        return self

    def once(self, signal: str, listener: Callable[..., Any]) -> "Broadcaster":
        @functools.wraps(listener)
        def fire_once(*args: Any) -> Any:
            self.off(signal, fire_once)
            return listener(*args)

        return self.on(signal, fire_once)

    def off(self, signal: str, listener: Callable[..., Any]) -> "Broadcaster":
        with self._lock:
            listeners = self._listeners.get(signal, [])
            for index, registered in enumerate(listeners):
                if registered is listener or getattr(registered, "__wrapped__", None) is listener:
                    del listeners[index]
                    break
            if not listeners:
                self._listeners.pop(signal, None)
        return self

    def emit(self, signal: str, *args: Any) -> bool:
        """Call every listener of ``signal``; return whether any was registered."""
        with self._lock:
            listeners = list(self._listeners.get(signal, ()))
        for listener in listeners:
            try:
                listener(*args)
            except Exception as e:
                log_event(
                    logger,
                    f"Listener for {signal!r} failed",
                    room=None,
                    level=logging.ERROR,
                    exc_info=e,
                )
        return bool(listeners)


broadcaster = Broadcaster()
