from __future__ import annotations

from typing import Any, Callable, NamedTuple, Optional

from roomcast.errors import InvalidArgumentError
from roomcast.events import MISSING, Broadcaster, PublishCallback


class ConnectionMethods(NamedTuple):
    subscribe: Callable[..., Any]
    unsubscribe: Callable[..., Any]
    publish: Callable[..., Any]


def connection_methods(broadcaster: Broadcaster) -> ConnectionMethods:
    """Build subscribe/unsubscribe/publish functions that take the connection as ``self``.

    Each returns the connection so calls can be chained.
    """
    if not isinstance(broadcaster, Broadcaster):
        raise InvalidArgumentError("a Broadcaster instance is required")

    def subscribe(self: Any, room: str, ack: Optional[Callable[[], Any]] = None) -> Any:
        broadcaster.subscribe(room, self, ack)
        return self

    def unsubscribe(self: Any, room: str) -> Any:
        broadcaster.unsubscribe(room, self)
        return self

    def publish(
        self: Any,
        room: Any = None,
        event: Any = None,
        data: Any = MISSING,
        callback: Optional[PublishCallback] = None,
    ) -> Any:
        broadcaster.publish(room, event, data, callback)
        return self

    return ConnectionMethods(subscribe, unsubscribe, publish)


def extend(target: Any, broadcaster: Broadcaster) -> Broadcaster:
    """Attach the connection methods bound to ``broadcaster`` onto ``target``.

    ``target`` is usually a connection class, e.g. ``extend(EventStream, broadcaster)``.
    Calling it again replaces the same three attributes.
    """
    if target is None:
        raise InvalidArgumentError("an extension target is required")
    methods = connection_methods(broadcaster)
    for name, fn in methods._asdict().items():
        setattr(target, name, fn)
    return broadcaster
