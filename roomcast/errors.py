from __future__ import annotations

HEADERS_SENT_WARNING = "headers are already sent"


class InvalidArgumentError(ValueError):
    """Malformed call; raised before any subscriber is touched."""


class DeliveryError(RuntimeError):
    """Per-subscriber failure. Routed to callbacks or the error signal, never raised by publish."""


class SerializationError(DeliveryError):
    pass


class WriteError(DeliveryError):
    pass
