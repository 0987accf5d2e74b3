from roomcast.errors import (
    HEADERS_SENT_WARNING,
    DeliveryError,
    InvalidArgumentError,
    SerializationError,
    WriteError,
)
from roomcast.events import Broadcaster, PublishRecord
from roomcast.extender import connection_methods, extend
from roomcast.schemas import PublishOptions

__version__ = "0.1.0"

__all__ = [
    "Broadcaster",
    "DeliveryError",
    "HEADERS_SENT_WARNING",
    "InvalidArgumentError",
    "PublishOptions",
    "PublishRecord",
    "SerializationError",
    "WriteError",
    "connection_methods",
    "extend",
    "__version__",
]
