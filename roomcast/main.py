from __future__ import annotations

from fastapi import FastAPI

from roomcast import __version__
from roomcast.api import router
from roomcast.events import broadcaster
from roomcast.extender import extend
from roomcast.settings import settings
from roomcast.stream import EventStream


app = FastAPI(title="roomcast", version=__version__)

# Streams opened by the host can drive the shared broadcaster themselves:
# stream.subscribe(room), stream.publish(room, event, data), ...
extend(EventStream, broadcaster)

app.include_router(router)

# Same routes under /api for clients behind a shared gateway
app.include_router(router, prefix="/api")


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
