import importlib

import pytest

from roomcast.errors import WriteError


ENV_KEYS = [
    "ROOMCAST_DEFAULT_EVENT",
    "ROOMCAST_QUEUE_SIZE",
    "ROOMCAST_KEEPALIVE_SEC",
]


def _reload_settings(monkeypatch, env):
    import roomcast.settings as settings_module

    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    importlib.reload(settings_module)
    return settings_module


def test_env_settings_reach_event_streams(monkeypatch):
    settings_module = _reload_settings(
        monkeypatch,
        {"ROOMCAST_QUEUE_SIZE": "1", "ROOMCAST_KEEPALIVE_SEC": "3"},
    )
    import roomcast.stream as stream_module

    monkeypatch.setattr(stream_module, "settings", settings_module.settings)
    stream = stream_module.EventStream()

    assert stream.keepalive_sec == 3
    stream.write(b"data: 1\n\n")
    with pytest.raises(WriteError):
        stream.write(b"data: 2\n\n")


def test_env_settings_reach_broadcaster_frames(monkeypatch):
    settings_module = _reload_settings(monkeypatch, {"ROOMCAST_DEFAULT_EVENT": "update"})
    import roomcast.events as events_module
    import roomcast.stream as stream_module

    monkeypatch.setattr(events_module, "settings", settings_module.settings)
    server = events_module.Broadcaster()
    stream = stream_module.EventStream(queue_size=4)
    server.subscribe("room", stream)

    server.publish("room", "update", 1)
    server.publish("room", "other", 2)

    assert server.default_event == "update"
    assert stream._queue.get_nowait() == b"data: 1\n\n"
    assert stream._queue.get_nowait() == b"event: other\ndata: 2\n\n"
