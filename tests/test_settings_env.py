import importlib


ENV_KEYS = [
    "ROOMCAST_HOST",
    "ROOMCAST_PORT",
    "ROOMCAST_DEFAULT_EVENT",
    "ROOMCAST_QUEUE_SIZE",
    "ROOMCAST_KEEPALIVE_SEC",
]


def _load_settings(monkeypatch, env):
    import roomcast.settings as settings_module

    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    importlib.reload(settings_module)
    return settings_module.Settings()


def test_settings_defaults(monkeypatch):
    settings = _load_settings(monkeypatch, {})

    assert settings.host == "127.0.0.1"
    assert settings.port == 30450
    assert settings.default_event == "message"
    assert settings.stream_queue_size == 256
    assert settings.keepalive_sec == 15


def test_settings_read_env(monkeypatch):
    settings = _load_settings(
        monkeypatch,
        {
            "ROOMCAST_HOST": "0.0.0.0",
            "ROOMCAST_PORT": "2222",
            "ROOMCAST_DEFAULT_EVENT": "update",
            "ROOMCAST_QUEUE_SIZE": "16",
            "ROOMCAST_KEEPALIVE_SEC": "5",
        },
    )

    assert settings.host == "0.0.0.0"
    assert settings.port == 2222
    assert settings.default_event == "update"
    assert settings.stream_queue_size == 16
    assert settings.keepalive_sec == 5


def test_settings_fall_back_when_empty_or_invalid(monkeypatch):
    settings = _load_settings(
        monkeypatch,
        {
            "ROOMCAST_HOST": "",
            "ROOMCAST_PORT": "not-a-number",
            "ROOMCAST_QUEUE_SIZE": "",
        },
    )

    assert settings.host == "127.0.0.1"
    assert settings.port == 30450
    assert settings.stream_queue_size == 256


def test_broadcaster_default_event_follows_settings(monkeypatch):
    from roomcast import events as events_module
    from roomcast.settings import Settings

    monkeypatch.setattr(events_module, "settings", Settings(default_event="update"))

    assert events_module.Broadcaster().default_event == "update"
