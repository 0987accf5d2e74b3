import logging

from roomcast.logging_setup import DEFAULT_STREAM_ID, log_event, stream_id_of


def test_log_event_injects_default_stream_id(caplog):
    logger = logging.getLogger("test.registry")
    with caplog.at_level(logging.INFO):
        log_event(logger, "hello", room="chat", stream_id=None)

    assert caplog.records
    record = caplog.records[-1]
    assert record.room == "chat"
    assert record.stream_id == DEFAULT_STREAM_ID


def test_log_event_uses_given_stream_id_and_level(caplog):
    logger = logging.getLogger("test.fanout")
    with caplog.at_level(logging.WARNING):
        log_event(logger, "stale", room="news", stream_id="abc", level=logging.WARNING)

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.room == "news"
    assert record.stream_id == "abc"


def test_log_event_prefers_extra_stream_id(caplog):
    logger = logging.getLogger("test.extra")
    with caplog.at_level(logging.INFO):
        log_event(
            logger,
            "payload",
            room="chat",
            stream_id="ignored",
            extra={"stream_id": "from-extra", "subscribers": 3},
        )

    record = caplog.records[-1]
    assert record.stream_id == "from-extra"
    assert record.subscribers == 3


def test_stream_id_of_reads_attribute():
    class WithId:
        stream_id = "s-1"

    assert stream_id_of(WithId()) == "s-1"
    assert stream_id_of(object()) is None
