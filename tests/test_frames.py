import pytest

from roomcast.errors import SerializationError
from roomcast.frames import encode_frame, serialize_data


def test_default_event_produces_data_only_frame():
    assert encode_frame("message", {"a": 1}) == b'data: {"a": 1}\n\n'
    assert encode_frame(None, {"a": 1}) == b'data: {"a": 1}\n\n'


def test_named_event_with_id_and_retry_lines_in_order():
    frame = encode_frame("tick", [1, 2], id="42", retry=5000)
    assert frame == b"event: tick\nid: 42\nretry: 5000\ndata: [1, 2]\n\n"


def test_missing_payload_is_json_null():
    assert encode_frame("tick", None) == b"event: tick\ndata: null\n\n"


def test_strings_are_json_encoded_on_one_line():
    assert encode_frame(None, "a\nb") == b'data: "a\\nb"\n\n'


def test_unicode_is_kept_verbatim():
    assert encode_frame(None, {"name": "Привет"}) == 'data: {"name": "Привет"}\n\n'.encode("utf-8")


def test_binary_payload_is_sent_as_text_split_per_line():
    frame = encode_frame("log", b"line one\r\nline two\nline three")
    assert frame == b"event: log\ndata: line one\ndata: line two\ndata: line three\n\n"


def test_bytearray_and_memoryview_payloads():
    assert serialize_data(bytearray(b"raw")) == "raw"
    assert serialize_data(memoryview(b"raw")) == "raw"


def test_cyclic_payload_raises_serialization_error():
    circular = {}
    circular["self"] = circular
    with pytest.raises(SerializationError):
        encode_frame("evt", circular)


def test_unserializable_payload_raises_serialization_error():
    with pytest.raises(SerializationError):
        encode_frame("evt", {"value": object()})


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_non_finite_floats_raise_serialization_error(value):
    with pytest.raises(SerializationError):
        encode_frame("evt", {"reading": value})
