import json
import pytest
from linkstate_core import codec
from linkstate_core.creds import AuthenticationCreds
from linkstate_core.crypto import init_auth_creds
from linkstate_core.errors import DecodeError


def test_state_roundtrip_with_nested_binary():
    creds = init_auth_creds()
    state = {
        "creds": creds.to_dict(),
        "keys": {
            "preKeys": {"1": {"public": b"\x05" * 32, "private": b"\x00\x01\x02"}},
            "sessions": {"123@s.whatsapp.net.0": b"\xff" * 64},
            "senderKeyMemory": {"group@g.us": {"123@s.whatsapp.net": True}},
        },
    }

    restored = codec.decode(codec.encode(state))

    assert restored == state
    assert isinstance(restored["keys"]["sessions"]["123@s.whatsapp.net.0"], bytes)
    assert AuthenticationCreds.from_dict(restored["creds"]) == creds


def test_binary_is_tagged_as_buffer():
    text = codec.encode({"k": b"hello"})
    raw = json.loads(text)
    assert raw["k"] == {"type": "Buffer", "data": "aGVsbG8="}


def test_decode_accepts_byte_list_form():
    text = '{"k": {"type": "Buffer", "data": [104, 105]}}'
    assert codec.decode(text) == {"k": b"hi"}


def test_non_buffer_objects_untouched():
    text = '{"type": "note", "data": "x"}'
    assert codec.decode(text) == {"type": "note", "data": "x"}


def test_empty_bytes_survive():
    assert codec.decode(codec.encode({"k": b""})) == {"k": b""}


@pytest.mark.parametrize("blob", [
    "{not json",
    "",
    '{"k": {"type": "Buffer", "data": "@@@"}}',
    '{"k": {"type": "Buffer", "data": [1, 999]}}',
])
def test_malformed_input_raises_decode_error(blob):
    with pytest.raises(DecodeError):
        codec.decode(blob)


def test_decode_error_is_value_error():
    with pytest.raises(ValueError):
        codec.decode(None)
