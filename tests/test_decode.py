import base64
import json

import pytest

from fetch_proxy.decode import BodyKind, body_kind, decode_body


@pytest.mark.parametrize(
    "ct,expect",
    [
        ("application/json", BodyKind.JSON),
        ("application/json; charset=utf-8", BodyKind.JSON),
        ("Application/JSON", BodyKind.JSON),
        ("text/html; charset=utf-8", BodyKind.TEXT),
        ("text/plain", BodyKind.TEXT),
        ("text/css", BodyKind.BINARY),
        ("application/xml", BodyKind.BINARY),
        ("image/png", BodyKind.BINARY),
        ("", BodyKind.BINARY),
        (None, BodyKind.BINARY),
    ],
)
def test_body_kind(ct, expect):
    assert body_kind(ct) is expect


def test_decode_json():
    assert decode_body(BodyKind.JSON, b'{"a":1}') == {"a": 1}
    assert decode_body(BodyKind.JSON, b"[1, 2]") == [1, 2]


def test_decode_json_error_propagates():
    with pytest.raises(json.JSONDecodeError):
        decode_body(BodyKind.JSON, b"<html>")


def test_decode_text_replaces_invalid_utf8():
    assert decode_body(BodyKind.TEXT, b"ok \xff") == "ok �"


def test_decode_binary_is_base64():
    raw = bytes(range(256))
    out = decode_body(BodyKind.BINARY, raw)
    assert isinstance(out, str)
    assert base64.b64decode(out) == raw


def test_decode_empty_binary():
    assert decode_body(BodyKind.BINARY, b"") == ""
