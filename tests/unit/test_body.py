"""
Unit tests for response bodies.
"""

import json

from httpresponder.http.body import (
    BinaryBody,
    ErrorBody,
    JsonBody,
    StringBody,
    exception_to_dict,
)


def _fail_deep():
    raise ValueError("sensor offline")


class TestJsonBody:

    def test_compact_encoding(self):
        body = JsonBody({"ok": True})

        assert body.to_bytes() == b'{"ok":true}'
        assert len(body) == 11
        assert body.mime_type == "application/json"

    def test_key_order_preserved(self):
        assert JsonBody({"b": 1, "a": 2}).to_bytes() == b'{"b":1,"a":2}'

    def test_non_ascii_is_utf8(self):
        body = JsonBody({"unit": "°C"})

        assert body.to_bytes() == '{"unit":"°C"}'.encode("utf-8")


class TestStringBody:

    def test_default_mime_type(self):
        body = StringBody("hello")

        assert body.to_bytes() == b"hello"
        assert body.mime_type == "text/plain; charset=utf-8"

    def test_custom_mime_type(self):
        assert StringBody("<p>x</p>", "text/html").mime_type == "text/html"


class TestBinaryBody:

    def test_bytes_pass_through(self):
        body = BinaryBody(b"\x00\x01\x02", "image/png")

        assert body.to_bytes() == b"\x00\x01\x02"
        assert body.mime_type == "image/png"
        assert len(body) == 3


class TestErrorBody:

    def test_describes_raised_exception(self):
        try:
            _fail_deep()
        except ValueError as e:
            info = exception_to_dict(e)

        assert list(info) == ["type", "message", "stackTrace", "source"]
        assert info["type"] == "ValueError"
        assert info["message"] == "sensor offline"
        assert "_fail_deep" in info["stackTrace"]
        assert info["source"] == __name__

    def test_unraised_exception(self):
        info = exception_to_dict(RuntimeError("never raised"))

        assert info["stackTrace"] == ""
        assert info["source"] == "builtins"

    def test_error_body_is_json(self):
        try:
            _fail_deep()
        except ValueError as e:
            body = ErrorBody(e)

        decoded = json.loads(body.to_bytes())
        assert body.mime_type == "application/json"
        assert decoded["type"] == "ValueError"
        assert decoded["message"] == "sensor offline"
