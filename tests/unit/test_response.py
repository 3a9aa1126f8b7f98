"""
Unit tests for HTTP response building.
"""

from datetime import datetime, timezone
import io
import json
import logging

import pytest

from cowboy.http.forms import FormData, SearchParams
from cowboy.http.response import (
    HTTPResponse,
    ResponseBuilder,
    format_http_date,
    reason_phrase,
)


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=200).status_line == "HTTP/1.1 200 OK"
        assert HTTPResponse(status=404).status_line == "HTTP/1.1 404 Not Found"

    def test_unknown_reason(self):
        """Test unregistered codes get a placeholder reason."""
        assert reason_phrase(799) == "Unknown"

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=200,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert b"HTTP/1.1 200 OK\r\n" in result
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: Cowboy/1.0\r\n" in result
        assert result.endswith(b"\r\n\r\ntest")

    def test_to_bytes_server_name(self):
        """Test the Server header can be overridden."""
        assert b"Server: Custom\r\n" in HTTPResponse().to_bytes(server_name="Custom")

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = HTTPResponse().set_header("X-One", "1").set_header("X-Two", "2")

        assert response.headers == {"X-One": "1", "X-Two": "2"}


class TestResponseBuilderDefaults:
    """Tests for the builder's implicit defaults."""

    def test_initial_state(self, response: ResponseBuilder):
        """Test a fresh builder."""
        assert response.body == ""
        assert response.code is None
        assert response.headers == {}
        assert response.has_sent is False

    def test_status_success_default_body(self, response: ResponseBuilder):
        """Test 2xx codes fill in "ok"."""
        response.status(201)

        assert response.code == 201
        assert response.body == "ok"

    def test_status_failure_default_body(self, response: ResponseBuilder):
        """Test other codes fill in "<code> Fail"."""
        assert response.status(404).body == "404 Fail"

    def test_status_then_send_keeps_default(self, response: ResponseBuilder):
        """Test send() without data keeps the default body."""
        response.status(404).send()

        assert response.code == 404
        assert response.body == "404 Fail"
        assert response.has_sent is True

    def test_status_keeps_chosen_body(self, response: ResponseBuilder):
        """Test status() does not overwrite a body already sent."""
        response.send("custom", end=False).status(418)

        assert response.code == 418
        assert response.body == "custom"

    def test_status_keeps_explicit_empty_string(self, response: ResponseBuilder):
        """Test an explicitly assigned empty string counts as a body."""
        response.body = ""
        response.status(500)

        assert response.body == ""

    def test_status_replaces_falsy_non_string(self, response: ResponseBuilder):
        """Test an empty non-string body is replaced."""
        response.body = {}
        response.status(200)

        assert response.body == "ok"


class TestResponseBuilderSend:
    """Tests for send(), end() and send_status()."""

    def test_send_string(self, response: ResponseBuilder):
        """Test strings pass through and the code defaults to 200."""
        response.send("hi")

        assert response.code == 200
        assert response.body == "hi"
        assert response.has_sent is True

    def test_send_object_is_compact_json(self, response: ResponseBuilder):
        """Test objects are JSON encoded without spaces."""
        assert response.send({"a": 1}).body == '{"a":1}'

    def test_send_list_and_number(self, response: ResponseBuilder):
        """Test non-object JSON values."""
        assert ResponseBuilder().send([1, "x"]).body == '[1,"x"]'
        assert ResponseBuilder().send(3).body == "3"

    def test_send_passthrough_types(self):
        """Test bytes, streams and forms are kept as-is."""
        stream = io.BytesIO(b"abc")
        form = FormData([("a", "1")])

        assert ResponseBuilder().send(b"raw").body == b"raw"
        assert ResponseBuilder().send(stream).body is stream
        assert ResponseBuilder().send(form).body is form

    def test_send_without_end(self, response: ResponseBuilder):
        """Test end=False leaves has_sent alone."""
        response.send("x", end=False)

        assert response.has_sent is False

    def test_end_with_data(self, response: ResponseBuilder):
        """Test end(data) sends and completes."""
        response.end({"done": True})

        assert response.body == '{"done":true}'
        assert response.has_sent is True

    def test_end_without_data(self, response: ResponseBuilder):
        """Test end() only completes."""
        response.end()

        assert response.code is None
        assert response.has_sent is True

    def test_send_status(self, response: ResponseBuilder):
        """Test send_status sets status and completes."""
        response.send_status(200)

        assert response.code == 200
        assert response.body == "ok"
        assert response.has_sent is True

    def test_send_status_without_end(self, response: ResponseBuilder):
        """Test send_status can leave the response open."""
        assert response.send_status(204, end=False).has_sent is False

    def test_send_status_rejects_data(self, response: ResponseBuilder):
        """Test data is refused with a pointer to status().send()."""
        with pytest.raises(ValueError, match="Data is not allowed"):
            response.send_status(200, {"x": 1})


class TestResponseBuilderHeaders:
    """Tests for set() and type()."""

    def test_set_single(self, response: ResponseBuilder):
        """Test setting one header returns self."""
        assert response.set("X-Id", "7") is response
        assert response.headers == {"X-Id": "7"}

    def test_set_mapping_merges(self, response: ResponseBuilder):
        """Test mappings merge into existing headers."""
        response.set("A", "1").set({"B": "2", "A": "3"})

        assert response.headers == {"A": "3", "B": "2"}

    def test_set_ignores_other_input(self, response: ResponseBuilder):
        """Test a name without a value is ignored."""
        response.set("X-Id")

        assert response.headers == {}

    @pytest.mark.parametrize("shorthand,expected", [
        ("html", "text/html"),
        ("json", "application/json"),
        ("text", "text/plain"),
        ("image/png", "image/png"),
    ])
    def test_type(self, response: ResponseBuilder, shorthand, expected):
        """Test shorthands and full MIME types."""
        response.type(shorthand)

        assert response.headers["Content-Type"] == expected

    def test_type_rejects_unknown(self, response: ResponseBuilder):
        """Test unknown shorthands raise."""
        with pytest.raises(ValueError, match='Shorthand type "xml" is not recognised'):
            response.type("xml")


class TestToResponse:
    """Tests for materializing the native response."""

    def test_basic(self, response: ResponseBuilder):
        """Test status, headers and body carry over."""
        native = response.set("X-Id", "1").status(201).send({"id": 1}).to_response()

        assert isinstance(native, HTTPResponse)
        assert native.status == 201
        assert native.headers == {"X-Id": "1"}
        assert native.body == b'{"id":1}'

    def test_default_status(self, response: ResponseBuilder):
        """Test an unset code falls back to 200."""
        assert response.to_response().status == 200

    def test_does_not_mutate(self, response: ResponseBuilder):
        """Test the builder is unchanged and headers are copied."""
        native = response.to_response()
        native.headers["X-New"] = "1"

        assert response.code is None
        assert response.headers == {}

    def test_stream_body(self, response: ResponseBuilder):
        """Test streams are read fully."""
        native = response.send(io.StringIO("streamed")).to_response()

        assert native.body == b"streamed"

    def test_stream_body_twice(self, response: ResponseBuilder):
        """Test a seekable stream yields the same body on every call."""
        response.send(io.BytesIO(b"payload"))

        first = response.to_response()
        second = response.to_response()

        assert first.body == b"payload"
        assert second.body == b"payload"

    def test_form_body_sets_content_type(self, response: ResponseBuilder):
        """Test form bodies bring their own Content-Type."""
        native = response.send(SearchParams([("a", "1")])).to_response()

        assert native.body == b"a=1"
        assert native.headers["Content-Type"] == "application/x-www-form-urlencoded;charset=UTF-8"

    def test_form_body_keeps_explicit_type(self, response: ResponseBuilder):
        """Test an explicit Content-Type is not replaced."""
        native = response.type("text").send(SearchParams([("a", "1")])).to_response()

        assert native.headers["Content-Type"] == "text/plain"

    def test_logs_summary(self, response: ResponseBuilder, caplog):
        """Test the response is logged with a truncated body."""
        body = "x" * 60
        with caplog.at_level(logging.INFO, logger="cowboy.http.response"):
            response.status(200).send(body).to_response()

        record = caplog.records[-1]
        assert record.getMessage().startswith("Response ")
        summary = json.loads(record.getMessage()[len("Response "):])
        assert summary["status"] == 200
        assert summary["body"] == "x" * 50 + "…"

    def test_logs_short_body_untruncated(self, response: ResponseBuilder, caplog):
        """Test bodies up to 30 characters are logged whole."""
        with caplog.at_level(logging.INFO, logger="cowboy.http.response"):
            response.send("short").to_response()

        summary = json.loads(caplog.records[-1].getMessage()[len("Response "):])
        assert summary["body"] == "short"


def test_format_http_date():
    """Test RFC 7231 date formatting."""
    dt = datetime(2024, 1, 15, 12, 30, 45, tzinfo=timezone.utc)

    assert format_http_date(dt) == "Mon, 15 Jan 2024 12:30:45 GMT"
