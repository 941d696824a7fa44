"""Tests for reply decoding and the Response variants."""

import pytest


class TestFromReply:
    """Daemon reply dict -> Response variant."""

    def test_ok_strips_status(self):
        from tldr_client.response import OkResponse, from_reply

        response = from_reply({"status": "ok", "results": [1, 2]})
        assert response == OkResponse({"results": [1, 2]})
        assert response.to_dict() == {"status": "ok", "results": [1, 2]}

    def test_daemon_error_message(self):
        from tldr_client.response import ErrorResponse, from_reply

        response = from_reply({"status": "error", "message": "Missing required parameter: func"})
        assert response == ErrorResponse("Missing required parameter: func")

    def test_daemon_status_kept(self):
        """The status command reports the daemon state in its status field."""
        from tldr_client.response import OkResponse, from_reply

        response = from_reply({"status": "ready", "uptime": 12.5, "files": 40})
        assert isinstance(response, OkResponse)
        assert response.to_dict() == {"status": "ready", "uptime": 12.5, "files": 40}

    def test_status_report_while_indexing_is_an_answer(self):
        from tldr_client.response import OkResponse, from_reply

        response = from_reply({"status": "indexing", "uptime": 1.0})
        assert isinstance(response, OkResponse)

    def test_bare_indexing_notice(self):
        from tldr_client.response import IndexingResponse, from_reply

        assert from_reply({"status": "indexing"}) == IndexingResponse()

    def test_non_object_reply(self):
        from tldr_client.response import INVALID_JSON, ErrorResponse, from_reply

        assert from_reply([1, 2, 3]) == ErrorResponse(INVALID_JSON)


class TestDecodeReply:
    """Framing outcomes."""

    def test_terminated_line(self):
        from tldr_client.response import OkResponse, decode_reply

        assert decode_reply(b'{"status": "ok"}', terminated=True) == OkResponse({})

    def test_terminated_garbage(self):
        from tldr_client.response import ErrorResponse, decode_reply

        assert decode_reply(b"<html>", terminated=True) == ErrorResponse(
            "Invalid JSON response from daemon"
        )

    def test_unterminated_but_complete(self):
        from tldr_client.response import OkResponse, decode_reply

        assert decode_reply(b'{"status": "ok", "callers": []}', terminated=False) == OkResponse(
            {"callers": []}
        )

    def test_unterminated_partial(self):
        from tldr_client.response import ErrorResponse, decode_reply

        assert decode_reply(b'{"status": "o', terminated=False) == ErrorResponse(
            "Incomplete response"
        )

    @pytest.mark.parametrize("data", [b"", b"  "])
    def test_nothing_received(self, data):
        from tldr_client.response import ErrorResponse, decode_reply

        assert decode_reply(data, terminated=False) == ErrorResponse(
            "Connection closed without response"
        )

    def test_invalid_utf8(self):
        from tldr_client.response import ErrorResponse, decode_reply

        assert decode_reply(b"\xff\xfe", terminated=True) == ErrorResponse(
            "Invalid JSON response from daemon"
        )

    def test_split_reply(self):
        from tldr_client.response import split_reply

        assert split_reply(b'{"a": 1}\ntrailing') == (b'{"a": 1}', True)
        assert split_reply(b'{"a": 1}') == (b'{"a": 1}', False)


class TestVariants:
    def test_unavailable_default(self):
        from tldr_client.response import UnavailableResponse

        assert UnavailableResponse().to_dict() == {
            "status": "unavailable",
            "error": "Daemon not running and could not start",
        }

    def test_indexing_to_dict(self):
        from tldr_client.response import IndexingResponse

        data = IndexingResponse().to_dict()
        assert data["status"] == "indexing"
        assert "indexing" in data["message"]

    def test_status_is_per_variant(self):
        from tldr_client.response import (
            ErrorResponse,
            IndexingResponse,
            OkResponse,
            UnavailableResponse,
        )

        assert [OkResponse().status, IndexingResponse().status,
                UnavailableResponse().status, ErrorResponse("x").status] == [
            "ok", "indexing", "unavailable", "error"
        ]
