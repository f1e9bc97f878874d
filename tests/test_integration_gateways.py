"""Unit tests for the Monday.com and Gmail gateways.

Test strategy
-------------
Each gateway is built with a MagicMock ``session`` so no request leaves the
process.  ``session.request`` is inspected for the outgoing call and its
return value stands in for the HTTP response.
"""

import base64
import email
from unittest.mock import MagicMock

import requests

from wellspring.integrations.base import BaseGateway
from wellspring.integrations.gmail_gateway import DraftAttachment, GmailGateway, build_raw_message
from wellspring.integrations.monday_gateway import MondayGateway


def _make_response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.text = text
    resp.content = b"{}" if payload is not None else b""
    resp.json.return_value = payload
    return resp


def _make_session(response=None, exc=None):
    session = MagicMock()
    if exc is not None:
        session.request.side_effect = exc
    else:
        session.request.return_value = response
    return session


def _decode_raw(raw):
    padded = raw + "=" * (-len(raw) % 4)
    return email.message_from_bytes(base64.urlsafe_b64decode(padded))


# ═════════════════════════════════════════════════════════════════════════════
# BaseGateway
# ═════════════════════════════════════════════════════════════════════════════


class TestBaseGateway:
    def test_timeout_returns_error_result(self):
        gw = BaseGateway(session=_make_session(exc=requests.Timeout()), timeout=3)
        result = gw.send("GET", "https://example.test", {})
        assert result.ok is False
        assert result.status_code is None
        assert "timed out after 3s" in result.error

    def test_network_error_returns_error_result(self):
        gw = BaseGateway(session=_make_session(exc=requests.ConnectionError("refused")))
        result = gw.send("GET", "https://example.test", {})
        assert result.ok is False
        assert "refused" in result.error
        assert result.to_log_dict()["sync_status"] == "error"

    def test_http_error_returns_error_result(self):
        gw = BaseGateway(session=_make_session(_make_response(502, text="bad gateway")))
        result = gw.send("POST", "https://example.test", {}, json_body={"a": 1})
        assert result.ok is False
        assert result.status_code == 502
        assert result.error == "HTTP 502: bad gateway"

    def test_success_parses_json(self):
        session = _make_session(_make_response(200, {"id": "x"}))
        result = BaseGateway(session=session, timeout=5).send(
            "POST", "https://example.test", {"H": "v"}, json_body={"a": 1},
        )
        assert result.ok is True
        assert result.data == {"id": "x"}
        session.request.assert_called_once_with(
            "POST", "https://example.test", headers={"H": "v"}, timeout=5, json={"a": 1},
        )

    def test_empty_body_gives_empty_dict(self):
        result = BaseGateway(session=_make_session(_make_response(204))).send("GET", "https://x", {})
        assert result.ok is True
        assert result.data == {}


# ═════════════════════════════════════════════════════════════════════════════
# Monday.com
# ═════════════════════════════════════════════════════════════════════════════


class TestMondayGateway:
    def test_unconfigured_skips_request(self):
        session = _make_session()
        gw = MondayGateway(token=None, session=session)
        assert gw.is_configured() is False
        assert gw.add_comment("1", "hello") is False
        session.request.assert_not_called()

    def test_add_comment_posts_create_update(self):
        session = _make_session(_make_response(200, {"data": {"create_update": {"id": "55"}}}))
        gw = MondayGateway(api_url="https://monday.test/v2", token="tok", session=session)

        assert gw.add_comment(123, "[Wellspring] Step advanced to: Drafting") is True

        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert (method, url) == ("POST", "https://monday.test/v2")
        assert kwargs["headers"]["Authorization"] == "tok"
        assert "create_update" in kwargs["json"]["query"]
        assert kwargs["json"]["variables"] == {
            "itemId": "123",
            "body": "[Wellspring] Step advanced to: Drafting",
        }

    def test_graphql_errors_are_failures(self):
        session = _make_session(_make_response(200, {"errors": [{"message": "Item not found"}]}))
        gw = MondayGateway(token="tok", session=session)

        result = gw.query("query { me { id } }")
        assert result.ok is False
        assert result.error == "Item not found"
        assert gw.add_comment("1", "x") is False

    def test_http_failure_returns_false(self):
        gw = MondayGateway(token="tok", session=_make_session(_make_response(401, text="unauthorized")))
        assert gw.add_comment("1", "x") is False


# ═════════════════════════════════════════════════════════════════════════════
# Gmail
# ═════════════════════════════════════════════════════════════════════════════


class TestGmailGateway:
    def test_not_connected(self):
        session = _make_session()
        gw = GmailGateway(access_token=None, session=session)
        result = gw.create_draft(["a@example.com"], [], "s", "b")
        assert result.success is False
        assert result.error == "Gmail not connected"
        session.request.assert_not_called()

    def test_create_draft_posts_raw_message(self):
        session = _make_session(_make_response(200, {"id": "r-123", "message": {"id": "m1"}}))
        gw = GmailGateway(api_url="https://gmail.test/v1/", access_token="abc", session=session)

        result = gw.create_draft(
            ["lee@example.com"], ["acct@example.org"], "Invoice for Payment #1", "Hi Lee",
        )

        assert result.success is True
        assert result.draft_id == "r-123"
        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert (method, url) == ("POST", "https://gmail.test/v1/users/me/drafts")
        assert kwargs["headers"]["Authorization"] == "Bearer abc"

        msg = _decode_raw(kwargs["json"]["message"]["raw"])
        assert msg["To"] == "lee@example.com"
        assert msg["Cc"] == "acct@example.org"
        assert msg["Subject"] == "Invoice for Payment #1"
        assert msg.get_payload(decode=True).decode() == "Hi Lee"

    def test_create_draft_failure(self):
        gw = GmailGateway(access_token="abc", session=_make_session(_make_response(403, text="forbidden")))
        result = gw.create_draft(["a@example.com"], [], "s", "b")
        assert result.success is False
        assert "403" in result.error

    def test_raw_message_with_attachment(self):
        attachment = DraftAttachment(
            filename="Chapter 6 - Policy.docx",
            mime_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            content=base64.b64encode(b"docx-bytes").decode(),
        )
        msg = _decode_raw(build_raw_message(["a@example.com"], [], "Draft", "See attached", attachment))

        assert msg.is_multipart()
        parts = msg.get_payload()
        assert parts[0].get_payload(decode=True).decode() == "See attached"
        assert parts[1].get_filename() == "Chapter 6 - Policy.docx"
        assert parts[1].get_payload(decode=True) == b"docx-bytes"
        assert msg["Cc"] is None
