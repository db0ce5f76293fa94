"""
Tests: HttpGateway request shapes and HTTP failure classification.

The requests.Session is replaced with a MagicMock; no network is used.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from kb_editor.drafts import reconciler
from kb_editor.drafts.gateway import BatchRejectedError, HttpGateway, TransientGatewayError
from kb_editor.drafts.records import FaqUpsert


def _response(status_code: int = 200, body=None) -> MagicMock:
    """Build a lightweight requests.Response stand-in."""
    r = MagicMock()
    r.status_code = status_code
    r.content = b"" if body is None else b"{}"
    r.json.return_value = body
    r.text = ""
    return r


def _gateway(*responses, side_effect=None):
    session = MagicMock()
    if side_effect is not None:
        session.request.side_effect = side_effect
    else:
        session.request.side_effect = list(responses)
    gateway = HttpGateway("https://kb.example.test/", "acme", api_key="secret", session=session)
    return gateway, session


@pytest.mark.unit
class TestHttpGatewayRequests:
    def test_batch_posts_camel_case_payload_with_api_key(self):
        gateway, session = _gateway(_response(200, {"upserted": 1, "deleted": 1}))
        upsert = FaqUpsert("f1", "s1", "Q", "A", "", 0)

        result = gateway.apply_faq_batch([upsert], ["f2"])

        assert result == {"upserted": 1, "deleted": 1}
        method, url = session.request.call_args.args
        kwargs = session.request.call_args.kwargs
        assert method == "POST"
        assert url == "https://kb.example.test/api/v1/orgs/acme/faqs/batch"
        assert kwargs["headers"]["X-API-Key"] == "secret"
        assert kwargs["json"] == {
            "upserts": [{"id": "f1", "sectionId": "s1", "question": "Q", "answer": "A", "notes": "", "order": 0}],
            "deletes": ["f2"],
        }

    def test_list_faqs_parses_records(self):
        gateway, _ = _gateway(_response(200, [
            {"id": "f1", "sectionId": "s1", "question": "Q", "answer": "A", "notes": None,
             "order": 2, "createdAt": "2026-01-01T00:00:00", "updatedAt": None},
        ]))

        faqs = gateway.list_faqs()

        assert faqs[0].section_id == "s1"
        assert faqs[0].notes == ""
        assert faqs[0].created_at.tzinfo is not None

    def test_delete_returns_none_on_204(self):
        gateway, session = _gateway(_response(204))
        assert gateway.delete_section("s1") is None
        assert session.request.call_args.args[0] == "DELETE"

    def test_missing_custom_rules_read_as_empty(self):
        gateway, _ = _gateway(_response(200, {"content": ""}))
        assert gateway.get_custom_rules() == ""


@pytest.mark.unit
class TestHttpGatewayFailures:
    def test_server_error_is_transient(self):
        gateway, _ = _gateway(_response(503, {"error": "down"}))
        with pytest.raises(TransientGatewayError) as exc:
            gateway.list_sections()
        assert exc.value.status_code == 503

    def test_connection_error_is_transient(self):
        gateway, _ = _gateway(side_effect=requests.ConnectionError("refused"))
        with pytest.raises(TransientGatewayError):
            gateway.list_faqs()

    def test_other_request_errors_are_transient(self):
        gateway, _ = _gateway(side_effect=requests.exceptions.ChunkedEncodingError("cut off"))
        with pytest.raises(TransientGatewayError):
            gateway.delete_section("s1")

    def test_non_json_success_body_is_transient(self):
        resp = _response(200, {})
        resp.json.side_effect = ValueError("Expecting value")
        gateway, _ = _gateway(resp)
        with pytest.raises(TransientGatewayError):
            gateway.list_sections()

    def test_client_error_is_rejection_with_message(self):
        gateway, _ = _gateway(_response(422, {"error": "Invalid section"}))
        with pytest.raises(BatchRejectedError) as exc:
            gateway.apply_faq_batch([FaqUpsert("f1", "other", "Q", "A", "", 0)], [])
        assert exc.value.status_code == 422
        assert "Invalid section" in str(exc.value)

    def test_commit_over_http_reports_rejection(self):
        gateway, _ = _gateway(_response(422, {"error": "Invalid section"}))
        batch = reconciler.PendingBatch(upserts=(FaqUpsert("f1", "other", "Q", "A", "", 0),), created=1)

        result = reconciler.commit(gateway, batch)

        assert result.error_kind == reconciler.ERROR_REJECTED
        assert result.needs_refresh
