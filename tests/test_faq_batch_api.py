"""
Tests — FAQ API.

Covers:
    - GET /faqs ordering (section order, then order, createdAt, id)
    - POST /faqs/batch upsert by id, delete, echo counts
    - Atomic rejection of batches referencing another org's section
    - Payload shape validation
"""

import pytest

from kb_editor.drafts.records import FaqUpsert
from kb_editor.models import db as _db
from kb_editor.models.knowledge import Faq
from kb_editor.services import faq_service, section_service

BASE = "/api/v1/orgs/acme"


def _upsert(faq_id, section_id, question="Q", answer="A", notes="", order=0):
    return {
        "id": faq_id,
        "sectionId": section_id,
        "question": question,
        "answer": answer,
        "notes": notes,
        "order": order,
    }


def _batch(client, upserts=(), deletes=()):
    return client.post(f"{BASE}/faqs/batch", json={"upserts": list(upserts), "deletes": list(deletes)})


# ═════════════════════════════════════════════════════════════════════════════
# BATCH WRITES
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.integration
def test_batch_inserts_new_ids(client, section):
    res = _batch(client, [_upsert("f-1", section["id"], "How?", "Like this.")])
    assert res.status_code == 200
    assert res.get_json() == {"upserted": 1, "deleted": 0}

    faqs = client.get(f"{BASE}/faqs").get_json()
    assert [(f["id"], f["question"]) for f in faqs] == [("f-1", "How?")]
    assert faqs[0]["createdAt"] is not None


@pytest.mark.integration
def test_batch_overwrites_existing_ids(client, section):
    _batch(client, [_upsert("f-1", section["id"], "Old", "Old", notes="n")])
    res = _batch(client, [_upsert("f-1", section["id"], "New", "New", order=3)])
    assert res.status_code == 200

    faq = client.get(f"{BASE}/faqs").get_json()[0]
    assert faq["question"] == "New"
    assert faq["notes"] == ""
    assert faq["order"] == 3


@pytest.mark.integration
def test_batch_deletes_and_skips_unknown_ids(client, section):
    _batch(client, [_upsert("f-1", section["id"]), _upsert("f-2", section["id"], order=1)])
    res = _batch(client, deletes=["f-1", "never-existed"])

    assert res.status_code == 200
    assert res.get_json() == {"upserted": 0, "deleted": 2}
    assert [f["id"] for f in client.get(f"{BASE}/faqs").get_json()] == ["f-2"]


@pytest.mark.integration
def test_empty_batch_is_a_noop(client, org):
    res = _batch(client)
    assert res.status_code == 200
    assert res.get_json() == {"upserted": 0, "deleted": 0}


@pytest.mark.integration
def test_foreign_section_rejects_entire_batch(client, section, other_org):
    theirs = section_service.create_section(other_org.id, "Theirs")
    res = _batch(client, [
        _upsert("f-ok", section["id"]),
        _upsert("f-bad", theirs["id"]),
    ])

    assert res.status_code == 422
    body = res.get_json()
    assert body["error"] == "Invalid section"
    assert body["details"]["sectionIds"] == [theirs["id"]]
    assert Faq.query.count() == 0


@pytest.mark.integration
def test_unknown_section_rejects_batch_and_keeps_deletes(client, section):
    _batch(client, [_upsert("f-1", section["id"])])
    res = _batch(client, [_upsert("f-2", "no-such-section")], deletes=["f-1"])

    assert res.status_code == 422
    assert [f["id"] for f in client.get(f"{BASE}/faqs").get_json()] == ["f-1"]


@pytest.mark.integration
def test_upsert_cannot_take_over_another_orgs_faq(client, section, other_org):
    theirs = section_service.create_section(other_org.id, "Theirs")
    faq_service.apply_faq_batch(other_org.id, [FaqUpsert("shared", theirs["id"], "Q", "A", "", 0)], [])

    res = _batch(client, [_upsert("shared", section["id"], "Mine now?", "No")])
    assert res.status_code == 422
    assert _db.session.get(Faq, "shared").org_id == other_org.id


@pytest.mark.integration
@pytest.mark.parametrize("payload", [
    {"upserts": "nope"},
    {"upserts": [{"question": "missing ids"}]},
    {"upserts": [{"id": "x", "sectionId": "s", "order": "first"}]},
])
def test_malformed_batch_is_rejected(client, section, payload):
    res = client.post(f"{BASE}/faqs/batch", json=payload)
    assert res.status_code == 422


@pytest.mark.integration
def test_truncated_json_body_is_rejected(client, section):
    res = client.post(f"{BASE}/faqs/batch", data='{"upserts": [', content_type="application/json")
    assert res.status_code == 400
    assert res.get_json()["error"] == "Malformed JSON body"
    assert client.get(f"{BASE}/faqs").get_json() == []


@pytest.mark.integration
def test_non_object_body_is_rejected(client, section):
    res = client.post(f"{BASE}/faqs/batch", json=["not", "an", "object"])
    assert res.status_code == 400


# ═════════════════════════════════════════════════════════════════════════════
# READS
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.integration
def test_list_orders_by_section_then_order(client):
    first = client.post(f"{BASE}/sections", json={"name": "First"}).get_json()
    second = client.post(f"{BASE}/sections", json={"name": "Second"}).get_json()
    _batch(client, [
        _upsert("b2", second["id"], order=0),
        _upsert("a2", first["id"], order=1),
        _upsert("a1", first["id"], order=0),
    ])

    ids = [f["id"] for f in client.get(f"{BASE}/faqs").get_json()]
    assert ids == ["a1", "a2", "b2"]


@pytest.mark.integration
def test_list_filtered_by_section(client):
    first = client.post(f"{BASE}/sections", json={"name": "First"}).get_json()
    second = client.post(f"{BASE}/sections", json={"name": "Second"}).get_json()
    _batch(client, [_upsert("a", first["id"]), _upsert("b", second["id"])])

    res = client.get(f"{BASE}/faqs?sectionId={second['id']}")
    assert [f["id"] for f in res.get_json()] == ["b"]


@pytest.mark.integration
def test_member_can_read_but_not_write(client, member_client, section):
    _batch(client, [_upsert("f-1", section["id"])])

    assert member_client.get(f"{BASE}/faqs").status_code == 200
    res = member_client.post(f"{BASE}/faqs/batch", json={"upserts": [], "deletes": ["f-1"]})
    assert res.status_code == 403
    assert Faq.query.count() == 1
