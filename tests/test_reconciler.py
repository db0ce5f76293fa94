"""
Tests: pending-batch diffing, the save gate, batch folding and commit
failure classification.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from kb_editor.drafts import reconciler
from kb_editor.drafts.gateway import BatchRejectedError, TransientGatewayError
from kb_editor.drafts.records import FaqRecord, FaqUpsert

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _faq(faq_id, question="q", answer="a", section_id="s1", order=0, created_at=T0):
    return FaqRecord(id=faq_id, section_id=section_id, question=question, answer=answer,
                     order=order, created_at=created_at, updated_at=created_at)


class _RecordingGateway:
    """Minimal stand-in exposing only ``apply_faq_batch``."""

    def __init__(self, response=None, error=None):
        self.calls = []
        self.response = response
        self.error = error

    def apply_faq_batch(self, upserts, deletes):
        self.calls.append((upserts, deletes))
        if self.error is not None:
            raise self.error
        return self.response if self.response is not None else {
            "upserted": len(upserts), "deleted": len(deletes),
        }


# ── compute_pending_batch ────────────────────────────────────────────────────


@pytest.mark.unit
def test_pending_batch_counts_created_updated_deleted():
    base = {"a": _faq("a"), "b": _faq("b"), "c": _faq("c")}
    drafts = {"a": _faq("a", question="edited"), "new": _faq("new", created_at=None)}
    batch = reconciler.compute_pending_batch(base, drafts, {"c"})

    assert batch.summary() == {"created": 1, "updated": 1, "deleted": 1, "incomplete": 0}
    assert {u.id for u in batch.upserts} == {"a", "new"}
    assert batch.deletes == ("c",)


@pytest.mark.unit
def test_pending_batch_skips_drafts_identical_to_base():
    base = {"a": _faq("a")}
    drafts = {"a": _faq("a", created_at=NOW)}
    batch = reconciler.compute_pending_batch(base, drafts, set())
    assert not batch.has_changes


@pytest.mark.unit
def test_pending_batch_skips_tombstoned_drafts():
    base = {"a": _faq("a")}
    batch = reconciler.compute_pending_batch(base, {"a": _faq("a", question="x")}, {"a"})
    assert batch.upserts == ()
    assert batch.deletes == ("a",)


@pytest.mark.unit
def test_pending_batch_ignores_tombstones_for_non_base_ids():
    batch = reconciler.compute_pending_batch({}, {}, {"ghost"})
    assert batch.deletes == ()
    assert not batch.has_changes


@pytest.mark.unit
def test_pending_batch_flags_whitespace_only_rows_as_incomplete():
    drafts = {"new": _faq("new", question="  ", answer="A")}
    batch = reconciler.compute_pending_batch({}, drafts, set())
    assert batch.incomplete_ids == ("new",)
    assert not reconciler.can_commit(batch)


@pytest.mark.unit
def test_can_commit_requires_changes():
    assert not reconciler.can_commit(reconciler.PendingBatch())


@pytest.mark.unit
def test_can_commit_with_complete_changes():
    batch = reconciler.compute_pending_batch({}, {"n": _faq("n")}, set())
    assert reconciler.can_commit(batch)


# ── fold_batch ───────────────────────────────────────────────────────────────


@pytest.mark.unit
def test_fold_batch_preserves_created_at_and_stamps_updated_at():
    base = [_faq("a"), _faq("b")]
    upserts = [FaqUpsert("a", "s1", "Q2", "A2", "", 0)]
    folded = {r.id: r for r in reconciler.fold_batch(base, upserts, ["b"], now=NOW)}

    assert set(folded) == {"a"}
    assert folded["a"].question == "Q2"
    assert folded["a"].created_at == T0
    assert folded["a"].updated_at == NOW


@pytest.mark.unit
def test_fold_batch_takes_created_at_of_new_rows_from_previous_drafts():
    draft_created = datetime(2026, 2, 1, tzinfo=timezone.utc)
    previous = {"n": _faq("n", created_at=draft_created)}
    folded = reconciler.fold_batch([], [FaqUpsert("n", "s1", "Q", "A", "", 0)], [],
                                   previous=previous, now=NOW)
    assert folded[0].created_at == draft_created


@pytest.mark.unit
def test_fold_batch_defaults_created_at_to_now():
    folded = reconciler.fold_batch([], [FaqUpsert("n", "s1", "Q", "A", "", 0)], [], now=NOW)
    assert folded[0].created_at == NOW


# ── commit ───────────────────────────────────────────────────────────────────


def _batch_with_padding():
    drafts = {"n": _faq("n", question="  Q  ", answer="\tA\n")}
    return reconciler.compute_pending_batch({"d": _faq("d")}, drafts, {"d"})


@pytest.mark.unit
def test_commit_sends_trimmed_fields_in_one_call():
    gateway = _RecordingGateway()
    result = reconciler.commit(gateway, _batch_with_padding())

    assert result.ok
    assert result.upserted == 1
    assert result.deleted == 1
    assert len(gateway.calls) == 1
    upserts, deletes = gateway.calls[0]
    assert upserts[0].question == "Q"
    assert upserts[0].answer == "A"
    assert deletes == ["d"]


@pytest.mark.unit
def test_commit_classifies_transient_failures():
    gateway = _RecordingGateway(error=TransientGatewayError("timeout"))
    result = reconciler.commit(gateway, _batch_with_padding())

    assert not result.ok
    assert result.error_kind == reconciler.ERROR_TRANSIENT
    assert not result.needs_refresh


@pytest.mark.unit
def test_commit_classifies_rejections_as_needing_refresh():
    gateway = _RecordingGateway(error=BatchRejectedError("Invalid section", status_code=422))
    result = reconciler.commit(gateway, _batch_with_padding())

    assert result.error_kind == reconciler.ERROR_REJECTED
    assert result.needs_refresh
    assert "Invalid section" in result.error


@pytest.mark.unit
def test_commit_never_raises_unexpected_errors():
    gateway = _RecordingGateway(error=RuntimeError("boom"))
    result = reconciler.commit(gateway, _batch_with_padding())

    assert result.error_kind == reconciler.ERROR_UNKNOWN
    assert result.needs_refresh
