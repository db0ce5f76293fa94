"""Draft Store — the in-memory edit buffer for FAQ rows.

Holds a sparse map of pending FAQ records keyed by id plus the set of
base ids marked for deletion. Every operation is a synchronous in-memory
mutation; validation is deferred to the reconciler.

The store reads (never writes) the committed base collection, which is
swapped wholesale through ``set_base`` after a save or a refresh.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Mapping

from kb_editor.drafts import ordering, projector
from kb_editor.drafts.records import PATCHABLE_FIELDS, FaqField, FaqRecord, utcnow

_FIELD_ALIASES = {"sectionId": "section_id"}


def _new_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class DraftSnapshot:
    """Verbatim copy of the store's mutable state, used for rollback."""

    drafts: dict[str, FaqRecord] = field(default_factory=dict)
    tombstones: frozenset[str] = frozenset()


class DraftStore:
    """Draft map + tombstone set layered over a base collection.

    Args:
        base: Committed records, keyed by id or given as an iterable.
        clock: Returns "now"; injectable for deterministic tests.
        id_factory: Generates identifiers for new drafts.
    """

    def __init__(
        self,
        base: Mapping[str, FaqRecord] | Iterable[FaqRecord] | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory
        self._base: dict[str, FaqRecord] = {}
        self._drafts: dict[str, FaqRecord] = {}
        self._tombstones: set[str] = set()
        self.set_base(base or ())

    # ── Read access ──────────────────────────────────────────────────────

    @property
    def base(self) -> Mapping[str, FaqRecord]:
        return self._base

    @property
    def drafts(self) -> Mapping[str, FaqRecord]:
        return self._drafts

    @property
    def tombstones(self) -> frozenset[str]:
        return frozenset(self._tombstones)

    @property
    def is_dirty(self) -> bool:
        return bool(self._drafts) or bool(self._tombstones)

    def set_base(self, base: Mapping[str, FaqRecord] | Iterable[FaqRecord]) -> None:
        records = base.values() if isinstance(base, Mapping) else base
        self._base = {record.id: record for record in records}

    def effective(self) -> list[FaqRecord]:
        return projector.project(self._base.values(), self._drafts, self._tombstones)

    def effective_in_section(self, section_id: str) -> list[FaqRecord]:
        return ordering.sort_faqs(projector.filter_by_section(self.effective(), section_id))

    def _next_order(self, section_id: str, exclude_id: str | None = None) -> int:
        orders = [
            record.order
            for record in projector.filter_by_section(self.effective(), section_id)
            if record.id != exclude_id
        ]
        return max(orders, default=-1) + 1

    # ── Mutations ────────────────────────────────────────────────────────

    def create_draft(self, section_id: str, fields: Mapping[str, str] | None = None) -> str:
        """Insert a new draft at the end of ``section_id`` and return its id.

        Empty question/answer are allowed while the user is still typing.
        """
        values = {FaqField(k).value: v for k, v in (fields or {}).items()}
        draft_id = self._id_factory()
        now = self._clock()
        self._drafts[draft_id] = FaqRecord(
            id=draft_id,
            section_id=section_id,
            question=values.get(FaqField.QUESTION.value, ""),
            answer=values.get(FaqField.ANSWER.value, ""),
            notes=values.get(FaqField.NOTES.value, ""),
            order=self._next_order(section_id),
            created_at=now,
            updated_at=now,
        )
        return draft_id

    def patch_draft(self, faq_id: str, changes: Mapping[str, object]) -> FaqRecord | None:
        """Merge ``changes`` into the pending record for ``faq_id``.

        Seeds from base when no draft exists yet. A result identical to base
        drops the draft. Unknown ids are ignored. Returns the retained draft,
        or None when nothing is pending for ``faq_id`` afterwards.
        """
        normalized = {}
        for key, value in changes.items():
            name = key.value if isinstance(key, FaqField) else _FIELD_ALIASES.get(key, key)
            if name not in PATCHABLE_FIELDS:
                raise ValueError(f"Unknown FAQ field: {key!r}")
            normalized[name] = value

        base = self._base.get(faq_id)
        current = self._drafts.get(faq_id) or base
        if current is None:
            return None

        merged = current.with_changes(**normalized)
        if base is not None and merged.same_content(base):
            self._drafts.pop(faq_id, None)
            return None

        merged = merged.with_changes(updated_at=self._clock())
        self._drafts[faq_id] = merged
        return merged

    def set_field(self, faq_id: str, field_name: FaqField, value: str) -> FaqRecord | None:
        return self.patch_draft(faq_id, {FaqField(field_name): value})

    def remove_draft(self, faq_id: str) -> None:
        self._drafts.pop(faq_id, None)

    def tombstone(self, faq_id: str) -> None:
        """Mark a base row for deletion and drop any pending edit of it."""
        self._drafts.pop(faq_id, None)
        self._tombstones.add(faq_id)

    def delete(self, faq_id: str) -> bool:
        """Delete a row from the editor's point of view.

        Base rows are tombstoned; draft-only rows are simply discarded since
        nothing exists server-side. Returns True when a tombstone was added.
        """
        if faq_id in self._base:
            self.tombstone(faq_id)
            return True
        self.remove_draft(faq_id)
        return False

    def reorder(self, section_id: str, ordered_ids: Iterable[str]) -> None:
        """Apply a drag-and-drop permutation to one section."""
        current = [record.id for record in self.effective_in_section(section_id)]
        for faq_id, position in ordering.reindex(ordered_ids, current):
            self.patch_draft(faq_id, {"order": position})

    def move_to_section(self, faq_id: str, section_id: str) -> FaqRecord | None:
        """Move a row to the end of another section."""
        return self.patch_draft(
            faq_id,
            {"section_id": section_id, "order": self._next_order(section_id, exclude_id=faq_id)},
        )

    def reset(self) -> None:
        self._drafts.clear()
        self._tombstones.clear()

    def purge_by_section(
        self,
        section_id: str,
        base_ids_in_section: Iterable[str],
        draft_ids_in_section: Iterable[str],
    ) -> None:
        """Forget everything pending for a section that is being deleted.

        The server cascades the section's FAQs, so drafts for it are dropped
        and tombstones for its rows are cleared rather than sent as deletes.
        """
        for faq_id in [k for k, v in self._drafts.items() if v.section_id == section_id]:
            del self._drafts[faq_id]
        for faq_id in [*base_ids_in_section, *draft_ids_in_section]:
            self._tombstones.discard(faq_id)

    # ── Snapshots ────────────────────────────────────────────────────────

    def snapshot(self) -> DraftSnapshot:
        return DraftSnapshot(drafts=dict(self._drafts), tombstones=frozenset(self._tombstones))

    def restore(self, snapshot: DraftSnapshot) -> None:
        self._drafts = dict(snapshot.drafts)
        self._tombstones = set(snapshot.tombstones)
