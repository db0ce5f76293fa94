"""
Editing session — one scope per editing view.

Owns the committed base (FAQs, sections, phase groups), the ``DraftStore``,
the custom-rules draft, the active-tab navigation state and the save
in-flight guard. Every structural operation follows the same shape:

    1. snapshot the state it is about to touch
    2. apply the change locally (optimistic)
    3. call the gateway once
    4. on failure, restore the snapshot verbatim

``save()`` never raises gateway errors; callers inspect the returned
``CommitResult``. Restructuring operations return False on failure.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping

from kb_editor.drafts import ordering, projector, reconciler
from kb_editor.drafts.gateway import FaqGateway
from kb_editor.drafts.navigation import (
    NavigationEvent,
    PhaseGroupRemoved,
    PhaseTabState,
    SectionMoved,
    SectionRemoved,
)
from kb_editor.drafts.reconciler import CommitResult, PendingBatch
from kb_editor.drafts.records import FaqField, FaqRecord, PhaseGroupRecord, SectionRecord, utcnow
from kb_editor.drafts.store import DraftStore

logger = logging.getLogger(__name__)


class EditingSession:
    """Optimistic editor state for one organization.

    Args:
        gateway: Persistence collaborator (``ServiceGateway`` or ``HttpGateway``).
        clock: Returns "now"; shared with the draft store.
        id_factory: Generates ids for new FAQ drafts.
    """

    def __init__(
        self,
        gateway: FaqGateway,
        *,
        clock: Callable[[], Any] = utcnow,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.gateway = gateway
        self._clock = clock
        store_kwargs = {"clock": clock}
        if id_factory is not None:
            store_kwargs["id_factory"] = id_factory
        self.store = DraftStore(**store_kwargs)
        self.sections: list[SectionRecord] = []
        self.phase_groups: list[PhaseGroupRecord] = []
        self.tabs = PhaseTabState()
        self._saved_rules = ""
        self._rules_draft: str | None = None
        self._saving = False
        self._listeners: list[Callable[[NavigationEvent], None]] = []

    # ── Loading ──────────────────────────────────────────────────────────

    def load(self) -> None:
        """Fetch everything from the gateway and start with no drafts."""
        self.refresh(keep_drafts=False)
        self._saved_rules = self.gateway.get_custom_rules()
        self._rules_draft = None

    def refresh(self, keep_drafts: bool = True) -> None:
        """Replace base, sections and phase groups with the server's state."""
        sections = self.gateway.list_sections()
        groups = self.gateway.list_phase_groups()
        faqs = self.gateway.list_faqs()

        self.sections = sorted(sections, key=lambda s: s.order)
        self.phase_groups = sorted(groups, key=lambda g: g.order)
        self.store.set_base(faqs)
        if not keep_drafts:
            self.store.reset()
        logger.debug(
            "Editing session refreshed",
            extra={"sections": len(sections), "faqs": len(faqs), "kept_drafts": keep_drafts},
        )

    # ── Views ────────────────────────────────────────────────────────────

    @property
    def base(self) -> list[FaqRecord]:
        return list(self.store.base.values())

    @property
    def is_dirty(self) -> bool:
        return self.store.is_dirty

    def effective(self) -> list[FaqRecord]:
        return self.store.effective()

    def visible_faqs(self, section_id: str | None = None, query: str = "") -> list[FaqRecord]:
        """Effective rows, optionally narrowed to a section and a search query."""
        rows = self.effective()
        if section_id is not None:
            rows = projector.filter_by_section(rows, section_id)
        return ordering.sort_faqs(projector.filter_by_search(rows, query))

    def section_counts(self) -> dict[str, int]:
        return projector.count_by_section(self.effective(), [s.id for s in self.sections])

    def section(self, section_id: str) -> SectionRecord | None:
        return next((s for s in self.sections if s.id == section_id), None)

    def group_sections(self, group_id: str) -> list[SectionRecord]:
        return sorted(
            (s for s in self.sections if s.phase_group_id == group_id),
            key=lambda s: s.phase_order,
        )

    # ── FAQ edits (delegated to the store) ───────────────────────────────

    def create_faq(self, section_id: str, **fields: str) -> str:
        return self.store.create_draft(section_id, fields)

    def update_faq(self, faq_id: str, field_name: FaqField | str, value: str) -> FaqRecord | None:
        return self.store.set_field(faq_id, FaqField(field_name), value)

    def delete_faq(self, faq_id: str) -> bool:
        return self.store.delete(faq_id)

    def discard_faq(self, faq_id: str) -> None:
        self.store.remove_draft(faq_id)

    def reorder_faqs(self, section_id: str, ordered_ids: Iterable[str]) -> None:
        self.store.reorder(section_id, ordered_ids)

    def move_faq(self, faq_id: str, section_id: str) -> FaqRecord | None:
        return self.store.move_to_section(faq_id, section_id)

    def discard_all(self) -> None:
        self.store.reset()

    # ── Save ─────────────────────────────────────────────────────────────

    def pending_batch(self) -> PendingBatch:
        return reconciler.compute_pending_batch(
            self.store.base, self.store.drafts, self.store.tombstones
        )

    def can_save(self) -> bool:
        return not self._saving and reconciler.can_commit(self.pending_batch())

    def save(self) -> CommitResult:
        """Commit every pending change in a single gateway call."""
        if self._saving:
            return CommitResult(
                ok=False, error="A save is already in progress",
                error_kind=reconciler.ERROR_IN_FLIGHT,
            )

        batch = self.pending_batch()
        if not batch.has_changes:
            return CommitResult(ok=False, error="No changes to save", error_kind=reconciler.ERROR_EMPTY)
        if batch.incomplete_ids:
            return CommitResult(
                ok=False,
                error=f"{batch.incomplete_count} FAQ(s) need both a question and an answer",
                error_kind=reconciler.ERROR_INCOMPLETE,
            )

        previous_base = dict(self.store.base)
        snapshot = self.store.snapshot()

        self._saving = True
        try:
            folded = reconciler.fold_batch(
                previous_base.values(),
                [upsert.trimmed() for upsert in batch.upserts],
                batch.deletes,
                previous=snapshot.drafts,
                now=self._clock(),
            )
            self.store.set_base(folded)
            self.store.reset()

            result = reconciler.commit(self.gateway, batch)
            if not result.ok:
                self.store.set_base(previous_base)
                self.store.restore(snapshot)
        finally:
            self._saving = False
        return result

    # ── Sections & phase groups ──────────────────────────────────────────

    def subscribe(self, listener: Callable[[NavigationEvent], None]) -> Callable[[], None]:
        """Register a navigation-event listener; returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self, event: NavigationEvent) -> None:
        self.tabs.handle(event, self.sections)
        for listener in list(self._listeners):
            listener(event)

    def select_tab(self, group_id: str, section_id: str) -> None:
        self.tabs.select(group_id, section_id)

    def delete_section(self, section_id: str) -> bool:
        """Drop a section with all of its FAQs, drafts and tombstones."""
        section = self.section(section_id)
        if section is None:
            return False

        prev_sections = list(self.sections)
        prev_base = dict(self.store.base)
        prev_drafts = self.store.snapshot()
        prev_tabs = self.tabs.as_dict()

        base_ids = [f.id for f in prev_base.values() if f.section_id == section_id]
        draft_ids = [d.id for d in prev_drafts.drafts.values() if d.section_id == section_id]
        self.store.purge_by_section(section_id, base_ids, draft_ids)
        self.store.set_base(f for f in prev_base.values() if f.section_id != section_id)
        self.sections = [s for s in prev_sections if s.id != section_id]
        self._emit(SectionRemoved(section_id, section.phase_group_id))

        try:
            self.gateway.delete_section(section_id)
        except Exception as exc:
            logger.warning("Section delete failed, restoring: %s", exc)
            self.sections = prev_sections
            self.store.set_base(prev_base)
            self.store.restore(prev_drafts)
            self.tabs.restore(prev_tabs)
            return False
        return True

    def move_section_to_group(self, section_id: str, group_id: str) -> bool:
        section = self.section(section_id)
        if section is None:
            return False

        prev_sections = list(self.sections)
        prev_tabs = self.tabs.as_dict()
        next_phase_order = max(
            (s.phase_order for s in self.sections if s.phase_group_id == group_id), default=-1
        ) + 1
        moved = SectionRecord(
            id=section.id, name=section.name, order=section.order,
            phase_group_id=group_id, phase_order=next_phase_order,
        )
        self._replace_section(moved)
        self._emit(SectionMoved(section_id, section.phase_group_id, group_id))

        try:
            updated = self.gateway.add_section_to_group(section_id, group_id)
        except Exception as exc:
            logger.warning("Move to phase group failed, restoring: %s", exc)
            self.sections = prev_sections
            self.tabs.restore(prev_tabs)
            return False
        self._replace_section(updated)
        return True

    def remove_section_from_group(self, section_id: str) -> bool:
        section = self.section(section_id)
        if section is None or section.phase_group_id is None:
            return False

        prev_sections = list(self.sections)
        prev_tabs = self.tabs.as_dict()
        self._replace_section(SectionRecord(id=section.id, name=section.name, order=section.order))
        self._emit(SectionMoved(section_id, section.phase_group_id, None))

        try:
            updated = self.gateway.remove_section_from_group(section_id)
        except Exception as exc:
            logger.warning("Remove from phase group failed, restoring: %s", exc)
            self.sections = prev_sections
            self.tabs.restore(prev_tabs)
            return False
        self._replace_section(updated)
        return True

    def delete_phase_group(self, group_id: str) -> bool:
        """Delete a group; its sections become standalone, FAQs are untouched."""
        prev_groups = list(self.phase_groups)
        prev_sections = list(self.sections)
        prev_tabs = self.tabs.as_dict()

        self.phase_groups = [g for g in prev_groups if g.id != group_id]
        self.sections = [
            SectionRecord(id=s.id, name=s.name, order=s.order) if s.phase_group_id == group_id else s
            for s in prev_sections
        ]
        self._emit(PhaseGroupRemoved(group_id))

        try:
            self.gateway.delete_phase_group(group_id)
        except Exception as exc:
            logger.warning("Phase group delete failed, restoring: %s", exc)
            self.phase_groups = prev_groups
            self.sections = prev_sections
            self.tabs.restore(prev_tabs)
            return False
        return True

    def _replace_section(self, updated: SectionRecord) -> None:
        self.sections = [updated if s.id == updated.id else s for s in self.sections]

    # ── Custom rules ─────────────────────────────────────────────────────

    @property
    def custom_rules(self) -> str:
        return self._rules_draft if self._rules_draft is not None else self._saved_rules

    @property
    def custom_rules_dirty(self) -> bool:
        return self._rules_draft is not None

    def edit_custom_rules(self, content: str) -> None:
        self._rules_draft = None if content == self._saved_rules else content

    def discard_custom_rules(self) -> None:
        self._rules_draft = None

    def save_custom_rules(self) -> bool:
        if self._rules_draft is None:
            return True

        content = self._rules_draft
        previous = self._saved_rules
        self._saved_rules = content
        self._rules_draft = None
        try:
            self.gateway.save_custom_rules(content)
        except Exception as exc:
            logger.warning("Custom rules save failed, restoring draft: %s", exc)
            self._saved_rules = previous
            self._rules_draft = content
            return False
        return True

    # ── Export ───────────────────────────────────────────────────────────

    def export_markdown(
        self,
        preset_config: Mapping[str, Any] | None = None,
        variables: Iterable[Mapping[str, Any]] = (),
    ) -> str:
        """Render the current effective view, unsaved drafts included."""
        from kb_editor.services.markdown_export import ExportOptions, render_markdown

        return render_markdown(
            sections=self.sections,
            faqs=self.effective(),
            variables=variables,
            custom_rules=self.custom_rules,
            options=ExportOptions.from_config(preset_config),
        )
