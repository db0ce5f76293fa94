"""Active-tab-per-phase-group navigation state.

Structural changes to sections are announced as events; ``PhaseTabState``
consumes them and keeps every group's active tab pointing at a section that
still belongs to the group.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from kb_editor.drafts.records import SectionRecord


@dataclass(frozen=True)
class SectionRemoved:
    section_id: str
    group_id: str | None = None


@dataclass(frozen=True)
class SectionMoved:
    """A section changed group. ``None`` on either side means standalone."""

    section_id: str
    from_group: str | None = None
    to_group: str | None = None


@dataclass(frozen=True)
class PhaseGroupRemoved:
    group_id: str


NavigationEvent = SectionRemoved | SectionMoved | PhaseGroupRemoved


class PhaseTabState:
    def __init__(self, active: Mapping[str, str] | None = None) -> None:
        self._active: dict[str, str] = dict(active or {})

    def select(self, group_id: str, section_id: str) -> None:
        self._active[group_id] = section_id

    def active(self, group_id: str) -> str | None:
        return self._active.get(group_id)

    def as_dict(self) -> dict[str, str]:
        return dict(self._active)

    def restore(self, active: Mapping[str, str]) -> None:
        self._active = dict(active)

    def handle(self, event: NavigationEvent, sections: Iterable[SectionRecord]) -> None:
        """Apply ``event`` given the section list as it is after the change."""
        sections = list(sections)

        if isinstance(event, PhaseGroupRemoved):
            self._active.pop(event.group_id, None)
        elif isinstance(event, SectionRemoved):
            if event.group_id:
                self._fail_over(event.group_id, sections, gone=event.section_id)
        elif isinstance(event, SectionMoved):
            if event.from_group:
                self._fail_over(event.from_group, sections, gone=event.section_id)
            if event.to_group:
                self._active[event.to_group] = event.section_id
        else:
            raise TypeError(f"Unsupported navigation event: {event!r}")

    def _fail_over(self, group_id: str, sections: list[SectionRecord], gone: str) -> None:
        # First remaining sibling by phase order, or no active tab at all.
        siblings = sorted(
            (s for s in sections if s.phase_group_id == group_id and s.id != gone),
            key=lambda s: s.phase_order,
        )
        current = self._active.get(group_id)
        if current and any(s.id == current for s in siblings):
            return
        if siblings:
            self._active[group_id] = siblings[0].id
        else:
            self._active.pop(group_id, None)
