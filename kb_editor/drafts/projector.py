"""Effective view: what the editor currently shows.

Pure functions over (base, drafts, tombstones). Safe to call on every render;
nothing here mutates its inputs.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, Mapping

from kb_editor.drafts.records import FaqRecord


def project(
    base: Iterable[FaqRecord],
    drafts: Mapping[str, FaqRecord],
    tombstones: AbstractSet[str],
) -> list[FaqRecord]:
    """Overlay drafts on base, hide tombstoned ids, append draft-only rows.

    Emission order is base order followed by draft insertion order; callers
    sort with ``ordering.sort_key`` before display.
    """
    out: list[FaqRecord] = []
    seen: set[str] = set()

    for record in base:
        if record.id in seen:
            continue
        seen.add(record.id)
        if record.id in tombstones:
            continue
        out.append(drafts.get(record.id, record))

    for draft_id, draft in drafts.items():
        if draft_id in seen or draft_id in tombstones:
            continue
        out.append(draft)

    return out


def filter_by_section(collection: Iterable[FaqRecord], section_id: str) -> list[FaqRecord]:
    return [record for record in collection if record.section_id == section_id]


def filter_by_search(collection: Iterable[FaqRecord], query: str | None) -> list[FaqRecord]:
    """Case-insensitive substring match over question, answer and notes.

    A blank query means "no filter" and returns everything; a query with no
    hits returns an empty list.
    """
    collection = list(collection)
    if not query or not query.strip():
        return collection

    needle = query.lower()
    return [
        record
        for record in collection
        if needle in record.question.lower()
        or needle in record.answer.lower()
        or needle in record.notes.lower()
    ]


def count_by_section(collection: Iterable[FaqRecord], section_ids: Iterable[str]) -> dict[str, int]:
    counts = {section_id: 0 for section_id in section_ids}
    for record in collection:
        if record.section_id in counts:
            counts[record.section_id] += 1
    return counts
