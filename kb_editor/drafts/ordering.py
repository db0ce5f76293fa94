"""Deterministic ordering of FAQ rows within a section.

Rows sort by ``order``, then ``created_at`` (missing timestamps count as the
epoch), then ``id``. The key never ties for distinct ids, so reorder diffs and
Markdown exports are reproducible.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Hashable, Iterable, TypeVar

from kb_editor.drafts.records import FaqRecord, parse_timestamp

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

K = TypeVar("K", bound=Hashable)


def _created_ms(record: FaqRecord) -> float:
    created = parse_timestamp(record.created_at) or _EPOCH
    return (created - _EPOCH).total_seconds() * 1000


def sort_key(record: FaqRecord) -> tuple[int, float, str]:
    return (record.order, _created_ms(record), record.id)


def compare(a: FaqRecord, b: FaqRecord) -> int:
    """Three-way comparison over ``sort_key``; 0 only for the same id."""
    ka, kb = sort_key(a), sort_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def sort_faqs(records: Iterable[FaqRecord]) -> list[FaqRecord]:
    return sorted(records, key=sort_key)


def reindex(ordered_ids: Iterable[K], all_ids_in_scope: Iterable[K]) -> list[tuple[K, int]]:
    """Map a (possibly stale) permutation onto contiguous order integers.

    Ids in ``ordered_ids`` that are not in scope are dropped and repeats are
    ignored. In-scope ids the permutation does not mention keep their
    relative position from ``all_ids_in_scope`` and go last.

    >>> reindex(["b", "a"], ["a", "b", "c"])
    [('b', 0), ('a', 1), ('c', 2)]
    """
    scope = list(dict.fromkeys(all_ids_in_scope))
    in_scope = set(scope)

    placed: list[K] = []
    seen: set[K] = set()
    for item_id in ordered_ids:
        if item_id in in_scope and item_id not in seen:
            placed.append(item_id)
            seen.add(item_id)

    placed.extend(item_id for item_id in scope if item_id not in seen)
    return [(item_id, index) for index, item_id in enumerate(placed)]
