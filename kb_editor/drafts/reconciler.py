"""Batch Reconciler — diff drafts against base and commit them in one request.

``compute_pending_batch`` produces the minimal change set, ``can_commit`` is
the save gate, ``commit`` performs the single gateway call and classifies any
failure, and ``fold_batch`` turns a successful batch into the next base.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, Iterable, Mapping

from kb_editor.drafts.gateway import BatchRejectedError, FaqGateway, TransientGatewayError
from kb_editor.drafts.records import FaqRecord, FaqUpsert, utcnow

logger = logging.getLogger(__name__)

ERROR_TRANSIENT = "transient"
ERROR_REJECTED = "rejected"
ERROR_UNKNOWN = "unknown"
ERROR_IN_FLIGHT = "in_flight"
ERROR_INCOMPLETE = "incomplete"
ERROR_EMPTY = "empty"


@dataclass(frozen=True)
class PendingBatch:
    upserts: tuple[FaqUpsert, ...] = ()
    deletes: tuple[str, ...] = ()
    created: int = 0
    updated: int = 0
    incomplete_ids: tuple[str, ...] = ()

    @property
    def deleted(self) -> int:
        return len(self.deletes)

    @property
    def has_changes(self) -> bool:
        return bool(self.upserts) or bool(self.deletes)

    @property
    def incomplete_count(self) -> int:
        return len(self.incomplete_ids)

    def summary(self) -> dict:
        return {
            "created": self.created,
            "updated": self.updated,
            "deleted": self.deleted,
            "incomplete": self.incomplete_count,
        }


@dataclass(frozen=True)
class CommitResult:
    """Outcome of a save attempt. Never carries a raised exception out."""

    ok: bool
    upserted: int = 0
    deleted: int = 0
    error: str | None = None
    error_kind: str | None = None
    upserts: tuple[FaqUpsert, ...] = field(default=(), repr=False)
    deletes: tuple[str, ...] = field(default=(), repr=False)

    @property
    def needs_refresh(self) -> bool:
        """Retrying verbatim will likely fail again; reload base first."""
        return self.error_kind in (ERROR_REJECTED, ERROR_UNKNOWN)


def compute_pending_batch(
    base: Mapping[str, FaqRecord],
    drafts: Mapping[str, FaqRecord],
    tombstones: AbstractSet[str],
) -> PendingBatch:
    upserts: list[FaqUpsert] = []
    incomplete: list[str] = []
    created = updated = 0

    for draft in drafts.values():
        if draft.id in tombstones:
            continue
        base_record = base.get(draft.id)
        if base_record is not None:
            if draft.same_content(base_record):
                continue
            updated += 1
        else:
            created += 1

        if not draft.is_complete:
            incomplete.append(draft.id)
        upserts.append(FaqUpsert.from_record(draft))

    deletes = tuple(faq_id for faq_id in sorted(tombstones) if faq_id in base)

    return PendingBatch(
        upserts=tuple(upserts),
        deletes=deletes,
        created=created,
        updated=updated,
        incomplete_ids=tuple(incomplete),
    )


def can_commit(batch: PendingBatch) -> bool:
    return batch.has_changes and not batch.incomplete_ids


def fold_batch(
    base: Iterable[FaqRecord],
    upserts: Iterable[FaqUpsert],
    deletes: Iterable[str],
    *,
    previous: Mapping[str, FaqRecord] | None = None,
    now: datetime | None = None,
) -> list[FaqRecord]:
    """Return the base that results from applying a committed batch.

    Upserted rows keep their original ``created_at`` (looked up in ``base``
    first, then ``previous`` for rows that only existed as drafts) and get
    ``updated_at`` = ``now``.
    """
    now = now or utcnow()
    base = list(base)
    by_id = {record.id: record for record in base}
    previous = previous or {}
    deleted = set(deletes)

    folded: dict[str, FaqRecord] = {}
    for upsert in upserts:
        origin = by_id.get(upsert.id) or previous.get(upsert.id)
        folded[upsert.id] = FaqRecord(
            id=upsert.id,
            section_id=upsert.section_id,
            question=upsert.question,
            answer=upsert.answer,
            notes=upsert.notes,
            order=upsert.order,
            created_at=origin.created_at if origin and origin.created_at else now,
            updated_at=now,
        )

    kept = [r for r in base if r.id not in deleted and r.id not in folded]
    return kept + list(folded.values())


def commit(gateway: FaqGateway, batch: PendingBatch) -> CommitResult:
    """Trim and send the whole batch as one gateway call.

    Callers must have checked ``can_commit``. Gateway failures are classified
    and returned, not raised.
    """
    upserts = tuple(upsert.trimmed() for upsert in batch.upserts)
    deletes = tuple(batch.deletes)

    try:
        response = gateway.apply_faq_batch(list(upserts), list(deletes))
    except TransientGatewayError as exc:
        logger.warning("FAQ batch failed (transient): %s", exc)
        return CommitResult(ok=False, error=str(exc), error_kind=ERROR_TRANSIENT,
                            upserts=upserts, deletes=deletes)
    except BatchRejectedError as exc:
        logger.warning("FAQ batch rejected: %s", exc)
        return CommitResult(ok=False, error=str(exc), error_kind=ERROR_REJECTED,
                            upserts=upserts, deletes=deletes)
    except Exception as exc:
        logger.exception("FAQ batch failed unexpectedly")
        return CommitResult(ok=False, error=str(exc), error_kind=ERROR_UNKNOWN,
                            upserts=upserts, deletes=deletes)

    logger.info(
        "FAQ batch committed",
        extra={"upserted": response.get("upserted"), "deleted": response.get("deleted")},
    )
    return CommitResult(
        ok=True,
        upserted=int(response.get("upserted", len(upserts))),
        deleted=int(response.get("deleted", len(deletes))),
        upserts=upserts,
        deletes=deletes,
    )
