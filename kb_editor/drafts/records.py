"""Value types shared by the FAQ draft engine.

``FaqRecord`` is the in-memory shape of one FAQ row, whether it comes from the
server (base) or from the draft map. Records are frozen; every edit produces a
new record through ``dataclasses.replace``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Mapping


class FaqField(str, enum.Enum):
    """The user-editable text fields of a FAQ row."""

    QUESTION = "question"
    ANSWER = "answer"
    NOTES = "notes"


# Fields a draft patch may touch. Timestamps are engine-managed.
PATCHABLE_FIELDS = frozenset(["section_id", "question", "answer", "notes", "order"])

# Fields compared when deciding whether a draft still differs from base.
CONTENT_FIELDS = ("section_id", "question", "answer", "notes", "order")

_WIRE_TO_ATTR = {
    "sectionId": "section_id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Best-effort conversion of an API timestamp to an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class FaqRecord:
    id: str
    section_id: str
    question: str = ""
    answer: str = ""
    notes: str = ""
    order: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FaqRecord":
        """Build a record from an API payload (camelCase or snake_case keys)."""
        values = {_WIRE_TO_ATTR.get(k, k): v for k, v in data.items()}
        return cls(
            id=str(values["id"]),
            section_id=str(values["section_id"]),
            question=values.get("question") or "",
            answer=values.get("answer") or "",
            notes=values.get("notes") or "",
            order=int(values.get("order") or 0),
            created_at=parse_timestamp(values.get("created_at")),
            updated_at=parse_timestamp(values.get("updated_at")),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sectionId": self.section_id,
            "question": self.question,
            "answer": self.answer,
            "notes": self.notes,
            "order": self.order,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }

    def same_content(self, other: "FaqRecord | None") -> bool:
        """True when every content field matches ``other`` (timestamps ignored)."""
        if other is None:
            return False
        return all(getattr(self, f) == getattr(other, f) for f in CONTENT_FIELDS)

    def with_changes(self, **changes) -> "FaqRecord":
        return replace(self, **changes)

    @property
    def is_complete(self) -> bool:
        return bool(self.question.strip()) and bool(self.answer.strip())


@dataclass(frozen=True)
class FaqUpsert:
    """One row of the batch request: insert new or fully overwrite existing."""

    id: str
    section_id: str
    question: str
    answer: str
    notes: str
    order: int

    @classmethod
    def from_record(cls, record: FaqRecord) -> "FaqUpsert":
        return cls(
            id=record.id,
            section_id=record.section_id,
            question=record.question,
            answer=record.answer,
            notes=record.notes,
            order=record.order,
        )

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "FaqUpsert":
        return cls(
            id=str(data["id"]),
            section_id=str(data["sectionId"]),
            question=data.get("question") or "",
            answer=data.get("answer") or "",
            notes=data.get("notes") or "",
            order=int(data.get("order") or 0),
        )

    def trimmed(self) -> "FaqUpsert":
        return replace(
            self,
            question=self.question.strip(),
            answer=self.answer.strip(),
            notes=self.notes.strip(),
        )

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "sectionId": self.section_id,
            "question": self.question,
            "answer": self.answer,
            "notes": self.notes,
            "order": self.order,
        }


@dataclass(frozen=True)
class SectionRecord:
    id: str
    name: str
    order: int = 0
    phase_group_id: str | None = None
    phase_order: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SectionRecord":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            order=int(data.get("order") or 0),
            phase_group_id=data.get("phaseGroupId"),
            phase_order=int(data.get("phaseOrder") or 0),
        )


@dataclass(frozen=True)
class PhaseGroupRecord:
    id: str
    name: str
    order: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PhaseGroupRecord":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            order=int(data.get("order") or 0),
        )
