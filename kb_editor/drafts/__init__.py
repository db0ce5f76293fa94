"""Optimistic FAQ draft engine.

Edits land in a ``DraftStore`` layered over the committed base; the effective
view is recomputed on demand and the whole change set is saved as one batch.

    from kb_editor.drafts import EditingSession, HttpGateway

    session = EditingSession(HttpGateway("https://kb.example.com", "acme", api_key=key))
    session.load()
    faq_id = session.create_faq(section_id, question="Q?", answer="A.")
    result = session.save()
"""

from kb_editor.drafts.gateway import (
    BatchRejectedError,
    FaqGateway,
    GatewayError,
    HttpGateway,
    ServiceGateway,
    TransientGatewayError,
)
from kb_editor.drafts.navigation import PhaseGroupRemoved, PhaseTabState, SectionMoved, SectionRemoved
from kb_editor.drafts.reconciler import CommitResult, PendingBatch
from kb_editor.drafts.records import FaqField, FaqRecord, FaqUpsert, PhaseGroupRecord, SectionRecord
from kb_editor.drafts.session import EditingSession
from kb_editor.drafts.store import DraftStore

__all__ = [
    "BatchRejectedError",
    "CommitResult",
    "DraftStore",
    "EditingSession",
    "FaqField",
    "FaqGateway",
    "FaqRecord",
    "FaqUpsert",
    "GatewayError",
    "HttpGateway",
    "PendingBatch",
    "PhaseGroupRecord",
    "PhaseGroupRemoved",
    "PhaseTabState",
    "SectionMoved",
    "SectionRecord",
    "SectionRemoved",
    "ServiceGateway",
    "TransientGatewayError",
]
