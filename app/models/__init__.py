"""Database models."""
from app.models.moderation import ContentSubmission, ModerationAction
from app.models.legal_document import (
    LegalDocument,
    LegalDocumentVersion,
    LegalDocumentAuditEvent,
)

__all__ = [
    "ContentSubmission",
    "ModerationAction",
    "LegalDocument",
    "LegalDocumentVersion",
    "LegalDocumentAuditEvent",
]
