"""Legal document models with per-locale versioning and an audit trail.

Two-table versioning pattern:
- LegalDocument: document identity, classification, audience, live version pointer
- LegalDocumentVersion: localized revisions, numbered per (document, locale)
- LegalDocumentAuditEvent: append-only record of every lifecycle transition

Version workflow: draft → in_review → approved → published → archived.
Activation (pointing the document at one published/approved version) is a
separate, document-wide transition that supersedes every other live version.
"""
import re
import uuid

from sqlalchemy import (
    Column, String, Text, ForeignKey, Integer,
    CheckConstraint, Index, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from app.db import Base
from app.models.constants import (
    LegalDocumentCategory,
    LegalDocumentStatus,
    LegalDocumentVersionStatus,
    check_constraint_sql,
)
from app.models.types import UTCDateTime, UniversalJSON, utcnow


def resolve_document_status(archived: bool, has_active_version: bool) -> LegalDocumentStatus:
    """Derive a document's status. The only place document status is decided."""
    if archived:
        return LegalDocumentStatus.ARCHIVED
    if has_active_version:
        return LegalDocumentStatus.ACTIVE
    return LegalDocumentStatus.DRAFT


class LegalDocument(Base):
    """A governed policy artifact (terms, privacy policy, ...).

    Locale-agnostic container. Content lives in LegalDocumentVersion rows;
    active_version_id points at the single live version, in any locale.
    """
    __tablename__ = "legal_documents"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Identity
    slug = Column(String, nullable=False, unique=True, index=True)
    title = Column(String, nullable=False)
    summary = Column(Text, nullable=True)

    # Classification
    category = Column(String, nullable=False, index=True)
    status = Column(String, nullable=False, default=LegalDocumentStatus.DRAFT.value, index=True)
    region = Column(String, nullable=False, default="global")
    default_locale = Column(String, nullable=False, default="en")

    # Audience and editorial control (JSON lists of role names)
    audience_roles = Column(UniversalJSON, nullable=False, default=list)
    editor_roles = Column(UniversalJSON, nullable=False, default=list)
    tags = Column(UniversalJSON, nullable=False, default=list)

    # Live version pointer
    active_version_id = Column(
        Uuid,
        ForeignKey(
            "legal_document_versions.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_legal_documents_active_version",
        ),
        nullable=True,
    )

    # Lifecycle stamps
    published_at = Column(UTCDateTime, nullable=True)
    retired_at = Column(UTCDateTime, nullable=True)
    archived_at = Column(UTCDateTime, nullable=True)  # set when the document itself is archived

    # Provenance
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)

    # Timestamps
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    lock_version = Column(Integer, nullable=False, default=1)

    # Relationships
    versions = relationship(
        "LegalDocumentVersion",
        back_populates="document",
        foreign_keys="LegalDocumentVersion.document_id",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [LegalDocumentVersion.locale, LegalDocumentVersion.version.desc()],
    )
    active_version = relationship(
        "LegalDocumentVersion",
        foreign_keys=[active_version_id],
        viewonly=True,
    )
    audit_events = relationship(
        "LegalDocumentAuditEvent",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="LegalDocumentAuditEvent.created_at.desc()",
    )

    __table_args__ = (
        CheckConstraint(
            check_constraint_sql("category", LegalDocumentCategory),
            name="ck_legal_documents_category",
        ),
        CheckConstraint(
            check_constraint_sql("status", LegalDocumentStatus),
            name="ck_legal_documents_status",
        ),
    )

    __mapper_args__ = {"version_id_col": lock_version}

    def __repr__(self):
        return f"<LegalDocument {self.slug} category={self.category} status={self.status}>"

    def refresh_status(self) -> LegalDocumentStatus:
        """Recompute and store status from archived_at and the live pointer."""
        status = resolve_document_status(
            archived=self.archived_at is not None,
            has_active_version=self.active_version_id is not None,
        )
        self.status = status.value
        return status

    @staticmethod
    def generate_slug(text: str) -> str:
        """Generate a URL-safe slug from a title or requested slug."""
        slug = text.lower()
        slug = re.sub(r"[^a-z0-9\s_-]", "", slug)
        slug = re.sub(r"[\s_]+", "-", slug)
        slug = re.sub(r"-{2,}", "-", slug)
        return slug.strip("-")[:100]


class LegalDocumentVersion(Base):
    """One revision of a document's content in one locale.

    Numbered 1, 2, 3... independently for every (document, locale) pair.
    Once superseded_at is set the version can no longer be activated.
    """
    __tablename__ = "legal_document_versions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    document_id = Column(
        Uuid,
        ForeignKey("legal_documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    locale = Column(String, nullable=False)
    version = Column(Integer, nullable=False)

    status = Column(
        String, nullable=False, default=LegalDocumentVersionStatus.DRAFT.value, index=True
    )

    # Content
    title = Column(String, nullable=True)
    summary = Column(Text, nullable=True)
    change_summary = Column(Text, nullable=True)  # what changed in this version
    content = Column(Text, nullable=True)
    external_url = Column(String, nullable=True)
    meta = Column("metadata", UniversalJSON, nullable=False, default=dict)

    # Lifecycle
    effective_at = Column(UTCDateTime, nullable=True)
    published_at = Column(UTCDateTime, nullable=True)
    published_by = Column(String, nullable=True)
    superseded_at = Column(UTCDateTime, nullable=True)
    archived_at = Column(UTCDateTime, nullable=True)

    # Provenance
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    document = relationship(
        "LegalDocument",
        back_populates="versions",
        foreign_keys=[document_id],
    )

    __table_args__ = (
        CheckConstraint(
            check_constraint_sql("status", LegalDocumentVersionStatus),
            name="ck_legal_document_versions_status",
        ),
        UniqueConstraint(
            "document_id", "locale", "version",
            name="uq_legal_document_versions_doc_locale_version",
        ),
        Index("ix_legal_document_versions_doc_status", "document_id", "status"),
    )

    def __repr__(self):
        return (
            f"<LegalDocumentVersion doc={self.document_id} {self.locale} "
            f"v{self.version} status={self.status}>"
        )

    @property
    def is_superseded(self) -> bool:
        return self.superseded_at is not None


class LegalDocumentAuditEvent(Base):
    """Immutable record of a document or version lifecycle transition."""
    __tablename__ = "legal_document_audit_events"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    document_id = Column(
        Uuid,
        ForeignKey("legal_documents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_id = Column(
        Uuid,
        ForeignKey("legal_document_versions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    actor_id = Column(String, nullable=True)
    actor_type = Column(String, nullable=False, default="admin")
    action = Column(String, nullable=False, index=True)
    summary = Column(Text, nullable=True)
    meta = Column("metadata", UniversalJSON, nullable=False, default=dict)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)

    document = relationship("LegalDocument", back_populates="audit_events")
    version = relationship("LegalDocumentVersion", foreign_keys=[version_id])

    def __repr__(self):
        return f"<LegalDocumentAuditEvent {self.action} doc={self.document_id}>"
