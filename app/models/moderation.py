"""Content moderation models.

- ContentSubmission: a unit of content waiting for (or past) review
- ModerationAction: immutable audit record of one decision on a submission

Submissions are never hard-deleted; their lifecycle is carried by status.
Actions are written once and never updated.
"""
import uuid

from sqlalchemy import (
    Column, String, Text, ForeignKey, Integer, Numeric,
    CheckConstraint, Index, Uuid,
)
from sqlalchemy.orm import relationship

from app.db import Base
from app.models.constants import (
    ModerationActionType,
    SubmissionPriority,
    SubmissionSeverity,
    SubmissionStatus,
    check_constraint_sql,
)
from app.models.types import UTCDateTime, UniversalJSON, utcnow


class ContentSubmission(Base):
    """A piece of user or system content in the moderation queue."""
    __tablename__ = "content_submissions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # What is being moderated
    reference_id = Column(String, nullable=False, index=True)
    reference_type = Column(String, nullable=False, index=True)  # profile, gig, post, comment...
    title = Column(String, nullable=True)
    summary = Column(Text, nullable=True)
    region = Column(String, nullable=True, index=True)

    # Triage
    status = Column(String, nullable=False, default=SubmissionStatus.PENDING.value, index=True)
    priority = Column(String, nullable=False, default=SubmissionPriority.STANDARD.value, index=True)
    severity = Column(String, nullable=False, default=SubmissionSeverity.LOW.value, index=True)
    risk_score = Column(Numeric(5, 2, asdecimal=False), nullable=False, default=0)
    sla_minutes = Column(Integer, nullable=True)

    # Ownership
    assigned_reviewer_id = Column(String, nullable=True, index=True)
    assigned_team = Column(String, nullable=True, index=True)

    # Outcome
    rejection_reason = Column(Text, nullable=True)
    resolution_notes = Column(Text, nullable=True)
    meta = Column("metadata", UniversalJSON, nullable=False, default=dict)

    # Timestamps
    submitted_at = Column(UTCDateTime, nullable=False, default=utcnow)
    last_activity_at = Column(UTCDateTime, nullable=False, default=utcnow)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Optimistic concurrency token
    lock_version = Column(Integer, nullable=False, default=1)

    # Relationships
    actions = relationship(
        "ModerationAction",
        back_populates="submission",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ModerationAction.created_at.desc()",
    )

    __table_args__ = (
        CheckConstraint(
            check_constraint_sql("status", SubmissionStatus),
            name="ck_content_submissions_status",
        ),
        CheckConstraint(
            check_constraint_sql("priority", SubmissionPriority),
            name="ck_content_submissions_priority",
        ),
        CheckConstraint(
            check_constraint_sql("severity", SubmissionSeverity),
            name="ck_content_submissions_severity",
        ),
        CheckConstraint(
            "risk_score >= 0 AND risk_score <= 999.99",
            name="ck_content_submissions_risk_score",
        ),
        Index("ix_content_submissions_queue", "status", "priority", "severity", "submitted_at"),
    )

    __mapper_args__ = {"version_id_col": lock_version}

    def __repr__(self):
        return f"<ContentSubmission {self.reference_type}:{self.reference_id} status={self.status}>"


class ModerationAction(Base):
    """One governance decision taken on a submission. Append-only."""
    __tablename__ = "moderation_actions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    submission_id = Column(
        Uuid,
        ForeignKey("content_submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Who
    actor_id = Column(String, nullable=True, index=True)
    actor_type = Column(String, nullable=False, default="admin")  # admin, system, automation

    # What
    action = Column(String, nullable=False, index=True)
    severity = Column(String, nullable=True)  # snapshot at time of action
    risk_score = Column(Numeric(5, 2, asdecimal=False), nullable=True)  # snapshot
    reason = Column(Text, nullable=True)
    guidance_link = Column(String, nullable=True)
    resolution_summary = Column(Text, nullable=True)
    meta = Column("metadata", UniversalJSON, nullable=False, default=dict)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)

    submission = relationship("ContentSubmission", back_populates="actions")

    __table_args__ = (
        CheckConstraint(
            check_constraint_sql("action", ModerationActionType),
            name="ck_moderation_actions_action",
        ),
    )

    def __repr__(self):
        return f"<ModerationAction {self.action} submission={self.submission_id}>"
