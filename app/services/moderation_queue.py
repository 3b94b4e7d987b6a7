"""Moderation queue service.

Ranks and filters content submissions, applies status transitions and writes
the paired moderation actions. Every mutation runs in one ``atomic`` scope:
the submission row is locked, changed, and its audit action written through
the strict moderation trail, so a status change without its action (or the
reverse) can never be committed.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import case, func, or_
from sqlalchemy.orm import Session, joinedload

from app.db import atomic
from app.models.constants import (
    AWAITING_REVIEW_STATUSES,
    HIGH_SEVERITY_LEVELS,
    PRIORITY_WEIGHTS,
    SEVERITY_WEIGHTS,
    STATUS_ACTION_MAP,
    ModerationActionType,
    SubmissionPriority,
    SubmissionStatus,
)
from app.models.moderation import ContentSubmission, ModerationAction
from app.models.types import utcnow
from app.schemas import coerce_uuid, ensure_aware, validate_payload
from app.schemas.moderation import (
    ModerationActionCreate,
    SubmissionAssignment,
    SubmissionCreate,
    SubmissionFilters,
    SubmissionStatusUpdate,
)
from app.services.audit import Actor, moderation_action_log, resolve_actor
from app.settings import settings
from oversight.core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


# =============================================================================
# RANKING
# =============================================================================

def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def submission_rank_key(submission: Any) -> tuple:
    """Sort key for the review queue (ascending sort = highest rank first).

    Priority weight descending, then severity weight descending, then oldest
    submission first. The id is a final deterministic tie-break.
    """
    submitted_at = ensure_aware(_field(submission, "submitted_at")) or _FAR_FUTURE
    return (
        -PRIORITY_WEIGHTS.get(_field(submission, "priority"), 0),
        -SEVERITY_WEIGHTS.get(_field(submission, "severity"), 0),
        submitted_at,
        str(_field(submission, "id") or ""),
    )


def _queue_order():
    priority_weight = case(PRIORITY_WEIGHTS, value=ContentSubmission.priority, else_=0)
    severity_weight = case(SEVERITY_WEIGHTS, value=ContentSubmission.severity, else_=0)
    return (
        priority_weight.desc(),
        severity_weight.desc(),
        ContentSubmission.submitted_at.asc(),
        ContentSubmission.id.asc(),
    )


# =============================================================================
# SERIALIZATION
# =============================================================================

def serialize_action(action: ModerationAction) -> dict:
    return {
        "id": str(action.id),
        "submission_id": str(action.submission_id),
        "actor_id": action.actor_id,
        "actor_type": action.actor_type,
        "action": action.action,
        "severity": action.severity,
        "risk_score": action.risk_score,
        "reason": action.reason,
        "guidance_link": action.guidance_link,
        "resolution_summary": action.resolution_summary,
        "metadata": dict(action.meta or {}),
        "created_at": action.created_at,
    }


def serialize_submission(submission: ContentSubmission, include_actions: bool = False) -> dict:
    data = {
        "id": str(submission.id),
        "reference_id": submission.reference_id,
        "reference_type": submission.reference_type,
        "title": submission.title,
        "summary": submission.summary,
        "region": submission.region,
        "status": submission.status,
        "priority": submission.priority,
        "severity": submission.severity,
        "risk_score": float(submission.risk_score or 0),
        "sla_minutes": submission.sla_minutes,
        "assigned_reviewer_id": submission.assigned_reviewer_id,
        "assigned_team": submission.assigned_team,
        "rejection_reason": submission.rejection_reason,
        "resolution_notes": submission.resolution_notes,
        "metadata": dict(submission.meta or {}),
        "submitted_at": submission.submitted_at,
        "last_activity_at": submission.last_activity_at,
        "created_at": submission.created_at,
        "updated_at": submission.updated_at,
        "lock_version": submission.lock_version,
    }
    if include_actions:
        data["actions"] = [serialize_action(action) for action in submission.actions]
    return data


# =============================================================================
# HELPERS
# =============================================================================

def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _apply_filters(query, filters: SubmissionFilters):
    if filters.status:
        query = query.filter(ContentSubmission.status.in_([s.value for s in filters.status]))
    if filters.priority:
        query = query.filter(ContentSubmission.priority.in_([p.value for p in filters.priority]))
    if filters.severity:
        query = query.filter(ContentSubmission.severity.in_([s.value for s in filters.severity]))
    if filters.assigned_team:
        query = query.filter(ContentSubmission.assigned_team == filters.assigned_team)
    if filters.assigned_reviewer_id:
        query = query.filter(ContentSubmission.assigned_reviewer_id == filters.assigned_reviewer_id)
    if filters.region:
        query = query.filter(ContentSubmission.region == filters.region)
    if filters.search:
        pattern = f"%{_escape_like(filters.search)}%"
        query = query.filter(
            or_(
                ContentSubmission.title.ilike(pattern, escape="\\"),
                ContentSubmission.summary.ilike(pattern, escape="\\"),
                ContentSubmission.reference_id.ilike(pattern, escape="\\"),
            )
        )
    return query


def _summarize(query) -> dict:
    """Queue counters from one grouped count over the filtered predicate."""
    rows = (
        query.with_entities(
            ContentSubmission.status,
            ContentSubmission.priority,
            ContentSubmission.severity,
            func.count(ContentSubmission.id),
        )
        .group_by(
            ContentSubmission.status,
            ContentSubmission.priority,
            ContentSubmission.severity,
        )
        .all()
    )

    awaiting = {s.value for s in AWAITING_REVIEW_STATUSES}
    high = {s.value for s in HIGH_SEVERITY_LEVELS}
    summary = {"total": 0, "awaiting_review": 0, "high_severity": 0, "urgent": 0}
    for status, priority, severity, count in rows:
        summary["total"] += count
        if status in awaiting:
            summary["awaiting_review"] += count
        if severity in high:
            summary["high_severity"] += count
        if priority == SubmissionPriority.URGENT.value:
            summary["urgent"] += count
    return summary


def _load_submission(db: Session, submission_id: Any, lock: bool = False) -> ContentSubmission:
    sid = coerce_uuid(submission_id, field="submission_id")
    query = db.query(ContentSubmission).filter(ContentSubmission.id == sid)
    if lock:
        query = query.with_for_update()
    submission = query.first()
    if submission is None:
        raise NotFoundError(resource="content_submission", identifier=submission_id)
    return submission


def _record_action(
    db: Session,
    submission: ContentSubmission,
    actor: Actor,
    action: ModerationActionType,
    reason: Optional[str] = None,
    guidance_link: Optional[str] = None,
    resolution_summary: Optional[str] = None,
    metadata: Optional[dict] = None,
    severity: Optional[str] = None,
    risk_score: Optional[float] = None,
) -> ModerationAction:
    entry = ModerationAction(
        submission_id=submission.id,
        actor_id=actor.actor_id,
        actor_type=actor.actor_type,
        action=action.value,
        severity=severity if severity is not None else submission.severity,
        risk_score=risk_score if risk_score is not None else submission.risk_score,
        reason=reason,
        guidance_link=guidance_link,
        resolution_summary=resolution_summary,
        meta=metadata or {},
        created_at=utcnow(),
    )
    return moderation_action_log.record(
        db, entry, resource=f"content_submission:{submission.id}", actor=actor
    )


def _describe_assignment(reviewer_id: Optional[str], team: Optional[str]) -> str:
    if reviewer_id and team:
        return f"Assigned to reviewer {reviewer_id} on team {team}"
    if reviewer_id:
        return f"Assigned to reviewer {reviewer_id}"
    if team:
        return f"Assigned to team {team}"
    return "Assignment cleared"


# =============================================================================
# OPERATIONS
# =============================================================================

def submit_content(db: Session, payload: Any, actor: Any = None) -> dict:
    """Put a piece of content into the queue as ``pending``."""
    data = validate_payload(SubmissionCreate, payload)
    actor = resolve_actor(actor)
    submitted_at = data.submitted_at or utcnow()

    with atomic(db):
        submission = ContentSubmission(
            reference_id=data.reference_id,
            reference_type=data.reference_type,
            title=data.title,
            summary=data.summary,
            region=data.region,
            status=SubmissionStatus.PENDING.value,
            priority=data.priority.value,
            severity=data.severity.value,
            risk_score=data.risk_score,
            sla_minutes=data.sla_minutes,
            assigned_reviewer_id=data.assigned_reviewer_id,
            assigned_team=data.assigned_team,
            meta=dict(data.metadata),
            submitted_at=submitted_at,
            last_activity_at=submitted_at,
        )
        db.add(submission)

    logger.info(
        f"Submission queued: {submission.reference_type}:{submission.reference_id} "
        f"priority={submission.priority} severity={submission.severity} by {actor.label}"
    )
    return serialize_submission(submission)


def list_content_submissions(
    db: Session,
    filters: Any = None,
    page: int = 1,
    page_size: Optional[int] = None,
) -> dict:
    """List the review queue in rank order.

    Returns:
        {"items": [...], "pagination": {...}, "summary": {...}} where summary
        counts are computed over the same filters as the items.

    Raises:
        ValidationError: Unknown enum filter values or page/page_size below 1
    """
    criteria = validate_payload(SubmissionFilters, filters)

    if page_size is None:
        page_size = settings.MODERATION_DEFAULT_PAGE_SIZE
    if page is None or int(page) < 1:
        raise ValidationError("page must be at least 1", field="page")
    if int(page_size) < 1:
        raise ValidationError("page_size must be at least 1", field="page_size")
    page = int(page)
    page_size = min(int(page_size), settings.MODERATION_MAX_PAGE_SIZE)

    query = _apply_filters(db.query(ContentSubmission), criteria)
    summary = _summarize(query)

    items = (
        query.order_by(*_queue_order())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )

    total = summary["total"]
    return {
        "items": [serialize_submission(item) for item in items],
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": math.ceil(total / page_size) if total else 0,
        },
        "summary": summary,
    }


def get_submission(db: Session, submission_id: Any) -> dict:
    """One submission with its full action history, newest first."""
    submission = _load_submission(db, submission_id)
    return serialize_submission(submission, include_actions=True)


def update_submission_status(db: Session, submission_id: Any, patch: Any, actor: Any = None) -> dict:
    """Apply a partial triage update.

    Moving to approved, rejected or needs_changes writes exactly one
    moderation action in the same transaction. A patch with no recognized
    fields is a no-op and writes nothing.
    """
    data = validate_payload(SubmissionStatusUpdate, patch)
    fields = data.model_fields_set
    actor = resolve_actor(actor)

    if not fields:
        return serialize_submission(_load_submission(db, submission_id))

    with atomic(db):
        submission = _load_submission(db, submission_id, lock=True)
        previous_status = submission.status

        if "status" in fields:
            submission.status = data.status.value
        if "priority" in fields:
            submission.priority = data.priority.value
        if "severity" in fields:
            submission.severity = data.severity.value
        if "risk_score" in fields:
            submission.risk_score = data.risk_score
        if "metadata" in fields:
            submission.meta = dict(data.metadata)
        for name in ("assigned_reviewer_id", "assigned_team", "rejection_reason", "resolution_notes"):
            if name in fields:
                setattr(submission, name, getattr(data, name))
        submission.last_activity_at = utcnow()

        mapped_action = STATUS_ACTION_MAP.get(data.status) if "status" in fields else None
        if mapped_action is not None:
            _record_action(
                db,
                submission,
                actor,
                mapped_action,
                reason=data.rejection_reason or data.resolution_notes,
                resolution_summary=data.resolution_notes,
                metadata={"previous_status": previous_status, "status": submission.status},
            )

    logger.info(
        f"Submission {submission.id} updated by {actor.label}: "
        f"status {previous_status} -> {submission.status}"
    )
    return serialize_submission(submission)


def assign_submission(db: Session, submission_id: Any, assignment: Any, actor: Any = None) -> dict:
    """Set or clear the reviewer and team. Always logs one ``assign`` action."""
    data = validate_payload(SubmissionAssignment, assignment)
    fields = data.model_fields_set
    actor = resolve_actor(actor)

    with atomic(db):
        submission = _load_submission(db, submission_id, lock=True)
        if "reviewer_id" in fields:
            submission.assigned_reviewer_id = data.reviewer_id
        if "team" in fields:
            submission.assigned_team = data.team
        submission.last_activity_at = utcnow()

        _record_action(
            db,
            submission,
            actor,
            ModerationActionType.ASSIGN,
            reason=_describe_assignment(submission.assigned_reviewer_id, submission.assigned_team),
            metadata={
                "reviewer_id": submission.assigned_reviewer_id,
                "team": submission.assigned_team,
            },
        )

    logger.info(
        f"Submission {submission.id} assigned by {actor.label}: "
        f"reviewer={submission.assigned_reviewer_id} team={submission.assigned_team}"
    )
    return serialize_submission(submission)


def record_moderation_action(db: Session, submission_id: Any, payload: Any, actor: Any = None) -> dict:
    """Record a moderation decision and apply any submission patch it carries.

    Returns:
        {"action": {...}, "submission": {...}}
    """
    data = validate_payload(ModerationActionCreate, payload)
    fields = data.model_fields_set
    actor = resolve_actor(actor)

    with atomic(db):
        submission = _load_submission(db, submission_id, lock=True)

        if data.carries_submission_patch:
            if "status" in fields:
                submission.status = data.status.value
            if "priority" in fields:
                submission.priority = data.priority.value
            if "severity" in fields:
                submission.severity = data.severity.value
            if "sla_minutes" in fields:
                submission.sla_minutes = data.sla_minutes
            submission.risk_score = (
                data.risk_score if "risk_score" in fields else submission.risk_score
            )
        submission.last_activity_at = utcnow()

        entry = _record_action(
            db,
            submission,
            actor,
            data.action,
            reason=data.reason,
            guidance_link=data.guidance_link,
            resolution_summary=data.resolution_summary,
            metadata=dict(data.metadata),
            severity=data.severity.value if data.severity is not None else None,
            risk_score=data.risk_score,
        )

    logger.info(f"Moderation action {entry.action} on submission {submission.id} by {actor.label}")
    return {
        "action": serialize_action(entry),
        "submission": serialize_submission(submission),
    }


def list_moderation_actions(db: Session, submission_id: Any) -> list[dict]:
    """All actions for a submission, newest first."""
    submission = _load_submission(db, submission_id)
    actions = (
        db.query(ModerationAction)
        .filter(ModerationAction.submission_id == submission.id)
        .order_by(ModerationAction.created_at.desc(), ModerationAction.id.desc())
        .all()
    )
    return [serialize_action(action) for action in actions]


def list_recent_moderation_actions(db: Session, since: Optional[datetime], limit: int) -> list[dict]:
    """Actions created at or after ``since``, newest first, each with its submission."""
    query = db.query(ModerationAction).options(joinedload(ModerationAction.submission))
    if since is not None:
        query = query.filter(ModerationAction.created_at >= ensure_aware(since))
    actions = (
        query.order_by(ModerationAction.created_at.desc(), ModerationAction.id.desc())
        .limit(limit)
        .all()
    )

    recent = []
    for action in actions:
        item = serialize_action(action)
        item["submission"] = serialize_submission(action.submission) if action.submission else None
        recent.append(item)
    return recent
