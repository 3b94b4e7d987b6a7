"""Governance overview aggregator.

One read-only report for operators: the top of the moderation queue, policy
document health, and a single activity timeline merging moderation actions
with document audit events.

The four reads are independent and run concurrently, each in its own
session. Everything after the reads is done by pure functions over plain
dicts, so composition is testable without a database.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from sqlalchemy.orm import Session, sessionmaker

from app.db import SessionLocal
from app.models.constants import VersionStatusBucket, normalize_version_status
from app.models.types import utcnow
from app.schemas import ensure_aware
from app.services.legal_policy import list_legal_documents, list_recent_audit_events
from app.services.moderation_queue import (
    list_content_submissions,
    list_recent_moderation_actions,
)
from app.settings import settings

logger = logging.getLogger(__name__)

MAX_LOOKBACK_DAYS = 365
MAX_LIMIT = 100


def _clamp(value: Optional[int], default: int, upper: int) -> int:
    if value is None:
        value = default
    return max(1, min(upper, int(value)))


# =============================================================================
# POLICY COMPOSITION
# =============================================================================

def build_policy_summary(documents: Optional[list[dict]]) -> dict:
    """Document totals by status and version totals by normalized status bucket.

    Versions whose status has no bucket are counted in the total only.
    """
    document_totals = {"total": 0, "active": 0, "draft": 0, "archived": 0}
    version_totals = {"total": 0, **{bucket.value: 0 for bucket in VersionStatusBucket}}

    for document in documents or []:
        document_totals["total"] += 1
        status = str(document.get("status") or "").strip().lower()
        if status in ("active", "draft", "archived"):
            document_totals[status] += 1

        for version in document.get("versions") or []:
            version_totals["total"] += 1
            bucket = normalize_version_status(version.get("status"))
            if bucket is not None:
                version_totals[bucket.value] += 1

    return {"documents": document_totals, "versions": version_totals}


def _version_highlight(document: dict, version: dict) -> dict:
    return {
        "document_id": document.get("id"),
        "document_slug": document.get("slug"),
        "document_title": document.get("title"),
        "category": document.get("category"),
        "version_id": version.get("id"),
        "locale": version.get("locale"),
        "version": version.get("version"),
        "status": version.get("status"),
        "effective_at": version.get("effective_at"),
        "published_at": version.get("published_at"),
    }


def build_policy_highlights(documents: Optional[list[dict]], limit: int) -> dict:
    """Soonest effective dates and latest publications, each capped at ``limit``."""
    flattened = [
        _version_highlight(document, version)
        for document in documents or []
        for version in document.get("versions") or []
    ]

    upcoming = sorted(
        (item for item in flattened if item["effective_at"] is not None),
        key=lambda item: (ensure_aware(item["effective_at"]), str(item["version_id"])),
    )
    recent = sorted(
        (item for item in flattened if item["published_at"] is not None),
        key=lambda item: (ensure_aware(item["published_at"]), str(item["version_id"])),
        reverse=True,
    )
    return {
        "upcoming_effective": upcoming[:limit],
        "recent_publications": recent[:limit],
    }


# =============================================================================
# ACTIVITY TIMELINE
# =============================================================================

def moderation_action_to_activity(action: dict) -> dict:
    submission = action.get("submission") or {}
    reference_label = ":".join(
        part for part in (submission.get("reference_type"), submission.get("reference_id")) if part
    )
    metadata = dict(action.get("metadata") or {})
    metadata.setdefault("severity", action.get("severity"))
    metadata.setdefault("risk_score", action.get("risk_score"))
    if action.get("guidance_link"):
        metadata.setdefault("guidance_link", action["guidance_link"])

    return {
        "id": f"content-{action['id']}",
        "source": "content",
        "type": action.get("action"),
        "created_at": action.get("created_at"),
        "title": submission.get("title") or reference_label or "Content submission",
        "actor": {"id": action.get("actor_id"), "type": action.get("actor_type")},
        "reference": {
            "kind": "content_submission",
            "id": submission.get("id") or action.get("submission_id"),
            "reference_id": submission.get("reference_id"),
            "reference_type": submission.get("reference_type"),
            "status": submission.get("status"),
        },
        "summary": action.get("reason") or action.get("resolution_summary"),
        "metadata": metadata,
    }


def audit_event_to_activity(event: dict) -> dict:
    document = event.get("document") or {}
    version = event.get("version") or {}
    title = document.get("title") or "Legal document"
    if version:
        title = f"{title} ({version.get('locale')} v{version.get('version')})"

    return {
        "id": f"policy-{event['id']}",
        "source": "policy",
        "type": event.get("action"),
        "created_at": event.get("created_at"),
        "title": title,
        "actor": {"id": event.get("actor_id"), "type": event.get("actor_type")},
        "reference": {
            "kind": "legal_document",
            "id": document.get("id") or event.get("document_id"),
            "slug": document.get("slug"),
            "version_id": version.get("id") or event.get("version_id"),
            "locale": version.get("locale"),
            "version": version.get("version"),
        },
        "summary": event.get("summary"),
        "metadata": dict(event.get("metadata") or {}),
    }


def merge_activity(*streams: Optional[list[dict]], limit: Optional[int] = None) -> list[dict]:
    """Newest first, id descending on equal timestamps, undated items last."""
    items = [item for stream in streams for item in (stream or [])]
    dated = sorted(
        (item for item in items if item.get("created_at") is not None),
        key=lambda item: (ensure_aware(item["created_at"]), item["id"]),
        reverse=True,
    )
    undated = sorted(
        (item for item in items if item.get("created_at") is None),
        key=lambda item: item["id"],
        reverse=True,
    )
    merged = dated + undated
    return merged[:limit] if limit is not None else merged


# =============================================================================
# REPORT
# =============================================================================

def _read(session_factory: sessionmaker, fetch: Callable[[Session], Any]) -> Any:
    db = session_factory()
    try:
        return fetch(db)
    finally:
        db.close()


def _run_reads(session_factory: sessionmaker, fetchers: dict[str, Callable[[Session], Any]]) -> dict:
    if not settings.OVERVIEW_PARALLEL_FETCH:
        return {name: _read(session_factory, fetch) for name, fetch in fetchers.items()}

    workers = max(1, min(settings.OVERVIEW_MAX_WORKERS, len(fetchers)))
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="overview") as pool:
        futures = {
            name: pool.submit(_read, session_factory, fetch)
            for name, fetch in fetchers.items()
        }
        return {name: future.result() for name, future in futures.items()}


def get_governance_overview(
    session_factory: Optional[sessionmaker] = None,
    lookback_days: Optional[int] = None,
    queue_limit: Optional[int] = None,
    publication_limit: Optional[int] = None,
    timeline_limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Build the governance overview report.

    Args:
        session_factory: Creates one session per read; defaults to SessionLocal
        lookback_days: Activity window, clamped to 1-365
        queue_limit: Queue items to include, clamped to 1-100
        publication_limit: Highlight entries per list, clamped to 1-100
        timeline_limit: Activity entries, clamped to 1-100
        now: Reference time, defaults to the current UTC time

    Returns:
        {"generated_at", "lookback_days", "content_queue", "legal_policies", "activity"}
    """
    session_factory = session_factory or SessionLocal

    lookback_days = _clamp(lookback_days, settings.OVERVIEW_LOOKBACK_DAYS, MAX_LOOKBACK_DAYS)
    queue_limit = _clamp(queue_limit, settings.OVERVIEW_QUEUE_LIMIT, MAX_LIMIT)
    publication_limit = _clamp(publication_limit, settings.OVERVIEW_PUBLICATION_LIMIT, MAX_LIMIT)
    timeline_limit = _clamp(timeline_limit, settings.OVERVIEW_TIMELINE_LIMIT, MAX_LIMIT)

    generated_at = ensure_aware(now) or utcnow()
    since = generated_at - timedelta(days=lookback_days)

    results = _run_reads(
        session_factory,
        {
            "queue": lambda db: list_content_submissions(db, page=1, page_size=queue_limit),
            "actions": lambda db: list_recent_moderation_actions(db, since, timeline_limit),
            "documents": lambda db: list_legal_documents(db, include_versions=True),
            "audit_events": lambda db: list_recent_audit_events(db, since, timeline_limit),
        },
    )

    queue = results.get("queue") or {}
    documents = results.get("documents") or []
    activity = merge_activity(
        [moderation_action_to_activity(action) for action in results.get("actions") or []],
        [audit_event_to_activity(event) for event in results.get("audit_events") or []],
        limit=timeline_limit,
    )

    logger.info(
        f"Governance overview built: {len(queue.get('items') or [])} queued, "
        f"{len(documents)} documents, {len(activity)} activity items, lookback {lookback_days}d"
    )
    return {
        "generated_at": generated_at,
        "lookback_days": lookback_days,
        "content_queue": {
            "summary": queue.get("summary")
            or {"total": 0, "awaiting_review": 0, "high_severity": 0, "urgent": 0},
            "items": queue.get("items") or [],
        },
        "legal_policies": {
            "summary": build_policy_summary(documents),
            **build_policy_highlights(documents, publication_limit),
        },
        "activity": activity,
    }
