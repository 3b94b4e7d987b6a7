"""Legal document lifecycle service.

Documents are locale-agnostic containers; their text lives in versions that
are numbered independently per (document, locale). A version moves through
draft -> in_review -> approved -> published -> archived. Activation is a
separate, document-wide transition: the document points at exactly one live
version, and every other published/approved version of the document, in any
locale, is superseded in the same transaction.

Audit events for every transition go through the best-effort document trail,
so a failed audit write is logged and never blocks the transition itself.
"""
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from app.db import atomic
from app.models.constants import (
    ACTIVATABLE_VERSION_STATUSES,
    VERSION_STATUS_TRANSITIONS,
    LegalDocumentAuditAction,
    LegalDocumentCategory,
    LegalDocumentStatus,
    LegalDocumentVersionStatus,
    normalize_choice,
)
from app.models.legal_document import (
    LegalDocument,
    LegalDocumentAuditEvent,
    LegalDocumentVersion,
)
from app.models.types import utcnow
from app.schemas import coerce_uuid, ensure_aware, normalize_locale, validate_payload
from app.schemas.legal_document import (
    LegalDocumentCreate,
    LegalDocumentUpdate,
    LegalDocumentVersionCreate,
    LegalDocumentVersionUpdate,
    VersionArchive,
    VersionPublish,
)
from app.services.audit import Actor, document_audit_log, resolve_actor
from app.settings import settings
from oversight.audit import AuditEventType, get_audit_logger
from oversight.core.exceptions import AuthorizationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_ACTIVATABLE = [status.value for status in ACTIVATABLE_VERSION_STATUSES]


# =============================================================================
# SERIALIZATION
# =============================================================================

def serialize_version(version: LegalDocumentVersion, active_version_id: Optional[UUID] = None) -> dict:
    """Version summary view."""
    return {
        "id": str(version.id),
        "document_id": str(version.document_id),
        "locale": version.locale,
        "version": version.version,
        "status": version.status,
        "title": version.title,
        "summary": version.summary,
        "change_summary": version.change_summary,
        "content": version.content,
        "external_url": version.external_url,
        "metadata": dict(version.meta or {}),
        "effective_at": version.effective_at,
        "published_at": version.published_at,
        "published_by": version.published_by,
        "superseded_at": version.superseded_at,
        "archived_at": version.archived_at,
        "is_active": active_version_id is not None and version.id == active_version_id,
        "created_by": version.created_by,
        "updated_by": version.updated_by,
        "created_at": version.created_at,
        "updated_at": version.updated_at,
    }


def serialize_audit_event(event: LegalDocumentAuditEvent) -> dict:
    return {
        "id": str(event.id),
        "document_id": str(event.document_id),
        "version_id": str(event.version_id) if event.version_id else None,
        "actor_id": event.actor_id,
        "actor_type": event.actor_type,
        "action": event.action,
        "summary": event.summary,
        "metadata": dict(event.meta or {}),
        "created_at": event.created_at,
    }


def serialize_document(
    document: LegalDocument,
    include_versions: bool = False,
    include_audit: bool = False,
    locale: Optional[str] = None,
) -> dict:
    data = {
        "id": str(document.id),
        "slug": document.slug,
        "title": document.title,
        "summary": document.summary,
        "category": document.category,
        "status": document.status,
        "region": document.region,
        "default_locale": document.default_locale,
        "audience_roles": list(document.audience_roles or []),
        "editor_roles": list(document.editor_roles or []),
        "tags": list(document.tags or []),
        "active_version_id": str(document.active_version_id) if document.active_version_id else None,
        "active_version": (
            serialize_version(document.active_version, document.active_version_id)
            if document.active_version is not None
            else None
        ),
        "published_at": document.published_at,
        "retired_at": document.retired_at,
        "archived_at": document.archived_at,
        "created_by": document.created_by,
        "updated_by": document.updated_by,
        "created_at": document.created_at,
        "updated_at": document.updated_at,
    }
    if include_versions:
        data["versions"] = [
            serialize_version(version, document.active_version_id)
            for version in document.versions
            if locale is None or version.locale == locale
        ]
    if include_audit:
        data["audit_events"] = [serialize_audit_event(event) for event in document.audit_events]
    return data


# =============================================================================
# HELPERS
# =============================================================================

@contextmanager
def _unique_guard(db: Session, message: str, field: str) -> Iterator[None]:
    """Flush the block's writes in a SAVEPOINT; a uniqueness violation becomes ValidationError."""
    try:
        with db.begin_nested():
            yield
    except IntegrityError:
        raise ValidationError(message, field=field) from None


def _authorize(document: LegalDocument, actor: Actor, action: str) -> None:
    """Role-carrying actors must share a role with a document's editor roles."""
    editor_roles = {str(role).lower() for role in (document.editor_roles or [])}
    if not actor.roles or actor.is_admin or not editor_roles:
        return
    if editor_roles & {str(role).lower() for role in actor.roles}:
        return

    get_audit_logger().log_action(
        action=action,
        event_type=AuditEventType.ACCESS_DENIED,
        actor=actor.label,
        resource=f"legal_document:{document.id}",
        outcome="denied",
        details={"editor_roles": sorted(editor_roles), "actor_roles": list(actor.roles)},
    )
    raise AuthorizationError(
        actor_id=actor.actor_id,
        action=action,
        reason="Actor holds none of the document editor roles",
    )


def _load_document(db: Session, document_id: Any, lock: bool = False) -> LegalDocument:
    did = coerce_uuid(document_id, field="document_id")
    query = db.query(LegalDocument).filter(LegalDocument.id == did)
    if lock:
        query = query.with_for_update()
    document = query.first()
    if document is None:
        raise NotFoundError(resource="legal_document", identifier=document_id)
    return document


def _load_version(db: Session, document: LegalDocument, version_id: Any) -> LegalDocumentVersion:
    vid = coerce_uuid(version_id, field="version_id")
    version = (
        db.query(LegalDocumentVersion)
        .filter(
            LegalDocumentVersion.id == vid,
            LegalDocumentVersion.document_id == document.id,
        )
        .first()
    )
    if version is None:
        raise NotFoundError(resource="legal_document_version", identifier=version_id)
    return version


def _audit(
    db: Session,
    document: LegalDocument,
    action: LegalDocumentAuditAction,
    actor: Actor,
    version: Optional[LegalDocumentVersion] = None,
    summary: Optional[str] = None,
    metadata: Optional[dict] = None,
) -> Optional[LegalDocumentAuditEvent]:
    event = LegalDocumentAuditEvent(
        document_id=document.id,
        version_id=version.id if version is not None else None,
        actor_id=actor.actor_id,
        actor_type=actor.actor_type,
        action=action.value,
        summary=summary,
        meta=metadata or {},
        created_at=utcnow(),
    )
    return document_audit_log.record(
        db, event, resource=f"legal_document:{document.id}", actor=actor
    )


def _derive_slug(raw: str) -> str:
    slug = LegalDocument.generate_slug(raw)
    if not slug:
        raise ValidationError(f"Cannot derive a slug from '{raw}'", field="slug")
    return slug


def _ensure_slug_available(db: Session, slug: str, exclude_id: Optional[UUID] = None) -> None:
    query = db.query(LegalDocument.id).filter(LegalDocument.slug == slug)
    if exclude_id is not None:
        query = query.filter(LegalDocument.id != exclude_id)
    if query.first() is not None:
        raise ValidationError(f"Slug '{slug}' is already in use", field="slug")


def _version_taken(
    db: Session,
    document_id: UUID,
    locale: str,
    number: int,
    exclude_id: Optional[UUID] = None,
) -> bool:
    query = db.query(LegalDocumentVersion.id).filter(
        LegalDocumentVersion.document_id == document_id,
        LegalDocumentVersion.locale == locale,
        LegalDocumentVersion.version == number,
    )
    if exclude_id is not None:
        query = query.filter(LegalDocumentVersion.id != exclude_id)
    return query.first() is not None


def _next_version_number(db: Session, document_id: UUID, locale: str) -> int:
    current = (
        db.query(func.max(LegalDocumentVersion.version))
        .filter(
            LegalDocumentVersion.document_id == document_id,
            LegalDocumentVersion.locale == locale,
        )
        .scalar()
    )
    return (current or 0) + 1


def _duplicate_version_message(locale: str, number: int) -> str:
    return f"Version {number} already exists for locale '{locale}'"


def _insert_version(
    db: Session,
    document: LegalDocument,
    data: LegalDocumentVersionCreate,
    actor: Actor,
) -> LegalDocumentVersion:
    locale = data.locale or document.default_locale
    number = data.version or _next_version_number(db, document.id, locale)
    if data.version and _version_taken(db, document.id, locale, number):
        raise ValidationError(_duplicate_version_message(locale, number), field="version")

    now = utcnow()
    version = LegalDocumentVersion(
        document_id=document.id,
        locale=locale,
        version=number,
        status=data.status.value,
        title=data.title,
        summary=data.summary,
        change_summary=data.change_summary,
        content=data.content,
        external_url=data.external_url,
        effective_at=data.effective_at,
        meta=dict(data.metadata),
        created_by=actor.actor_id,
        updated_by=actor.actor_id,
        created_at=now,
        updated_at=now,
    )
    if data.status == LegalDocumentVersionStatus.PUBLISHED:
        version.published_at = now
        version.published_by = actor.actor_id
        version.effective_at = version.effective_at or now
    elif data.status == LegalDocumentVersionStatus.ARCHIVED:
        version.archived_at = now

    with _unique_guard(db, _duplicate_version_message(locale, number), "version"):
        db.add(version)

    _audit(
        db,
        document,
        LegalDocumentAuditAction.VERSION_CREATED,
        actor,
        version=version,
        summary=f"Created {locale} v{number} ({version.status})",
        metadata={"locale": locale, "version": number, "status": version.status},
    )
    return version


def _publish(
    db: Session,
    document: LegalDocument,
    version: LegalDocumentVersion,
    actor: Actor,
    effective_at: Optional[datetime] = None,
    change_summary: Optional[str] = None,
) -> None:
    if version.status == LegalDocumentVersionStatus.ARCHIVED.value:
        raise ValidationError("Archived versions cannot be published", field="status")

    now = utcnow()
    previous_status = version.status
    version.status = LegalDocumentVersionStatus.PUBLISHED.value
    version.published_at = now
    version.published_by = actor.actor_id
    version.effective_at = ensure_aware(effective_at) or version.effective_at or now
    if change_summary is not None:
        version.change_summary = change_summary
    version.updated_by = actor.actor_id
    version.updated_at = now

    _audit(
        db,
        document,
        LegalDocumentAuditAction.VERSION_PUBLISHED,
        actor,
        version=version,
        summary=f"Published {version.locale} v{version.version}",
        metadata={
            "previous_status": previous_status,
            "effective_at": version.effective_at.isoformat(),
        },
    )


def _activate(db: Session, document: LegalDocument, version: LegalDocumentVersion, actor: Actor) -> int:
    """Point the document at ``version`` and supersede every other live version."""
    now = utcnow()
    previous_active_id = document.active_version_id

    superseded = (
        db.query(LegalDocumentVersion)
        .filter(
            LegalDocumentVersion.document_id == document.id,
            LegalDocumentVersion.id != version.id,
            LegalDocumentVersion.status.in_(_ACTIVATABLE),
            LegalDocumentVersion.superseded_at.is_(None),
        )
        .update(
            {
                LegalDocumentVersion.superseded_at: now,
                LegalDocumentVersion.updated_at: now,
            },
            synchronize_session="fetch",
        )
    )

    document.active_version_id = version.id
    document.published_at = version.effective_at or version.published_at or now
    document.retired_at = None
    document.updated_by = actor.actor_id
    document.refresh_status()

    _audit(
        db,
        document,
        LegalDocumentAuditAction.VERSION_ACTIVATED,
        actor,
        version=version,
        summary=f"Activated {version.locale} v{version.version}",
        metadata={
            "superseded_count": superseded,
            "previous_active_version_id": str(previous_active_id) if previous_active_id else None,
        },
    )
    return superseded


def _archive(
    db: Session,
    document: LegalDocument,
    version: LegalDocumentVersion,
    actor: Actor,
    reason: Optional[str] = None,
) -> None:
    if version.status == LegalDocumentVersionStatus.ARCHIVED.value:
        return

    now = utcnow()
    previous_status = version.status
    version.status = LegalDocumentVersionStatus.ARCHIVED.value
    version.archived_at = now
    version.updated_by = actor.actor_id
    version.updated_at = now

    was_active = document.active_version_id == version.id
    if was_active:
        document.active_version_id = None
        document.retired_at = now
        document.updated_by = actor.actor_id
        document.refresh_status()

    _audit(
        db,
        document,
        LegalDocumentAuditAction.VERSION_ARCHIVED,
        actor,
        version=version,
        summary=f"Archived {version.locale} v{version.version}",
        metadata={"previous_status": previous_status, "was_active": was_active, "reason": reason},
    )


def _document_view(db: Session, document: LegalDocument, **options) -> dict:
    db.expire(document, ["versions", "active_version", "audit_events"])
    return serialize_document(document, **options)


# =============================================================================
# DOCUMENTS
# =============================================================================

def create_legal_document(db: Session, payload: Any, actor: Any = None) -> dict:
    """Create a document, optionally with its first version.

    A published initial version becomes the document's active version
    straight away.

    Raises:
        ValidationError: Blank title, unknown category, duplicate slug or
            an invalid initial version
    """
    data = validate_payload(LegalDocumentCreate, payload)
    actor = resolve_actor(actor)
    slug = _derive_slug(data.slug or data.title)

    with atomic(db):
        _ensure_slug_available(db, slug)
        document = LegalDocument(
            slug=slug,
            title=data.title,
            summary=data.summary,
            category=data.category.value,
            status=LegalDocumentStatus.DRAFT.value,
            region=data.region or settings.DEFAULT_DOCUMENT_REGION,
            default_locale=data.default_locale or settings.DEFAULT_DOCUMENT_LOCALE,
            audience_roles=data.audience_roles,
            editor_roles=data.editor_roles,
            tags=data.tags,
            created_by=actor.actor_id,
            updated_by=actor.actor_id,
        )
        with _unique_guard(db, f"Slug '{slug}' is already in use", "slug"):
            db.add(document)

        _audit(
            db,
            document,
            LegalDocumentAuditAction.DOCUMENT_CREATED,
            actor,
            summary=f"Created {document.title}",
            metadata={"slug": slug, "category": document.category},
        )

        if data.initial_version is not None:
            version = _insert_version(db, document, data.initial_version, actor)
            if version.status == LegalDocumentVersionStatus.PUBLISHED.value:
                _activate(db, document, version, actor)
        document.refresh_status()

    logger.info(f"Legal document created: {slug} ({document.category}) by {actor.label}")
    return _document_view(db, document, include_versions=True)


def update_legal_document(db: Session, document_id: Any, patch: Any, actor: Any = None) -> dict:
    """Edit document metadata.

    ``status="archived"`` archives the document itself; draft or active
    un-archives it. The stored status is always re-derived.
    """
    data = validate_payload(LegalDocumentUpdate, patch)
    fields = data.model_fields_set
    actor = resolve_actor(actor)

    with atomic(db):
        document = _load_document(db, document_id, lock=True)
        _authorize(document, actor, "update_legal_document")
        changed = []

        if "slug" in fields:
            slug = _derive_slug(data.slug)
            if slug != document.slug:
                _ensure_slug_available(db, slug, exclude_id=document.id)
                with _unique_guard(db, f"Slug '{slug}' is already in use", "slug"):
                    document.slug = slug
                changed.append("slug")

        values = {
            name: getattr(data, name)
            for name in (
                "title", "summary", "category", "region", "default_locale",
                "audience_roles", "editor_roles", "tags",
            )
            if name in fields
        }
        if "category" in values:
            values["category"] = data.category.value
        for name, value in values.items():
            if getattr(document, name) != value:
                setattr(document, name, value)
                changed.append(name)

        if "status" in fields:
            archive = data.status == LegalDocumentStatus.ARCHIVED
            if archive and document.archived_at is None:
                document.archived_at = utcnow()
                changed.append("status")
            elif not archive and document.archived_at is not None:
                document.archived_at = None
                changed.append("status")
        document.refresh_status()

        if changed:
            document.updated_by = actor.actor_id
            _audit(
                db,
                document,
                LegalDocumentAuditAction.DOCUMENT_UPDATED,
                actor,
                summary=f"Updated {', '.join(changed)}",
                metadata={"changed_fields": changed, "status": document.status},
            )

    if changed:
        logger.info(f"Legal document {document.slug} updated by {actor.label}: {changed}")
    return _document_view(db, document)


def list_legal_documents(
    db: Session,
    category: Optional[str] = None,
    status: Optional[str] = None,
    include_versions: bool = False,
    locale: Optional[str] = None,
) -> list[dict]:
    """Documents filtered by category/status, optionally with (locale-filtered) versions."""
    query = db.query(LegalDocument).options(joinedload(LegalDocument.active_version))
    if category is not None:
        query = query.filter(
            LegalDocument.category == normalize_choice(LegalDocumentCategory, category, "category").value
        )
    if status is not None:
        query = query.filter(
            LegalDocument.status == normalize_choice(LegalDocumentStatus, status, "status").value
        )
    if include_versions:
        query = query.options(selectinload(LegalDocument.versions))

    documents = query.order_by(LegalDocument.title.asc(), LegalDocument.id.asc()).all()
    locale = normalize_locale(locale)
    return [
        serialize_document(document, include_versions=include_versions, locale=locale)
        for document in documents
    ]


def get_legal_document(
    db: Session,
    id_or_slug: Any,
    include_versions: bool = True,
    include_audit: bool = False,
    locale: Optional[str] = None,
) -> dict:
    """One document by id or slug."""
    query = db.query(LegalDocument)
    try:
        document = query.filter(LegalDocument.id == UUID(str(id_or_slug))).first()
    except ValueError:
        document = query.filter(LegalDocument.slug == str(id_or_slug).strip().lower()).first()
    if document is None:
        raise NotFoundError(resource="legal_document", identifier=id_or_slug)
    return serialize_document(
        document,
        include_versions=include_versions,
        include_audit=include_audit,
        locale=normalize_locale(locale),
    )


# =============================================================================
# VERSIONS
# =============================================================================

def create_document_version(db: Session, document_id: Any, payload: Any, actor: Any = None) -> dict:
    """Add a localized version. Numbers continue from the highest in that locale."""
    data = validate_payload(LegalDocumentVersionCreate, payload)
    actor = resolve_actor(actor)

    with atomic(db):
        document = _load_document(db, document_id, lock=True)
        _authorize(document, actor, "create_document_version")
        version = _insert_version(db, document, data, actor)

    logger.info(
        f"Version {version.locale} v{version.version} created for {document.slug} by {actor.label}"
    )
    return serialize_version(version, document.active_version_id)


def update_document_version(
    db: Session,
    document_id: Any,
    version_id: Any,
    patch: Any,
    actor: Any = None,
) -> dict:
    """Edit a version in place.

    The merged result is validated like a new version. A status change must
    be allowed by the version state machine; moving to published or archived
    runs the full publish or archive transition.
    """
    data = validate_payload(LegalDocumentVersionUpdate, patch)
    fields = data.model_fields_set
    actor = resolve_actor(actor)

    with atomic(db):
        document = _load_document(db, document_id, lock=True)
        _authorize(document, actor, "update_document_version")
        version = _load_version(db, document, version_id)
        if not fields:
            return serialize_version(version, document.active_version_id)

        merged = {
            "locale": version.locale,
            "version": version.version,
            "status": version.status,
            "title": version.title,
            "summary": version.summary,
            "change_summary": version.change_summary,
            "content": version.content,
            "external_url": version.external_url,
            "effective_at": version.effective_at,
            "metadata": dict(version.meta or {}),
        }
        merged.update(data.model_dump(include=fields))
        candidate = validate_payload(LegalDocumentVersionCreate, merged)

        current = LegalDocumentVersionStatus(version.status)
        target = candidate.status
        if target not in VERSION_STATUS_TRANSITIONS[current]:
            raise ValidationError(
                f"Cannot move a version from {current.value} to {target.value}",
                field="status",
                details={"from": current.value, "to": target.value},
            )
        if (
            version.id == document.active_version_id
            and target not in ACTIVATABLE_VERSION_STATUSES
            and target != LegalDocumentVersionStatus.ARCHIVED
        ):
            raise ValidationError(
                f"The active version must stay published or approved (cannot move to {target.value}); "
                "archive it or activate another version first",
                field="status",
                details={"from": current.value, "to": target.value, "active": True},
            )

        locale = candidate.locale or document.default_locale
        if (locale, candidate.version) != (version.locale, version.version):
            if _version_taken(db, document.id, locale, candidate.version, exclude_id=version.id):
                raise ValidationError(
                    _duplicate_version_message(locale, candidate.version), field="version"
                )
            with _unique_guard(db, _duplicate_version_message(locale, candidate.version), "version"):
                version.locale = locale
                version.version = candidate.version

        changed = [name for name in fields if name != "status"]
        version.title = candidate.title
        version.summary = candidate.summary
        version.change_summary = candidate.change_summary
        version.content = candidate.content
        version.external_url = candidate.external_url
        version.effective_at = candidate.effective_at
        version.meta = dict(candidate.metadata)
        version.updated_by = actor.actor_id
        version.updated_at = utcnow()

        if target != current and target == LegalDocumentVersionStatus.PUBLISHED:
            _publish(db, document, version, actor, effective_at=candidate.effective_at)
        elif target != current and target == LegalDocumentVersionStatus.ARCHIVED:
            _archive(db, document, version, actor)
        else:
            version.status = target.value
            _audit(
                db,
                document,
                LegalDocumentAuditAction.VERSION_UPDATED,
                actor,
                version=version,
                summary=f"Updated {version.locale} v{version.version}",
                metadata={
                    "changed_fields": sorted(changed),
                    "previous_status": current.value,
                    "status": version.status,
                },
            )

    return serialize_version(version, document.active_version_id)


def publish_document_version(
    db: Session,
    document_id: Any,
    version_id: Any,
    payload: Any = None,
    actor: Any = None,
) -> dict:
    """Mark a version published. Publication does not activate it."""
    data = validate_payload(VersionPublish, payload)
    actor = resolve_actor(actor)

    with atomic(db):
        document = _load_document(db, document_id, lock=True)
        _authorize(document, actor, "publish_document_version")
        version = _load_version(db, document, version_id)
        _publish(
            db,
            document,
            version,
            actor,
            effective_at=data.effective_at,
            change_summary=data.change_summary,
        )

    logger.info(f"Version {version.locale} v{version.version} of {document.slug} published")
    return serialize_version(version, document.active_version_id)


def activate_document_version(db: Session, document_id: Any, version_id: Any, actor: Any = None) -> dict:
    """Make one published or approved version the document's live version.

    Every other published/approved version of the document, in any locale,
    is superseded in the same transaction.

    Raises:
        ValidationError: The version is not published/approved, or is already superseded
    """
    actor = resolve_actor(actor)

    with atomic(db):
        document = _load_document(db, document_id, lock=True)
        _authorize(document, actor, "activate_document_version")
        version = _load_version(db, document, version_id)

        if version.status not in _ACTIVATABLE:
            raise ValidationError(
                f"Only published or approved versions can be activated (status is {version.status})",
                field="status",
            )
        if version.is_superseded:
            raise ValidationError("Superseded versions cannot be activated", field="version_id")

        superseded = _activate(db, document, version, actor)

    logger.info(
        f"Version {version.locale} v{version.version} of {document.slug} activated, "
        f"{superseded} superseded"
    )
    return _document_view(db, document, include_versions=True)


def archive_document_version(
    db: Session,
    document_id: Any,
    version_id: Any,
    payload: Any = None,
    actor: Any = None,
) -> dict:
    """Archive a version, retiring it if it was the live one. Idempotent."""
    data = validate_payload(VersionArchive, payload)
    actor = resolve_actor(actor)

    with atomic(db):
        document = _load_document(db, document_id, lock=True)
        _authorize(document, actor, "archive_document_version")
        version = _load_version(db, document, version_id)
        _archive(db, document, version, actor, reason=data.reason)

    return serialize_version(version, document.active_version_id)


# =============================================================================
# AUDIT
# =============================================================================

def list_recent_audit_events(db: Session, since: Optional[datetime], limit: int) -> list[dict]:
    """Audit events at or after ``since``, newest first, with document and version."""
    query = db.query(LegalDocumentAuditEvent).options(
        joinedload(LegalDocumentAuditEvent.document),
        joinedload(LegalDocumentAuditEvent.version),
    )
    if since is not None:
        query = query.filter(LegalDocumentAuditEvent.created_at >= ensure_aware(since))
    events = (
        query.order_by(LegalDocumentAuditEvent.created_at.desc(), LegalDocumentAuditEvent.id.desc())
        .limit(limit)
        .all()
    )

    recent = []
    for event in events:
        item = serialize_audit_event(event)
        document = event.document
        version = event.version
        item["document"] = {
            "id": str(document.id),
            "slug": document.slug,
            "title": document.title,
            "category": document.category,
            "status": document.status,
        } if document is not None else None
        item["version"] = {
            "id": str(version.id),
            "locale": version.locale,
            "version": version.version,
            "status": version.status,
        } if version is not None else None
        recent.append(item)
    return recent
