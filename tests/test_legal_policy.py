"""Legal document lifecycle tests."""
from datetime import datetime, timezone
from uuid import UUID, uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError

from app.models import LegalDocument, LegalDocumentAuditEvent, LegalDocumentVersion
from app.models.legal_document import resolve_document_status
from app.services.audit import Actor
from app.services.legal_policy import (
    activate_document_version,
    archive_document_version,
    create_document_version,
    create_legal_document,
    get_legal_document,
    list_legal_documents,
    list_recent_audit_events,
    publish_document_version,
    update_document_version,
    update_legal_document,
)
from oversight.core.exceptions import AuthorizationError, NotFoundError, ValidationError

EDITOR = Actor(actor_id="editor-1", roles=("legal",))


def _document(db, title="Privacy Policy", **overrides):
    payload = {"title": title, "category": "privacy", **overrides}
    return create_legal_document(db, payload, actor=EDITOR)


def _version(db, document, locale="en", **overrides):
    payload = {"locale": locale, "content": f"{locale} policy text", **overrides}
    return create_document_version(db, document["id"], payload, actor=EDITOR)


def _audit_actions(db, document_id):
    events = (
        db.query(LegalDocumentAuditEvent)
        .filter_by(document_id=UUID(document_id))
        .order_by(LegalDocumentAuditEvent.created_at.asc())
        .all()
    )
    return [event.action for event in events]


def _live_versions(db, document_id):
    """Published/approved versions of a document that are not superseded."""
    return (
        db.query(LegalDocumentVersion)
        .filter(
            LegalDocumentVersion.document_id == UUID(document_id),
            LegalDocumentVersion.status.in_(["published", "approved"]),
            LegalDocumentVersion.superseded_at.is_(None),
        )
        .all()
    )


class TestResolveDocumentStatus:
    """Test the single status derivation."""

    @pytest.mark.parametrize("archived,has_active,expected", [
        (True, True, "archived"),
        (True, False, "archived"),
        (False, True, "active"),
        (False, False, "draft"),
    ])
    def test_derivation(self, archived, has_active, expected):
        assert resolve_document_status(archived, has_active).value == expected


class TestCreateLegalDocument:
    """Test document creation."""

    def test_slug_is_derived_from_title(self, db_session):
        document = _document(db_session, title="Privacy Policy")
        assert document["slug"] == "privacy-policy"
        assert document["status"] == "draft"
        assert document["region"] == "global"
        assert document["default_locale"] == "en"
        assert document["versions"] == []

    def test_explicit_slug_is_normalized(self, db_session):
        document = _document(db_session, slug="  Cookie_Notice  2026! ")
        assert document["slug"] == "cookie-notice-2026"

    def test_duplicate_slug_is_rejected(self, db_session):
        _document(db_session, slug="privacy-policy")
        with pytest.raises(ValidationError) as exc_info:
            _document(db_session, title="Another", slug="Privacy Policy")
        assert exc_info.value.field == "slug"
        assert db_session.query(LegalDocument).count() == 1

    @pytest.mark.parametrize("payload", [
        {"title": "   ", "category": "privacy"},
        {"title": "Terms", "category": "marketing"},
        {"category": "terms"},
        {"title": "!!!", "category": "terms"},
    ])
    def test_invalid_payload_is_rejected(self, db_session, payload):
        with pytest.raises(ValidationError):
            create_legal_document(db_session, payload)

    def test_category_defaults_to_terms(self, db_session):
        document = create_legal_document(db_session, {"title": "Terms of Service"})
        assert document["category"] == "terms"

    def test_role_and_tag_lists_are_normalized(self, db_session):
        document = _document(
            db_session,
            audience_roles=[" Freelancer ", "freelancer", "", "client"],
            editor_roles="legal, Legal ,compliance",
            tags=["GDPR", "gdpr", None],
        )
        assert document["audience_roles"] == ["Freelancer", "client"]
        assert document["editor_roles"] == ["legal", "compliance"]
        assert document["tags"] == ["GDPR"]

    def test_locale_is_normalized(self, db_session):
        document = _document(db_session, default_locale="en_GB")
        assert document["default_locale"] == "en-gb"

        version = _version(db_session, document, locale=None)
        assert version["locale"] == "en-gb"

    def test_draft_initial_version(self, db_session):
        document = _document(db_session, initial_version={"content": "Initial text"})
        assert len(document["versions"]) == 1
        assert document["versions"][0]["version"] == 1
        assert document["versions"][0]["status"] == "draft"
        assert document["active_version_id"] is None
        assert _audit_actions(db_session, document["id"]) == ["document_created", "version_created"]

    def test_published_initial_version_is_activated(self, db_session):
        document = _document(
            db_session,
            initial_version={"locale": "en", "status": "published", "content": "Live text"},
        )
        version = document["versions"][0]
        assert document["status"] == "active"
        assert document["active_version_id"] == version["id"]
        assert version["published_at"] is not None
        assert version["effective_at"] is not None
        assert document["published_at"] == version["effective_at"]

    def test_invalid_initial_version_creates_nothing(self, db_session):
        with pytest.raises(ValidationError):
            _document(db_session, initial_version={"locale": "en"})
        assert db_session.query(LegalDocument).count() == 0


class TestVersionNumbering:
    """Test per-locale version numbering."""

    def test_numbers_are_gap_free_per_locale(self, db_session):
        document = _document(db_session)
        numbers = [
            (v["locale"], v["version"])
            for v in (
                _version(db_session, document, "en"),
                _version(db_session, document, "fr"),
                _version(db_session, document, "en"),
                _version(db_session, document, "en"),
                _version(db_session, document, "fr"),
            )
        ]
        assert numbers == [("en", 1), ("fr", 1), ("en", 2), ("en", 3), ("fr", 2)]

    def test_explicit_duplicate_is_rejected(self, db_session):
        document = _document(db_session)
        _version(db_session, document, "en")
        with pytest.raises(ValidationError) as exc_info:
            _version(db_session, document, "en", version=1)
        assert exc_info.value.field == "version"

    def test_explicit_number_continues_sequence(self, db_session):
        document = _document(db_session)
        _version(db_session, document, "en", version=5)
        assert _version(db_session, document, "en")["version"] == 6

    def test_content_or_external_url_required(self, db_session):
        document = _document(db_session)
        with pytest.raises(ValidationError):
            create_document_version(db_session, document["id"], {"locale": "en"})

        version = create_document_version(
            db_session, document["id"], {"locale": "en", "external_url": "https://example.com/terms"}
        )
        assert version["external_url"] == "https://example.com/terms"

    def test_missing_document(self, db_session):
        with pytest.raises(NotFoundError):
            create_document_version(db_session, uuid4(), {"content": "text"})

    def test_version_creation_is_audited(self, db_session):
        document = _document(db_session)
        _version(db_session, document)
        assert _audit_actions(db_session, document["id"]) == ["document_created", "version_created"]


class TestPublishDocumentVersion:
    """Test publication."""

    def test_publish_stamps_version_without_activating(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document)

        published = publish_document_version(db_session, document["id"], version["id"], actor=EDITOR)
        assert published["status"] == "published"
        assert published["published_at"] is not None
        assert published["published_by"] == "editor-1"
        assert published["effective_at"] == published["published_at"]
        assert published["is_active"] is False
        assert get_legal_document(db_session, document["id"])["status"] == "draft"

    def test_explicit_effective_date_is_kept(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document)
        effective = datetime(2027, 1, 1, tzinfo=timezone.utc)

        published = publish_document_version(
            db_session, document["id"], version["id"], {"effective_at": effective}
        )
        assert published["effective_at"] == effective

    def test_archived_version_cannot_be_published(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document)
        archive_document_version(db_session, document["id"], version["id"])

        with pytest.raises(ValidationError):
            publish_document_version(db_session, document["id"], version["id"])

    def test_version_of_another_document(self, db_session):
        first = _document(db_session, title="First")
        second = _document(db_session, title="Second")
        version = _version(db_session, first)

        with pytest.raises(NotFoundError):
            publish_document_version(db_session, second["id"], version["id"])


class TestActivateDocumentVersion:
    """Test activation and supersession."""

    def test_publish_activate_supersede_scenario(self, db_session):
        document = _document(db_session, slug="privacy-policy")
        v1 = _version(db_session, document, "en", status="draft")

        published = publish_document_version(db_session, document["id"], v1["id"])
        assert published["status"] == "published"
        assert published["published_at"] is not None

        activated = activate_document_version(db_session, document["id"], v1["id"])
        assert activated["status"] == "active"
        assert activated["active_version_id"] == v1["id"]

        v2 = _version(db_session, document, "en")
        assert v2["version"] == 2
        publish_document_version(db_session, document["id"], v2["id"])
        activated = activate_document_version(db_session, document["id"], v2["id"])

        assert activated["active_version_id"] == v2["id"]
        versions = {v["id"]: v for v in activated["versions"]}
        assert versions[v1["id"]]["superseded_at"] is not None
        assert versions[v2["id"]]["superseded_at"] is None
        assert [v.id for v in _live_versions(db_session, document["id"])] == [UUID(v2["id"])]

    def test_activation_is_document_wide(self, db_session):
        """Activating a version in one locale supersedes live versions in every locale."""
        document = _document(db_session)
        en = _version(db_session, document, "en", status="published")
        fr = _version(db_session, document, "fr", status="approved")
        de = _version(db_session, document, "de", status="published")

        activated = activate_document_version(db_session, document["id"], fr["id"])
        assert activated["active_version_id"] == fr["id"]
        assert [v.id for v in _live_versions(db_session, document["id"])] == [UUID(fr["id"])]
        versions = {v["id"]: v for v in activated["versions"]}
        assert versions[en["id"]]["superseded_at"] is not None
        assert versions[de["id"]]["superseded_at"] is not None

        en_v2 = _version(db_session, document, "en", status="published")
        activated = activate_document_version(db_session, document["id"], en_v2["id"])
        assert [v.id for v in _live_versions(db_session, document["id"])] == [UUID(en_v2["id"])]
        versions = {v["id"]: v for v in activated["versions"]}
        assert versions[fr["id"]]["superseded_at"] is not None
        assert versions[fr["id"]]["is_active"] is False
        assert versions[en_v2["id"]]["is_active"] is True

    def test_approved_version_can_be_activated(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document, status="approved", effective_at="2026-01-01T00:00:00Z")
        activated = activate_document_version(db_session, document["id"], version["id"])
        assert activated["status"] == "active"
        assert activated["published_at"] == datetime(2026, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("status", ["draft", "in_review", "archived"])
    def test_inactive_statuses_cannot_be_activated(self, db_session, status):
        document = _document(db_session)
        version = _version(db_session, document, status=status)
        with pytest.raises(ValidationError):
            activate_document_version(db_session, document["id"], version["id"])

    def test_superseded_version_cannot_be_reactivated(self, db_session):
        document = _document(db_session)
        v1 = _version(db_session, document, status="published")
        activate_document_version(db_session, document["id"], v1["id"])
        v2 = _version(db_session, document, status="published")
        activate_document_version(db_session, document["id"], v2["id"])

        with pytest.raises(ValidationError):
            activate_document_version(db_session, document["id"], v1["id"])
        assert get_legal_document(db_session, document["id"])["active_version_id"] == v2["id"]

    def test_activation_clears_retirement(self, db_session):
        document = _document(db_session)
        v1 = _version(db_session, document, status="published")
        activate_document_version(db_session, document["id"], v1["id"])
        archive_document_version(db_session, document["id"], v1["id"])
        assert get_legal_document(db_session, document["id"])["retired_at"] is not None

        v2 = _version(db_session, document, "fr", status="published")
        activated = activate_document_version(db_session, document["id"], v2["id"])
        assert activated["retired_at"] is None

    def test_activation_is_audited(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document, status="published")
        activate_document_version(db_session, document["id"], version["id"])
        assert _audit_actions(db_session, document["id"])[-1] == "version_activated"


class TestArchiveDocumentVersion:
    """Test archival."""

    def test_archiving_active_version_resets_document(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document, status="published")
        activate_document_version(db_session, document["id"], version["id"])

        archived = archive_document_version(
            db_session, document["id"], version["id"], {"reason": "Replaced by counsel"}
        )
        assert archived["status"] == "archived"
        assert archived["archived_at"] is not None

        detail = get_legal_document(db_session, document["id"])
        assert detail["active_version_id"] is None
        assert detail["status"] == "draft"
        assert detail["retired_at"] is not None

    def test_archiving_active_version_of_archived_document(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document, status="published")
        activate_document_version(db_session, document["id"], version["id"])
        update_legal_document(db_session, document["id"], {"status": "archived"})

        archive_document_version(db_session, document["id"], version["id"])
        detail = get_legal_document(db_session, document["id"])
        assert detail["active_version_id"] is None
        assert detail["status"] == "archived"

    def test_archiving_inactive_version_keeps_document(self, db_session):
        document = _document(db_session)
        live = _version(db_session, document, status="published")
        draft = _version(db_session, document)
        activate_document_version(db_session, document["id"], live["id"])

        archive_document_version(db_session, document["id"], draft["id"])
        detail = get_legal_document(db_session, document["id"])
        assert detail["active_version_id"] == live["id"]
        assert detail["status"] == "active"
        assert detail["retired_at"] is None

    def test_archive_is_idempotent(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document)
        first = archive_document_version(db_session, document["id"], version["id"])
        second = archive_document_version(db_session, document["id"], version["id"])

        assert second["archived_at"] == first["archived_at"]
        assert _audit_actions(db_session, document["id"]).count("version_archived") == 1


class TestUpdateDocumentVersion:
    """Test in-place version edits."""

    def test_content_edit(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document)
        updated = update_document_version(
            db_session, document["id"], version["id"], {"content": "Revised", "summary": "Tightened"}
        )
        assert updated["content"] == "Revised"
        assert updated["summary"] == "Tightened"
        assert _audit_actions(db_session, document["id"])[-1] == "version_updated"

    def test_renumbering_conflict_is_rejected(self, db_session):
        document = _document(db_session)
        _version(db_session, document, "en")
        v2 = _version(db_session, document, "en")

        with pytest.raises(ValidationError):
            update_document_version(db_session, document["id"], v2["id"], {"version": 1})

        renumbered = update_document_version(db_session, document["id"], v2["id"], {"version": 7})
        assert renumbered["version"] == 7

    def test_moving_to_a_free_locale_slot(self, db_session):
        document = _document(db_session)
        _version(db_session, document, "fr")
        en = _version(db_session, document, "en")

        with pytest.raises(ValidationError):
            update_document_version(db_session, document["id"], en["id"], {"locale": "FR"})

        moved = update_document_version(
            db_session, document["id"], en["id"], {"locale": "de_DE"}
        )
        assert (moved["locale"], moved["version"]) == ("de-de", 1)

    def test_merged_payload_is_revalidated(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document)
        with pytest.raises(ValidationError):
            update_document_version(db_session, document["id"], version["id"], {"content": None})

    @pytest.mark.parametrize("start,target", [
        ("published", "draft"),
        ("published", "in_review"),
        ("approved", "draft"),
        ("archived", "published"),
    ])
    def test_illegal_transitions_are_rejected(self, db_session, start, target):
        document = _document(db_session)
        version = _version(db_session, document, status=start)
        with pytest.raises(ValidationError):
            update_document_version(db_session, document["id"], version["id"], {"status": target})

    def test_active_version_cannot_leave_activatable_statuses(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document, status="approved")
        activate_document_version(db_session, document["id"], version["id"])

        with pytest.raises(ValidationError) as exc_info:
            update_document_version(db_session, document["id"], version["id"], {"status": "in_review"})
        assert exc_info.value.field == "status"

        detail = get_legal_document(db_session, document["id"])
        assert detail["status"] == "active"
        assert detail["active_version_id"] == version["id"]
        assert detail["active_version"]["status"] in ("published", "approved")

        published = update_document_version(
            db_session, document["id"], version["id"], {"status": "published"}
        )
        assert published["is_active"] is True

    def test_review_workflow(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document)
        for status in ("in_review", "approved", "in_review", "approved"):
            version = update_document_version(
                db_session, document["id"], version["id"], {"status": status}
            )
            assert version["status"] == status

    def test_status_change_to_published_runs_publication(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document, status="approved")
        published = update_document_version(
            db_session, document["id"], version["id"], {"status": "published"}, actor=EDITOR
        )
        assert published["published_at"] is not None
        assert published["published_by"] == "editor-1"
        assert _audit_actions(db_session, document["id"])[-1] == "version_published"

    def test_status_change_to_archived_runs_archival(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document, status="published")
        activate_document_version(db_session, document["id"], version["id"])

        update_document_version(db_session, document["id"], version["id"], {"status": "archived"})
        detail = get_legal_document(db_session, document["id"])
        assert detail["active_version_id"] is None
        assert detail["status"] == "draft"


class TestUpdateLegalDocument:
    """Test document metadata edits."""

    def test_metadata_edit(self, db_session):
        document = _document(db_session)
        updated = update_legal_document(
            db_session, document["id"], {"title": "Global Privacy Policy", "tags": ["gdpr", "GDPR"]}
        )
        assert updated["title"] == "Global Privacy Policy"
        assert updated["slug"] == "privacy-policy"
        assert updated["tags"] == ["gdpr"]
        assert _audit_actions(db_session, document["id"])[-1] == "document_updated"

    def test_unchanged_values_are_not_audited(self, db_session):
        document = _document(db_session)
        update_legal_document(db_session, document["id"], {"title": "Privacy Policy"})
        assert _audit_actions(db_session, document["id"]) == ["document_created"]

    def test_slug_change_checks_uniqueness(self, db_session):
        _document(db_session, title="Terms")
        document = _document(db_session)

        with pytest.raises(ValidationError):
            update_legal_document(db_session, document["id"], {"slug": "terms"})

        same = update_legal_document(db_session, document["id"], {"slug": "Privacy Policy"})
        assert same["slug"] == "privacy-policy"

    def test_archive_and_restore_document(self, db_session):
        document = _document(db_session)
        version = _version(db_session, document, status="published")
        activate_document_version(db_session, document["id"], version["id"])

        archived = update_legal_document(db_session, document["id"], {"status": "archived"})
        assert archived["status"] == "archived"
        assert archived["archived_at"] is not None
        assert archived["active_version_id"] == version["id"]

        restored = update_legal_document(db_session, document["id"], {"status": "draft"})
        assert restored["status"] == "active"
        assert restored["archived_at"] is None


class TestAuthorization:
    """Test editor role checks."""

    def test_actor_without_editor_role_is_refused(self, db_session):
        document = _document(db_session, editor_roles=["legal"])
        outsider = Actor(actor_id="support-9", roles=("support",))

        with pytest.raises(AuthorizationError) as exc_info:
            create_document_version(db_session, document["id"], {"content": "x"}, actor=outsider)
        assert not isinstance(exc_info.value, ValidationError)
        assert exc_info.value.code == "AUTHORIZATION_ERROR"

    @pytest.mark.parametrize("actor", [
        Actor(actor_id="legal-2", roles=("LEGAL",)),
        Actor(actor_id="root", roles=("admin",)),
        Actor(actor_id="service"),
        None,
    ])
    def test_permitted_actors(self, db_session, actor):
        document = _document(db_session, editor_roles=["legal"])
        version = create_document_version(db_session, document["id"], {"content": "x"}, actor=actor)
        assert version["version"] == 1

    def test_documents_without_editor_roles_are_open(self, db_session):
        document = _document(db_session)
        outsider = Actor(actor_id="support-9", roles=("support",))
        updated = update_legal_document(db_session, document["id"], {"summary": "Hi"}, actor=outsider)
        assert updated["summary"] == "Hi"


class TestDocumentAuditLog:
    """Test the best-effort document audit trail."""

    def test_failed_audit_write_does_not_block_transition(self, db_session, caplog):
        document = _document(db_session)
        version = _version(db_session, document)

        def fail(mapper, connection, target):
            raise SQLAlchemyError("audit table unavailable")

        event.listen(LegalDocumentAuditEvent, "before_insert", fail)
        try:
            published = publish_document_version(db_session, document["id"], version["id"])
        finally:
            event.remove(LegalDocumentAuditEvent, "before_insert", fail)

        assert published["status"] == "published"
        assert "version_published" not in _audit_actions(db_session, document["id"])
        assert "audit table unavailable" in caplog.text

    def test_recent_audit_events(self, db_session):
        document = _document(db_session, title="Cookie Notice", category="cookie")
        version = _version(db_session, document, status="published")
        activate_document_version(db_session, document["id"], version["id"])

        events = list_recent_audit_events(db_session, since=None, limit=2)
        assert [e["action"] for e in events] == ["version_activated", "version_created"]
        assert events[0]["document"]["slug"] == "cookie-notice"
        assert events[0]["version"]["locale"] == "en"

        get_detail = get_legal_document(db_session, "cookie-notice", include_audit=True)
        assert [e["action"] for e in get_detail["audit_events"]] == [
            "version_activated", "version_created", "document_created",
        ]


class TestListAndGet:
    """Test document reads."""

    def test_list_filters(self, db_session):
        privacy = _document(db_session)
        _document(db_session, title="Terms of Service", category="terms")
        version = _version(db_session, privacy, status="published")
        activate_document_version(db_session, privacy["id"], version["id"])

        assert [d["slug"] for d in list_legal_documents(db_session, category="privacy")] == ["privacy-policy"]
        assert [d["slug"] for d in list_legal_documents(db_session, status="draft")] == ["terms-of-service"]
        assert [d["slug"] for d in list_legal_documents(db_session)] == ["privacy-policy", "terms-of-service"]

        with pytest.raises(ValidationError):
            list_legal_documents(db_session, category="marketing")

    def test_versions_are_locale_filtered_and_ordered(self, db_session):
        document = _document(db_session)
        for locale in ("fr", "en", "en", "fr", "en"):
            _version(db_session, document, locale)

        listed = list_legal_documents(db_session, include_versions=True)[0]
        assert [(v["locale"], v["version"]) for v in listed["versions"]] == [
            ("en", 3), ("en", 2), ("en", 1), ("fr", 2), ("fr", 1),
        ]
        assert "versions" not in list_legal_documents(db_session)[0]

        french = get_legal_document(db_session, document["id"], locale="FR")
        assert [v["version"] for v in french["versions"]] == [2, 1]

    def test_get_by_id_or_slug(self, db_session):
        document = _document(db_session)
        assert get_legal_document(db_session, document["id"])["slug"] == "privacy-policy"
        assert get_legal_document(db_session, "privacy-policy")["id"] == document["id"]
        assert get_legal_document(db_session, UUID(document["id"]))["id"] == document["id"]

    def test_get_missing(self, db_session):
        with pytest.raises(NotFoundError):
            get_legal_document(db_session, "no-such-policy")
        with pytest.raises(NotFoundError):
            get_legal_document(db_session, uuid4())
