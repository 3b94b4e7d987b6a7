"""Audit trail and structured audit logger tests."""
import logging
import uuid

import pytest
from sqlalchemy.exc import IntegrityError

from app.models import (
    ContentSubmission,
    LegalDocument,
    LegalDocumentAuditEvent,
    ModerationAction,
)
from app.services.audit import (
    SYSTEM_ACTOR,
    Actor,
    document_audit_log,
    moderation_action_log,
    resolve_actor,
)
from oversight.audit import AuditEventType, AuditLogger, get_audit_logger, set_audit_logger


@pytest.fixture
def captured_events():
    """Route the global audit logger into a list."""
    events = []
    audit_logger = AuditLogger(name="test_audit", enabled=True)
    audit_logger.add_handler(events.append)
    set_audit_logger(audit_logger)
    return events


@pytest.fixture
def submission(db_session):
    submission = ContentSubmission(reference_id="post-1", reference_type="post")
    db_session.add(submission)
    db_session.flush()
    return submission


@pytest.fixture
def document(db_session):
    document = LegalDocument(slug="terms", title="Terms", category="terms")
    db_session.add(document)
    db_session.flush()
    return document


class TestResolveActor:
    """Test actor resolution from caller input."""

    def test_none_is_system(self):
        assert resolve_actor(None) is SYSTEM_ACTOR
        assert SYSTEM_ACTOR.label == "system"

    def test_bare_id(self):
        actor = resolve_actor(42)
        assert actor.actor_id == "42"
        assert actor.actor_type == "admin"
        assert actor.roles == ()

    def test_dict(self):
        actor = resolve_actor({"id": 7, "actor_type": "moderator", "roles": ["Legal"]})
        assert actor == Actor(actor_id="7", actor_type="moderator", roles=("Legal",))

    def test_actor_passes_through(self):
        actor = Actor(actor_id="a", roles=("ADMIN",))
        assert resolve_actor(actor) is actor
        assert actor.is_admin


class TestStrictTrail:
    """Moderation actions fail with the primary write."""

    def test_successful_write_is_mirrored(self, db_session, submission, captured_events):
        entry = ModerationAction(submission_id=submission.id, action="approve", actor_id="mod-1")
        recorded = moderation_action_log.record(
            db_session, entry, resource=f"content_submission:{submission.id}", actor=Actor("mod-1")
        )

        assert recorded is entry
        assert db_session.query(ModerationAction).count() == 1
        assert len(captured_events) == 1
        assert captured_events[0].event_type == AuditEventType.MODERATION_ACTION
        assert captured_events[0].actor == "mod-1"

    def test_failed_write_raises(self, db_session, submission, captured_events):
        entry = ModerationAction(submission_id=submission.id, action=None)
        with pytest.raises(IntegrityError):
            moderation_action_log.record(db_session, entry, resource="content_submission:x")
        assert captured_events == []


class TestBestEffortTrail:
    """Document audit events never block the transition."""

    def test_successful_write(self, db_session, document, captured_events):
        entry = LegalDocumentAuditEvent(document_id=document.id, action="document_created")
        recorded = document_audit_log.record(db_session, entry, resource=f"legal_document:{document.id}")

        assert recorded is entry
        assert captured_events[0].event_type == AuditEventType.DOCUMENT_EVENT

    def test_failed_write_is_logged_and_dropped(self, db_session, document, captured_events, caplog):
        entry = LegalDocumentAuditEvent(document_id=document.id, action=None)
        with caplog.at_level(logging.WARNING, logger="app.services.audit"):
            recorded = document_audit_log.record(
                db_session, entry, resource=f"legal_document:{document.id}"
            )

        assert recorded is None
        assert "Audit write to legal_document_audit_events failed" in caplog.text
        assert [event.event_type for event in captured_events] == [AuditEventType.AUDIT_WRITE_FAILED]
        assert captured_events[0].outcome == "failure"

        # The enclosing transaction is still usable
        document.summary = "Still writable"
        db_session.commit()
        assert db_session.query(LegalDocument).filter_by(summary="Still writable").count() == 1
        assert db_session.query(LegalDocumentAuditEvent).count() == 0


class TestAuditLogger:
    """Test the structured audit logger."""

    def test_handlers_receive_events(self):
        events = []
        audit_logger = AuditLogger(name="test_audit", enabled=True)
        audit_logger.add_handler(events.append)

        audit_logger.log_action(
            action="approve",
            event_type=AuditEventType.MODERATION_ACTION,
            actor="mod-1",
            resource="content_submission:1",
            details={"reason": "ok"},
        )

        assert len(events) == 1
        assert events[0].to_dict()["event_type"] == "moderation_action"
        assert events[0].details == {"reason": "ok"}

    def test_disabled_logger_is_silent(self):
        events = []
        audit_logger = AuditLogger(name="test_audit", enabled=False)
        audit_logger.add_handler(events.append)
        audit_logger.log_action(action="approve", event_type=AuditEventType.MODERATION_ACTION)
        assert events == []

        audit_logger.enable()
        audit_logger.log_action(action="approve", event_type=AuditEventType.MODERATION_ACTION)
        assert len(events) == 1

    def test_handler_errors_are_contained(self, caplog):
        events = []

        def broken(event):
            raise RuntimeError("sink down")

        audit_logger = AuditLogger(name="test_audit", enabled=True)
        audit_logger.add_handler(broken)
        audit_logger.add_handler(events.append)

        audit_logger.log_action(action="reject", event_type=AuditEventType.MODERATION_ACTION)
        assert len(events) == 1
        assert "Audit handler error: sink down" in caplog.text

    def test_remove_handler(self):
        audit_logger = AuditLogger(name="test_audit", enabled=True)
        handler = lambda event: None  # noqa: E731
        audit_logger.add_handler(handler)
        assert audit_logger.remove_handler(handler) is True
        assert audit_logger.remove_handler(handler) is False

    def test_event_json(self):
        audit_logger = AuditLogger(name="test_audit", enabled=True)
        events = []
        audit_logger.add_handler(events.append)
        audit_logger.log_action(
            action="version_published",
            event_type=AuditEventType.DOCUMENT_EVENT,
            details={"id": uuid.UUID(int=1)},
            correlation_id="req-1",
        )
        payload = events[0].to_json()
        assert '"correlation_id": "req-1"' in payload
        assert "00000000-0000-0000-0000-000000000001" in payload

    def test_global_logger_reset(self):
        first = get_audit_logger()
        assert get_audit_logger() is first
        set_audit_logger(None)
        assert get_audit_logger() is not first
