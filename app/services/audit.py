"""Audit trail collaborator for governance writes.

Both governance streams persist an audit row next to every state transition,
but with different failure policies:

- moderation actions are **strict**: the row is part of the primary
  transaction, and a failed write fails the whole operation;
- document audit events are **best-effort**: the row is written inside a
  SAVEPOINT, and a failed write is logged and dropped while the primary
  transition still commits.

The policy is the ``strict`` flag on ``AuditTrail``. Every successful write is
also mirrored to the structured oversight audit logger.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from oversight.audit import AuditEventType, get_audit_logger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """The resolved principal performing an operation."""
    actor_id: Optional[str] = None
    actor_type: str = "admin"
    roles: tuple = ()

    @property
    def label(self) -> str:
        return self.actor_id or self.actor_type or "system"

    @property
    def is_admin(self) -> bool:
        return "admin" in {str(role).lower() for role in self.roles}


SYSTEM_ACTOR = Actor(actor_id=None, actor_type="system")


def resolve_actor(actor: Any) -> Actor:
    """Accept an Actor, a bare actor id, a dict, or None (system)."""
    if actor is None:
        return SYSTEM_ACTOR
    if isinstance(actor, Actor):
        return actor
    if isinstance(actor, dict):
        actor_id = actor.get("actor_id", actor.get("id"))
        return Actor(
            actor_id=str(actor_id) if actor_id is not None else None,
            actor_type=actor.get("actor_type", "admin"),
            roles=tuple(actor.get("roles") or ()),
        )
    return Actor(actor_id=str(actor))


class AuditTrail:
    """Writes audit rows for one governance stream under a fixed failure policy."""

    def __init__(self, name: str, event_type: AuditEventType, strict: bool):
        self.name = name
        self.event_type = event_type
        self.strict = strict

    def __repr__(self):
        return f"<AuditTrail {self.name} strict={self.strict}>"

    def record(self, db: Session, entry, resource: str, actor: Optional[Actor] = None):
        """Persist ``entry`` and return it.

        Returns None instead of raising when a best-effort write fails.

        Raises:
            SQLAlchemyError: When a strict write fails
        """
        actor = actor or SYSTEM_ACTOR
        if self.strict:
            db.add(entry)
            db.flush()
        else:
            try:
                with db.begin_nested():
                    db.add(entry)
            except SQLAlchemyError as e:
                logger.warning(f"Audit write to {self.name} failed for {resource}: {e}")
                get_audit_logger().log_action(
                    action=str(getattr(entry, "action", "unknown")),
                    event_type=AuditEventType.AUDIT_WRITE_FAILED,
                    actor=actor.label,
                    resource=resource,
                    outcome="failure",
                    details={"trail": self.name, "error": str(e)},
                )
                return None

        get_audit_logger().log_action(
            action=str(entry.action),
            event_type=self.event_type,
            actor=actor.label,
            resource=resource,
            details={"trail": self.name, "entry_id": str(entry.id)},
        )
        return entry


moderation_action_log = AuditTrail(
    "moderation_actions", AuditEventType.MODERATION_ACTION, strict=True
)
document_audit_log = AuditTrail(
    "legal_document_audit_events", AuditEventType.DOCUMENT_EVENT, strict=False
)
