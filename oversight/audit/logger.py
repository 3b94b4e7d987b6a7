"""
Oversight Audit Logger - Structured audit event logging.

Emits one structured log line per governance event (moderation decisions,
policy lifecycle transitions, audit write failures) and fans each event out
to any registered handlers.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from oversight.core.config import get_settings


class AuditEventType(Enum):
    """Types of audit events."""

    # Moderation queue
    MODERATION_ACTION = "moderation_action"

    # Policy lifecycle
    DOCUMENT_EVENT = "document_event"

    # Access
    ACCESS_DENIED = "access_denied"

    # Audit sink health
    AUDIT_WRITE_FAILED = "audit_write_failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AuditEvent:
    """
    A structured audit event.

    Captures who did what to which governed resource, and how it ended.
    """

    event_type: AuditEventType
    action: str
    actor: str = "system"
    resource: str = ""
    outcome: str = "success"
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "event_type": self.event_type.value,
            "action": self.action,
            "actor": self.actor,
            "resource": self.resource,
            "outcome": self.outcome,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": self.correlation_id,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)


# Type for audit event handlers
AuditHandler = Callable[[AuditEvent], None]


class AuditLogger:
    """
    Centralized audit logger for governance events.

    Example:
        logger = AuditLogger()
        logger.log_action(
            event_type=AuditEventType.MODERATION_ACTION,
            action="approve",
            actor="reviewer-7",
            resource="content_submission:5f1c...",
        )
    """

    def __init__(
        self,
        name: Optional[str] = None,
        enabled: Optional[bool] = None,
    ):
        """
        Initialize the audit logger.

        Args:
            name: Logger name for Python logging integration
            enabled: Override settings for audit logging enabled
        """
        settings = get_settings()
        self._name = name or settings.audit_logger_name
        self._enabled = enabled if enabled is not None else settings.audit_log_enabled
        self._handlers: List[AuditHandler] = []
        self._logger = logging.getLogger(self._name)

    @property
    def name(self) -> str:
        return self._name

    @property
    def enabled(self) -> bool:
        """Check if audit logging is enabled."""
        return self._enabled

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def add_handler(self, handler: AuditHandler) -> None:
        """
        Add a custom audit event handler.

        Handlers are called for each audit event after the Python
        logging line has been written.
        """
        self._handlers.append(handler)

    def remove_handler(self, handler: AuditHandler) -> bool:
        """
        Remove a custom audit event handler.

        Returns:
            True if handler was found and removed
        """
        try:
            self._handlers.remove(handler)
            return True
        except ValueError:
            return False

    def log_event(self, event: AuditEvent) -> None:
        """
        Log an audit event.

        Args:
            event: The audit event to log
        """
        if not self._enabled:
            return

        log_message = (
            f"{event.event_type.value} | "
            f"action={event.action} | "
            f"actor={event.actor} | "
            f"resource={event.resource} | "
            f"outcome={event.outcome}"
        )
        if event.correlation_id:
            log_message += f" | correlation_id={event.correlation_id}"

        level = logging.INFO if event.outcome == "success" else logging.WARNING
        self._logger.log(level, log_message, extra={"audit_details": event.details})

        for handler in self._handlers:
            try:
                handler(event)
            except Exception as e:
                self._logger.error(f"Audit handler error: {e}")

    def log_action(
        self,
        action: str,
        event_type: AuditEventType,
        actor: str = "system",
        resource: str = "",
        outcome: str = "success",
        details: Optional[Dict[str, Any]] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """
        Convenience method to log a governance action.

        Args:
            action: The action being performed
            event_type: Which governance stream the action belongs to
            actor: Who performed the action
            resource: What resource was affected, as "<type>:<id>"
            outcome: Result of the action
            details: Additional context
            correlation_id: Optional correlation ID
        """
        self.log_event(
            AuditEvent(
                event_type=event_type,
                action=action,
                actor=actor,
                resource=resource,
                outcome=outcome,
                details=details or {},
                correlation_id=correlation_id,
            )
        )


# Global audit logger instance
_global_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """
    Get the global audit logger instance.

    Returns:
        AuditLogger instance (creates one if needed)
    """
    global _global_audit_logger
    if _global_audit_logger is None:
        _global_audit_logger = AuditLogger()
    return _global_audit_logger


def set_audit_logger(logger: Optional[AuditLogger]) -> None:
    """
    Set the global audit logger instance.

    Passing None resets it so the next call to get_audit_logger()
    builds a fresh one from settings.
    """
    global _global_audit_logger
    _global_audit_logger = logger
