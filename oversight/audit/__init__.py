"""
Oversight Audit - Structured audit logging for governance events.
"""

from oversight.audit.logger import (
    AuditLogger,
    AuditEvent,
    AuditEventType,
    get_audit_logger,
    set_audit_logger,
)

__all__ = [
    "AuditLogger",
    "AuditEvent",
    "AuditEventType",
    "get_audit_logger",
    "set_audit_logger",
]
