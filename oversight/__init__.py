"""
Oversight - Governance infrastructure layer.

Shared primitives for the moderation queue and the policy lifecycle engine:
settings, the error taxonomy, and structured audit logging.

Usage:
    from oversight.core.exceptions import ValidationError, NotFoundError
    from oversight.audit import get_audit_logger, AuditEventType
"""

__version__ = "0.1.0"

from oversight.core.config import OversightSettings
from oversight.core.exceptions import (
    OversightException,
    ValidationError,
    NotFoundError,
    AuthorizationError,
    ConflictError,
    ConfigurationError,
)

__all__ = [
    "__version__",
    "OversightSettings",
    "OversightException",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "ConflictError",
    "ConfigurationError",
]
