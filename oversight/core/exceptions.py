"""
Oversight Core Exceptions - Governance error taxonomy.

Every error surfaced by the governance engine is one of these kinds.
None of them is retried automatically; callers receive them verbatim.
"""

from typing import Any, Dict, Optional


class OversightException(Exception):
    """
    Base exception for all governance errors.

    Attributes:
        message: Human-readable error message
        code: Machine-readable error code
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or "OVERSIGHT_ERROR"
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary representation."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(OversightException):
    """
    Raised when caller input is malformed, out of enum or out of range.

    Example:
        raise ValidationError(
            "Unknown priority 'asap'",
            field="priority",
            details={"allowed": ["low", "standard", "high", "urgent"]},
        )
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.field = field
        payload = dict(details or {})
        if field:
            payload.setdefault("field", field)
        super().__init__(message=message, code="VALIDATION_ERROR", details=payload)


class NotFoundError(OversightException):
    """
    Raised when a referenced submission, document or version does not exist.

    Example:
        raise NotFoundError(resource="content_submission", identifier=submission_id)
    """

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier

        label = resource.replace("_", " ")
        super().__init__(
            message=f"{label[:1].upper()}{label[1:]} '{identifier}' not found",
            code="NOT_FOUND",
            details={"resource": resource, "identifier": str(identifier)},
        )


class AuthorizationError(OversightException):
    """
    Raised when the acting principal may not perform an operation.

    Example:
        raise AuthorizationError(
            actor_id="42",
            action="activate_version",
            reason="Actor holds none of the document editor roles",
        )
    """

    def __init__(
        self,
        actor_id: Optional[str],
        action: str,
        reason: str,
    ):
        self.actor_id = actor_id
        self.action = action
        self.reason = reason

        super().__init__(
            message=f"Actor '{actor_id or 'anonymous'}' is not permitted to {action}: {reason}",
            code="AUTHORIZATION_ERROR",
            details={"actor_id": actor_id, "action": action, "reason": reason},
        )


class ConflictError(OversightException):
    """Raised when a concurrent writer modified the row between read and write."""

    def __init__(self, resource: str, identifier: Any = None, reason: str = ""):
        self.resource = resource
        self.identifier = identifier
        self.reason = reason

        message = f"Concurrent modification of {resource.replace('_', ' ')}"
        if identifier is not None:
            message += f" '{identifier}'"
        if reason:
            message += f": {reason}"

        super().__init__(
            message=message,
            code="CONFLICT",
            details={
                "resource": resource,
                "identifier": str(identifier) if identifier is not None else None,
                "reason": reason,
            },
        )


class ConfigurationError(OversightException):
    """
    Raised when there is a configuration error.

    Example:
        raise ConfigurationError(
            setting="DATABASE_URL",
            reason="A database URL is required",
        )
    """

    def __init__(
        self,
        setting: str,
        reason: str,
        suggestion: Optional[str] = None,
    ):
        self.setting = setting
        self.reason = reason
        self.suggestion = suggestion

        message = f"Configuration error for '{setting}': {reason}"
        if suggestion:
            message += f". Suggestion: {suggestion}"

        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            details={
                "setting": setting,
                "reason": reason,
                "suggestion": suggestion,
            },
        )
