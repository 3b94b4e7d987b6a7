"""Input schemas and the helpers that turn raw payloads into them.

Pydantic errors never leave this package: ``validate_payload`` converts them
into the governance ``ValidationError``.
"""
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Type, TypeVar
from uuid import UUID

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from oversight.core.exceptions import ValidationError

M = TypeVar("M", bound=BaseModel)


def validate_payload(model_cls: Type[M], payload: Any) -> M:
    """Parse a dict (or another model) into ``model_cls``.

    Raises:
        ValidationError: With the first offending field and all error messages
    """
    if isinstance(payload, model_cls):
        return payload
    if payload is None:
        payload = {}
    elif isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)

    try:
        return model_cls.model_validate(payload)
    except PydanticValidationError as exc:
        errors = [
            {
                "field": ".".join(str(part) for part in error["loc"]) or None,
                "message": error["msg"],
            }
            for error in exc.errors()
        ]
        first = errors[0] if errors else {"field": None, "message": "Invalid payload"}
        label = first["field"] or "payload"
        raise ValidationError(
            f"Invalid {label}: {first['message']}",
            field=first["field"],
            details={"errors": errors},
        ) from None


def coerce_uuid(value: Any, field: str = "id") -> UUID:
    """Turn an id from the caller into a UUID, or fail validation."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid {field} '{value}'", field=field) from None


def normalize_string_list(values: Optional[Iterable[Any]]) -> list[str]:
    """Trim entries, drop blanks, and de-duplicate case-insensitively keeping the first spelling."""
    if values is None:
        return []
    if isinstance(values, str):
        values = values.split(",")

    seen = set()
    normalized = []
    for value in values:
        text = str(value).strip() if value is not None else ""
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        normalized.append(text)
    return normalized


def normalize_locale(value: Optional[str]) -> Optional[str]:
    """'en_GB ' -> 'en-gb'. Blank values become None."""
    if value is None:
        return None
    text = str(value).strip().replace("_", "-").lower()
    return text or None


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes from callers as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
