"""Closed vocabularies for the moderation queue and the policy lifecycle.

Every status, priority, severity and action value that reaches the database
goes through one of these enums. Raw strings are converted once, at the
boundary, by ``normalize_choice``.
"""
from enum import Enum
from typing import Optional, Type, TypeVar

from oversight.core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    ESCALATED = "escalated"
    NEEDS_CHANGES = "needs_changes"


class SubmissionPriority(str, Enum):
    LOW = "low"
    STANDARD = "standard"
    HIGH = "high"
    URGENT = "urgent"


class SubmissionSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ModerationActionType(str, Enum):
    ASSIGN = "assign"
    APPROVE = "approve"
    REJECT = "reject"
    ESCALATE = "escalate"
    REQUEST_CHANGES = "request_changes"
    RESTORE = "restore"
    SUSPEND = "suspend"
    ADD_NOTE = "add_note"


class LegalDocumentCategory(str, Enum):
    TERMS = "terms"
    PRIVACY = "privacy"
    DATA_PROCESSING = "data_processing"
    COOKIE = "cookie"


class LegalDocumentStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class LegalDocumentVersionStatus(str, Enum):
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class VersionStatusBucket(str, Enum):
    """Reporting buckets for version statuses in the governance overview."""
    DRAFTS = "drafts"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class LegalDocumentAuditAction(str, Enum):
    DOCUMENT_CREATED = "document_created"
    DOCUMENT_UPDATED = "document_updated"
    VERSION_CREATED = "version_created"
    VERSION_UPDATED = "version_updated"
    VERSION_PUBLISHED = "version_published"
    VERSION_ACTIVATED = "version_activated"
    VERSION_ARCHIVED = "version_archived"


# Ranking weights; anything unknown weighs 0
PRIORITY_WEIGHTS = {
    SubmissionPriority.URGENT.value: 4,
    SubmissionPriority.HIGH.value: 3,
    SubmissionPriority.STANDARD.value: 2,
    SubmissionPriority.LOW.value: 1,
}

SEVERITY_WEIGHTS = {
    SubmissionSeverity.CRITICAL.value: 4,
    SubmissionSeverity.HIGH.value: 3,
    SubmissionSeverity.MEDIUM.value: 2,
    SubmissionSeverity.LOW.value: 1,
}

# Resolving statuses and the action each one is audited as
STATUS_ACTION_MAP = {
    SubmissionStatus.APPROVED: ModerationActionType.APPROVE,
    SubmissionStatus.REJECTED: ModerationActionType.REJECT,
    SubmissionStatus.NEEDS_CHANGES: ModerationActionType.REQUEST_CHANGES,
}

AWAITING_REVIEW_STATUSES = (SubmissionStatus.PENDING, SubmissionStatus.IN_REVIEW)
HIGH_SEVERITY_LEVELS = (SubmissionSeverity.HIGH, SubmissionSeverity.CRITICAL)

# Versions a document can point at as its live text
ACTIVATABLE_VERSION_STATUSES = (
    LegalDocumentVersionStatus.PUBLISHED,
    LegalDocumentVersionStatus.APPROVED,
)

# Allowed status moves when a version is edited in place
VERSION_STATUS_TRANSITIONS = {
    LegalDocumentVersionStatus.DRAFT: {
        LegalDocumentVersionStatus.DRAFT,
        LegalDocumentVersionStatus.IN_REVIEW,
        LegalDocumentVersionStatus.APPROVED,
        LegalDocumentVersionStatus.PUBLISHED,
        LegalDocumentVersionStatus.ARCHIVED,
    },
    LegalDocumentVersionStatus.IN_REVIEW: {
        LegalDocumentVersionStatus.DRAFT,
        LegalDocumentVersionStatus.IN_REVIEW,
        LegalDocumentVersionStatus.APPROVED,
        LegalDocumentVersionStatus.PUBLISHED,
        LegalDocumentVersionStatus.ARCHIVED,
    },
    LegalDocumentVersionStatus.APPROVED: {
        LegalDocumentVersionStatus.IN_REVIEW,
        LegalDocumentVersionStatus.APPROVED,
        LegalDocumentVersionStatus.PUBLISHED,
        LegalDocumentVersionStatus.ARCHIVED,
    },
    LegalDocumentVersionStatus.PUBLISHED: {
        LegalDocumentVersionStatus.PUBLISHED,
        LegalDocumentVersionStatus.ARCHIVED,
    },
    LegalDocumentVersionStatus.ARCHIVED: {
        LegalDocumentVersionStatus.ARCHIVED,
    },
}

# Version status vocabulary has drifted over time; every spelling seen in
# stored rows maps onto one reporting bucket.
VERSION_STATUS_ALIASES = {
    "draft": VersionStatusBucket.DRAFTS,
    "drafts": VersionStatusBucket.DRAFTS,
    "in_review": VersionStatusBucket.IN_REVIEW,
    "in-review": VersionStatusBucket.IN_REVIEW,
    "inreview": VersionStatusBucket.IN_REVIEW,
    "review": VersionStatusBucket.IN_REVIEW,
    "pending_review": VersionStatusBucket.IN_REVIEW,
    "approved": VersionStatusBucket.APPROVED,
    "publish": VersionStatusBucket.PUBLISHED,
    "published": VersionStatusBucket.PUBLISHED,
    "active": VersionStatusBucket.PUBLISHED,
    "archived": VersionStatusBucket.ARCHIVED,
}


def enum_values(enum_cls: Type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


def normalize_choice(enum_cls: Type[E], value, field: str) -> E:
    """Convert a raw value into a member of a closed enum.

    Raises:
        ValidationError: If the value is not one of the enum's values
    """
    if isinstance(value, enum_cls):
        return value
    raw = str(value).strip().lower() if value is not None else ""
    try:
        return enum_cls(raw)
    except ValueError:
        raise ValidationError(
            f"Invalid {field} '{value}'. Expected one of: {', '.join(enum_values(enum_cls))}",
            field=field,
            details={"allowed": enum_values(enum_cls), "value": value},
        ) from None


def normalize_version_status(value: Optional[str]) -> Optional[VersionStatusBucket]:
    """Map a stored version status (any historical spelling) to its bucket."""
    if value is None:
        return None
    return VERSION_STATUS_ALIASES.get(str(value).strip().lower())


def check_constraint_sql(column: str, enum_cls: Type[Enum]) -> str:
    values = ", ".join(f"'{v}'" for v in enum_values(enum_cls))
    return f"{column} IN ({values})"
