"""Moderation queue payload schemas."""
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from app.models.constants import (
    ModerationActionType,
    SubmissionPriority,
    SubmissionSeverity,
    SubmissionStatus,
)
from app.schemas import ensure_aware

RISK_SCORE_MAX = 999.99


def lower_choice(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def optional_text(value: Any) -> Any:
    """Accept numeric ids where a string id is expected."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class SubmissionCreate(BaseModel):
    """Payload for putting a piece of content into the queue."""
    model_config = ConfigDict(extra="ignore")

    reference_id: str = Field(..., min_length=1)
    reference_type: str = Field(..., min_length=1)
    title: Optional[str] = None
    summary: Optional[str] = None
    region: Optional[str] = None
    priority: SubmissionPriority = SubmissionPriority.STANDARD
    severity: SubmissionSeverity = SubmissionSeverity.LOW
    risk_score: float = Field(0, ge=0, le=RISK_SCORE_MAX)
    assigned_reviewer_id: Optional[str] = None
    assigned_team: Optional[str] = None
    sla_minutes: Optional[int] = Field(None, ge=0)
    metadata: dict = Field(default_factory=dict)
    submitted_at: Optional[datetime] = None

    @field_validator("reference_id", "assigned_reviewer_id", mode="before")
    @classmethod
    def validate_id_text(cls, v):
        return optional_text(v)

    @field_validator("priority", "severity", mode="before")
    @classmethod
    def validate_choice(cls, v):
        return lower_choice(v)

    @field_validator("reference_id", "reference_type")
    @classmethod
    def validate_required_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("submitted_at")
    @classmethod
    def validate_submitted_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v)


class SubmissionFilters(BaseModel):
    """Queue filters. Enum filters take one value, a comma list, or a list."""
    model_config = ConfigDict(extra="ignore")

    status: Optional[list[SubmissionStatus]] = None
    priority: Optional[list[SubmissionPriority]] = None
    severity: Optional[list[SubmissionSeverity]] = None
    assigned_team: Optional[str] = None
    assigned_reviewer_id: Optional[str] = None
    region: Optional[str] = None
    search: Optional[str] = None

    @field_validator("status", "priority", "severity", mode="before")
    @classmethod
    def validate_choice_list(cls, v):
        if v is None or v == "":
            return None
        if isinstance(v, str):
            v = [part for part in v.split(",") if part.strip()]
        elif not isinstance(v, (list, tuple, set)):
            v = [v]
        return [lower_choice(item) for item in v] or None

    @field_validator("assigned_reviewer_id", mode="before")
    @classmethod
    def validate_id_text(cls, v):
        return optional_text(v)

    @field_validator("search", "assigned_team", "assigned_reviewer_id", "region")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return blank_to_none(v)


class SubmissionStatusUpdate(BaseModel):
    """Partial update of a submission. Only the fields sent are applied."""
    model_config = ConfigDict(extra="ignore")

    status: Optional[SubmissionStatus] = None
    priority: Optional[SubmissionPriority] = None
    severity: Optional[SubmissionSeverity] = None
    risk_score: Optional[float] = Field(None, ge=0, le=RISK_SCORE_MAX)
    assigned_reviewer_id: Optional[str] = None
    assigned_team: Optional[str] = None
    rejection_reason: Optional[str] = None
    resolution_notes: Optional[str] = None
    metadata: Optional[dict] = None

    @field_validator("status", "priority", "severity", mode="before")
    @classmethod
    def validate_choice(cls, v):
        return lower_choice(v)

    @field_validator("assigned_reviewer_id", mode="before")
    @classmethod
    def validate_id_text(cls, v):
        return optional_text(v)

    @field_validator("status", "priority", "severity", "risk_score", "metadata")
    @classmethod
    def validate_not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v


class SubmissionAssignment(BaseModel):
    """Reviewer/team assignment. Sending null clears a field; omitting it keeps it."""
    model_config = ConfigDict(extra="ignore")

    reviewer_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("reviewer_id", "assigned_reviewer_id")
    )
    team: Optional[str] = Field(None, validation_alias=AliasChoices("team", "assigned_team"))

    @field_validator("reviewer_id", mode="before")
    @classmethod
    def validate_id_text(cls, v):
        return optional_text(v)

    @field_validator("reviewer_id", "team")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return blank_to_none(v)


class ModerationActionCreate(BaseModel):
    """A moderation decision, optionally carrying a submission patch."""
    model_config = ConfigDict(extra="ignore")

    action: ModerationActionType
    severity: Optional[SubmissionSeverity] = None
    risk_score: Optional[float] = Field(None, ge=0, le=RISK_SCORE_MAX)
    reason: Optional[str] = None
    guidance_link: Optional[str] = None
    resolution_summary: Optional[str] = None
    metadata: dict = Field(default_factory=dict)

    # Submission patch carried with the action
    status: Optional[SubmissionStatus] = None
    priority: Optional[SubmissionPriority] = None
    sla_minutes: Optional[int] = Field(None, ge=0)

    @field_validator("action", "severity", "status", "priority", mode="before")
    @classmethod
    def validate_choice(cls, v):
        return lower_choice(v)

    @field_validator("severity", "status", "priority", "risk_score", "metadata")
    @classmethod
    def validate_not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v

    @property
    def carries_submission_patch(self) -> bool:
        return bool(self.model_fields_set & {"status", "priority", "severity", "sla_minutes"})
