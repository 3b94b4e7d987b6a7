"""Legal document and version payload schemas."""
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from app.models.constants import (
    LegalDocumentCategory,
    LegalDocumentStatus,
    LegalDocumentVersionStatus,
)
from app.schemas import ensure_aware, normalize_locale, normalize_string_list
from app.schemas.moderation import blank_to_none, lower_choice


class LegalDocumentVersionCreate(BaseModel):
    """A new localized revision. Either content or an external URL is required."""
    model_config = ConfigDict(extra="ignore")

    locale: Optional[str] = None
    version: Optional[int] = Field(None, ge=1)
    status: LegalDocumentVersionStatus = LegalDocumentVersionStatus.DRAFT
    title: Optional[str] = None
    summary: Optional[str] = None
    change_summary: Optional[str] = None
    content: Optional[str] = None
    external_url: Optional[str] = None
    effective_at: Optional[datetime] = None
    metadata: dict = Field(default_factory=dict)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return lower_choice(v)

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, v: Optional[str]) -> Optional[str]:
        return normalize_locale(v)

    @field_validator("content", "external_url", "title")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return blank_to_none(v)

    @field_validator("effective_at")
    @classmethod
    def validate_effective_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v)

    @field_validator("metadata", mode="before")
    @classmethod
    def validate_metadata(cls, v):
        return {} if v is None else v

    @model_validator(mode="after")
    def validate_body(self):
        if not self.content and not self.external_url:
            raise ValueError("content or external_url is required")
        return self


class LegalDocumentVersionUpdate(BaseModel):
    """Partial version edit. The merged result is re-validated as a full version."""
    model_config = ConfigDict(extra="ignore")

    locale: Optional[str] = None
    version: Optional[int] = Field(None, ge=1)
    status: Optional[LegalDocumentVersionStatus] = None
    title: Optional[str] = None
    summary: Optional[str] = None
    change_summary: Optional[str] = None
    content: Optional[str] = None
    external_url: Optional[str] = None
    effective_at: Optional[datetime] = None
    metadata: Optional[dict] = None

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return lower_choice(v)

    @field_validator("locale", "version", "status")
    @classmethod
    def validate_not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v


class LegalDocumentCreate(BaseModel):
    """A new document, optionally with its first version."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    title: str
    slug: Optional[str] = None
    summary: Optional[str] = None
    category: LegalDocumentCategory = LegalDocumentCategory.TERMS
    region: Optional[str] = None
    default_locale: Optional[str] = None
    audience_roles: list[str] = Field(default_factory=list)
    editor_roles: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    initial_version: Optional[LegalDocumentVersionCreate] = Field(
        None, validation_alias=AliasChoices("initial_version", "initialVersion")
    )

    @field_validator("category", mode="before")
    @classmethod
    def validate_category(cls, v):
        return lower_choice(v)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator("slug", "region")
    @classmethod
    def validate_text(cls, v: Optional[str]) -> Optional[str]:
        return blank_to_none(v)

    @field_validator("default_locale")
    @classmethod
    def validate_locale(cls, v: Optional[str]) -> Optional[str]:
        return normalize_locale(v)

    @field_validator("audience_roles", "editor_roles", "tags", mode="before")
    @classmethod
    def validate_string_list(cls, v):
        return normalize_string_list(v)


class LegalDocumentUpdate(BaseModel):
    """Partial document edit. ``status`` only toggles the document's own archived flag."""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    slug: Optional[str] = None
    summary: Optional[str] = None
    category: Optional[LegalDocumentCategory] = None
    status: Optional[LegalDocumentStatus] = None
    region: Optional[str] = None
    default_locale: Optional[str] = None
    audience_roles: Optional[list[str]] = None
    editor_roles: Optional[list[str]] = None
    tags: Optional[list[str]] = None

    @field_validator("category", "status", mode="before")
    @classmethod
    def validate_choice(cls, v):
        return lower_choice(v)

    @field_validator("category", "status")
    @classmethod
    def validate_not_null(cls, v):
        if v is None:
            raise ValueError("cannot be null")
        return v

    @field_validator("title", "slug", "region", "default_locale")
    @classmethod
    def validate_required_text(cls, v: Optional[str]) -> str:
        if v is None or not v.strip():
            raise ValueError("must not be blank")
        return v.strip()

    @field_validator("default_locale")
    @classmethod
    def validate_locale(cls, v: str) -> str:
        return normalize_locale(v)

    @field_validator("audience_roles", "editor_roles", "tags", mode="before")
    @classmethod
    def validate_string_list(cls, v):
        return normalize_string_list(v)


class VersionPublish(BaseModel):
    model_config = ConfigDict(extra="ignore")

    effective_at: Optional[datetime] = None
    change_summary: Optional[str] = None

    @field_validator("effective_at")
    @classmethod
    def validate_effective_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v)


class VersionArchive(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reason: Optional[str] = None
