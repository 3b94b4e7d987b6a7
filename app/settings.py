"""Application settings."""
from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    ENV: Literal["development", "staging", "production"] = "development"

    DATABASE_URL: str = "postgresql://governance:changeme@db:5432/governance"
    DATABASE_ECHO: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

    # Moderation queue
    MODERATION_DEFAULT_PAGE_SIZE: int = 25
    MODERATION_MAX_PAGE_SIZE: int = 100

    # Legal documents
    DEFAULT_DOCUMENT_LOCALE: str = "en"
    DEFAULT_DOCUMENT_REGION: str = "global"

    # Governance overview
    OVERVIEW_LOOKBACK_DAYS: int = 30
    OVERVIEW_QUEUE_LIMIT: int = 10
    OVERVIEW_PUBLICATION_LIMIT: int = 5
    OVERVIEW_TIMELINE_LIMIT: int = 25
    OVERVIEW_PARALLEL_FETCH: bool = True  # run the four overview reads on a thread pool
    OVERVIEW_MAX_WORKERS: int = 4

    class Config:
        env_file = ".env"
        case_sensitive = True

    def validate_pagination_config(self) -> None:
        """
        Validate moderation pagination settings.

        Raises:
            ValueError: If the default page size exceeds the maximum
        """
        if self.MODERATION_DEFAULT_PAGE_SIZE < 1 or self.MODERATION_MAX_PAGE_SIZE < 1:
            raise ValueError("Moderation page sizes must be at least 1.")
        if self.MODERATION_DEFAULT_PAGE_SIZE > self.MODERATION_MAX_PAGE_SIZE:
            raise ValueError(
                "MODERATION_DEFAULT_PAGE_SIZE cannot exceed MODERATION_MAX_PAGE_SIZE "
                f"({self.MODERATION_DEFAULT_PAGE_SIZE} > {self.MODERATION_MAX_PAGE_SIZE})."
            )


settings = Settings()
