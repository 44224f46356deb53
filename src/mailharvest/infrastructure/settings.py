"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mailharvest.application.ports.remote_mail import MAX_PAGE_SIZE


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "mailharvest"
    log_level: str = "INFO"

    # Extraction
    owners: str = ""  # comma separated mailbox owners
    root_folder: str = ""  # "" is the top of the IMAP hierarchy
    page_size: int = Field(default=MAX_PAGE_SIZE, ge=1)
    detail_batch_size: int = Field(default=50, ge=1)
    write_batch_size: int = Field(default=100, ge=1)
    key_header: str = "Item ID"
    column_family: str = "h"
    on_folder_error: Literal["abort", "skip"] = "abort"
    retry_attempts: int = Field(default=1, ge=1)
    workers: int = Field(default=1, ge=1)

    # Remote mailbox (IMAP)
    imap_host: str = "localhost"
    imap_port: int = 993
    imap_timeout_seconds: float = 60.0

    # Milvus destination
    milvus_host: str = "localhost"
    milvus_port: int = 19530
    milvus_items_collection: str = "mailbox_items"
    milvus_cursor_collection: str = "sync_cursors"

    # Cursor storage
    cursor_backend: Literal["sqlite", "milvus"] = "sqlite"
    sqlite_path: str = "data/cursors.db"

    # Worker
    poll_minutes: int = Field(default=15, ge=1)

    @field_validator("page_size")
    @classmethod
    def _cap_page_size(cls, v: int) -> int:
        return min(v, MAX_PAGE_SIZE)

    @computed_field
    @property
    def owner_list(self) -> list[str]:
        """Configured owners, in order, without blanks or duplicates."""
        seen: dict[str, None] = {}
        for owner in self.owners.split(","):
            owner = owner.strip()
            if owner:
                seen.setdefault(owner, None)
        return list(seen)

    @computed_field
    @property
    def milvus_uri(self) -> str:
        """Construct Milvus connection URI."""
        return f"http://{self.milvus_host}:{self.milvus_port}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
