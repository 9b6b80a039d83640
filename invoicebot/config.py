"""Configuration management for the invoice summary pipeline."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env early so BaseSettings can pick values up seamlessly.
load_dotenv()

DEFAULT_SEARCH_KEYWORDS = "חשבונית;קבלה;invoice;receipt"


def _split_list(value: str | Sequence[str] | None) -> list[str]:
    """Split a ``;`` or ``,`` separated env value into stripped, non-empty items. Case is kept."""
    if value is None:
        return []
    items = re.split(r"[;,]", value) if isinstance(value, str) else list(value)
    return [item.strip() for item in items if item.strip()]


class Settings(BaseSettings):
    """App configuration derived from environment variables."""

    gmail_access_token: str | None = Field(None, alias="GMAIL_ACCESS_TOKEN")
    gmail_token_file: Path = Field(Path("data/token.json"), alias="GMAIL_TOKEN_FILE")
    gmail_user_id: str = Field("me", alias="GMAIL_USER_ID")
    gmail_search_keywords_raw: str = Field(DEFAULT_SEARCH_KEYWORDS, alias="GMAIL_SEARCH_KEYWORDS")
    gmail_max_results: int = Field(100, alias="GMAIL_MAX_RESULTS", ge=1)
    gmail_page_size: int = Field(50, alias="GMAIL_PAGE_SIZE", ge=1, le=500)

    processing_max_workers: int = Field(4, alias="PROCESSING_MAX_WORKERS", ge=1)
    ocr_languages: str = Field("heb+eng", alias="OCR_LANGUAGES")
    text_cache_enabled: bool = Field(True, alias="TEXT_CACHE_ENABLED")
    text_cache_db: Path = Field(Path("data/extracted_text.db"), alias="TEXT_CACHE_DB")

    output_dir: Path = Field(Path("output"), alias="OUTPUT_DIR")
    report_timezone: str = Field("Asia/Jerusalem", alias="REPORT_TIMEZONE")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("gmail_access_token", mode="before")
    @classmethod
    def _empty_str_to_none(cls, value):
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @field_validator("report_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown REPORT_TIMEZONE: {value}") from exc
        return value

    @property
    def gmail_search_keywords(self) -> list[str]:
        keywords = _split_list(self.gmail_search_keywords_raw)
        return keywords or _split_list(DEFAULT_SEARCH_KEYWORDS)

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.report_timezone)
