"""
admission_leads/config.py — Central configuration loaded from environment variables.
All modules import settings from here; never read os.environ directly elsewhere.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────────────────────────
    database_url: str = Field(..., description="SQLAlchemy connection URI")

    # ── Scoring ───────────────────────────────────────────────────────────────
    scoring_config_path: str | None = Field(
        default=None,
        description="Optional JSON weight table used when a tenant has no stored config",
    )

    # ── Submissions ───────────────────────────────────────────────────────────
    default_lead_source: str = Field(
        default="Website Form",
        description="Lead source recorded when a submission carries none",
    )
    phone_country_code: str = Field(
        default="91",
        pattern=r"^\d{1,3}$",
        description="Country code prefixed to bare 10-digit phone numbers",
    )
    reject_incomplete_submissions: bool = Field(
        default=True,
        description="If True, submissions missing name/email/phone are not saved as leads",
    )


# Singleton, import this everywhere
settings = Settings()
