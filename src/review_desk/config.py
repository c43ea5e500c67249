"""Configuration helpers for the review desk service."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

# Stand-in values from deployment templates; treated as unset.
PLACEHOLDER_VALUES = frozenset(
    {
        "YOUR_SHEET_ID",
        "YOUR_SHEET_NAME",
        "YOUR_SHEET_RANGE_PART",
        "YOUR_N8N_SAVE_CONTENT_WEBHOOK_URL",
        "YOUR_N8N_WEBHOOK_URL",
    }
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", populate_by_name=True
    )

    sheet_id: str | None = Field(None, alias="SHEET_ID")
    sheet_name: str | None = Field(None, alias="SHEET_NAME")
    sheet_range_part: str | None = Field(
        None,
        alias="SHEET_RANGE_PART",
        description="A1 range inside the sheet, e.g. 'A1:BA300'.",
    )
    file_name_column_index: int = Field(
        0,
        alias="FILE_NAME_COLUMN_INDEX",
        description="0-based column holding the cleaned file name (1 for column B).",
    )
    display_start_column_index: int = Field(
        7,
        alias="DISPLAY_START_COLUMN_INDEX",
        description="First 0-based column shown to the reviewer (7 for column H).",
    )
    google_sheets_credentials_json: str | None = Field(
        None,
        alias="GOOGLE_SHEETS_CREDENTIALS_JSON",
        description="Service-account key JSON with read access to the sheet.",
    )
    save_content_webhook_url: str | None = Field(
        None, alias="N8N_SAVE_CONTENT_WEBHOOK_URL"
    )
    regenerate_pdf_webhook_url: str | None = Field(
        None, alias="N8N_REGENERATE_PDF_WEBHOOK_URL"
    )
    review_data_dir: str | None = Field(
        None,
        alias="REVIEW_DATA_DIR",
        description="Optional override for the file record store; defaults to data/review.",
    )
    http_timeout_seconds: float = Field(
        30.0,
        alias="HTTP_TIMEOUT_SECONDS",
        description="Timeout for Sheets API and webhook calls.",
    )

    @field_validator(
        "sheet_id",
        "sheet_name",
        "sheet_range_part",
        "google_sheets_credentials_json",
        "save_content_webhook_url",
        "regenerate_pdf_webhook_url",
        mode="before",
    )
    @classmethod
    def _drop_placeholders(cls, value):
        if isinstance(value, str) and (not value.strip() or value in PLACEHOLDER_VALUES):
            return None
        return value

    def require_sheet_config(self) -> None:
        """Raise ConfigurationError unless every sheet lookup setting is usable."""
        missing = [
            env
            for env, value in (
                ("SHEET_ID", self.sheet_id),
                ("SHEET_NAME", self.sheet_name),
                ("SHEET_RANGE_PART", self.sheet_range_part),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Google Sheet details not set correctly: {', '.join(missing)}."
            )
        if self.file_name_column_index < 0 or self.display_start_column_index < 0:
            raise ConfigurationError("Sheet column indexes must be >= 0.")

    def store_dir(self) -> Path:
        if self.review_data_dir:
            return Path(self.review_data_dir).expanduser().resolve()
        # __file__ -> src/review_desk/config.py; repo root is three levels up
        return Path(__file__).resolve().parents[2] / "data" / "review"


def get_settings() -> Settings:
    """Return a fresh settings instance (environment is re-read on every call)."""
    return Settings()
