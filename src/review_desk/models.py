"""Data models for file records and service payloads."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from .naming import display_file_name


class ReviewStatus(str, Enum):
    CONFIRMED = "confirmed"
    DENIED = "denied"


class FileRecord(BaseModel):
    """One file awaiting (or past) review."""

    id: str
    name: str = Field(..., description="Raw file name as stored by ingestion.")
    minio_path: str = Field(..., description="Public object-storage URL of the file.")
    created_at: datetime
    status: Optional[ReviewStatus] = Field(
        None, description="None while the file is pending review."
    )
    reviewed_at: Optional[datetime] = None

    @computed_field  # type: ignore[misc]
    @property
    def display_name(self) -> str:
        return display_file_name(self.name)

    @property
    def is_pending(self) -> bool:
        return self.status is None

