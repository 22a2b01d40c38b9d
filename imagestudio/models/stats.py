"""Models for the usage counter record and admin authentication payloads."""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StatsRecord(BaseModel):
    """Flat usage counter persisted between restarts."""

    page_views: int = Field(default=0, alias="pageViews")
    images_generated: int = Field(default=0, alias="imagesGenerated")
    last_updated: str = Field(default_factory=utc_now_iso, alias="lastUpdated")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class LoginRequest(BaseModel):
    password: Optional[str] = None
