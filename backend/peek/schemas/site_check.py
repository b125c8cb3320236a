"""Site check schemas - configuration entries and API responses."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class SiteCheckEntry(BaseModel):
    """One configured site, as read from the sites file."""
    url: str = Field(..., min_length=1)
    interval: int = Field(default=60, ge=1)  # seconds
    search_string: str = Field(default="*", alias="searchString")  # "*" = no content check

    @field_validator("search_string", mode="before")
    @classmethod
    def default_search_string(cls, value):
        return "*" if value is None else value

    class Config:
        populate_by_name = True


class SiteCheckResponse(BaseModel):
    """Schema for a site check in API responses."""
    id: int
    url: str
    interval: int
    search_string: str
    last_state: int
    http_status: int
    content_matched: bool
    status_label: str
    message: str
    next_check_at: datetime
    config_updated_at: datetime
    next_notification_at: datetime


class NotificationLogResponse(BaseModel):
    """Schema for a logged notification."""
    id: int
    kind: str
    sent_at: datetime
    success: Optional[bool] = None
    payload: Optional[dict] = None
