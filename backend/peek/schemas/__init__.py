"""Pydantic schemas for configuration entries and API responses."""
from .site_check import (
    SiteCheckEntry,
    SiteCheckResponse,
    NotificationLogResponse,
)

__all__ = [
    "SiteCheckEntry",
    "SiteCheckResponse",
    "NotificationLogResponse",
]
