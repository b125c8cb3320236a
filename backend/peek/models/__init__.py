"""Database models."""
from .site_check import SiteCheck, url_index
from .notification_log import NotificationLog

__all__ = ["SiteCheck", "NotificationLog", "url_index"]
