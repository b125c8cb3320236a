"""NotificationLog model - log of dispatched notifications."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base


class NotificationLog(Base):
    """Record of a notification posted to the webhook."""

    __tablename__ = "notification_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    site_check_id = Column(Integer, ForeignKey("site_checks.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String, nullable=False)  # down, recovered, information, status change
    sent_at = Column(DateTime, default=datetime.utcnow)
    payload = Column(String, nullable=True)  # JSON webhook body
    success = Column(Integer, nullable=True)  # 1=success, 0=failed

    site_check = relationship("SiteCheck", back_populates="notifications")
