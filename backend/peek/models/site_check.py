"""SiteCheck model - one monitored URL and its last known state."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Index
from sqlalchemy.orm import relationship

from ..database import Base


class SiteCheck(Base):
    """A monitored HTTP(S) endpoint.

    ``last_state`` holds the signed status encoding: the magnitude is the HTTP
    status (410 when no response was received), a negative sign means the
    required content was missing from the body.
    """

    __tablename__ = "site_checks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, nullable=False)
    interval = Column(Integer, nullable=False, default=60)  # seconds
    search_string = Column(String, nullable=False, default="*")  # "*" = no content check
    last_state = Column(Integer, nullable=False, default=200)
    message = Column(String, nullable=False, default="")
    next_check_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    config_updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    next_notification_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    notifications = relationship(
        "NotificationLog",
        back_populates="site_check",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


url_index = Index("ix_site_checks_url", SiteCheck.url, unique=True)
