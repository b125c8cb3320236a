"""Notification decision engine.

Decides, from the previous and current signed status values, whether a
transition is worth reporting. Class comparisons use the magnitude, content
loss is read from the sign.
"""
from datetime import datetime, timedelta
from enum import Enum

from .status_codec import is_healthy

# Magnitudes above this count as hard failures
FAILURE_LIMIT = 400


class NotificationKind(Enum):
    """Kinds of notification, with their headline and color tag."""
    NONE = ("none", "", "")
    DOWN = ("down", "DOWN", "danger")
    RECOVERED = ("recovered", "RECOVERED", "good")
    INFORMATION = ("information", "INFORMATION", "warning")
    STATUS_CHANGE = ("status change", "STATUS CHANGE", "warning")

    def __init__(self, label: str, headline: str, color: str):
        self.label = label
        self.headline = headline
        self.color = color


def is_down(previous: int, current: int) -> bool:
    """Healthy before and failing hard now, or content lost on a healthy status."""
    if is_healthy(previous) and abs(current) > FAILURE_LIMIT:
        return True
    return previous > 0 and current < 0 and is_healthy(current)


def is_recovered(previous: int, current: int) -> bool:
    """Failing hard before and healthy now, or content back on a healthy status."""
    if abs(previous) > FAILURE_LIMIT and is_healthy(current):
        return True
    return previous < 0 and current > 0 and is_healthy(current)


def decide(
    previous: int,
    current: int,
    message: str,
    throttle_deadline: datetime,
    now: datetime,
) -> NotificationKind:
    """Pick the notification for a state transition, if any.

    Informational notifications (healthy before and after, with a message
    such as a certificate warning) only fire once ``now`` has passed the
    throttle deadline.
    """
    if is_down(previous, current):
        return NotificationKind.DOWN

    if is_recovered(previous, current):
        return NotificationKind.RECOVERED

    if (
        is_healthy(previous)
        and is_healthy(current)
        and message
        and now > throttle_deadline
    ):
        return NotificationKind.INFORMATION

    if previous != current:
        return NotificationKind.STATUS_CHANGE

    return NotificationKind.NONE


def next_throttle_deadline(
    kind: NotificationKind,
    throttle_deadline: datetime,
    now: datetime,
    report_interval: int,
) -> datetime:
    """Throttle deadline after ``kind`` was sent.

    Only informational notifications are rate limited; state change alerts
    leave the deadline where it was.
    """
    if kind is NotificationKind.INFORMATION:
        return now + timedelta(seconds=report_interval)
    return throttle_deadline
