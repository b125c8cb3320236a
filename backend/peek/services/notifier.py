"""Notifier service - posts state transitions to a Slack-compatible webhook."""
import json
import logging
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import SiteCheck, NotificationLog
from .decision import NotificationKind
from .status_codec import status_label

logger = logging.getLogger(__name__)


def build_body(previous: int, current: int, message: str = "") -> str:
    """Text block describing the transition."""
    body = (
        f"Last known state: HTTP {abs(previous)}, {status_label(previous)}\n"
        f"Current state: HTTP {abs(current)}, {status_label(current)}"
    )
    if message:
        body += f"\n{message}"
    return body


def build_payload(
    url: str,
    kind: NotificationKind,
    previous: int,
    current: int,
    message: str,
    channel: str,
    username: str,
) -> dict:
    """Build the webhook payload for a notification."""
    return {
        "channel": channel,
        "username": username,
        "text": f"*{kind.headline}*",
        "attachments": [
            {
                "color": kind.color,
                "fields": [
                    {
                        "title": url,
                        "value": build_body(previous, current, message),
                    }
                ],
            }
        ],
    }


class NotifierService:
    """Service for delivering notifications and recording each attempt."""

    def __init__(
        self,
        webhook_url: Optional[str],
        channel: str = "#notifications",
        username: str = "Peek",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.channel = channel
        self.username = username
        self.timeout = timeout
        self.transport = transport

    async def notify(
        self,
        session: AsyncSession,
        site_check: SiteCheck,
        kind: NotificationKind,
        previous: int,
        current: int,
        message: str = "",
    ) -> bool:
        """Send a notification for a site and log it in the session.

        Delivery problems are logged and reported through the return value,
        never raised.
        """
        if kind is NotificationKind.NONE:
            return False

        if not self.webhook_url:
            logger.warning(f"Notification {kind.label} for {site_check.url} dropped: no webhook URL configured")
            return False

        payload = build_payload(
            site_check.url,
            kind,
            previous,
            current,
            message,
            self.channel,
            self.username,
        )
        success = await self._send_webhook(self.webhook_url, payload)

        session.add(NotificationLog(
            site_check_id=site_check.id,
            kind=kind.label,
            payload=json.dumps(payload),
            success=1 if success else 0,
        ))
        return success

    async def _send_webhook(self, url: str, payload: dict) -> bool:
        """Send a webhook POST request."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                if response.status_code < 400:
                    logger.info(f"Webhook sent: {payload['text']} for {payload['attachments'][0]['fields'][0]['title']}")
                    return True
                else:
                    logger.warning(f"Webhook returned {response.status_code}")
                    return False
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error(f"Unable to post notification: {e}")
            return False
