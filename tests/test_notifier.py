from __future__ import annotations

import json

import httpx
import pytest
from sqlalchemy import select

from peek.models import NotificationLog, SiteCheck
from peek.services.decision import NotificationKind
from peek.services.notifier import NotifierService, build_body, build_payload


def test_build_body_with_and_without_message() -> None:
    assert build_body(200, -200) == "Last known state: HTTP 200, OK\nCurrent state: HTTP 200, OK - Incorrect content"
    assert build_body(404, 503, "upstream timeout") == (
        "Last known state: HTTP 404, Not Found\n"
        "Current state: HTTP 503, Service Unavailable\n"
        "upstream timeout"
    )


def test_build_payload_shape() -> None:
    payload = build_payload("https://a", NotificationKind.STATUS_CHANGE, 404, 503, "", "#ops", "Peek")

    assert payload == {
        "channel": "#ops",
        "username": "Peek",
        "text": "*STATUS CHANGE*",
        "attachments": [
            {
                "color": "warning",
                "fields": [
                    {
                        "title": "https://a",
                        "value": "Last known state: HTTP 404, Not Found\nCurrent state: HTTP 503, Service Unavailable",
                    }
                ],
            }
        ],
    }


async def make_site(session_factory) -> SiteCheck:
    async with session_factory() as session:
        site = SiteCheck(url="https://a", interval=60, search_string="*", last_state=200, message="")
        session.add(site)
        await session.commit()
        return site


@pytest.mark.asyncio
async def test_notify_posts_and_logs(session_factory) -> None:
    site = await make_site(session_factory)
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text="ok")

    notifier = NotifierService("https://hooks.example.test/T000", transport=httpx.MockTransport(handler))

    async with session_factory() as session:
        ok = await notifier.notify(session, site, NotificationKind.DOWN, 200, 410, "Request timeout")
        await session.commit()

    assert ok is True
    assert len(requests) == 1
    assert requests[0].method == "POST"
    body = json.loads(requests[0].content)
    assert body["text"] == "*DOWN*"
    assert body["channel"] == "#notifications"
    assert body["username"] == "Peek"

    async with session_factory() as session:
        rows = (await session.execute(select(NotificationLog))).scalars().all()
    assert len(rows) == 1
    assert rows[0].site_check_id == site.id
    assert rows[0].kind == "down"
    assert rows[0].success == 1
    assert json.loads(rows[0].payload) == body


@pytest.mark.asyncio
async def test_notify_swallows_transport_errors(session_factory) -> None:
    site = await make_site(session_factory)

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    notifier = NotifierService("https://hooks.example.test/T000", transport=httpx.MockTransport(handler))

    async with session_factory() as session:
        ok = await notifier.notify(session, site, NotificationKind.RECOVERED, 410, 200)
        await session.commit()

    assert ok is False
    async with session_factory() as session:
        rows = (await session.execute(select(NotificationLog))).scalars().all()
    assert [(r.kind, r.success) for r in rows] == [("recovered", 0)]


@pytest.mark.asyncio
async def test_notify_swallows_malformed_webhook_url(session_factory) -> None:
    site = await make_site(session_factory)
    notifier = NotifierService("https://hooks.example.test/services/T0\x00")

    async with session_factory() as session:
        ok = await notifier.notify(session, site, NotificationKind.DOWN, 200, 503)
        await session.commit()

    assert ok is False
    async with session_factory() as session:
        rows = (await session.execute(select(NotificationLog))).scalars().all()
    assert [(r.kind, r.success) for r in rows] == [("down", 0)]


@pytest.mark.asyncio
async def test_notify_without_webhook_url_is_a_no_op(session_factory) -> None:
    site = await make_site(session_factory)
    notifier = NotifierService(None)

    async with session_factory() as session:
        assert await notifier.notify(session, site, NotificationKind.DOWN, 200, 503) is False
        await session.commit()
        rows = (await session.execute(select(NotificationLog))).scalars().all()

    assert rows == []
