"""Site check status API."""
import json
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import SiteCheck, NotificationLog
from ..schemas.site_check import SiteCheckResponse, NotificationLogResponse
from ..services.status_codec import decode, status_label

router = APIRouter(prefix="/api/checks", tags=["checks"])


def _to_response(record: SiteCheck) -> SiteCheckResponse:
    outcome = decode(record.last_state)
    return SiteCheckResponse(
        id=record.id,
        url=record.url,
        interval=record.interval,
        search_string=record.search_string,
        last_state=record.last_state,
        http_status=outcome.http_status,
        content_matched=outcome.content_matched,
        status_label=status_label(record.last_state),
        message=record.message or "",
        next_check_at=record.next_check_at,
        config_updated_at=record.config_updated_at,
        next_notification_at=record.next_notification_at,
    )


@router.get("", response_model=List[SiteCheckResponse])
async def list_checks(db: AsyncSession = Depends(get_db)):
    """List all site checks ordered by next due time."""
    result = await db.execute(select(SiteCheck).order_by(SiteCheck.next_check_at))
    return [_to_response(record) for record in result.scalars().all()]


@router.get("/{check_id}", response_model=SiteCheckResponse)
async def get_check(check_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single site check."""
    record = await db.get(SiteCheck, check_id)
    if not record:
        raise HTTPException(status_code=404, detail="Site check not found")
    return _to_response(record)


@router.get("/{check_id}/notifications", response_model=List[NotificationLogResponse])
async def list_check_notifications(check_id: int, db: AsyncSession = Depends(get_db)):
    """Latest notifications sent for a site check."""
    record = await db.get(SiteCheck, check_id)
    if not record:
        raise HTTPException(status_code=404, detail="Site check not found")

    result = await db.execute(
        select(NotificationLog)
        .where(NotificationLog.site_check_id == check_id)
        .order_by(NotificationLog.sent_at.desc())
        .limit(50)
    )
    return [
        NotificationLogResponse(
            id=entry.id,
            kind=entry.kind,
            sent_at=entry.sent_at,
            success=None if entry.success is None else bool(entry.success),
            payload=json.loads(entry.payload) if entry.payload else None,
        )
        for entry in result.scalars().all()
    ]
