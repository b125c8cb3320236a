"""Reconciler - synchronizes configured sites with the stored records."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

import httpx
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import SiteCheck, url_index
from ..schemas.site_check import SiteCheckEntry
from ..utils.db_utils import retry_on_lock
from ..utils.time_utils import utcnow

logger = logging.getLogger(__name__)

# Records whose config was not touched for this long are no longer configured
DEFAULT_STALE_AFTER = timedelta(minutes=15)


@dataclass
class ReconcileSummary:
    """Counts of what a reconciliation pass did."""
    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    skipped: int = 0


def sanitize_url(value: Optional[str]) -> str:
    """Clean up a copy-pasted URL: whitespace, leading commas, trailing slashes."""
    return (value or "").strip().lstrip(",").rstrip("/").strip()


def is_valid_url(url: str) -> bool:
    """Only absolute http(s) URLs with a host can be probed."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


async def reconcile(
    entries: Iterable[SiteCheckEntry],
    session_factory: async_sessionmaker[AsyncSession],
    now: Optional[datetime] = None,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
) -> ReconcileSummary:
    """Upsert every configured site, then prune records no longer configured.

    Safe to run on every start: a second run with the same entries only
    refreshes ``config_updated_at``. State fields of existing records are never
    touched here.
    """
    now = now or utcnow()
    summary = ReconcileSummary()

    async with session_factory() as session:
        for entry in entries:
            url = sanitize_url(entry.url)
            if not is_valid_url(url):
                logger.warning(f"Skipping site with invalid URL: {entry.url!r}")
                summary.skipped += 1
                continue
            if entry.interval < 1:
                logger.warning(f"Skipping {url}: interval must be at least 1 second")
                summary.skipped += 1
                continue

            result = await session.execute(select(SiteCheck).where(SiteCheck.url == url))
            record = result.scalar_one_or_none()

            if record:
                record.interval = entry.interval
                record.search_string = entry.search_string
                record.config_updated_at = now
                summary.updated += 1
            else:
                session.add(SiteCheck(
                    url=url,
                    interval=entry.interval,
                    search_string=entry.search_string,
                    last_state=200,
                    message="",
                    next_check_at=now,
                    config_updated_at=now,
                    next_notification_at=now,
                ))
                summary.inserted += 1

        await session.flush()

        # Everything still configured was touched above
        cutoff = now - stale_after
        result = await session.execute(
            delete(SiteCheck).where(SiteCheck.config_updated_at < cutoff)
        )
        summary.deleted = result.rowcount or 0

        # No-op if the index already exists
        conn = await session.connection()
        await conn.run_sync(url_index.create, checkfirst=True)

        await retry_on_lock(session.commit)

    logger.info(
        f"Reconciled sites: {summary.inserted} inserted, {summary.updated} updated, "
        f"{summary.deleted} deleted, {summary.skipped} skipped"
    )
    return summary
