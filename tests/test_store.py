from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from peek import config
from peek.utils import db_utils
from peek.utils.db_utils import retry_on_lock


def locked() -> OperationalError:
    return OperationalError("COMMIT", {}, Exception("database is locked"))


def test_database_url_defaults_to_sqlite_in_data_path(monkeypatch) -> None:
    monkeypatch.setattr(config.settings, "database_url", None)
    monkeypatch.setattr(config.settings, "data_path", "/srv/peek")

    assert config.get_database_url() == "sqlite+aiosqlite:////srv/peek/peek.db"
    assert config.is_postgresql() is False


@pytest.mark.parametrize("url", [
    "postgres://u:p@db:5432/peek",
    "postgresql://u:p@db:5432/peek",
    "postgresql+asyncpg://u:p@db:5432/peek",
])
def test_postgres_urls_use_asyncpg(monkeypatch, url: str) -> None:
    monkeypatch.setattr(config.settings, "database_url", url)

    assert config.get_database_url() == "postgresql+asyncpg://u:p@db:5432/peek"
    assert config.is_postgresql() is True


@pytest.mark.asyncio
async def test_retry_on_lock_retries_locked_store(monkeypatch) -> None:
    delays: list[float] = []

    async def no_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr(db_utils.asyncio, "sleep", no_sleep)
    attempts = {"n": 0}

    async def commit() -> str:
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise locked()
        return "committed"

    assert await retry_on_lock(commit) == "committed"
    assert delays == [0.1, 0.2]


@pytest.mark.asyncio
async def test_retry_on_lock_gives_up_after_max_retries(monkeypatch) -> None:
    async def no_sleep(delay: float) -> None:
        pass

    monkeypatch.setattr(db_utils.asyncio, "sleep", no_sleep)

    async def commit() -> None:
        raise locked()

    with pytest.raises(OperationalError):
        await retry_on_lock(commit, max_retries=2)


@pytest.mark.asyncio
async def test_retry_on_lock_raises_other_errors_at_once() -> None:
    attempts = {"n": 0}

    async def commit() -> None:
        attempts["n"] += 1
        raise OperationalError("COMMIT", {}, Exception("no such table: site_checks"))

    with pytest.raises(OperationalError):
        await retry_on_lock(commit)
    assert attempts["n"] == 1
