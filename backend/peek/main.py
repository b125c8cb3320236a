"""Main application: status API with the probe loop, or a single pass."""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from .config import settings
from .database import init_db, close_db, async_session
from .routers import checks_router
from .services.reconciler import reconcile
from .services.scheduler import create_scheduler_service
from .site_config import load_site_checks
from .utils.time_utils import format_timestamp

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

scheduler_service = create_scheduler_service(settings)


async def prepare():
    """Initialize the store and reconcile it with the sites file.

    Errors here are fatal: without a store or a readable sites file there is
    nothing to monitor.
    """
    await init_db()
    logger.info("Database initialized")

    entries = load_site_checks(settings.sites_file)
    await reconcile(
        entries,
        async_session,
        stale_after=timedelta(minutes=settings.stale_cutoff_minutes),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting Peek")

    await prepare()
    await scheduler_service.load()
    scheduler_service.start()

    yield

    scheduler_service.stop()
    await close_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Peek",
        description="HTTP(S) endpoint health monitor",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.include_router(checks_router)

    @app.get("/health")
    async def health_check():
        next_due = scheduler_service.queue.next_due_at()
        return {
            "status": "healthy",
            "checks_queued": len(scheduler_service.queue),
            "next_check_at": format_timestamp(next_due) if next_due else None,
        }

    return app


async def run_once() -> int:
    """Reconcile, probe every due site once, and return."""
    try:
        await prepare()
        processed = await scheduler_service.run_once()
        logger.info(f"Single pass complete: {processed} sites checked")
        return processed
    finally:
        await close_db()


# Create the application instance
app = create_app()


def main():
    """Console entry point."""
    if settings.run_once:
        asyncio.run(run_once())
        return

    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.web_port)


if __name__ == "__main__":
    main()
