"""Incident Pilot: IT and cyber-security incident tracking service.

FastAPI entry point with lifespan management, middleware and routes.
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .api.router import api_router
from .config import get_config
from .database import close_engine, create_tables
from .dependencies import get_incident_store, get_notification_dispatcher
from .middleware.error_handler import register_error_handlers
from .middleware.request_id import RequestIDMiddleware
from .seed import seed_demo_data
from .utils.logging import get_logger, setup_logging

config = get_config()
setup_logging(
    debug=config.debug,
    log_dir=config.log_dir,
    log_max_bytes=config.log_max_bytes,
    log_backup_count=config.log_backup_count,
)
logger = get_logger("incident_pilot.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    logger.info("incident_pilot_starting", host=config.host, port=config.port)

    await create_tables(config)

    if config.seed_demo_data:
        try:
            await seed_demo_data(get_incident_store())
        except Exception as e:
            logger.error("seed_demo_data_failed", error=str(e))

    if not config.openai_api_key:
        logger.warning("openai_api_key_missing", detail="AI analysis will use keyword fallback")

    dispatcher = get_notification_dispatcher()
    await dispatcher.start()

    logger.info("incident_pilot_started")
    yield

    logger.info("incident_pilot_shutting_down")
    await dispatcher.stop()
    await close_engine()
    logger.info("incident_pilot_stopped")


app = FastAPI(
    title=config.app_name,
    description="IT and cyber-security incident tracking",
    version=__version__,
    lifespan=lifespan,
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in config.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-ID"],
)

# Added last so it runs first
app.add_middleware(RequestIDMiddleware)

app.include_router(api_router)


@app.get("/")
async def root():
    return {
        "name": config.app_name,
        "version": __version__,
        "status": "operational",
    }


@app.get("/health")
async def health():
    """Liveness plus notification queue state."""
    return {
        "status": "ok",
        "version": __version__,
        "notifications": get_notification_dispatcher().get_stats(),
    }


def run() -> None:
    """Console entry point."""
    uvicorn.run(
        "incident_pilot.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
    )


if __name__ == "__main__":
    run()
