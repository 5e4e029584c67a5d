"""
FastAPI web application for the podcast production dashboard.

Serves the reconciled episode view over JSON and Server-Sent Events and
forwards user transitions to the workflow store and automation webhooks.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.config import Config
from src.db.changes import ChangeFeed, PostgresChangeListener
from src.db.factory import create_repository_from_config
from src.web.episode_routes import router as episode_router
from src.web.limits import configure_limits, limiter
from src.workflow.config import StudioConfig
from src.workflow.factory import create_coordinator

# Configure logging
log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, log_level, logging.INFO),
    format="%(asctime)s - %(levelname)s - %(message)s"
)
# httpx and httpcore are very chatty on INFO
if log_level == "INFO":
    logging.getLogger("httpx").setLevel("WARNING")
    logging.getLogger("httpcore").setLevel("WARNING")
logger = logging.getLogger(__name__)

# Initialize configuration
config = Config()
studio_config = StudioConfig.from_env()

# Initialize repository for database access
_repository = create_repository_from_config(
    config, create_tables=config.DATABASE_URL.startswith("sqlite")
)
_feed = ChangeFeed()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Starts the change listener when the store supports it and stops the
    selected session, in-flight submissions and the listener on shutdown.
    """
    listener = None
    if config.CHANGE_LISTENER_ENABLED and config.uses_postgres:
        listener = PostgresChangeListener(
            database_url=config.DATABASE_URL,
            channel=config.CHANGE_CHANNEL,
            feed=_feed,
            loop=asyncio.get_running_loop(),
            repository=_repository,
        )
        listener.start()
    else:
        logger.info("Change listener disabled; relying on polling")

    logger.info("Application started")

    yield

    await app.state.coordinator.close()
    if listener:
        listener.stop()
    if app.state.coordinator.storage:
        app.state.coordinator.storage.close()
    logger.info("Application shutdown")


# Initialize FastAPI app
app = FastAPI(
    title="Episode Studio",
    description="Production dashboard backend for podcast episodes",
    version="1.0.0",
    lifespan=lifespan
)

# Add rate limiter to app state
configure_limits(config)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware (configurable via environment variable)
allowed_origins = config.WEB_ALLOWED_ORIGINS.split(",") if config.WEB_ALLOWED_ORIGINS != "*" else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=allowed_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Store config, repository and coordinator in app state for access in routes
app.state.config = config
app.state.repository = _repository
app.state.feed = _feed
app.state.coordinator = create_coordinator(config, _repository, _feed, studio_config)

app.include_router(episode_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "episode-studio"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.WEB_PORT)
