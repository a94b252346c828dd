"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from travis_status import __version__
from travis_status.api import status
from travis_status.config import settings
from travis_status.services.session import get_status_session, reset_status_session
from travis_status.utils.logging import setup_logging, get_logger

# Configure structured logging
setup_logging(settings.log_level)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the status session on startup, drop it on shutdown."""
    logger.info("Starting Travis status service")
    session = get_status_session()
    logger.info(
        "Status session ready",
        extra={"workspace": str(session.workspace_root), "proxy_configured": session.proxy.url is not None},
    )
    yield
    logger.info("Shutting down Travis status service")
    reset_status_session()


app = FastAPI(
    title="Travis CI Status",
    description="Travis CI build status for a local working copy",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


app.include_router(status.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
