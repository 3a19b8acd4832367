"""FastAPI application for the learning content conversion service."""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, Union

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from app.config import get_settings
from app.db.firestore_client import get_firestore_client
from app.middleware.logging import RequestLoggingMiddleware, configure_logging
from app.middleware.rate_limit import (
    get_limiter,
    rate_limit_exceeded_handler,
    RateLimitMiddleware,
)
from app.middleware.request_id import RequestIDMiddleware

# Application metadata
VERSION = "1.0.0"
COMMIT_HASH = "development"  # Set by the build process

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan event handler for startup and shutdown."""
    try:
        # Raises ValidationError if required env vars are missing
        settings = get_settings()
        configure_logging(settings.log_level)

        logger.info(f"Starting Content Conversion API v{VERSION}")
        logger.info(f"Firebase project: {settings.firebase_project_id}")
        logger.info(f"Contents collection: {settings.contents_collection}")
    except Exception as e:
        logger.error(f"Startup validation failed: {e}")
        raise

    yield

    logger.info("Shutting down Content Conversion API")


app = FastAPI(
    title="Content Conversion API",
    description="Turns teacher documents into lessons, assessments, games and activities for the student app",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# slowapi reads the limiter from app state
limiter = get_limiter()
app.state.limiter = limiter

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

# Added last-to-first: request id runs before logging so both agree on the id
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict this to the dashboard origin
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Content-ID", "X-Content-Type", "X-Request-ID"],
)


HEALTHY = "healthy"


def _probe_opendataloader() -> str:
    """PDF extraction needs the OpenDataLoader package (and its Java runtime wrapper)."""
    try:
        import opendataloader_pdf  # noqa: F401
    except Exception as e:
        return f"unhealthy: {e}"
    return HEALTHY


def _probe_firestore() -> str:
    """Read at most one document from the contents collection."""
    try:
        collection = get_settings().contents_collection
        get_firestore_client().collection(collection).limit(1).get()
    except Exception as e:
        return f"unhealthy: {e}"
    return HEALTHY


@app.get("/health", response_model=None)
async def health_check() -> Union[Dict[str, Any], Response]:
    """
    Report whether PDF extraction and the document store are usable.

    Status Codes:
        200: All services healthy
        503: One or more services unavailable
    """
    services = {
        "opendataloader": _probe_opendataloader(),
        "firestore": await asyncio.to_thread(_probe_firestore),
    }
    healthy = all(state == HEALTHY for state in services.values())
    body: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": services,
    }
    if healthy:
        return body
    return Response(content=json.dumps(body), status_code=503, media_type="application/json")


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """Version number and commit hash of the running API."""
    return {"version": VERSION, "commit_hash": COMMIT_HASH}


from app.routers import contents  # noqa: E402
app.include_router(contents.router)
