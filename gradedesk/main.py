import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gradedesk.api import (
    admin_router,
    analysis_router,
    health_router,
    service_tiers_router,
    submissions_router,
)
from gradedesk.config import settings
from gradedesk.db.database import dispose_db, init_db
from gradedesk.models.failure import ApiResponse, KnownError
from gradedesk.services.tier_cache import TierCache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    await init_db()
    yield
    await dispose_db()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("gradedesk"),
    lifespan=lifespan,
)

app.state.tier_cache = TierCache[Any](
    ttl_seconds=settings.tier_cache_ttl_seconds,
    maxsize=settings.tier_cache_maxsize,
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    """Render classified failures through the response envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unclassified still leaves in the envelope, as a 500."""
    logger.exception("UNHANDLED_ERROR", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content=ApiResponse.unknown_failure(detail=type(exc).__name__).model_dump(mode="json"),
    )


app.include_router(admin_router)
app.include_router(analysis_router)
app.include_router(health_router)
app.include_router(service_tiers_router)
app.include_router(submissions_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
