"""FastAPI application.

Thin transport over the family resolution and metrics functions; no
authentication.  ``households/main.py`` re-exports ``app``.
"""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from households.api.routes.dashboard import router as dashboard_router
from households.api.routes.families import router as families_router
from households.api.routes.health import router as health_router
from households.api.routes.surveys import router as surveys_router
from households.core.errors import ResolutionInProgressError, StoreUnavailableError
from households.core.logging import setup_logging
from households.core.settings import get_settings


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging()
    yield


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)


@app.exception_handler(StoreUnavailableError)
async def _store_unavailable(_: Request, exc: StoreUnavailableError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": "Store unavailable", "category": exc.category.value})


@app.exception_handler(ResolutionInProgressError)
async def _run_in_progress(_: Request, exc: ResolutionInProgressError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc), "category": exc.category.value})


app.include_router(health_router)
app.include_router(families_router)
app.include_router(surveys_router)
app.include_router(dashboard_router)
