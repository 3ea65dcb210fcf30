"""
FastAPI application entry point.

Serves holdings, prices, drift decisions and evaluation settings under /api.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from driftwatch.core.config import settings
from driftwatch.core.database import close_db, init_db
from driftwatch.core.errors import DriftwatchError
from driftwatch.core.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Portfolio drift monitoring - target weights vs. daily closes",
    debug=settings.DEBUG,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DriftwatchError)
async def domain_error_handler(request: Request, exc: DriftwatchError) -> JSONResponse:
    # Routers map the errors they expect; anything else surfaces as a 400 with its code
    logger.warning("Unhandled domain error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": exc.code})


@app.on_event("startup")
async def startup() -> None:
    """Create missing tables and seed default settings."""
    await init_db()
    logger.info("%s %s started (environment=%s)", settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT)


@app.on_event("shutdown")
async def shutdown() -> None:
    await close_db()


@app.get("/api/health")
async def health_check() -> dict:
    return {
        "ok": True,
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


from driftwatch.api.holdings import router as holdings_router
from driftwatch.api.prices import router as prices_router
from driftwatch.api.decisions import router as decisions_router
from driftwatch.api.admin import router as admin_router

app.include_router(holdings_router, prefix="/api/holdings", tags=["holdings"])
app.include_router(prices_router, prefix="/api/prices", tags=["prices"])
app.include_router(decisions_router, prefix="/api/decisions", tags=["decisions"])
app.include_router(admin_router, prefix="/api/settings", tags=["settings"])
