"""
Donaciones FastAPI Application - Main entry point.

Backend for a nonprofit donation platform:

- Auth: registration, login, token refresh, password reset
- Campaigns, one-off donations and recurring subscriptions
- Receipts and invoices for completed donations
- Loyalty points, donor tiers and rewards
- Runtime configuration store and monthly statistics

All endpoints are served under /api/v1/{module}/ paths.
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.db.base import init_db
from app.schemas.common import HealthResponse
from app.api.v1 import api_router
from app.services.configuration import ConfigCache
from app.services.scheduler import Scheduler

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    # Note: In production, use Alembic migrations instead
    await init_db()

    scheduler = None
    if settings.ENABLE_SCHEDULER:
        scheduler = Scheduler(app.state.config_cache)
        scheduler.start()
    yield
    if scheduler is not None:
        await scheduler.stop()


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="""
Donaciones - donation management platform.

## Modules

- **Usuarios**: donor accounts, profile, history and notifications
- **Campañas**: fundraising campaigns and followers
- **Donaciones / Suscripciones**: one-off and recurring giving
- **Comprobantes / Facturas**: receipts and fiscal invoices
- **Recompensas**: loyalty points, tiers and rewards
- **Configuraciones / Estadísticas**: runtime settings and reporting
    """,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.DEBUG else None,
    redoc_url="/api/redoc" if settings.DEBUG else None,
)

app.state.config_cache = ConfigCache(settings.CONFIG_CACHE_TTL_SECONDS)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/api/health", response_model=HealthResponse, tags=["health"])
async def health_check():
    """Health check endpoint."""
    return HealthResponse(code=200, message="API is healthy.")


# ============================================================================
# V1 API ENDPOINTS
# ============================================================================

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    if settings.DEBUG:
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc)}
        )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
