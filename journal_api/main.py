# journal_api/main.py

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text

from .config import settings
from .logging_config import setup_logging, get_logger
from .error_handlers import register_exception_handlers
from .middleware import register_middleware
from .rate_limit import limiter, rate_limit_exceeded_handler
from .database import async_engine, init_models, close_engine

from .users.router import router as users_router
from .entries.router import router as entries_router
from .prompts.router import router as prompts_router
from .usage.router import router as usage_router
from .billing.router import router as billing_router

logger = get_logger(__name__)

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events
    """
    # ========================================================================
    # STARTUP
    # ========================================================================
    logger.info("=" * 80)
    logger.info("Starting Reflective Journal API")
    logger.info("=" * 80)

    logger.info(
        "Application configuration",
        extra={
            "extra_data": {
                "environment": settings.ENVIRONMENT,
                "log_level": settings.LOG_LEVEL,
                "database": settings.DATABASE_URL.split("@")[-1],
                "redis": settings.REDIS_URL.split("@")[-1] if settings.REDIS_URL else "Not configured",
                "llm_model": settings.GEMINI_LLM_MODEL,
                "auth_configured": bool(settings.CLERK_SECRET_KEY),
                "stripe_configured": bool(settings.STRIPE_SECRET_KEY),
            }
        }
    )

    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("✓ Database connection successful")
    except Exception as e:
        logger.error(f"✗ Database connection failed: {e}", exc_info=True)
        raise

    if settings.ENVIRONMENT == "development":
        # Production schema is owned by Alembic
        await init_models()
        logger.info("✓ Database tables ensured (development)")

    if settings.REDIS_URL:
        try:
            import redis.asyncio as redis
            redis_client = redis.from_url(settings.REDIS_URL)
            await redis_client.ping()
            await redis_client.aclose()
            logger.info("✓ Redis connection successful")
        except Exception as e:
            logger.warning(f"⚠ Redis connection failed: {e}")

    logger.info("=" * 80)
    logger.info("🚀 Reflective Journal API is ready to accept requests")
    logger.info("=" * 80)

    yield

    # ========================================================================
    # SHUTDOWN
    # ========================================================================
    logger.info("Shutting down Reflective Journal API")
    await close_engine()


# ============================================================================
# CREATE FASTAPI APP
# ============================================================================

# Setup logging BEFORE creating the app
setup_logging()

app = FastAPI(
    title="Reflective Journal API",
    description="Journaling with AI reflective prompts and a Premium subscription",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# ============================================================================
# REGISTER MIDDLEWARE (ORDER MATTERS!)
# ============================================================================
register_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# ============================================================================
# REGISTER ROUTERS
# ============================================================================

app.include_router(users_router, prefix='/api')
app.include_router(entries_router, prefix='/api')
app.include_router(prompts_router, prefix='/api')
app.include_router(usage_router, prefix='/api')
app.include_router(billing_router, prefix='/api')

logger.info("All routers registered")


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": APP_VERSION
    }


# ============================================================================
# FRONTEND
# ============================================================================

if settings.FRONTEND_DIST_DIR and Path(settings.FRONTEND_DIST_DIR).is_dir():
    # Mounted last so API routes win
    app.mount("/", StaticFiles(directory=settings.FRONTEND_DIST_DIR, html=True), name="frontend")
    logger.info(f"Serving frontend from {settings.FRONTEND_DIST_DIR}")
else:
    @app.get("/")
    async def root():
        return {
            "message": "Reflective Journal API",
            "version": APP_VERSION,
            "docs": "/docs"
        }
