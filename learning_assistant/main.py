"""FastAPI application entry point"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging
from apscheduler.schedulers.background import BackgroundScheduler

from learning_assistant.api.endpoints import documents, health, rag
from learning_assistant.database.session import engine
from learning_assistant.database.base import Base
from learning_assistant.config import settings
from learning_assistant.utils.logger import setup_logging
from learning_assistant.exceptions import LearningAssistantException, RateLimitException
from learning_assistant.rag.factory import get_registry
from learning_assistant.security.rate_limiter import rate_limiter
from learning_assistant.services.task_runner import task_runner
import learning_assistant.models  # noqa: F401  (register tables)

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

# Background scheduler for periodic tasks
scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager
    - Startup: Initialize database tables, log providers, start background jobs
    - Shutdown: Finish background processing, stop scheduler
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME}")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    # Log AI provider configuration
    logger.info("=" * 60)
    for descriptor in get_registry().describe():
        state = "enabled" if descriptor["enabled"] else "disabled"
        logger.info(f"AI provider {descriptor['name']} ({', '.join(descriptor['capabilities'])}): {state}")
    logger.info("=" * 60)

    # Create database tables
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created/verified")
    except Exception as e:
        logger.error(f"Database initialization error: {str(e)}")

    # Start background scheduler
    try:
        scheduler.add_job(
            rate_limiter.cleanup,
            'interval',
            minutes=settings.RATE_LIMIT_SWEEP_MINUTES,
            id='rate_limiter_sweep',
            replace_existing=True
        )
        scheduler.start()
        logger.info("Background scheduler started with rate limiter sweep")
    except Exception as e:
        logger.error(f"Scheduler initialization error: {str(e)}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}")

    await task_runner.drain(timeout=30)

    # Stop scheduler
    try:
        if scheduler.running:
            scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
    except Exception as e:
        logger.error(f"Scheduler shutdown error: {str(e)}")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="Course-material question answering with retrieval-augmented generation",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(rag.router, prefix="/api", tags=["rag"])
app.include_router(documents.router, prefix="/api", tags=["documents"])


# Exception handlers
@app.exception_handler(LearningAssistantException)
async def learning_assistant_exception_handler(request: Request, exc: LearningAssistantException):
    """Map domain exceptions to their HTTP status"""
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__}: {str(exc)}")
    else:
        logger.info(f"{exc.__class__.__name__}: {str(exc)}")

    content = {
        "error": exc.__class__.__name__,
        "detail": str(exc)
    }
    headers = None
    if isinstance(exc, RateLimitException):
        content["retry_after"] = exc.retry_after
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions"""
    logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "detail": "An unexpected error occurred"
        }
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "docs": "/docs" if settings.DEBUG else "disabled"
    }
