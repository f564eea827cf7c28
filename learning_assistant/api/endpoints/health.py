"""Health check endpoint"""

from datetime import datetime

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from learning_assistant.database.session import get_db
from learning_assistant.rag.factory import get_registry
from learning_assistant.rag.providers.base import Capability
from learning_assistant.rag.providers.registry import ProviderRegistry
from learning_assistant.schemas.response import HealthResponse

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health_check(
    response: Response,
    db: Session = Depends(get_db),
    registry: ProviderRegistry = Depends(get_registry)
):
    """
    Health check endpoint
    Checks:
    - Database connectivity
    - Which AI providers are configured (chat and embeddings)
    """
    health_status = {
        "status": "healthy",
        "timestamp": datetime.utcnow(),
        "dependencies": {}
    }

    # Check database
    try:
        db.execute(text("SELECT 1"))
        health_status["dependencies"]["database"] = "connected"
    except Exception as e:
        health_status["dependencies"]["database"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"
        logger.error(f"Database health check failed: {str(e)}")

    # Provider chains (no upstream calls)
    health_status["dependencies"]["chat"] = (
        "available" if registry.has_capability(Capability.CHAT) else "not configured"
    )
    health_status["dependencies"]["embeddings"] = (
        "available" if registry.has_capability(Capability.EMBEDDING) else "hybrid mode"
    )
    if not registry.has_capability(Capability.CHAT):
        health_status["status"] = "degraded"

    if health_status["status"] == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(providers=registry.describe(), **health_status)
