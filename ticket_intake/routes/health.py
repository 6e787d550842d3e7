"""
Health check endpoint

GET /api/health - liveness plus which integrations are configured. No auth,
no calls to external services.
"""
import time
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from ticket_intake import __version__
from ticket_intake.context import AppContext, get_context

router = APIRouter(prefix="/api/health", tags=["health"])

# Application start time for uptime calculation
APP_START_TIME = time.time()


class HealthResponse(BaseModel):
    """Basic health check response"""
    status: str = Field(..., description="Overall status")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp")
    version: str = Field(..., description="Application version")
    uptime_seconds: float = Field(..., description="Application uptime in seconds")
    store: str = Field(..., description="Configured ticket store backend")
    telegram: bool = Field(..., description="Telegram notification credentials present")
    whatsapp: bool = Field(..., description="Green-API credentials present")
    ai: bool = Field(..., description="AI summaries enabled")
    chatbot: Dict[str, bool] = Field(..., description="Chatbot state and channels")


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check"
)
async def health_check(context: AppContext = Depends(get_context)) -> HealthResponse:
    """
    Always returns 200 OK with configuration presence flags
    """
    settings = context.settings
    return HealthResponse(
        status="ok",
        version=__version__,
        uptime_seconds=round(time.time() - APP_START_TIME, 2),
        store=settings.ticket_store,
        telegram=settings.telegram_configured,
        whatsapp=settings.whatsapp_configured,
        ai=context.summarizer.enabled,
        chatbot={
            "enabled": context.engine.enabled,
            "x_dm": context.x_poller is not None,
        },
    )
