"""
Chatbot control API

All endpoints require the admin key.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel

from ticket_intake.context import AppContext, get_context
from ticket_intake.middleware.auth import verify_admin_key
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/api/chatbot",
    tags=["chatbot"],
    dependencies=[Depends(verify_admin_key)]  # Apply to all routes
)


class ResetRequest(BaseModel):
    """Reset one conversation, or all when sender_id is omitted"""
    sender_id: Optional[str] = None


def _status(context: AppContext) -> Dict[str, Any]:
    return {
        "enabled": context.engine.enabled,
        "active_conversations": len(context.conversations),
        "idle_timeout_seconds": context.conversations.idle_seconds,
        "channels": {
            "whatsapp": context.settings.whatsapp_configured,
            "x_dm": context.x_poller is not None,
        },
    }


@router.get("/status")
async def chatbot_status(context: AppContext = Depends(get_context)):
    return _status(context)


@router.post("/enable")
async def enable_chatbot(context: AppContext = Depends(get_context)):
    context.engine.enabled = True
    logger.info("Chatbot enabled")
    return {"success": True, **_status(context)}


@router.post("/disable")
async def disable_chatbot(context: AppContext = Depends(get_context)):
    context.engine.enabled = False
    logger.info("Chatbot disabled")
    return {"success": True, **_status(context)}


@router.post("/reset")
async def reset_conversations(
    body: Optional[ResetRequest] = Body(None),
    sender_id: Optional[str] = Query(None),
    context: AppContext = Depends(get_context)
):
    """Reset conversation state (all, or a single sender)"""
    target = sender_id or (body.sender_id if body else None)
    removed = context.conversations.reset(target)
    return {"success": True, "reset": removed, "sender_id": target}


@router.get("/conversations")
async def list_conversations(context: AppContext = Depends(get_context)):
    conversations = [state.summary() for state in context.conversations.list_active()]
    return {"count": len(conversations), "conversations": conversations}
