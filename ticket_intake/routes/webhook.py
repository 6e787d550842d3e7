"""
Inbound messaging webhooks

- POST /webhook/whatsapp   Green-API notifications (drives the chatbot)
"""
import hmac
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from ticket_intake.context import AppContext, get_context
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhook"])


def verify_webhook_secret(
    context: AppContext = Depends(get_context),
    header_secret: Optional[str] = Header(None, alias="X-Webhook-Secret"),
    query_secret: Optional[str] = Query(None, alias="secret")
) -> bool:
    """
    Optional shared secret for the gateway webhook

    Sent as the X-Webhook-Secret header, or as ?secret= in the webhook
    URL for gateways that cannot add headers.
    """
    expected = context.settings.greenapi_webhook_secret
    if not expected:
        return True

    provided = header_secret or query_secret or ""
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected webhook call with invalid secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")
    return True


@router.post("/whatsapp", dependencies=[Depends(verify_webhook_secret)])
async def whatsapp_webhook(request: Request, context: AppContext = Depends(get_context)) -> Dict[str, Any]:
    """
    Receive a Green-API notification

    Always acknowledges with 200 so the gateway does not retry; processing
    errors are logged.
    """
    try:
        payload = await request.json()
    except ValueError:
        logger.warning("WhatsApp webhook received a non-JSON body")
        return {"status": "ignored"}

    if not isinstance(payload, dict):
        return {"status": "ignored"}

    try:
        await context.whatsapp.handle_notification(payload)
    except Exception as e:
        logger.error(f"WhatsApp webhook processing failed: {e}", exc_info=True)

    return {"status": "ok"}
