"""
API Key Authentication

- verify_service_key: X-API-Key for ticket submission
- verify_admin_key: X-Admin-API-Key for admin, reporting and chatbot control

Keys are static secrets from configuration, compared in constant time.
"""
import hmac
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from ticket_intake.context import AppContext, get_context
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)


def _matches(provided: str, expected: str) -> bool:
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def verify_service_key(
    context: Annotated[AppContext, Depends(get_context)],
    api_key: Annotated[Optional[str], Header(alias="X-API-Key")] = None
) -> bool:
    """
    Verify the service API key used by the web form

    An empty SERVICE_API_KEY disables the check (startup logs a warning).

    Raises:
        HTTPException: 401 if the key is missing or wrong
    """
    expected = context.settings.service_api_key
    if not expected:
        return True

    if not api_key or not _matches(api_key, expected):
        logger.warning("Ticket submission rejected: invalid or missing API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "ApiKey"}
        )
    return True


def verify_admin_key(
    context: Annotated[AppContext, Depends(get_context)],
    api_key: Annotated[Optional[str], Header(alias="X-Admin-API-Key")] = None
) -> bool:
    """
    Verify admin API key from request headers

    Raises:
        HTTPException: 401 if key invalid or missing, 500 if no admin key is
            configured
    """
    admin_api_key = context.settings.admin_api_key

    if not admin_api_key:
        logger.error("ADMIN_API_KEY not configured! Admin endpoints are disabled.")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Admin authentication not configured"
        )

    if not api_key:
        logger.warning("Admin API request missing API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing admin API key",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    if not _matches(api_key, admin_api_key):
        logger.warning(f"Invalid admin API key attempt: {api_key[:4]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin API key",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    return True
