"""
Outbound messaging gateways

- TelegramGateway: Bot API sendMessage to a bot chat or group
- GreenApiGateway: WhatsApp messages through a Green-API instance
- XDirectMessageClient: X (Twitter) API v2 direct messages

Gateways log and raise GatewayError; deciding whether a failure matters is
left to the caller.
"""
from typing import Any, Dict, List, Optional

import httpx

from ticket_intake.config import Settings, get_settings
from ticket_intake.exceptions import GatewayError
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)


class _HttpGateway:
    """Shared request helper for the JSON APIs below"""

    name = "gateway"

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    async def _make_request(
        self,
        method: str,
        url: str,
        **kwargs
    ) -> Any:
        """
        Make a single HTTP request

        Args:
            method: HTTP method
            url: Absolute URL
            **kwargs: Additional arguments for httpx

        Returns:
            Decoded JSON body (None for empty bodies)

        Raises:
            GatewayError: On transport errors, non-2xx responses or
                undecodable bodies
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(method=method, url=url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{self.name} request failed: {e}")
            raise GatewayError(f"{self.name} request failed: {e}") from e

        if response.status_code < 200 or response.status_code >= 300:
            logger.error(f"{self.name} returned HTTP {response.status_code}: {response.text}")
            raise GatewayError(
                f"{self.name} returned HTTP {response.status_code}",
                status_code=response.status_code,
                payload=response.text
            )

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(f"{self.name} returned a non-JSON body", status_code=response.status_code) from e


class TelegramGateway(_HttpGateway):
    """
    Telegram Bot API client
    """

    name = "telegram"

    def __init__(self, settings: Settings = None, timeout: float = 30.0):
        super().__init__(timeout=timeout)
        settings = settings or get_settings()
        self.base_url = f"{settings.telegram_api_url.rstrip('/')}/bot{settings.telegram_bot_token}"
        self.chat_id = settings.telegram_chat_id
        self.configured = settings.telegram_configured

    async def send(self, text: str, chat_id: str = None, parse_mode: Optional[str] = "HTML") -> Dict[str, Any]:
        """
        Send a message to the configured chat

        Args:
            text: Message text
            chat_id: Override target chat
            parse_mode: Telegram parse mode (HTML by default)

        Returns:
            Sent message object
        """
        payload: Dict[str, Any] = {"chat_id": chat_id or self.chat_id, "text": text}
        if parse_mode:
            payload["parse_mode"] = parse_mode

        data = await self._make_request("POST", f"{self.base_url}/sendMessage", json=payload)
        if not isinstance(data, dict) or not data.get("ok"):
            description = data.get("description") if isinstance(data, dict) else data
            logger.error(f"Telegram rejected message: {description}")
            raise GatewayError(f"Telegram rejected message: {description}", payload=data)
        return data.get("result", {})


class GreenApiGateway(_HttpGateway):
    """
    Green-API WhatsApp gateway client

    Chat ids use WhatsApp addressing: <phone>@c.us for people and
    <id>@g.us for groups.
    """

    name = "green-api"

    def __init__(self, settings: Settings = None, timeout: float = 30.0):
        super().__init__(timeout=timeout)
        settings = settings or get_settings()
        self.base_url = f"{settings.greenapi_api_url.rstrip('/')}/waInstance{settings.greenapi_instance_id}"
        self.api_token = settings.greenapi_api_token
        self.group_id = settings.greenapi_group_id
        self.configured = settings.whatsapp_configured

    async def send(self, chat_id: str, text: str) -> str:
        """
        Send a text message

        Args:
            chat_id: WhatsApp chat id
            text: Message text

        Returns:
            Gateway message id
        """
        data = await self._make_request(
            "POST",
            f"{self.base_url}/sendMessage/{self.api_token}",
            json={"chatId": chat_id, "message": text}
        )
        if not isinstance(data, dict) or not data.get("idMessage"):
            logger.error(f"Green-API did not accept message for {chat_id}: {data}")
            raise GatewayError("Green-API did not return a message id", payload=data)
        return data["idMessage"]

    async def send_to_group(self, text: str) -> str:
        """Send to the configured notification group"""
        if not self.group_id:
            raise GatewayError("GREENAPI_GROUP_ID is not configured")
        return await self.send(self.group_id, text)


class XDirectMessageClient(_HttpGateway):
    """
    X API v2 direct message client (user-context bearer token)
    """

    name = "x-api"

    def __init__(self, settings: Settings = None, timeout: float = 30.0):
        super().__init__(timeout=timeout)
        settings = settings or get_settings()
        self.base_url = f"{settings.x_api_url.rstrip('/')}/2"
        self.headers = {"Authorization": f"Bearer {settings.x_bearer_token}"}
        self.user_id = settings.x_user_id
        self.configured = settings.x_configured

    async def fetch_dm_events(self, max_results: int = 50) -> Dict[str, Any]:
        """
        Fetch recent MessageCreate events, newest first

        Returns:
            Raw API payload with `data` and `includes.users`
        """
        params = {
            "event_types": "MessageCreate",
            "dm_event.fields": "id,text,sender_id,created_at,dm_conversation_id",
            "expansions": "sender_id",
            "user.fields": "name,username",
            "max_results": max_results,
        }
        data = await self._make_request("GET", f"{self.base_url}/dm_events", headers=self.headers, params=params)
        return data or {}

    async def send_dm(self, participant_id: str, text: str) -> Dict[str, Any]:
        """Send a direct message to a user"""
        data = await self._make_request(
            "POST",
            f"{self.base_url}/dm_conversations/with/{participant_id}/messages",
            headers=self.headers,
            json={"text": text}
        )
        if isinstance(data, dict) and data.get("errors"):
            raise GatewayError(f"X API rejected message: {data['errors']}", payload=data)
        return (data or {}).get("data", {})


def users_by_id(payload: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Index the `includes.users` expansion by user id"""
    users: List[Dict[str, Any]] = (payload.get("includes") or {}).get("users") or []
    return {str(user.get("id")): user for user in users}
