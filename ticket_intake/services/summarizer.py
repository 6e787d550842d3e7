"""
AI Ticket Summarizer

Asks an OpenAI chat model for a one-line summary of a ticket. The reply is
free text that should contain a JSON object; the first brace-delimited
fragment is parsed. Any failure leaves the ticket untouched.

Single attempt, no retries.
"""
import json
import re
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from ticket_intake.config import Settings, get_settings
from ticket_intake.models.result import IntegrationResult
from ticket_intake.models.schemas import Ticket
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Parse the first {...} fragment of a model reply

    Args:
        text: Raw model output (may include prose or code fences)

    Returns:
        Parsed dict, or None when no parseable object is present
    """
    if not text:
        return None

    match = _JSON_OBJECT_RE.search(text)
    if not match:
        return None

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None

    return parsed if isinstance(parsed, dict) else None


class TicketSummarizer:
    """
    One-line ticket summaries from an LLM
    """

    SYSTEM_PROMPT = "You are a support desk assistant that summarizes customer tickets."

    def __init__(self, settings: Settings = None, client: AsyncOpenAI = None):
        settings = settings or get_settings()
        self.model = settings.openai_model
        self.enabled = settings.ai_summary_enabled and bool(settings.openai_api_key or client)
        self.client = client
        if self.enabled and self.client is None:
            self.client = AsyncOpenAI(api_key=settings.openai_api_key)

        logger.info(f"TicketSummarizer initialized (enabled={self.enabled}, model={self.model})")

    def _create_prompt(self, ticket: Ticket) -> str:
        return f"""Summarize the following support ticket in one short sentence.

Category: {ticket.category or "-"}
Subject: {ticket.subject or "-"}
Details:
{ticket.description or "-"}

Reply with JSON only, in this format:
{{"summary": "one line summary"}}"""

    async def summarize(self, ticket: Ticket) -> IntegrationResult[Ticket]:
        """
        Attach an AI summary to a ticket

        Args:
            ticket: Ticket before persistence

        Returns:
            Success with the enriched ticket, or failure carrying the
            original ticket unchanged
        """
        if not self.enabled:
            return IntegrationResult.skip(ticket, reason="AI summary disabled")

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": self._create_prompt(ticket)}
                ],
                temperature=0.3,
                max_tokens=200
            )
            reply = response.choices[0].message.content
        except Exception as e:
            logger.warning(f"AI summary request failed for {ticket.ticket_id}: {e}")
            return IntegrationResult.failure(str(e), value=ticket)

        parsed = extract_json_object(reply)
        summary = parsed.get("summary") if parsed else None
        if not isinstance(summary, str) or not summary.strip():
            logger.warning(f"AI summary reply for {ticket.ticket_id} had no usable JSON: {reply!r}")
            return IntegrationResult.failure("Malformed model reply", value=ticket)

        summary = " ".join(summary.split())
        enriched = ticket.model_copy(update={"ai_summary": summary, "ai_processed": True})
        return IntegrationResult.success(enriched)
