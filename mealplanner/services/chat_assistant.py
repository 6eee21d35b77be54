# mealplanner/services/chat_assistant.py
"""
Conversational replies about the user's current plan.

The reply text is what the web client later sends back as the assistant
context for a modification turn, so the prompt asks for explicit action
phrasing and calorie targets.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from mealplanner.config.settings import Settings, settings as default_settings
from mealplanner.models.chat import ChatMessage
from mealplanner.models.meal_plan import MealPlan
from mealplanner.models.profile import UserProfile
from mealplanner.services.errors import ValidationError
from mealplanner.services.llm_client import CompletionClient, OpenAICompletionClient
from mealplanner.services.prompts import build_chat_system_prompt
from mealplanner.services.sanitization import sanitize_chat_message

logger = logging.getLogger(__name__)


class ChatAssistant:

    def __init__(
        self,
        client: Optional[CompletionClient] = None,
        config: Optional[Settings] = None,
    ):
        self.settings = config or default_settings
        self.client = client or OpenAICompletionClient(self.settings)

    async def reply(
        self,
        message: str,
        plan: MealPlan,
        profile: UserProfile,
        history: Sequence[ChatMessage] = (),
    ) -> str:
        cleaned = sanitize_chat_message(message)
        if not cleaned:
            raise ValidationError(
                "Invalid message content",
                operation="chat",
                errors=[{"loc": ["message"], "msg": "message is empty after sanitization", "type": "value_error"}],
            )
        system = build_chat_system_prompt(cleaned, plan, profile, history)
        logger.info("Chat reply plan=%s history=%d", plan.id, len(history))
        text = await self.client.complete(
            cleaned,
            temperature=self.settings.chat_temperature,
            system=system,
            max_tokens=self.settings.chat_max_tokens,
        )
        return text.strip()
