# mealplanner/services/intent_classifier.py
"""
Classifies a chat message into one of four plan modification actions.

One model call sees the whole plan, the raw message and (when available) the
assistant's own reply, so the action matches what was promised in chat.
The model's JSON is parsed and validated like every other model payload;
unknown tags are rejected rather than guessed.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from mealplanner.config.settings import Settings, settings as default_settings
from mealplanner.models.actions import ModificationAction
from mealplanner.models.meal_plan import MealPlan
from mealplanner.models.profile import UserProfile
from mealplanner.services.errors import ModelError, ValidationError
from mealplanner.services.llm_client import CompletionClient, OpenAICompletionClient
from mealplanner.services.prompts import build_classifier_prompt
from mealplanner.services.response_parser import parse_model_json, validate_payload

logger = logging.getLogger(__name__)


def _normalize_tokens(data: Any) -> Any:
    """Lower-case enum-like fields; the model sometimes shouts them."""
    if not isinstance(data, dict):
        return data
    data = dict(data)
    for key in ("action", "targetMealType", "target_meal_type"):
        value = data.get(key)
        if isinstance(value, str):
            data[key] = value.strip().lower() or None
    # empty strings mean "not provided"
    for key in ("targetMealId", "target_meal_id", "newMealRequirements", "new_meal_requirements"):
        if isinstance(data.get(key), str) and not data[key].strip():
            data[key] = None
    if data.get("modificationReason") is None and data.get("modification_reason") is None:
        data["modificationReason"] = ""
    return data


class IntentClassifier:

    def __init__(
        self,
        client: Optional[CompletionClient] = None,
        config: Optional[Settings] = None,
    ):
        self.settings = config or default_settings
        self.client = client or OpenAICompletionClient(self.settings)

    async def classify(
        self,
        message: str,
        plan: MealPlan,
        profile: Optional[UserProfile] = None,
        assistant_response: Optional[str] = None,
    ) -> ModificationAction:
        operation = "classify_action"
        system, user = build_classifier_prompt(message, plan, profile, assistant_response)
        diagnostics: Dict[str, Any] = {
            "plan_id": plan.id,
            "text_preview": message[:200],
            "has_assistant_response": bool(assistant_response),
        }
        try:
            text = await self.client.complete(
                user, temperature=self.settings.classifier_temperature, system=system
            )
            data = _normalize_tokens(parse_model_json(text, operation))
            action = validate_payload(data, "modification_action", operation)
        except (ModelError, ValidationError) as exc:
            logger.error("Action classification failed plan=%s: %s (%s)", plan.id, exc.message, exc.code)
            raise ModelError(
                "Failed to classify chat message",
                operation=operation,
                context={"plan_id": plan.id, "cause": exc.code},
                user_message="Failed to process your request. Please try again.",
            ) from exc

        # keep the public type, not the payload subclass
        result = ModificationAction.model_validate(action.model_dump())
        diagnostics["action"] = result.action
        logger.info(
            "Classified message plan=%s action=%s target_id=%s target=%s/%s",
            plan.id,
            result.action,
            result.target_meal_id,
            result.target_meal_type,
            result.target_day,
        )
        logger.debug("classification diagnostics: %s", diagnostics)
        return result
