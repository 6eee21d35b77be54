# mealplanner/services/modification.py
"""
Applies one chat turn to a meal plan.

Each turn runs Classifying -> Resolving -> Mutating -> Reconsolidating -> Done
strictly in order and keeps no state between turns: everything is rebuilt
from the message and the plan snapshot the caller sends. The plan passed in
is never mutated; the result carries the updated meals and shopping list for
the persistence layer.
"""
from __future__ import annotations

import enum
import logging
from typing import List, Optional

from mealplanner.config.settings import Settings, settings as default_settings
from mealplanner.models.actions import ModificationAction, ModificationResult
from mealplanner.models.meal_plan import Meal, MealPlan
from mealplanner.models.profile import UserProfile
from mealplanner.services.errors import ValidationError
from mealplanner.services.intent_classifier import IntentClassifier
from mealplanner.services.llm_client import CompletionClient, OpenAICompletionClient
from mealplanner.services.meal_generation import MealGenerationService
from mealplanner.services.sanitization import sanitize_chat_message
from mealplanner.services.shopping_list import ShoppingListConsolidator

logger = logging.getLogger(__name__)

DEFAULT_REGENERATE_CONTEXT = "User requested a new meal"


class TurnState(str, enum.Enum):
    CLASSIFYING = "classifying"
    RESOLVING = "resolving"
    MUTATING = "mutating"
    RECONSOLIDATING = "reconsolidating"
    DONE = "done"


class ModificationCoordinator:

    def __init__(
        self,
        client: Optional[CompletionClient] = None,
        classifier: Optional[IntentClassifier] = None,
        generator: Optional[MealGenerationService] = None,
        consolidator: Optional[ShoppingListConsolidator] = None,
        config: Optional[Settings] = None,
    ):
        self.settings = config or default_settings
        client = client or OpenAICompletionClient(self.settings)
        self.consolidator = consolidator or ShoppingListConsolidator(client, self.settings)
        self.classifier = classifier or IntentClassifier(client, self.settings)
        self.generator = generator or MealGenerationService(client, self.consolidator, self.settings)

    async def classify_and_apply(
        self,
        message: str,
        plan: MealPlan,
        profile: UserProfile,
        assistant_context: Optional[str] = None,
    ) -> ModificationResult:
        states: List[str] = []

        def enter(state: TurnState) -> None:
            states.append(state.value)
            logger.debug("plan=%s turn state -> %s", plan.id, state.value)

        cleaned = sanitize_chat_message(message)
        if not cleaned:
            raise ValidationError(
                "Invalid message content",
                operation="classify_and_apply",
                errors=[{"loc": ["message"], "msg": "message is empty after sanitization", "type": "value_error"}],
                context={"plan_id": plan.id},
            )

        enter(TurnState.CLASSIFYING)
        action = await self.classifier.classify(cleaned, plan, profile, assistant_context)

        if not action.targets_meal:
            enter(TurnState.DONE)
            logger.info("plan=%s action=%s: no meal mutation", plan.id, action.action)
            return ModificationResult(action=action, states=states)

        enter(TurnState.RESOLVING)
        target = plan.find_meal(action.target_meal_id, action.target_meal_type, action.target_day)
        if target is None:
            # TODO: surface NotFoundError once the chat client can render it
            logger.warning(
                "plan=%s action=%s target not found (id=%s type=%s day=%s); ignoring",
                plan.id,
                action.action,
                action.target_meal_id,
                action.target_meal_type,
                action.target_day,
            )
            enter(TurnState.DONE)
            return ModificationResult(action=action, resolved=False, states=states)

        enter(TurnState.MUTATING)
        updated = await self._mutate(target, action, profile, assistant_context)
        updated_meals = self._splice(plan.meals, updated)

        enter(TurnState.RECONSOLIDATING)
        shopping_list = await self.consolidator.consolidate(updated_meals, profile)

        enter(TurnState.DONE)
        logger.info("plan=%s action=%s updated meal=%s", plan.id, action.action, updated.id)
        return ModificationResult(
            action=action,
            resolved=True,
            mutated_meal=updated,
            updated_meals=updated_meals,
            shopping_list=shopping_list,
            states=states,
        )

    async def _mutate(
        self,
        target: Meal,
        action: ModificationAction,
        profile: UserProfile,
        assistant_context: Optional[str],
    ) -> Meal:
        if action.action == "modify_meal" and action.new_meal_requirements:
            return await self.generator.modify_meal(
                target, profile, action.new_meal_requirements, assistant_context
            )
        context = action.modification_reason or DEFAULT_REGENERATE_CONTEXT
        return await self.generator.regenerate_meal(target, profile, context)

    @staticmethod
    def _splice(meals: List[Meal], updated: Meal) -> List[Meal]:
        return [updated if m.id == updated.id else m for m in meals]
