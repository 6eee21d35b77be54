# mealplanner/services/meal_generation.py
"""
Meal plan generation service.

Every operation runs the same pipeline: build prompt -> call the model ->
parse -> validate -> project onto domain models with fresh identities.
Parse/validation/model failures are never retried here; they surface as a
generic MealGenerationError with the original exception chained.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from mealplanner.config.settings import Settings, settings as default_settings
from mealplanner.models.meal_plan import (
    MEAL_TYPES,
    PLAN_DURATION_DAYS,
    Meal,
    MealPlan,
    new_id,
)
from mealplanner.models.profile import UserProfile
from mealplanner.models.responses import MealPayload, PlanMealPayload
from mealplanner.services.errors import MealGenerationError, ModelError, ValidationError
from mealplanner.services.llm_client import CompletionClient, OpenAICompletionClient
from mealplanner.services.prompts import (
    build_meal_plan_prompt,
    build_modify_meal_prompt,
    build_regenerate_meal_prompt,
)
from mealplanner.services.response_parser import parse_and_validate
from mealplanner.services.shopping_list import ShoppingListConsolidator, normalize_categories

logger = logging.getLogger(__name__)


def check_plan_coverage(
    meals: Sequence[PlanMealPayload], duration: int = PLAN_DURATION_DAYS
) -> None:
    """Exactly one meal per (day, type) slot for days 1..duration."""
    expected = {(day, t) for day in range(1, duration + 1) for t in MEAL_TYPES}
    counts = Counter((m.day, m.type) for m in meals)
    errors = []
    for slot, n in sorted(counts.items()):
        if slot not in expected:
            errors.append({"loc": ["meals", f"day {slot[0]}", slot[1]], "msg": "unexpected slot", "type": "slot"})
        elif n > 1:
            errors.append({"loc": ["meals", f"day {slot[0]}", slot[1]], "msg": f"{n} meals for one slot", "type": "slot"})
    for day, t in sorted(expected - set(counts)):
        errors.append({"loc": ["meals", f"day {day}", t], "msg": "missing meal", "type": "slot"})
    if errors:
        raise ValidationError(
            f"Plan must contain exactly {len(expected)} meals covering every day/type slot",
            operation="generate_plan",
            errors=errors,
            context={"source": "model", "meal_count": len(meals)},
        )


def _replace_content(meal: Meal, payload: MealPayload) -> Meal:
    """Whole-content replacement keeping id/day/type."""
    return Meal(
        id=meal.id,
        day=meal.day,
        type=meal.type,
        name=payload.name,
        description=payload.description,
        ingredients=list(payload.ingredients),
        estimated_calories=payload.estimated_calories,
        prep_time=payload.prep_time,
    )


class MealGenerationService:

    def __init__(
        self,
        client: Optional[CompletionClient] = None,
        consolidator: Optional[ShoppingListConsolidator] = None,
        config: Optional[Settings] = None,
    ):
        self.settings = config or default_settings
        self.client = client or OpenAICompletionClient(self.settings)
        self.consolidator = consolidator or ShoppingListConsolidator(self.client, self.settings)

    async def generate_plan(self, profile: UserProfile, owner_id: str) -> MealPlan:
        """Generate a 3-day, 9-meal plan plus its categorized shopping list."""
        operation = "generate_plan"
        logger.info("Generating meal plan owner=%s goal=%s", owner_id, profile.goal)
        prompt = build_meal_plan_prompt(profile)
        try:
            text = await self.client.complete(prompt, temperature=self.settings.plan_temperature)
            payload = parse_and_validate(text, "meal_plan", operation)
            check_plan_coverage(payload.meals)
            shopping_list = normalize_categories(payload.shopping_list, operation)
        except (ModelError, ValidationError) as exc:
            logger.error("Error generating meal plan owner=%s: %s (%s)", owner_id, exc.message, exc.code)
            raise MealGenerationError(
                "Failed to generate meal plan",
                operation=operation,
                context={"owner_id": owner_id, "cause": exc.code},
                user_message="Failed to generate meal plan. Please try again.",
            ) from exc

        now = datetime.now(timezone.utc)
        ordered = sorted(payload.meals, key=lambda m: (m.day, MEAL_TYPES.index(m.type)))
        meals: List[Meal] = [
            Meal(
                id=new_id("meal"),
                day=m.day,
                type=m.type,
                name=m.name,
                description=m.description,
                ingredients=list(m.ingredients),
                estimated_calories=m.estimated_calories,
                prep_time=m.prep_time,
            )
            for m in ordered
        ]
        self.consolidator.verify(meals, shopping_list, operation)

        plan = MealPlan(
            id=new_id("plan"),
            user_id=owner_id,
            title=payload.title,
            duration=PLAN_DURATION_DAYS,
            meals=meals,
            shopping_list=shopping_list,
            created_at=now,
            updated_at=now,
        )
        logger.info("✅ Meal plan generated id=%s meals=%d categories=%d", plan.id, len(meals), len(shopping_list))
        return plan

    async def regenerate_meal(
        self, meal: Meal, profile: UserProfile, context: Optional[str] = None
    ) -> Meal:
        """Replace a meal with a different one for the same day and type."""
        prompt = build_regenerate_meal_prompt(meal, profile, context)
        return await self._replace_meal(
            meal,
            prompt,
            operation="regenerate_meal",
            user_message="Failed to regenerate meal. Please try again.",
        )

    async def modify_meal(
        self,
        meal: Meal,
        profile: UserProfile,
        requirements: str,
        assistant_context: Optional[str] = None,
    ) -> Meal:
        """Change a meal per free-text requirements, honoring what the assistant promised."""
        prompt = build_modify_meal_prompt(meal, profile, requirements, assistant_context)
        return await self._replace_meal(
            meal,
            prompt,
            operation="modify_meal",
            user_message="Failed to modify meal. Please try again.",
        )

    async def _replace_meal(
        self, meal: Meal, prompt: str, operation: str, user_message: str
    ) -> Meal:
        logger.info("%s meal=%s day=%s type=%s", operation, meal.id, meal.day, meal.type)
        try:
            text = await self.client.complete(prompt, temperature=self.settings.meal_temperature)
            payload = parse_and_validate(text, "meal", operation)
        except (ModelError, ValidationError) as exc:
            logger.error("Error in %s meal=%s: %s (%s)", operation, meal.id, exc.message, exc.code)
            raise MealGenerationError(
                f"Failed to {operation.replace('_', ' ')}",
                operation=operation,
                context={"meal_id": meal.id, "cause": exc.code},
                user_message=user_message,
            ) from exc

        updated = _replace_content(meal, payload)
        logger.info("%s done meal=%s name=%r", operation, updated.id, updated.name)
        return updated
