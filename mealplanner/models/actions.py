"""
Chat-driven modification actions and the per-turn result.
"""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import Field

from mealplanner.models.meal_plan import Meal, MealType, ShoppingCategory
from mealplanner.models.profile import CamelModel

ActionType = Literal["regenerate_meal", "modify_meal", "regenerate_plan", "no_action"]
MEAL_TARGETING_ACTIONS = ("regenerate_meal", "modify_meal")


class ModificationAction(CamelModel):
    action: ActionType
    target_meal_id: Optional[str] = None
    target_meal_type: Optional[MealType] = None
    target_day: Optional[int] = Field(default=None, ge=1, le=3)
    modification_reason: str = ""
    new_meal_requirements: Optional[str] = None

    @property
    def targets_meal(self) -> bool:
        return self.action in MEAL_TARGETING_ACTIONS


class ModificationResult(CamelModel):
    action: ModificationAction
    resolved: bool = False
    mutated_meal: Optional[Meal] = None
    updated_meals: Optional[List[Meal]] = None
    shopping_list: Optional[List[ShoppingCategory]] = None
    states: List[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.mutated_meal is not None
