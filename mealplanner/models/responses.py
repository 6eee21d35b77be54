"""
Wire shapes expected from the language model.

These are validated in strict mode: the model is an untrusted producer, so a
number sent as a string or a missing field rejects the whole payload.
"""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from mealplanner.models.actions import ModificationAction
from mealplanner.models.meal_plan import MealType


class _StrictPayload(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore", populate_by_name=True)


class MealPayload(_StrictPayload):
    name: str
    description: str
    ingredients: List[str]
    estimated_calories: float = Field(alias="estimatedCalories")
    prep_time: float = Field(alias="prepTime")


class PlanMealPayload(MealPayload):
    day: int
    type: MealType


class ShoppingCategoryPayload(_StrictPayload):
    name: str
    icon: str
    items: List[str]


class MealPlanPayload(_StrictPayload):
    title: str
    meals: List[PlanMealPayload]
    shopping_list: List[ShoppingCategoryPayload] = Field(alias="shoppingList")


class ModificationActionPayload(ModificationAction):
    # enum tags and ids come from the model as plain JSON strings
    model_config = ConfigDict(extra="ignore")


ShoppingListPayload = TypeAdapter(List[ShoppingCategoryPayload])
