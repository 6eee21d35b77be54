"""
Meal plan domain models.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple

from pydantic import Field

from mealplanner.models.profile import CamelModel

MealType = Literal["breakfast", "lunch", "dinner"]
MEAL_TYPES: List[str] = ["breakfast", "lunch", "dinner"]
PLAN_DURATION_DAYS = 3


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Meal(CamelModel):
    id: str
    day: int = Field(ge=1)
    type: MealType
    name: str
    description: str = ""
    ingredients: List[str] = Field(default_factory=list)
    estimated_calories: float = 0
    prep_time: float = 0

    def __repr__(self) -> str:
        return f"<Meal(id='{self.id}', day={self.day}, type='{self.type}', name='{self.name}')>"


class ShoppingCategory(CamelModel):
    name: str
    icon: str
    items: List[str] = Field(default_factory=list)


class MealPlan(CamelModel):
    id: str
    user_id: str
    title: str
    duration: int = PLAN_DURATION_DAYS
    meals: List[Meal] = Field(default_factory=list)
    shopping_list: List[ShoppingCategory] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def find_meal(
        self,
        meal_id: Optional[str] = None,
        meal_type: Optional[str] = None,
        day: Optional[int] = None,
    ) -> Optional[Meal]:
        """Locate a meal by id first, then by (type, day)."""
        if meal_id:
            for meal in self.meals:
                if meal.id == meal_id:
                    return meal
        if meal_type and day is not None:
            for meal in self.meals:
                if meal.type == meal_type and meal.day == day:
                    return meal
        return None

    def __repr__(self) -> str:
        return f"<MealPlan(id='{self.id}', user_id='{self.user_id}', meals={len(self.meals)})>"


# (name, icon, what belongs there) in display order
SHOPPING_CATEGORIES: List[Tuple[str, str, str]] = [
    ("Produce", "🥬", "fresh fruits, vegetables, herbs"),
    ("Meat & Seafood", "🥩", "meat, poultry, seafood"),
    ("Dairy & Eggs", "🥛", "dairy products, eggs"),
    (
        "Pantry & Canned Goods",
        "🥫",
        "grains, pasta, rice, canned goods, dry goods (NOT bread or wraps)",
    ),
    ("Spices & Seasonings", "🌿", "spices, dried herbs, seasonings"),
    ("Condiments & Oils", "🍯", "oils, vinegars, sauces, condiments"),
    ("Frozen", "🧊", "frozen items"),
    ("Bakery", "🍞", "bread, wraps, tortillas, baked goods"),
]
