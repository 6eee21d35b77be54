"""Domain models for the meal planning service."""
from mealplanner.models.profile import MealPlanRequest, Preferences, UserProfile
from mealplanner.models.meal_plan import (
    MEAL_TYPES,
    PLAN_DURATION_DAYS,
    SHOPPING_CATEGORIES,
    Meal,
    MealPlan,
    ShoppingCategory,
)
from mealplanner.models.actions import ModificationAction, ModificationResult
from mealplanner.models.chat import ChatMessage

# Export all models
__all__ = [
    "ChatMessage",
    "MEAL_TYPES",
    "Meal",
    "MealPlan",
    "MealPlanRequest",
    "ModificationAction",
    "ModificationResult",
    "PLAN_DURATION_DAYS",
    "Preferences",
    "SHOPPING_CATEGORIES",
    "ShoppingCategory",
    "UserProfile",
]
