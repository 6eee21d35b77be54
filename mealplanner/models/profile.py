"""
User profile models used as input to every generation call.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from mealplanner.services.errors import ValidationError

Sex = Literal["male", "female", "other"]
ActivityLevel = Literal["sedentary", "light", "moderate", "active", "very_active"]
Goal = Literal["weight_loss", "maintenance", "weight_gain", "muscle_gain"]
MealComplexity = Literal["simple", "moderate", "complex"]


class CamelModel(BaseModel):
    """Accepts both snake_case and the camelCase keys the web client sends."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Preferences(CamelModel):
    cuisine_types: List[str] = Field(default_factory=list)
    disliked_foods: List[str] = Field(default_factory=list)
    meal_complexity: MealComplexity = "moderate"


class UserProfile(CamelModel):
    id: Optional[str] = None
    email: Optional[str] = None
    age: int = Field(ge=13, le=120)
    # the web client calls this field "gender"
    sex: Sex = Field(alias="gender")
    height_cm: float = Field(ge=100, le=250, alias="height")
    weight_kg: float = Field(ge=30, le=300, alias="weight")
    activity_level: ActivityLevel
    goal: Goal = Field(alias="goals")
    dietary_restrictions: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)

    @classmethod
    def parse(cls, data: Dict[str, Any], operation: str = "profile") -> "UserProfile":
        """Validate raw caller data, converting failures into our ValidationError."""
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc, operation=operation) from exc

    def with_preferences(self, patch: Optional[Dict[str, Any]]) -> "UserProfile":
        """Return a copy with a per-call preferences override applied."""
        if not patch:
            return self
        merged = self.preferences.model_dump(by_alias=True)
        # accept snake_case keys in the patch as well
        aliases = {name: f.alias for name, f in Preferences.model_fields.items() if f.alias}
        merged.update({aliases.get(k, k): v for k, v in patch.items()})
        try:
            override = Preferences.model_validate(merged)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(
                exc, operation="preferences_override"
            ) from exc
        return self.model_copy(update={"preferences": override})


class MealPlanRequest(CamelModel):
    # fixed to 3 days
    duration: int = Field(default=3, ge=3, le=3)
    user_profile: UserProfile
    preferences: Optional[Dict[str, Any]] = None
