# mealplanner/api/meal_plans.py
"""
HTTP endpoints over the meal planning core.

Caller identity comes from the X-User-Id header set by the auth proxy; this
router does not authenticate. Generation endpoints are rate limited per
caller (falling back to the client address).
"""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, Request, Response
from pydantic import Field

from mealplanner.models.chat import ChatMessage
from mealplanner.models.meal_plan import Meal, MealPlan, ShoppingCategory
from mealplanner.models.profile import CamelModel, MealPlanRequest, UserProfile
from mealplanner.services.chat_assistant import ChatAssistant
from mealplanner.services.errors import NotFoundError
from mealplanner.services.llm_client import OpenAICompletionClient
from mealplanner.services.meal_generation import MealGenerationService
from mealplanner.services.modification import ModificationCoordinator
from mealplanner.services.rate_limiter import RateLimiter, RateLimitStatus, rate_limit_key
from mealplanner.services.sanitization import sanitize_profile
from mealplanner.services.shopping_list import ShoppingListConsolidator

logger = logging.getLogger(__name__)
router = APIRouter()


# -------------------------
# Request bodies
# -------------------------
class RegenerateMealRequest(CamelModel):
    meal: Meal
    user_profile: UserProfile
    context: Optional[str] = None
    meal_plan: Optional[MealPlan] = None


class ModifyRequest(CamelModel):
    message: str
    meal_plan: MealPlan
    user_profile: UserProfile
    ai_chat_response: Optional[str] = None


class ShoppingListRequest(CamelModel):
    meals: List[Meal]
    user_profile: UserProfile


class ChatRequest(CamelModel):
    message: str
    meal_plan: MealPlan
    user_profile: UserProfile
    chat_history: List[ChatMessage] = Field(default_factory=list)


# -------------------------
# Dependencies (singletons, overridable in tests)
# -------------------------
@lru_cache(maxsize=1)
def _client() -> OpenAICompletionClient:
    return OpenAICompletionClient()


@lru_cache(maxsize=1)
def get_consolidator() -> ShoppingListConsolidator:
    return ShoppingListConsolidator(_client())


@lru_cache(maxsize=1)
def get_generator() -> MealGenerationService:
    return MealGenerationService(_client(), get_consolidator())


@lru_cache(maxsize=1)
def get_coordinator() -> ModificationCoordinator:
    return ModificationCoordinator(
        _client(), generator=get_generator(), consolidator=get_consolidator()
    )


@lru_cache(maxsize=1)
def get_chat_assistant() -> ChatAssistant:
    return ChatAssistant(_client())


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    return RateLimiter()


def caller_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None


def enforce_rate_limit(
    request: Request,
    response: Response,
    user_id: Optional[str] = Depends(caller_id),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> RateLimitStatus:
    key = rate_limit_key(
        user_id,
        request.headers.get("x-forwarded-for"),
        request.client.host if request.client else None,
    )
    status = limiter.enforce(key, operation=request.url.path)
    response.headers["X-RateLimit-Limit"] = str(status.limit)
    response.headers["X-RateLimit-Remaining"] = str(status.remaining)
    return status


def _dump(model: Any) -> Any:
    if isinstance(model, list):
        return [_dump(m) for m in model]
    return model.model_dump(mode="json", by_alias=True)


# -------------------------
# Endpoints
# -------------------------
@router.post("/meal-plan/generate")
async def generate_meal_plan(
    body: MealPlanRequest,
    user_id: Optional[str] = Depends(caller_id),
    _: RateLimitStatus = Depends(enforce_rate_limit),
    generator: MealGenerationService = Depends(get_generator),
) -> Dict[str, Any]:
    profile = sanitize_profile(body.user_profile.with_preferences(body.preferences))
    owner_id = user_id or profile.id or "anonymous"
    plan = await generator.generate_plan(profile, owner_id)
    return _dump(plan)


@router.post("/meal-plan/regenerate-meal")
async def regenerate_meal(
    body: RegenerateMealRequest,
    _: RateLimitStatus = Depends(enforce_rate_limit),
    generator: MealGenerationService = Depends(get_generator),
) -> Dict[str, Any]:
    meal = body.meal
    if body.meal_plan is not None:
        found = body.meal_plan.find_meal(meal.id)
        if found is None:
            raise NotFoundError(
                "Meal not found in plan",
                operation="regenerate_meal",
                context={"meal_id": meal.id, "plan_id": body.meal_plan.id},
            )
        meal = found
    new_meal = await generator.regenerate_meal(meal, sanitize_profile(body.user_profile), body.context)
    return _dump(new_meal)


@router.post("/meal-plan/modify")
async def modify_meal_plan(
    body: ModifyRequest,
    _: RateLimitStatus = Depends(enforce_rate_limit),
    coordinator: ModificationCoordinator = Depends(get_coordinator),
) -> Dict[str, Any]:
    result = await coordinator.classify_and_apply(
        body.message, body.meal_plan, sanitize_profile(body.user_profile), body.ai_chat_response
    )
    return _dump(result)


@router.post("/meal-plan/shopping-list")
async def consolidate_shopping_list(
    body: ShoppingListRequest,
    consolidator: ShoppingListConsolidator = Depends(get_consolidator),
) -> List[Dict[str, Any]]:
    categories: List[ShoppingCategory] = await consolidator.consolidate(body.meals, sanitize_profile(body.user_profile))
    return _dump(categories)


@router.post("/chat")
async def chat(
    body: ChatRequest,
    assistant: ChatAssistant = Depends(get_chat_assistant),
) -> Dict[str, Any]:
    reply = await assistant.reply(body.message, body.meal_plan, sanitize_profile(body.user_profile), body.chat_history)
    return {"reply": reply}
