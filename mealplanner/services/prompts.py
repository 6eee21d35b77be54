# mealplanner/services/prompts.py
"""
Prompt rendering for plan generation, single-meal changes, shopping list
consolidation, action classification and the chat assistant.

Everything here is pure string production: no I/O, no model calls.
"""
from __future__ import annotations

import json
from typing import Iterable, List, Optional, Sequence, Tuple

from mealplanner.models.chat import ChatMessage
from mealplanner.models.meal_plan import SHOPPING_CATEGORIES, Meal, MealPlan
from mealplanner.models.profile import UserProfile
from mealplanner.services.nutrition import (
    calorie_target_from_reply,
    daily_calorie_target,
    per_meal_calorie_target,
)

METRIC_INGREDIENT_HINT = (
    "ingredient with specific quantity using METRIC units (e.g., '200g spinach', "
    "'500g chicken breast', '30ml olive oil', '2 tbsp butter', '1 tsp salt')"
)

CHAT_HISTORY_WINDOW = 6


def _join(values: Iterable[str], empty: str = "None") -> str:
    joined = ", ".join(v for v in values if v)
    return joined or empty


def shopping_list_format() -> str:
    categories = [
        {
            "name": name,
            "icon": icon,
            "items": [f"string - consolidated {hint} with quantities"],
        }
        for name, icon, hint in SHOPPING_CATEGORIES
    ]
    return (
        json.dumps(categories, indent=2, ensure_ascii=False)
        + "\n\nIMPORTANT: Only include categories that have items. Do not include empty "
        "categories in the response. Every ingredient from all meals must be categorized "
        "into one of these categories, but empty categories should be omitted."
    )


def _meal_json_contract() -> str:
    return (
        "{\n"
        '  "name": "string - descriptive meal name",\n'
        '  "description": "string - detailed, appetizing description of the meal",\n'
        f'  "ingredients": ["string - {METRIC_INGREDIENT_HINT}"],\n'
        '  "estimatedCalories": number,\n'
        '  "prepTime": number\n'
        "}"
    )


def _profile_summary(profile: UserProfile) -> List[str]:
    return [
        f"- Age: {profile.age}, Gender: {profile.sex}",
        f"- Dietary restrictions: {_join(profile.dietary_restrictions)}",
        f"- Allergies: {_join(profile.allergies)}",
        f"- Foods to avoid: {_join(profile.preferences.disliked_foods)}",
        f"- Meal complexity: {profile.preferences.meal_complexity}",
    ]


# ---------------------------------------------------------------------------
# Plan generation
# ---------------------------------------------------------------------------
def build_meal_plan_prompt(profile: UserProfile) -> str:
    daily_calories = daily_calorie_target(profile)
    calories_per_meal = per_meal_calorie_target(profile)

    restrictions = (
        f"Dietary restrictions: {', '.join(profile.dietary_restrictions)}"
        if profile.dietary_restrictions
        else "No specific dietary restrictions"
    )
    allergies = (
        f"Allergies: {', '.join(profile.allergies)}"
        if profile.allergies
        else "No known allergies"
    )
    disliked = (
        f"Foods to avoid: {', '.join(profile.preferences.disliked_foods)}"
        if profile.preferences.disliked_foods
        else "No specific food dislikes"
    )
    cuisines = (
        f"Preferred cuisines: {', '.join(profile.preferences.cuisine_types)}"
        if profile.preferences.cuisine_types
        else "Any cuisine type"
    )

    return f"""Generate a 3-day meal plan for a {profile.age}-year-old {profile.sex} with the following profile:

Physical Stats:
- Height: {profile.height_cm:g}cm
- Weight: {profile.weight_kg:g}kg
- Activity Level: {profile.activity_level}
- Goal: {profile.goal}

Dietary Information:
- {restrictions}
- {allergies}
- {disliked}
- {cuisines}
- Meal Complexity: {profile.preferences.meal_complexity}

Target: {daily_calories} calories per day (~{calories_per_meal} calories per meal)

Requirements:
- Generate exactly 9 meals (3 days x 3 meals per day): breakfast, lunch and dinner for days 1, 2 and 3
- Each meal should be practical and achievable with clear, descriptive names
- Provide detailed, appetizing descriptions for each meal
- Include estimated prep time in minutes
- Provide detailed ingredient lists with specific quantities using METRIC units (e.g., "200g spinach", "500g chicken breast", "30ml olive oil", "2 tbsp butter", "1 tsp salt")
- Ensure nutritional balance across the day
- Respect all dietary restrictions and allergies
- Avoid disliked foods
- Match the requested meal complexity level
- Generate a CONSOLIDATED shopping list that intelligently combines duplicate ingredients:
  * If multiple meals use "5ml olive oil" -> combine to total amount needed
  * If you see "100g spinach" + "200g spinach" -> combine to "300g fresh spinach"
  * Use METRIC units: grams (g), kilograms (kg), milliliters (ml), liters (L), tablespoons (tbsp), teaspoons (tsp)
  * Convert to practical shopping amounts (e.g., "1.5kg" instead of "1500g")
  * Use realistic shopping language (e.g., "2 large tomatoes" not "400g diced tomatoes")
- Organize consolidated ingredients into exactly 8 predefined categories (see format below)
- CRITICAL: Every single ingredient from all meals must appear ONCE in the appropriate category after consolidation
- NO INGREDIENTS CAN BE MISSED - the shopping list must contain ALL ingredients needed to make every meal
- Only include categories that have items - omit empty categories from the response
- The shopping list should have fewer items than total ingredients due to consolidation, but must cover 100% of ingredients

Please create diverse, balanced meals that align with their health goals.

Respond with a JSON object in this exact format:
{{
  "title": "string - descriptive title for the meal plan",
  "meals": [
    {{
      "day": number,
      "type": "breakfast" | "lunch" | "dinner",
      "name": "string - descriptive meal name",
      "description": "string - detailed, appetizing description of the meal",
      "ingredients": ["string - {METRIC_INGREDIENT_HINT}"],
      "estimatedCalories": number,
      "prepTime": number
    }}
  ],
  "shoppingList": {shopping_list_format()}
}}"""


# ---------------------------------------------------------------------------
# Single-meal regeneration / modification
# ---------------------------------------------------------------------------
def build_regenerate_meal_prompt(
    meal: Meal, profile: UserProfile, context: Optional[str] = None
) -> str:
    target_calories = per_meal_calorie_target(profile)
    context_text = f"Additional context: {context}\n" if context else ""
    profile_lines = "\n".join(_profile_summary(profile))

    return f"""Generate a replacement {meal.type} meal for day {meal.day} with these requirements:

User Profile:
{profile_lines}

Target: ~{target_calories} calories
{context_text}
Create a different meal than "{meal.name}" that fits the user's profile and preferences.
Provide a detailed, appetizing description and include specific quantities for all ingredients.

Respond with a JSON object in this exact format:
{_meal_json_contract()}"""


def build_modify_meal_prompt(
    meal: Meal,
    profile: UserProfile,
    requirements: str,
    assistant_context: Optional[str] = None,
) -> str:
    """
    Prompt for changing an existing meal in place.

    When the assistant already told the user what it would change, that reply
    is embedded verbatim and marked as mandatory, and any calorie target it
    promised replaces the profile-derived per-meal target.
    """
    promised = calorie_target_from_reply(assistant_context, meal.estimated_calories)
    if promised is not None:
        target_line = f"Target: {promised} calories (as promised to the user)"
    else:
        target_line = f"Target: ~{per_meal_calorie_target(profile)} calories"

    assistant_block = ""
    if assistant_context:
        assistant_block = f"""
AI Assistant's Specific Instructions:
"{assistant_context}"

CRITICAL: Follow these exact instructions. The user was told these changes would be made, so every change described above is mandatory.
"""

    profile_lines = "\n".join(_profile_summary(profile))
    ingredients = "\n".join(f"- {i}" for i in meal.ingredients) or "- (none listed)"

    return f"""Modify the following {meal.type} meal for day {meal.day}.

Current Meal: {meal.name}
Description: {meal.description}
Current calories: {meal.estimated_calories:g}
Current prep time: {meal.prep_time:g} minutes
Current ingredients:
{ingredients}

Requested changes: {requirements}
{assistant_block}
User Profile:
{profile_lines}

{target_line}

Keep the spirit of the original meal where possible, apply the requested changes, and adjust ingredient quantities so the calories match the target.
Provide a detailed, appetizing description and include specific quantities for all ingredients.

Respond with a JSON object in this exact format:
{_meal_json_contract()}"""


# ---------------------------------------------------------------------------
# Shopping list consolidation
# ---------------------------------------------------------------------------
def unique_ingredients(meals: Sequence[Meal]) -> List[str]:
    seen = set()
    out: List[str] = []
    for meal in meals:
        for ingredient in meal.ingredients:
            if ingredient not in seen:
                seen.add(ingredient)
                out.append(ingredient)
    return out


def build_shopping_list_prompt(meals: Sequence[Meal], profile: UserProfile) -> str:
    meals_text = "\n\n".join(
        f"Day {m.day} {m.type}: {m.name}\nIngredients: {', '.join(m.ingredients)}"
        for m in meals
    )
    ingredients = unique_ingredients(meals)
    numbered = "\n".join(f"{i}. {ing}" for i, ing in enumerate(ingredients, start=1))

    return f"""Based on the following meal plan, generate a consolidated shopping list that combines duplicate ingredients with proper quantities:

{meals_text}

COMPLETE INGREDIENT LIST ({len(ingredients)} total ingredients):
{numbered}

User dietary restrictions: {_join(profile.dietary_restrictions)}
User allergies: {_join(profile.allergies)}

Create a CONSOLIDATED shopping list that intelligently combines duplicate ingredients:

CONSOLIDATION EXAMPLES:
- If you see: "5ml olive oil", "30ml olive oil", "5ml olive oil" -> Combine to: "40ml olive oil"
- If you see: "100g spinach", "200g spinach" -> Combine to: "300g fresh spinach"
- If you see: "500g chicken breast", "250g chicken breast" -> Combine to: "750g chicken breast"
- If you see: "1 onion", "1/2 onion" -> Combine to: "1.5 medium onions"

Requirements:
- CONSOLIDATE all duplicate ingredients by adding up quantities
- Use METRIC units: grams (g), kilograms (kg), milliliters (ml), liters (L), tablespoons (tbsp), teaspoons (tsp)
- Convert to practical shopping amounts (e.g., "1.5kg" instead of "1500g", "500ml" instead of "0.5L")
- Use realistic shopping language (e.g., "2 large tomatoes" instead of "400g diced tomatoes")
- Organize consolidated ingredients into exactly 8 predefined categories
- CRITICAL: Every single ingredient from the meal plan must appear ONCE in the appropriate category
- NO INGREDIENTS CAN BE MISSED - verify that every ingredient from all meals is included in the shopping list
- Only include categories that have items - omit empty categories from the response
- The final shopping list should have fewer items than the original ingredient list due to consolidation, but must cover 100% of ingredients
- VERIFICATION: Count total unique ingredients in meals vs shopping list items to ensure nothing is missing

Respond with a JSON object in this exact format:
{{
  "shoppingList": {shopping_list_format()}
}}"""


# ---------------------------------------------------------------------------
# Classification / chat context
# ---------------------------------------------------------------------------
def plan_context(plan: MealPlan, profile: Optional[UserProfile] = None, with_ids: bool = True) -> str:
    lines = ["Current Meal Plan:"]
    for m in plan.meals:
        ident = f" (ID: {m.id})" if with_ids else ""
        lines.append(f"Day {m.day} - {m.type}{ident}: {m.name}")
        if with_ids:
            lines.append(f"  Description: {m.description}")
        lines.append(f"  Ingredients: {', '.join(m.ingredients)}")
        lines.append(f"  Calories: {m.estimated_calories:g}")
        lines.append("")

    if profile is not None:
        lines.extend(
            [
                "User Profile:",
                f"- Age: {profile.age}, Gender: {profile.sex}",
                f"- Goals: {profile.goal}",
                f"- Activity Level: {profile.activity_level}",
                f"- Dietary Restrictions: {_join(profile.dietary_restrictions)}",
                f"- Allergies: {_join(profile.allergies)}",
                f"- Disliked Foods: {_join(profile.preferences.disliked_foods)}",
            ]
        )
    return "\n".join(lines)


def build_classifier_prompt(
    message: str,
    plan: MealPlan,
    profile: Optional[UserProfile] = None,
    assistant_response: Optional[str] = None,
) -> Tuple[str, str]:
    """Returns (system, user) messages for the action classifier."""
    system = f"""You are analyzing a user's request to modify their meal plan. Based on their message, determine what action should be taken.

{plan_context(plan, profile)}

Analyze the user's message and determine:
1. What action should be taken (regenerate_meal, modify_meal, regenerate_plan, or no_action)
2. Which specific meal they're referring to (if any)
3. What modifications they want

Guidelines:
- If they mention a specific meal type (breakfast, lunch, dinner) and day, target that meal
- Prefer giving the meal ID when you can identify the meal
- If they say "lighter" or "healthier", use modify_meal
- If they say "I don't like [ingredient]", use modify_meal or regenerate_meal
- If they want to "start over" or "regenerate everything", use regenerate_plan
- If they're just asking questions or making general comments, use no_action

Be specific about the modification reason and requirements."""

    if assistant_response:
        system += f"""

AI Assistant's Response: "{assistant_response}"
Use this response to understand the specific changes the AI promised to make."""

    system += """

Respond with ONLY a JSON object in this exact format:
{
  "action": "regenerate_meal" | "modify_meal" | "regenerate_plan" | "no_action",
  "targetMealId": "string - optional, ID of the meal to change",
  "targetMealType": "breakfast" | "lunch" | "dinner" (optional),
  "targetDay": number 1-3 (optional),
  "modificationReason": "string - why this action was chosen",
  "newMealRequirements": "string - optional, the concrete changes to make"
}"""

    user = f'User message: "{message}"\n\nAnalyze this message and determine the appropriate action.'
    return system, user


def build_chat_system_prompt(
    message: str,
    plan: MealPlan,
    profile: UserProfile,
    history: Sequence[ChatMessage] = (),
) -> str:
    recent = list(history)[-CHAT_HISTORY_WINDOW:]
    history_block = ""
    if recent:
        history_block = "\nRecent conversation:\n" + "\n".join(
            f"{m.role}: {m.content}" for m in recent
        ) + "\n"

    return f"""You are a helpful AI nutritionist assistant helping users refine their meal plans.

{plan_context(plan, profile, with_ids=False)}
{history_block}
The user wants to modify their meal plan. Your role is to:
1. Understand their request and take action to modify the meal plan
2. When they want to modify specific meals, say "I'll modify" or "I'll change" and explain what you're doing
3. Be encouraging and supportive
4. Keep responses concise but informative
5. Always indicate when you're taking action vs just giving suggestions

IMPORTANT: When the user requests changes (lighter, healthier, ingredient swaps, etc.), start your response with action phrases like:
- "I'll make this lighter by..."
- "I'll modify the [meal] to..."
- "I'll change the ingredients to..."
- "I'll adjust the portions..."

When you change calories, state the new calorie target explicitly (e.g. "targeting 350 calories").

Guidelines:
- Be conversational and friendly
- Reference specific meals when relevant
- Always use action language when making actual changes
- Consider their dietary restrictions and preferences
- Keep responses under 3 sentences when possible

User's request: {message}"""
