# mealplanner/services/shopping_list.py
"""
Shopping list consolidation across all meals of a plan.

The model merges duplicate ingredients into eight fixed categories. The
output is then normalized onto the canonical category names/icons and
(optionally) checked for ingredient coverage with fuzzy matching.
"""
from __future__ import annotations

import difflib
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from mealplanner.config.settings import Settings, settings as default_settings
from mealplanner.models.meal_plan import SHOPPING_CATEGORIES, Meal, ShoppingCategory
from mealplanner.models.profile import UserProfile
from mealplanner.models.responses import ShoppingCategoryPayload
from mealplanner.services.errors import (
    MealGenerationError,
    ModelError,
    ValidationError,
)
from mealplanner.services.llm_client import CompletionClient, OpenAICompletionClient
from mealplanner.services.prompts import build_shopping_list_prompt, unique_ingredients
from mealplanner.services.response_parser import parse_model_json, validate_payload

logger = logging.getLogger(__name__)

CATEGORY_ICONS: Dict[str, str] = {name: icon for name, icon, _ in SHOPPING_CATEGORIES}
CATEGORY_ORDER: List[str] = [name for name, _, _ in SHOPPING_CATEGORIES]


def _category_key(name: str) -> str:
    key = (name or "").lower().replace("&", " and ")
    return re.sub(r"[^a-z]+", " ", key).strip()


# canonical keys plus the short forms models tend to use
_CATEGORY_ALIASES: Dict[str, str] = {_category_key(n): n for n in CATEGORY_ORDER}
_CATEGORY_ALIASES.update(
    {
        "meat": "Meat & Seafood",
        "meat and poultry": "Meat & Seafood",
        "meat poultry and seafood": "Meat & Seafood",
        "seafood": "Meat & Seafood",
        "dairy": "Dairy & Eggs",
        "dairy and eggs": "Dairy & Eggs",
        "pantry": "Pantry & Canned Goods",
        "canned goods": "Pantry & Canned Goods",
        "pantry and dry goods": "Pantry & Canned Goods",
        "spices": "Spices & Seasonings",
        "spices and herbs": "Spices & Seasonings",
        "herbs and spices": "Spices & Seasonings",
        "seasonings": "Spices & Seasonings",
        "condiments": "Condiments & Oils",
        "oils and condiments": "Condiments & Oils",
        "condiments and sauces": "Condiments & Oils",
        "frozen foods": "Frozen",
        "bakery and bread": "Bakery",
        "bread and bakery": "Bakery",
        "fruits and vegetables": "Produce",
        "fresh produce": "Produce",
    }
)


def canonical_category(name: str) -> Optional[str]:
    return _CATEGORY_ALIASES.get(_category_key(name))


def normalize_categories(
    raw: Sequence[ShoppingCategoryPayload], operation: str = "shopping_list"
) -> List[ShoppingCategory]:
    """
    Map model categories onto the eight canonical ones.

    Repeated categories are merged, blank items and empty categories dropped,
    and any category name we cannot map rejects the whole list.
    """
    merged: Dict[str, List[str]] = {}
    unknown: List[str] = []
    for cat in raw:
        canonical = canonical_category(cat.name)
        if canonical is None:
            unknown.append(cat.name)
            continue
        items = merged.setdefault(canonical, [])
        for item in cat.items:
            item = item.strip()
            if item and item not in items:
                items.append(item)

    if unknown:
        raise ValidationError(
            "Shopping list contains unknown categories",
            operation=operation,
            errors=[
                {"loc": ["shoppingList", "name"], "msg": f"unknown category '{n}'", "type": "category"}
                for n in unknown
            ],
            context={"source": "model", "unknown_categories": unknown},
        )

    return [
        ShoppingCategory(name=name, icon=CATEGORY_ICONS[name], items=merged[name])
        for name in CATEGORY_ORDER
        if merged.get(name)
    ]


# ---------------------------------------------------------------------------
# Coverage verification
# ---------------------------------------------------------------------------
_UNITS = (
    "g|gr|grams?|kg|kilograms?|mg|ml|milliliters?|millilitres?|l|liters?|litres?|"
    "tbsp|tablespoons?|tsp|teaspoons?|cups?|oz|ounces?|lbs?|pounds?|pinch(?:es)?|"
    "cloves?|slices?|pieces?|cans?|handfuls?|bunch(?:es)?|sprigs?|dash(?:es)?|"
    "large|medium|small|whole|fresh|chopped|diced|sliced|minced|of"
)
_QUANTITY_RE = re.compile(r"^\s*(?:[\d.,/½¼¾⅓⅔\-–~]+\s*)+")
_LEADING_UNIT_RE = re.compile(rf"^(?:(?:{_UNITS})\b\.?\s*)+", re.IGNORECASE)
_PAREN_RE = re.compile(r"\([^)]*\)")


def ingredient_name(ingredient: str) -> str:
    """'200g fresh spinach (washed)' -> 'spinach'."""
    text = _PAREN_RE.sub(" ", ingredient or "").split(",")[0]
    text = _QUANTITY_RE.sub("", text)
    text = _LEADING_UNIT_RE.sub("", text.strip())
    text = re.sub(r"[^a-z\s]", " ", text.lower())
    return re.sub(r"\s+", " ", text).strip()


def _singular(word: str) -> str:
    if len(word) > 3 and word.endswith("es") and word[-3] in "osxh":
        return word[:-2]
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss"):
        return word[:-1]
    return word


def _matches(name: str, item_names: Sequence[str], cutoff: float) -> bool:
    """Every word of the ingredient must be close to some word of one item."""
    if not name:
        return True
    words = [_singular(w) for w in name.split()]
    for item in item_names:
        item_words = [_singular(w) for w in item.split()]
        if all(w in item_words or difflib.get_close_matches(w, item_words, n=1, cutoff=cutoff) for w in words):
            return True
    return False


@dataclass
class CoverageReport:
    total: int
    covered: int
    missing: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing

    def to_dict(self) -> Dict[str, Any]:
        return {"total": self.total, "covered": self.covered, "missing": list(self.missing)}


def check_coverage(
    meals: Sequence[Meal], categories: Sequence[ShoppingCategory], cutoff: float = 0.8
) -> CoverageReport:
    """Fuzzy-match every source ingredient against the consolidated items."""
    item_names = [
        ingredient_name(item) or item.lower() for cat in categories for item in cat.items
    ]
    missing: List[str] = []
    sources = unique_ingredients(meals)
    for ingredient in sources:
        if not _matches(ingredient_name(ingredient), item_names, cutoff):
            missing.append(ingredient)
    return CoverageReport(total=len(sources), covered=len(sources) - len(missing), missing=missing)


class ShoppingListConsolidator:

    def __init__(
        self,
        client: Optional[CompletionClient] = None,
        config: Optional[Settings] = None,
    ):
        self.settings = config or default_settings
        self.client = client or OpenAICompletionClient(self.settings)

    def verify(self, meals: Sequence[Meal], categories: Sequence[ShoppingCategory], operation: str) -> CoverageReport:
        """Apply the configured coverage policy; raises in strict mode."""
        mode = self.settings.shopping_list_coverage_mode
        if mode == "off":
            return CoverageReport(total=0, covered=0)
        report = check_coverage(meals, categories, self.settings.shopping_list_coverage_cutoff)
        if report.complete:
            return report
        logger.warning(
            "⚠️ Shopping list misses %d/%d ingredients (%s): %s",
            len(report.missing),
            report.total,
            operation,
            report.missing[:10],
        )
        if mode == "strict":
            raise MealGenerationError(
                "Shopping list does not cover every ingredient",
                operation=operation,
                context={"coverage": report.to_dict()},
                user_message="Failed to regenerate shopping list. Please try again.",
            )
        return report

    async def consolidate(
        self, meals: Sequence[Meal], profile: UserProfile
    ) -> List[ShoppingCategory]:
        operation = "consolidate_shopping_list"
        logger.info(
            "Consolidating shopping list meals=%d ingredients=%d",
            len(meals),
            len(unique_ingredients(meals)),
        )
        prompt = build_shopping_list_prompt(meals, profile)
        try:
            text = await self.client.complete(
                prompt, temperature=self.settings.shopping_list_temperature
            )
            data = parse_model_json(text, operation)
            # the prompt asks for {"shoppingList": [...]}; a bare array is the same shape
            if isinstance(data, dict) and "shoppingList" in data:
                data = data["shoppingList"]
            raw = validate_payload(data, "shopping_list", operation)
            categories = normalize_categories(raw, operation)
        except (ModelError, ValidationError) as exc:
            logger.error("Error regenerating shopping list (%s): %s", type(exc).__name__, exc)
            raise MealGenerationError(
                "Failed to regenerate shopping list",
                operation=operation,
                context={"meal_count": len(meals), "cause": exc.code},
                user_message="Failed to regenerate shopping list. Please try again.",
            ) from exc

        self.verify(meals, categories, operation)
        logger.info("Shopping list ready categories=%d", len(categories))
        return categories
