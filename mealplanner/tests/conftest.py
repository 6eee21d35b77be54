# tests/conftest.py
import json
from types import SimpleNamespace

import pytest

from mealplanner.config.settings import Settings
from mealplanner.models.meal_plan import Meal, MealPlan, ShoppingCategory
from mealplanner.models.profile import UserProfile


@pytest.fixture
def test_settings():
    """Settings isolated from the developer's environment/.env."""
    return Settings(
        _env_file=None,
        openai_api_key=None,
        openai_model="gpt-4o-mini",
        openai_max_attempts=3,
        azure_openai_endpoint=None,
        azure_openai_deployment_name=None,
        shopping_list_coverage_mode="warn",
    )


# --- Fake completion client (stands in for the model) ---
class FakeCompletionClient:
    """Returns queued responses in order and records every call."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, *responses):
        self.responses.extend(responses)

    async def complete(self, prompt, temperature, system=None, max_tokens=None):
        self.calls.append(
            {"prompt": prompt, "temperature": temperature, "system": system, "max_tokens": max_tokens}
        )
        if not self.responses:
            raise AssertionError("FakeCompletionClient: no response queued")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        if isinstance(nxt, (dict, list)):
            return json.dumps(nxt)
        return nxt


@pytest.fixture
def fake_client():
    return FakeCompletionClient()


# --- Patch OpenAI client object shape used by our code ---
class DummyChoice:

    def __init__(self, content):
        self.message = SimpleNamespace(content=content)


class DummyOpenAI:
    """Mimics ``client.chat.completions.create`` with scripted outcomes."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, *args, **kwargs):
        self.requests.append(kwargs)
        nxt = self.outcomes.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return SimpleNamespace(choices=[DummyChoice(nxt)])


@pytest.fixture
def dummy_openai():
    return DummyOpenAI


# --- Domain fixtures ---
@pytest.fixture
def profile_data():
    return {
        "id": "user-1",
        "email": "sam@example.com",
        "age": 30,
        "gender": "male",
        "height": 180,
        "weight": 75,
        "activityLevel": "moderate",
        "goals": "weight_loss",
        "dietaryRestrictions": ["vegetarian"],
        "allergies": ["nuts"],
        "preferences": {
            "cuisineTypes": ["italian"],
            "dislikedFoods": ["brussels sprouts"],
            "mealComplexity": "simple",
        },
    }


@pytest.fixture
def profile(profile_data):
    return UserProfile.parse(profile_data)


def _meal(day, type_, name, ingredients, calories=500):
    return {
        "day": day,
        "type": type_,
        "name": name,
        "description": f"A tasty {name.lower()}",
        "ingredients": ingredients,
        "estimatedCalories": calories,
        "prepTime": 20,
    }


SAMPLE_MEALS = [
    _meal(1, "breakfast", "Spinach Omelette", ["2 eggs", "50g spinach", "5ml olive oil"], 420),
    _meal(1, "lunch", "Caprese Salad", ["2 tomatoes", "125g mozzarella", "10ml olive oil"]),
    _meal(1, "dinner", "Mushroom Risotto", ["150g arborio rice", "200g mushrooms", "1 onion"], 650),
    _meal(2, "breakfast", "Greek Yogurt Bowl", ["200g greek yogurt", "1 banana", "1 tsp honey"], 380),
    _meal(2, "lunch", "Lentil Soup", ["150g red lentils", "1 carrot", "1 onion"]),
    _meal(2, "dinner", "Veggie Pasta", ["120g penne pasta", "1 zucchini", "2 tomatoes"], 600),
    _meal(3, "breakfast", "Avocado Toast", ["2 slices sourdough bread", "1 avocado"], 400),
    _meal(3, "lunch", "Chickpea Wrap", ["1 tortilla wrap", "100g chickpeas", "50g spinach"]),
    _meal(3, "dinner", "Tofu Stir Fry", ["200g tofu", "1 bell pepper", "15ml soy sauce"], 550),
]

SAMPLE_SHOPPING_LIST = [
    {
        "name": "Produce",
        "icon": "🥬",
        "items": [
            "100g fresh spinach",
            "4 tomatoes",
            "200g mushrooms",
            "2 onions",
            "1 banana",
            "1 carrot",
            "1 zucchini",
            "1 avocado",
            "1 bell pepper",
        ],
    },
    {"name": "Dairy & Eggs", "icon": "🥛", "items": ["2 eggs", "125g mozzarella", "200g greek yogurt"]},
    {
        "name": "Pantry & Canned Goods",
        "icon": "🥫",
        "items": ["150g arborio rice", "150g red lentils", "120g penne pasta", "100g chickpeas", "200g tofu"],
    },
    {"name": "Condiments & Oils", "icon": "🍯", "items": ["15ml olive oil", "1 tsp honey", "15ml soy sauce"]},
    {"name": "Bakery", "icon": "🍞", "items": ["2 slices sourdough bread", "1 tortilla wrap"]},
]


@pytest.fixture
def plan_response():
    return {
        "title": "3-Day Vegetarian Plan",
        "meals": [dict(m) for m in SAMPLE_MEALS],
        "shoppingList": [dict(c) for c in SAMPLE_SHOPPING_LIST],
    }


@pytest.fixture
def shopping_list_response():
    return {"shoppingList": [dict(c) for c in SAMPLE_SHOPPING_LIST]}


@pytest.fixture
def meal_response():
    return {
        "name": "Light Spinach Omelette",
        "description": "Egg whites folded with spinach",
        "ingredients": ["3 egg whites", "50g spinach", "2ml olive oil"],
        "estimatedCalories": 320,
        "prepTime": 10,
    }


@pytest.fixture
def plan():
    meals = [
        Meal(id=f"meal-{m['day']}-{m['type']}", **m)
        for m in SAMPLE_MEALS
    ]
    return MealPlan(
        id="plan-1",
        user_id="user-1",
        title="3-Day Vegetarian Plan",
        meals=meals,
        shopping_list=[ShoppingCategory(**c) for c in SAMPLE_SHOPPING_LIST],
    )


@pytest.fixture
def breakfast(plan):
    return plan.find_meal("meal-1-breakfast")
