# tests/test_nutrition.py
import pytest

from mealplanner.models.profile import UserProfile
from mealplanner.services.nutrition import (
    basal_metabolic_rate,
    calorie_target_from_reply,
    daily_calorie_target,
    per_meal_calorie_target,
    total_daily_energy_expenditure,
)


def make_profile(**overrides):
    data = {
        "age": 30,
        "gender": "male",
        "height": 180,
        "weight": 75,
        "activityLevel": "moderate",
        "goals": "weight_loss",
    }
    data.update(overrides)
    return UserProfile.parse(data)


def test_male_thirty_weight_loss():
    p = make_profile()
    assert basal_metabolic_rate(p) == pytest.approx(1730.0)
    assert total_daily_energy_expenditure(p) == pytest.approx(2681.5)
    assert daily_calorie_target(p) == 2182
    assert per_meal_calorie_target(p) == 727


def test_male_twentyfive_weight_loss():
    p = make_profile(age=25)
    assert basal_metabolic_rate(p) == pytest.approx(1755.0)
    assert total_daily_energy_expenditure(p) == pytest.approx(2720.25)
    assert daily_calorie_target(p) == 2220
    assert per_meal_calorie_target(p) == 740


def test_female_maintenance_sedentary():
    p = make_profile(gender="female", weight=60, height=165, age=40, activityLevel="sedentary", goals="maintenance")
    # 600 + 1031.25 - 200 - 161 = 1270.25 ; * 1.2 = 1524.3
    assert basal_metabolic_rate(p) == pytest.approx(1270.25)
    assert daily_calorie_target(p) == 1524
    assert per_meal_calorie_target(p) == 508


def test_other_sex_is_between_male_and_female():
    male = basal_metabolic_rate(make_profile(gender="male"))
    female = basal_metabolic_rate(make_profile(gender="female"))
    other = basal_metabolic_rate(make_profile(gender="other"))
    assert female < other < male


def test_goal_offsets():
    base = daily_calorie_target(make_profile(goals="maintenance"))
    assert daily_calorie_target(make_profile(goals="weight_gain")) == base + 500
    assert daily_calorie_target(make_profile(goals="muscle_gain")) == base + 300
    assert daily_calorie_target(make_profile(goals="weight_loss")) == base - 500


def test_rounds_half_up():
    # BMR 1500 * 1.375 = 2062.5 -> 2063
    p = make_profile(weight=70, height=160, age=30, activityLevel="light", goals="maintenance")
    assert basal_metabolic_rate(p) == pytest.approx(1555.0)
    p = make_profile(weight=64.5, height=160, age=30, activityLevel="light", goals="maintenance")
    assert basal_metabolic_rate(p) == pytest.approx(1500.0)
    assert daily_calorie_target(p) == 2063


@pytest.mark.parametrize(
    "reply,current,expected",
    [
        ("I'll make it lighter, targeting 320 calories.", 450, 320),
        ("I'll adjust the portions to around 500 kcal", None, 500),
        ("I'll cut 100 calories from your breakfast", 450, 350),
        ("I'll reduce it by about 150 calories", 600, 450),
        ("This version has 120 fewer calories", 500, 380),
        ("I'll add 200 calories with extra oats", 400, 600),
        ("I'll make it lighter", 450, None),
        ("I'll cut 100 calories", None, None),
        (None, 450, None),
        ("I'll lighten it by about 100 calories using egg whites.", 450, 350),
        ("I'll reduce the portion size by about 150 calories.", 500, 350),
        ("It's lighter by 80 kcal now", 400, 320),
        ("I'll bump it by 100 calories with more oats", 400, 500),
        ("I'll keep it at about 400 calories", 520, 400),
        ("That's around 450 calories", 500, None),
        ("I'll change it by about 100 calories", 450, None),
        ("I'll cut 100 calories and add 50 calories of protein", 450, None),
        ("I'll bring it to 300 calories or to 350 calories", 450, None),
    ],
)
def test_calorie_target_from_reply(reply, current, expected):
    assert calorie_target_from_reply(reply, current) == expected


def test_absolute_target_wins_over_relative():
    reply = "I'll cut about 100 calories, targeting 350 calories overall."
    assert calorie_target_from_reply(reply, 500) == 350


def test_decrease_never_negative():
    assert calorie_target_from_reply("I'll cut 300 calories", 200) == 0
