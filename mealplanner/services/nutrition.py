# mealplanner/services/nutrition.py
"""
Calorie targets via the Mifflin-St Jeor equation.

Pure functions only: inputs are validated upstream by the profile models.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from mealplanner.models.profile import UserProfile

MEALS_PER_DAY = 3

# sex-specific constant added to the weight/height/age terms
SEX_CONSTANTS: Dict[str, float] = {
    "male": 5.0,
    "female": -161.0,
    # no published constant; midpoint of the two above
    "other": -78.0,
}

ACTIVITY_MULTIPLIERS: Dict[str, float] = {
    "sedentary": 1.2,
    "light": 1.375,
    "moderate": 1.55,
    "active": 1.725,
    "very_active": 1.9,
}

GOAL_OFFSETS: Dict[str, int] = {
    "weight_loss": -500,
    "maintenance": 0,
    "weight_gain": 500,
    "muscle_gain": 300,
}


def basal_metabolic_rate(profile: UserProfile) -> float:
    return (
        10 * profile.weight_kg
        + 6.25 * profile.height_cm
        - 5 * profile.age
        + SEX_CONSTANTS[profile.sex]
    )


def total_daily_energy_expenditure(profile: UserProfile) -> float:
    return basal_metabolic_rate(profile) * ACTIVITY_MULTIPLIERS[profile.activity_level]


def daily_calorie_target(profile: UserProfile) -> int:
    """TDEE adjusted by the goal offset, rounded half-up like the web client."""
    target = total_daily_energy_expenditure(profile) + GOAL_OFFSETS[profile.goal]
    return _round_half_up(target)


def per_meal_calorie_target(profile: UserProfile) -> int:
    return _round_half_up(daily_calorie_target(profile) / MEALS_PER_DAY)


def _round_half_up(value: float) -> int:
    # round() uses banker's rounding; 2.5 must become 3
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


_CAL = r"(?:k?cal(?:orie)?s?)"
_QUALIFIER = r"(?:(?:about|around|roughly|approximately|nearly|~)\s*)?"
_AMOUNT = rf"{_QUALIFIER}(\d{{2,4}})\s*{_CAL}\b"

_DECREASE_WORDS = (
    r"cut(?:ting)?|reduc(?:e|ed|ing)|lower(?:ed|ing)?|lighten(?:ed|ing)?|lighter|"
    r"remov(?:e|ed|ing)|sav(?:e|ed|ing)|trim(?:med|ming)?|drop(?:ped|ping)?|"
    r"shav(?:e|ed|ing)|decreas(?:e|ed|ing)|slash(?:ed|ing)?"
)
_INCREASE_WORDS = r"add(?:ed|ing)?|increas(?:e|ed|ing)|boost(?:ed|ing)?|rais(?:e|ed|ing)|bump(?:ed|ing)?|heavier"
_DIRECTION_RE = re.compile(rf"\b(?:({_DECREASE_WORDS})|({_INCREASE_WORDS}))\b", re.IGNORECASE)
_CLAUSE_BREAK_RE = re.compile(r"[.;:!?,]|\band\b|\bbut\b", re.IGNORECASE)

# "targeting 320 calories", "to around 450 kcal", "keep it at 400 cal"
_ABSOLUTE_RE = re.compile(
    rf"\b(?:target(?:ing)?|aim(?:ing)?\s+for|to|at|under)\s+{_AMOUNT}", re.IGNORECASE
)
# "lighten it by about 100 calories"; direction comes from the clause's verb
_BY_RE = re.compile(rf"\bby\s+{_AMOUNT}", re.IGNORECASE)
# "cut 100 calories", "add about 150 kcal"
_VERB_AMOUNT_RE = re.compile(
    rf"\b(?:({_DECREASE_WORDS})|({_INCREASE_WORDS}))\s+{_AMOUNT}", re.IGNORECASE
)
# "100 fewer calories", "150 calories less"
_FEWER_RE = re.compile(
    rf"\b{_QUALIFIER}(\d{{2,4}})\s*(?:(?:fewer|less)\s+{_CAL}|{_CAL}\s+(?:less|lighter|fewer))\b",
    re.IGNORECASE,
)
# "150 more calories", "200 extra kcal"
_MORE_RE = re.compile(
    rf"\b{_QUALIFIER}(\d{{2,4}})\s*(?:(?:more|extra|additional)\s+{_CAL}|{_CAL}\s+more)\b",
    re.IGNORECASE,
)


def _clause_direction(text: str) -> Optional[int]:
    """Sign of the last direction word in the clause ending ``text``."""
    clause = _CLAUSE_BREAK_RE.split(text)[-1]
    sign = None
    for m in _DIRECTION_RE.finditer(clause):
        sign = -1 if m.group(1) else 1
    return sign


def _relative_changes(reply: str) -> List[Tuple[Tuple[int, int], Optional[int]]]:
    """(span, signed delta) per relative phrase; delta None when direction is unclear."""
    found: List[Tuple[Tuple[int, int], Optional[int]]] = []

    def add(span: Tuple[int, int], delta: Optional[int]) -> None:
        if not any(s < span[1] and span[0] < e for (s, e), _ in found):
            found.append((span, delta))

    for m in _BY_RE.finditer(reply):
        sign = _clause_direction(reply[: m.start()])
        add(m.span(), sign * int(m.group(1)) if sign else None)
    for m in _VERB_AMOUNT_RE.finditer(reply):
        add(m.span(), (-1 if m.group(1) else 1) * int(m.group(3)))
    for m in _FEWER_RE.finditer(reply):
        add(m.span(), -int(m.group(1)))
    for m in _MORE_RE.finditer(reply):
        add(m.span(), int(m.group(1)))
    return found


def calorie_target_from_reply(
    reply: Optional[str], current_calories: Optional[float] = None
) -> Optional[int]:
    """
    Derive the calorie target an assistant reply promised for a meal.

    An absolute target ("targeting 320 calories", "to around 450 kcal") wins.
    Otherwise a relative change ("cut 100 calories", "lighten it by about
    100 calories") is applied to ``current_calories``. Returns None when the
    reply names no calorie change or the phrasing is ambiguous (unclear
    direction, conflicting amounts), so callers fall back to the per-meal
    target.
    """
    if not reply:
        return None

    changes = _relative_changes(reply)
    absolutes = {
        int(m.group(1))
        for m in _ABSOLUTE_RE.finditer(reply)
        # "reduce it by about 100 calories" never reads as a target
        if not any(s <= m.start(1) < e for (s, e), _ in changes)
    }
    if absolutes:
        return absolutes.pop() if len(absolutes) == 1 else None

    deltas = {delta for _, delta in changes}
    if current_calories is None or len(deltas) != 1 or None in deltas:
        return None
    return max(0, _round_half_up(current_calories + deltas.pop()))
