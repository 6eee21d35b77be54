# mealplanner/services/response_parser.py
"""
Two-stage gate for language-model output: parse, then validate.

The model is an untrusted producer. ``parse_model_json`` only removes a
surrounding fenced code block before handing the text to ``json.loads``;
``validate_payload`` checks the result against a strict pydantic shape.
Both stages fail terminally: there is no partial acceptance.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Type, Union

from pydantic import BaseModel, TypeAdapter, ValidationError as PydanticValidationError

from mealplanner.models.responses import (
    MealPayload,
    MealPlanPayload,
    ModificationActionPayload,
    ShoppingListPayload,
)
from mealplanner.services.errors import ParseError, ValidationError

logger = logging.getLogger(__name__)

Shape = Union[Type[BaseModel], TypeAdapter]

SHAPES: Dict[str, Shape] = {
    "meal_plan": MealPlanPayload,
    "meal": MealPayload,
    "shopping_list": ShoppingListPayload,
    "modification_action": ModificationActionPayload,
}


def strip_code_fence(text: str) -> str:
    """Remove a leading ```/```json line and a trailing ``` line if present."""
    cleaned = (text or "").strip()
    if not cleaned.startswith("```"):
        return cleaned
    lines = cleaned.split("\n")
    lines.pop(0)
    if lines and lines[-1].strip() == "```":
        lines.pop()
    elif lines and lines[-1].rstrip().endswith("```"):
        # closing fence glued to the last JSON line
        lines[-1] = lines[-1].rstrip()[:-3]
    return "\n".join(lines).strip()


def parse_model_json(text: str, operation: str = "parse") -> Any:
    """Parse model text into JSON data or raise ParseError."""
    cleaned = strip_code_fence(text)
    if not cleaned:
        raise ParseError("Empty response from model", operation=operation)
    try:
        return json.loads(cleaned)
    except (json.JSONDecodeError, RecursionError) as exc:
        logger.debug(
            "Unparseable model output for %s (len=%d): %.200s",
            operation,
            len(cleaned),
            cleaned,
        )
        raise ParseError(
            "Invalid response format from AI",
            operation=operation,
            context={"position": getattr(exc, "pos", None)},
        ) from exc


def validate_payload(data: Any, shape: Union[str, Shape], operation: str = "validate") -> Any:
    """Validate parsed data against a named or explicit shape."""
    schema = SHAPES[shape] if isinstance(shape, str) else shape
    try:
        if isinstance(schema, TypeAdapter):
            return schema.validate_python(data)
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        logger.debug("Model payload failed %s validation: %s", operation, exc.errors())
        raise ValidationError.from_pydantic(
            exc, operation=operation, context={"source": "model"}
        ) from exc


def parse_and_validate(text: str, shape: Union[str, Shape], operation: str) -> Any:
    return validate_payload(parse_model_json(text, operation), shape, operation)
