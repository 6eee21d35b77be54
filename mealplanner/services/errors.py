# mealplanner/services/errors.py
"""
Error taxonomy shared by the meal planning services.

Every error carries the operation it happened in plus identifiers useful for
log correlation. ``user_message`` is the only text meant for end users and
never contains raw model output.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional


class MealPlannerError(Exception):
    code = "internal_error"
    status_code = 500
    default_user_message = "Something went wrong. Please try again."

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.context: Dict[str, Any] = dict(context or {})
        self.user_message = user_message or self.default_user_message

    def diagnostics(self) -> Dict[str, Any]:
        diag: Dict[str, Any] = {"operation": self.operation}
        diag.update(self.context)
        return diag

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "error": self.code,
            "message": self.user_message,
            "diagnostics": self.diagnostics(),
        }


class ValidationError(MealPlannerError):
    """Input (or a model payload) failed shape/range checks."""

    code = "validation_error"
    status_code = 400
    default_user_message = "Please check your input and try again."

    def __init__(
        self,
        message: str,
        *,
        errors: Optional[List[Dict[str, Any]]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.errors: List[Dict[str, Any]] = list(errors or [])

    @classmethod
    def from_pydantic(cls, exc, **kwargs: Any) -> "ValidationError":
        """Build from a pydantic ValidationError keeping only loc/msg/type."""
        errors = [
            {
                "loc": [str(p) for p in err.get("loc", ())],
                "msg": err.get("msg"),
                "type": err.get("type"),
            }
            for err in exc.errors()
        ]
        return cls(f"{len(errors)} validation error(s)", errors=errors, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data


class RateLimitError(MealPlannerError):
    code = "rate_limited"
    status_code = 429
    default_user_message = "Rate limit exceeded. Please try again later."

    def __init__(
        self,
        message: str,
        *,
        remaining: int = 0,
        reset_at: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.remaining = remaining
        self.reset_at = reset_at


class ModelError(MealPlannerError):
    """The completion call failed or returned unusable text."""

    code = "model_unavailable"
    status_code = 503
    default_user_message = "Service temporarily unavailable. Please try again later."


class ParseError(ModelError):
    code = "model_parse_error"


class MealGenerationError(ModelError):
    code = "generation_failed"


class NotFoundError(MealPlannerError):
    code = "not_found"
    status_code = 404
    default_user_message = "The requested item was not found."
