"""
Chat history entries passed to the assistant.
"""
from __future__ import annotations

from typing import Literal

from mealplanner.models.profile import CamelModel


class ChatMessage(CamelModel):
    role: Literal["user", "assistant"]
    content: str
