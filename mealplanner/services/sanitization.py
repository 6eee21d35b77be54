# mealplanner/services/sanitization.py
"""
Input sanitization for chat messages and free-text profile fields.

Messages are echoed into prompts and back to the web client, so markup is
reduced to a small safe subset before anything else sees it.
"""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Iterable, List

if TYPE_CHECKING:
    from mealplanner.models.profile import UserProfile

_SAFE_TAGS = ("b", "i", "em", "strong", "u", "br", "p")
_UNSAFE_TAG_RE = re.compile(
    r"<(?!/?(?:%s)\b)[^>]*>" % "|".join(_SAFE_TAGS), flags=re.IGNORECASE
)
_BARE_AMP_RE = re.compile(r"&(?!(?:amp|lt|gt|quot|#x27|#x2F);)")

_ANY_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")

MAX_CHAT_MESSAGE_LENGTH = 2000


def sanitize_chat_message(content: str) -> str:
    """Trim, drop all tags but basic formatting, and escape quotes/ampersands."""
    if not content or not isinstance(content, str):
        return ""
    cleaned = content.strip()
    if not cleaned:
        return ""
    cleaned = _UNSAFE_TAG_RE.sub("", cleaned)
    cleaned = _BARE_AMP_RE.sub("&amp;", cleaned)
    cleaned = cleaned.replace('"', "&quot;").replace("'", "&#x27;")
    return cleaned[:MAX_CHAT_MESSAGE_LENGTH].strip()


def sanitize_list(values: Iterable[str]) -> List[str]:
    """Strip markup from free-text entries; plain text passes through unchanged."""
    out = []
    for v in values or []:
        if not isinstance(v, str):
            continue
        v = _WHITESPACE_RE.sub(" ", _ANY_TAG_RE.sub("", v)).strip()
        if v:
            out.append(v)
    return out


def sanitize_profile(profile: UserProfile) -> UserProfile:
    """Strip markup from the free-text list fields of a profile before prompt rendering."""
    prefs = profile.preferences.model_copy(
        update={
            "cuisine_types": sanitize_list(profile.preferences.cuisine_types),
            "disliked_foods": sanitize_list(profile.preferences.disliked_foods),
        }
    )
    return profile.model_copy(
        update={
            "dietary_restrictions": sanitize_list(profile.dietary_restrictions),
            "allergies": sanitize_list(profile.allergies),
            "preferences": prefs,
        }
    )
