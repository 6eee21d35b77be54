# tests/test_sanitization.py
from mealplanner.services.sanitization import (
    MAX_CHAT_MESSAGE_LENGTH,
    sanitize_chat_message,
    sanitize_list,
    sanitize_profile,
)


def test_chat_message_keeps_basic_formatting():
    assert sanitize_chat_message("  <b>lighter</b> <em>please</em> ") == "<b>lighter</b> <em>please</em>"


def test_chat_message_strips_other_tags():
    assert sanitize_chat_message("<script>alert(1)</script>hi") == "alert(1)hi"
    assert sanitize_chat_message('<a href="x">link</a>') == "link"


def test_chat_message_escapes_quotes_and_bare_ampersands():
    assert sanitize_chat_message('mac & cheese "now"') == "mac &amp; cheese &quot;now&quot;"
    assert sanitize_chat_message("fish &amp; chips") == "fish &amp; chips"


def test_chat_message_length_cap():
    assert len(sanitize_chat_message("a" * (MAX_CHAT_MESSAGE_LENGTH + 50))) == MAX_CHAT_MESSAGE_LENGTH


def test_chat_message_empty():
    assert sanitize_chat_message("") == ""
    assert sanitize_chat_message(None) == ""
    assert sanitize_chat_message("   ") == ""


def test_sanitize_list():
    assert sanitize_list([" nuts ", "", None, "<b>", "<i>shell</i>fish"]) == ["nuts", "shellfish"]


def test_sanitize_list_keeps_plain_text():
    values = ["dairy/gluten free", "mac & cheese", "chef's choice"]
    assert sanitize_list(values) == values


def test_sanitize_list_is_idempotent():
    values = [" dairy/gluten free ", "mac & cheese", "<script>x</script> tofu"]
    once = sanitize_list(values)
    assert sanitize_list(once) == once
    assert once == ["dairy/gluten free", "mac & cheese", "x tofu"]


def test_sanitize_profile(profile):
    dirty = profile.model_copy(update={"allergies": [" <nuts> ", "tree <b>nuts</b>", ""]})
    clean = sanitize_profile(dirty)
    assert clean.allergies == ["tree nuts"]
    assert clean.preferences.disliked_foods == ["brussels sprouts"]
    assert dirty.allergies == [" <nuts> ", "tree <b>nuts</b>", ""]


def test_sanitize_profile_is_idempotent(profile):
    dirty = profile.model_copy(
        update={"dietary_restrictions": ["dairy/gluten free"], "allergies": ["mac & cheese"]}
    )
    once = sanitize_profile(dirty)
    twice = sanitize_profile(once)
    assert twice.dietary_restrictions == once.dietary_restrictions == ["dairy/gluten free"]
    assert twice.allergies == once.allergies == ["mac & cheese"]
    assert twice.preferences == once.preferences
