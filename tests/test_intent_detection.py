import pytest

from doctorkoi.intent_detection import (
    classify_confirmation,
    extract_location,
    is_greeting,
    is_health_related,
    looks_like_location,
)


@pytest.mark.parametrize("text", ["hi", "Hello there", "hey!", "What's up doc"])
def test_greetings_are_detected(text):
    assert is_greeting(text)


@pytest.mark.parametrize("text", ["this hurts", "I have chills", "they said so"])
def test_greeting_words_inside_other_words_do_not_count(text):
    assert not is_greeting(text)


def test_health_keywords_match_anywhere_in_the_text():
    assert is_health_related("I've been coughing all night")
    assert is_health_related("my stomachache is bad")
    assert is_health_related("I feel homesick")
    assert not is_health_related("see you tomorrow")


def test_affirmative_is_checked_before_negative():
    assert classify_confirmation("yes please") == "affirmative"
    assert classify_confirmation("book it") == "affirmative"
    assert classify_confirmation("yes, that is not a problem, book it") == "affirmative"
    assert classify_confirmation("no thanks") == "negative"
    assert classify_confirmation("not now") == "negative"
    assert classify_confirmation("maybe later") is None


def test_short_replies_and_places_look_like_locations():
    assert looks_like_location("Dhanmondi")
    assert looks_like_location("I live in a small town near the river, far from everything you know")
    assert not looks_like_location("I have been having a really bad stomach for the past week or so")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Dhanmondi", "Dhanmondi"),
        ("I live in dhanmondi", "Dhanmondi"),
        ("my location is gulshan 2, dhaka", "Gulshan 2 Dhaka"),
        ("Location: uttara sector 7 road 12", "Uttara Sector 7"),
        ("in", "in"),
    ],
)
def test_extract_location(text, expected):
    assert extract_location(text) == expected
