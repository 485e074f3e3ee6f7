"""
intent_detection.py
Module for classifying user replies: greetings, health talk, yes/no answers and locations.
"""
import re
import string

GREETING_KEYWORDS = ["hi", "hello", "hey", "greetings", "whatsapp", "what's up"]

# Smaller "distress" set used to decide whether a message is about health at all
HEALTH_KEYWORDS = [
    "sick", "unwell", "ache", "pain", "fever", "hurt", "cough", "symptom", "ill",
    "feeling", "headache", "nausea", "dizzy", "tired", "fatigue"
]

AFFIRMATIVE_KEYWORDS = ["yes", "yeah", "yep", "sure", "ok", "okay", "book", "appointment"]
NEGATIVE_KEYWORDS = ["no", "not", "nope", "decline", "cancel"]

LOCATION_PLACES = [
    "dhanmondi", "gulshan", "banani", "uttara", "mirpur", "mohammadpur", "motijheel",
    "dhaka", "chittagong", "chattogram", "sylhet", "rajshahi", "khulna", "barisal",
    "rangpur", "mymensingh", "comilla", "narayanganj", "gazipur", "savar", "bogra"
]
LOCATION_PHRASES = [
    "i live in", "i'm from", "i am from", "i'm in", "i am in", "located", "address",
    "area", "city", "my location", "location"
]
# Replies shorter than this are assumed to answer "where are you located?"
SHORT_REPLY_LENGTH = 50

LOCATION_PREFIXES = [
    "my location is", "my address is", "i live in", "i live at", "i am from", "i'm from",
    "i am in", "i'm in", "i stay in", "i am at", "i'm at", "location:", "location is",
    "located in", "located at", "from", "in", "at", "near", "around"
]


def _normalize(text):
    return (text or "").lower().strip()


def _contains_word(text, keyword):
    """Match a keyword on word boundaries so 'hi' does not fire inside 'this'."""
    return re.search(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?![a-z0-9])", text) is not None


def is_greeting(user_input):
    text = _normalize(user_input)
    return any(_contains_word(text, kw) for kw in GREETING_KEYWORDS)


def is_health_related(user_input):
    text = _normalize(user_input)
    # plain substring: "stomachache" and "homesick" both count
    return any(kw in text for kw in HEALTH_KEYWORDS)


def is_affirmative(user_input):
    text = _normalize(user_input)
    return any(_contains_word(text, kw) for kw in AFFIRMATIVE_KEYWORDS)


def is_negative(user_input):
    text = _normalize(user_input)
    return any(_contains_word(text, kw) for kw in NEGATIVE_KEYWORDS)


def classify_confirmation(user_input):
    """Return 'affirmative', 'negative' or None for a booking confirmation reply.

    An affirmative word wins ("yes, that is not a problem").
    """
    if is_affirmative(user_input):
        return "affirmative"
    if is_negative(user_input):
        return "negative"
    return None


def looks_like_location(user_input):
    """Heuristic: known place, location phrasing, or simply a short reply."""
    text = _normalize(user_input)
    if any(place in text for place in LOCATION_PLACES):
        return True
    if any(phrase in text for phrase in LOCATION_PHRASES):
        return True
    return len(text) < SHORT_REPLY_LENGTH


def extract_location(user_input):
    """Strip leading location phrasing and title-case up to three words."""
    raw = (user_input or "").strip()
    cleaned = raw
    stripped = True
    while stripped:
        stripped = False
        lowered = cleaned.lower()
        for prefix in LOCATION_PREFIXES:
            if lowered == prefix or lowered.startswith(prefix + " ") or (prefix.endswith(":") and lowered.startswith(prefix)):
                cleaned = cleaned[len(prefix):].strip()
                stripped = True
                break
    words = [w.strip(string.punctuation) for w in cleaned.split()]
    words = [w for w in words if w][:3]
    location = " ".join(w[0].upper() + w[1:].lower() for w in words)
    if not location:
        location = raw
    return location
