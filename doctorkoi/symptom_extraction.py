"""
symptom_extraction.py
Module for extracting normalized symptom tokens from free text.

Order of attempts: keyword scan, then (for health-related text only) the LLM,
then a naive tokenizer. Extraction never raises.
"""
import logging
import re

from .intent_detection import is_health_related
from .models import LLMUnavailable

logger = logging.getLogger(__name__)

# Scanned in this order; the emitted token keeps the order of first hit
SYMPTOM_KEYWORDS = [
    "fever", "headache", "pain", "cough", "nausea", "vomiting", "diarrhea",
    "dizziness", "fatigue", "chest pain", "abdominal pain", "back pain",
    "rash", "itchy", "sore throat", "chills", "sweating", "weakness",
    "numbness", "tingling", "shortness of breath", "difficulty breathing",
    "stomach ache", "stomach pain", "joint pain", "muscle pain", "sneezing",
    "runny nose", "congestion", "sore", "ache", "burning", "swelling",
    "have fever", "got fever", "feeling fever", "high temperature"
]

FILLER_WORDS = ["have ", "got ", "feeling "]

STOP_WORDS = {
    "have", "got", "feeling", "i", "am", "my", "me", "the", "a", "an", "is", "are",
    "was", "were", "this", "that", "with", "and", "or", "but"
}

MAX_NAIVE_TOKENS = 3

SYMPTOM_EXTRACTION_SYSTEM_PROMPT = (
    "You are a medical assistant. Extract symptoms from patient descriptions. "
    "Return only a comma-separated list."
)


def _strip_fillers(phrase):
    for filler in FILLER_WORDS:
        phrase = phrase.replace(filler, "")
    return phrase.strip()


def extract_keyword_symptoms(user_input):
    """Return every keyword phrase found in the text, filler words removed, deduplicated."""
    text = (user_input or "").lower()
    found = []
    for keyword in SYMPTOM_KEYWORDS:
        if keyword in text:
            symptom = _strip_fillers(keyword)
            if symptom and symptom not in found:
                found.append(symptom)
    return found


def extract_llm_symptoms(user_input, llm):
    prompt = (
        f'Extract all medical symptoms mentioned in this text: "{user_input}". '
        "Return only a comma-separated list of symptoms. Be concise. "
        "Example: fever, headache, cough"
    )
    reply = llm.complete(SYMPTOM_EXTRACTION_SYSTEM_PROMPT, prompt, max_tokens=50, temperature=0.3)
    symptoms = []
    for part in reply.split(","):
        symptom = part.strip().strip(".").lower()
        if len(symptom) > 2 and symptom not in symptoms:
            symptoms.append(symptom)
    return symptoms


def extract_naive_symptoms(user_input):
    """Keep the first few non-stop-words as stand-in symptoms."""
    words = re.split(r"[\s,.!?\-]+", (user_input or "").lower())
    symptoms = []
    for word in words:
        word = word.strip()
        if len(word) > 2 and word not in STOP_WORDS and word not in symptoms:
            symptoms.append(word)
            if len(symptoms) >= MAX_NAIVE_TOKENS:
                break
    return symptoms


def extract_symptoms(user_input, llm=None):
    """Turn a message into a list of symptom tokens (possibly empty)."""
    symptoms = extract_keyword_symptoms(user_input)
    if symptoms or not is_health_related(user_input):
        logger.debug("Extracted symptoms from %r: %s", user_input, symptoms)
        return symptoms

    if llm is not None:
        try:
            symptoms = extract_llm_symptoms(user_input, llm)
            logger.debug("LLM extracted symptoms: %s", symptoms)
        except LLMUnavailable:
            logger.debug("LLM unavailable, skipping LLM symptom extraction")
        except Exception as e:
            logger.warning("LLM symptom extraction failed: %s", e)

    if not symptoms:
        symptoms = extract_naive_symptoms(user_input)
    logger.debug("Extracted symptoms from %r: %s", user_input, symptoms)
    return symptoms
