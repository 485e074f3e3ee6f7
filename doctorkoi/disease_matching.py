"""
disease_matching.py
Module for matching a user's message and symptoms to a disease.

Strategies are tried in priority order and the first hit wins:
name match, weighted dataset match, catalog symptom match, LLM inference.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

from .dataset_cache import normalize_symptom
from .intent_detection import is_health_related
from .models import Disease, LLMUnavailable

logger = logging.getLogger(__name__)

MIN_NAME_WORD_LENGTH = 4
MATCH_BONUS = 2
LLM_DISEASE_SAMPLE = 50
MAX_INFERRED_NAME_LENGTH = 50
MORE_CONTEXT_MIN_SYMPTOMS = 2
MORE_CONTEXT_MIN_LENGTH = 30

AI_PREFIXES = ["Based on", "This could be", "This is likely", "The condition is", "You may have"]

DISEASE_INFERENCE_SYSTEM_PROMPT = (
    "You are a medical assistant. Identify diseases from patient descriptions. "
    "Always provide a specific disease name in **bold** format at the start of your "
    "response, followed by a brief explanation. Be accurate and helpful."
)


@dataclass
class MatchResult:
    disease: Optional[Disease] = None
    strategy: Optional[str] = None
    needs_more_context: bool = False

    @property
    def matched(self):
        return self.disease is not None


def find_catalog_disease(name, catalog):
    """Exact, case-insensitive lookup of a disease by name."""
    wanted = (name or "").strip().lower()
    for disease in catalog:
        if disease.name.lower() == wanted:
            return disease
    return None


def match_by_name(user_input, catalog):
    """Find a catalog disease whose name appears in the message (or vice versa)."""
    text = (user_input or "").lower().strip()
    if not text:
        return None
    for disease in catalog:
        name = disease.name.lower().strip()
        if not name:
            continue
        if name in text or text in name:
            return disease
        words = re.split(r"[\s\-_]+", name)
        if any(len(word) >= MIN_NAME_WORD_LENGTH and word in text for word in words):
            return disease
    return None


def symptoms_overlap(user_symptom, disease_symptom):
    if user_symptom in disease_symptom or disease_symptom in user_symptom:
        return True
    return bool(set(user_symptom.split()) & set(disease_symptom.split()))


def score_combination(user_symptoms, combination):
    """One point per user symptom that matches anything in the combination, plus the bonus."""
    matched = 0
    for user_symptom in user_symptoms:
        if any(symptoms_overlap(user_symptom, s) for s in combination):
            matched += 1
    return matched + matched * MATCH_BONUS


def normalize_user_symptoms(symptoms):
    normalized = []
    for symptom in symptoms:
        s = normalize_symptom(symptom)
        if len(s) > 2 and s not in normalized:
            normalized.append(s)
    return normalized


def match_by_dataset(symptoms, dataset):
    """Return the name of the best scoring disease in the dataset, or None."""
    user_symptoms = normalize_user_symptoms(symptoms)
    if not user_symptoms or not dataset:
        return None

    best_name, best_score = None, 0
    for disease_name, combinations in dataset.items():
        score = max((score_combination(user_symptoms, combo) for combo in combinations), default=0)
        # strict '>' keeps the first maximum on ties
        if score > best_score:
            best_name, best_score = disease_name, score

    if best_name:
        logger.info("Matched disease %r with score %d for symptoms %s", best_name, best_score, user_symptoms)
    return best_name


def match_by_catalog_symptoms(symptoms, catalog):
    """Score catalog diseases by their recorded present symptoms."""
    user_symptoms = [s.lower() for s in symptoms if s]
    if not user_symptoms:
        return None
    symptom_text = " ".join(user_symptoms)

    best, best_score = None, 0
    for disease in catalog:
        recorded = [s.lower() for s in disease.symptoms]
        name = disease.name.lower()
        if not recorded:
            score = 1 if (name in symptom_text or symptom_text in name) else 0
        else:
            score = sum(
                1 for user_symptom in user_symptoms
                if any(r in user_symptom or user_symptom in r for r in recorded)
            )
        if score > best_score:
            best, best_score = disease, score
    return best


def parse_disease_name(ai_response):
    """Pull the disease name out of the first line of an LLM reply."""
    lines = [line.strip() for line in (ai_response or "").splitlines() if line.strip()]
    if not lines:
        return ""
    first_line = lines[0]
    for prefix in AI_PREFIXES:
        if first_line.lower().startswith(prefix.lower()):
            first_line = first_line[len(prefix):].strip()
    first_line = first_line.replace("**", "").replace("*", "").strip()
    name = re.split(r"[.:!?]", first_line)[0].strip()
    return name[:MAX_INFERRED_NAME_LENGTH].strip()


def infer_with_llm(user_input, symptoms, catalog, llm):
    """Ask the LLM for the most likely disease; resolve it against the catalog when possible."""
    symptom_list = ", ".join(symptoms) if symptoms else "various symptoms"
    prompt = (
        f'User description: "{user_input}". '
        f"Symptoms mentioned: {symptom_list}. "
        "Identify the most likely disease or medical condition from the user's description. "
        "Provide a brief explanation (2-3 sentences) about the condition. "
        "IMPORTANT: Start your response with the disease name in bold format: **Disease Name**. "
        "Then provide a brief explanation. Be specific and accurate."
    )
    known = [d.name for d in catalog[:LLM_DISEASE_SAMPLE]]
    if known:
        prompt += f" Common diseases in our database include: {', '.join(known)}. Try to match to one of these if possible."

    reply = llm.complete(DISEASE_INFERENCE_SYSTEM_PROMPT, prompt, max_tokens=250, temperature=0.7)
    name = parse_disease_name(reply)
    if not name:
        return None

    lowered = name.lower()
    for disease in catalog:
        catalog_name = disease.name.lower()
        if catalog_name and (catalog_name in lowered or lowered in catalog_name):
            return disease
    return Disease(name=name, description=reply)


def match_disease(user_input, symptoms, catalog, dataset, llm=None):
    """Run the strategy cascade. Each strategy failing is logged and skipped."""
    catalog = list(catalog or [])

    try:
        disease = match_by_name(user_input, catalog)
        if disease:
            logger.info("Matched disease by name: %s", disease.name)
            return MatchResult(disease, "name")
    except Exception as e:
        logger.warning("Disease name matching failed: %s", e)

    if symptoms:
        try:
            name = match_by_dataset(symptoms, dataset)
            if name:
                disease = find_catalog_disease(name, catalog) or Disease(name=name)
                return MatchResult(disease, "dataset")
        except Exception as e:
            logger.warning("Dataset disease matching failed: %s", e)

        try:
            disease = match_by_catalog_symptoms(symptoms, catalog)
            if disease:
                logger.info("Matched disease by catalog symptoms: %s", disease.name)
                return MatchResult(disease, "catalog")
        except Exception as e:
            logger.warning("Catalog symptom matching failed: %s", e)

    if llm is not None and is_health_related(user_input):
        try:
            disease = infer_with_llm(user_input, symptoms, catalog, llm)
            if disease:
                logger.info("LLM inferred disease: %s", disease.name)
                return MatchResult(disease, "llm")
        except LLMUnavailable:
            logger.debug("LLM unavailable, skipping disease inference")
        except Exception as e:
            logger.warning("LLM disease inference failed: %s", e)

    needs_more = len(symptoms) >= MORE_CONTEXT_MIN_SYMPTOMS or len(user_input or "") > MORE_CONTEXT_MIN_LENGTH
    return MatchResult(needs_more_context=needs_more)
