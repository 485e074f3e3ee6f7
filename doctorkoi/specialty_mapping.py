"""
specialty_mapping.py
Module for mapping a disease to the medical specialty that should treat it.
"""
import logging
import re

from .disease_matching import find_catalog_disease

logger = logging.getLogger(__name__)

DEFAULT_SPECIALTY = "General Medicine"

# (substrings of a recorded specialist field, canonical label); first hit wins
CANONICAL_SPECIALTIES = [
    (("allergist",), "Allergist"),
    (("cardiologist",), "Cardiologist"),
    (("dermatologist",), "Dermatologist"),
    (("endocrinologist",), "Endocrinologist"),
    (("gastroenterologist",), "Gastroenterologist"),
    (("gynecologist", "gynae"), "Gynecologist"),
    (("hepatologist",), "Hepatologist"),
    (("neurologist",), "Neurologist"),
    (("pediatrician", "pediatric"), "Pediatrician"),
    (("pulmonologist",), "Pulmonologist"),
    (("rheumatologist",), "Rheumatologist"),
    (("otolaryngologist", "ent"), "ENT"),
    (("internal medicine", "internal medcine"), "Internal Medicine"),
    (("phlebologist",), "Phlebologist"),
    (("osteopathic",), "Osteopathic"),
]

# Disease-name keywords used when no specialist is recorded
DISEASE_KEYWORD_SPECIALTIES = [
    (("heart", "cardiac", "hypertension"), "Cardiologist"),
    (("skin", "rash", "acne", "psoriasis"), "Dermatologist"),
    (("stomach", "digestive", "gerd", "ulcer"), "Gastroenterologist"),
    (("hepatitis", "liver", "jaundice"), "Hepatologist"),
    (("diabetes", "thyroid", "hypoglycemia"), "Endocrinologist"),
    (("asthma", "pneumonia", "tuberculosis"), "Pulmonologist"),
    (("migraine", "vertigo", "paralysis"), "Neurologist"),
    (("arthritis", "osteoarthristis"), "Rheumatologist"),
    (("fever", "flu", "cold", "malaria", "dengue", "typhoid"), "Internal Medicine"),
]


def canonical_specialty(specialist):
    """Normalize a recorded specialist field; unknown labels are returned verbatim."""
    specialist = specialist.strip()
    lowered = specialist.lower()
    words = set(re.split(r"[^a-z]+", lowered))
    for needles, label in CANONICAL_SPECIALTIES:
        # short needles such as "ent" must be whole words
        if any((needle in words) if len(needle) <= 3 else (needle in lowered) for needle in needles):
            return label
    return specialist


def specialty_from_disease_name(disease_name):
    lowered = (disease_name or "").lower()
    for needles, label in DISEASE_KEYWORD_SPECIALTIES:
        if any(needle in lowered for needle in needles):
            return label
    return None


def map_to_specialty(disease_name, catalog):
    """Return a usable specialty label for the disease; never fails."""
    try:
        disease = find_catalog_disease(disease_name, catalog or [])
        if disease is not None and disease.specialist and disease.specialist.strip():
            return canonical_specialty(disease.specialist)
        specialty = specialty_from_disease_name(disease_name)
        if specialty:
            return specialty
        logger.debug("No specialist found for disease %r, using %s", disease_name, DEFAULT_SPECIALTY)
    except Exception as e:
        logger.warning("Error mapping disease to specialty: %s", e)
    return DEFAULT_SPECIALTY
