"""
doctor_ranking.py
Module for filtering and ranking the doctor directory by specialty and location.

Tiers are tried in order until one yields doctors:
  1  specialty + location
  2  location only
  3  specialty only
  4b General Medicine + location
  4  no filters
Every tier uses the same order: experience descending (unknown last), then name.
"""
import logging

logger = logging.getLogger(__name__)

MAX_RESULTS = 5
GENERAL_MEDICINE = "General Medicine"


def doctor_sort_key(doctor):
    return (doctor.experience is None, -(doctor.experience or 0), doctor.name or "")


def _loosely_matches(value, wanted):
    """Case-insensitive substring match in either direction."""
    value = (value or "").lower().strip()
    wanted = wanted.lower().strip()
    if not value:
        return False
    return wanted in value or value in wanted


def filter_doctors(directory, specialty=None, location=None, limit=MAX_RESULTS):
    doctors = directory
    if specialty:
        doctors = [d for d in doctors if _loosely_matches(d.specialty, specialty)]
    if location:
        doctors = [d for d in doctors if _loosely_matches(d.location, location)]
    return sorted(doctors, key=doctor_sort_key)[:limit]


def rank_doctors_with_tier(specialty, location, directory):
    """Return (tier, doctors); tier is None when the directory is empty."""
    directory = list(directory or [])
    specialty = (specialty or "").strip()
    location = (location or "").strip()

    tiers = [("1", specialty, location)]
    if location:
        tiers.append(("2", None, location))
    if specialty:
        tiers.append(("3", specialty, None))
    if location:
        tiers.append(("4b", GENERAL_MEDICINE, location))
    tiers.append(("4", None, None))

    for tier, tier_specialty, tier_location in tiers:
        doctors = filter_doctors(directory, tier_specialty, tier_location)
        if doctors:
            logger.info("Found %d doctors at tier %s (specialty=%r, location=%r)",
                        len(doctors), tier, tier_specialty, tier_location)
            return tier, doctors
    logger.info("No doctors found for specialty=%r, location=%r", specialty, location)
    return None, []


def rank_doctors(specialty, location, directory):
    """Ordered list of doctors; the caller treats the head as the best match."""
    return rank_doctors_with_tier(specialty, location, directory)[1]
