"""
seed.py
Module for seeding the doctor directory and disease catalog from CSV files.
Each table is only seeded while it is empty.
"""
import csv
import logging
import os
import re

from .dataset_cache import read_symptom_dataset

logger = logging.getLogger(__name__)

DOCTORS_FILES = ["doctors_info_1.csv", "doctors_info_2.csv"]
DESCRIPTION_FILE = "disease_description.csv"
SPECIALIST_FILE = "Disease_Specialist.csv"


def _read_rows(path):
    if not os.path.exists(path):
        logger.info("Seed file %s not found, skipping", path)
        return []
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def _field(row, *names):
    for name in names:
        value = row.get(name)
        if value is not None and value.strip():
            return value.strip()
    return None


def parse_number(value):
    """First number in the text ("12 years" -> 12.0), or None."""
    if not value:
        return None
    match = re.search(r"\d+(?:\.\d+)?", value.replace(",", ""))
    return float(match.group()) if match else None


def seed_doctors(directory, seed_dir):
    if directory.count() > 0:
        return 0
    added = 0
    for filename in DOCTORS_FILES:
        for row in _read_rows(os.path.join(seed_dir, filename)):
            name = _field(row, "Doctor Name", "Name")
            if not name:
                continue
            directory.add_doctor(
                name=name,
                specialty=_field(row, "Speciality", "Specialty"),
                location=_field(row, "Location"),
                chamber=_field(row, "Chamber"),
                experience=parse_number(_field(row, "Experience")),
                consultation_fee=parse_number(_field(row, "Consultation Fee", "Fee")),
                education=_field(row, "Education"),
                concentration=_field(row, "Concentration"),
            )
            added += 1
    logger.info("Seeded %d doctors", added)
    return added


def seed_diseases(catalog, seed_dir, dataset_path=None):
    if catalog.count() > 0:
        return 0
    descriptions = {}
    for row in _read_rows(os.path.join(seed_dir, DESCRIPTION_FILE)):
        name = _field(row, "Disease")
        if name:
            descriptions[name.lower()] = (name, _field(row, "Description"))
    specialists = {}
    for row in _read_rows(os.path.join(seed_dir, SPECIALIST_FILE)):
        name = _field(row, "Disease")
        if name:
            specialists[name.lower()] = (name, _field(row, "Specialist"))

    symptoms = {}
    if dataset_path:
        for name, combinations in read_symptom_dataset(dataset_path).items():
            merged = []
            for combo in combinations:
                merged.extend(s for s in combo if s not in merged)
            symptoms[name.lower()] = (name, merged)

    keys = list(dict.fromkeys(list(descriptions) + list(specialists) + list(symptoms)))
    for key in keys:
        name = (descriptions.get(key) or specialists.get(key) or symptoms.get(key))[0]
        catalog.add_disease(
            name=name,
            description=descriptions.get(key, (None, None))[1],
            specialist=specialists.get(key, (None, None))[1],
            symptoms=symptoms.get(key, (None, []))[1],
        )
    logger.info("Seeded %d diseases", len(keys))
    return len(keys)


def seed_database(catalog, directory, seed_dir, dataset_path=None):
    """Seed both tables; failures are logged, seeding is not required to start."""
    try:
        seed_doctors(directory, seed_dir)
    except Exception as e:
        logger.warning("Could not load doctors: %s", e)
    try:
        seed_diseases(catalog, seed_dir, dataset_path)
    except Exception as e:
        logger.warning("Could not load diseases: %s", e)
