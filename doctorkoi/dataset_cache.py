"""
dataset_cache.py
Module for the process-wide symptom-combination dataset used for disease scoring.

The cache is built at most once. Concurrent first callers are serialized by a
double-checked lock; after the build every read is lock-free.
"""
import csv
import logging
import os
import threading
from types import MappingProxyType

logger = logging.getLogger(__name__)

MAX_SYMPTOM_COLUMNS = 17


def normalize_symptom(symptom):
    return (symptom or "").lower().replace("_", " ").strip()


def read_symptom_dataset(path):
    """Read a Disease,Symptom_1..Symptom_17 CSV into {disease: [combination, ...]}."""
    combinations = {}
    if not os.path.exists(path):
        logger.warning("Symptom dataset not found at %s", path)
        return combinations

    row_count = 0
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        for row in reader:
            row_count += 1
            disease = (row.get("Disease") or "").strip()
            if not disease:
                continue
            symptoms = []
            for i in range(1, MAX_SYMPTOM_COLUMNS + 1):
                symptom = normalize_symptom(row.get(f"Symptom_{i}"))
                if symptom:
                    symptoms.append(symptom)
            if symptoms:
                combinations.setdefault(disease, []).append(symptoms)

    logger.info("Loaded %d diseases with %d symptom combinations from %s",
                len(combinations), row_count, path)
    return combinations


def _freeze(combinations):
    return MappingProxyType({
        disease: tuple(tuple(combo) for combo in combos)
        for disease, combos in combinations.items()
    })


class SymptomDatasetCache:
    """Lazily built, read-only mapping of disease name to symptom combinations."""

    def __init__(self, loader):
        self._loader = loader
        self._lock = threading.Lock()
        self._data = None

    @classmethod
    def from_csv(cls, path):
        return cls(lambda: read_symptom_dataset(path))

    @classmethod
    def from_mapping(cls, combinations):
        return cls(lambda: combinations)

    @property
    def loaded(self):
        return self._data is not None

    def get(self):
        data = self._data
        if data is not None:
            return data
        with self._lock:
            if self._data is None:
                try:
                    self._data = _freeze(self._loader() or {})
                except Exception as e:
                    logger.warning("Error loading symptom dataset: %s", e)
                    self._data = MappingProxyType({})
            return self._data
