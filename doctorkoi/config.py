"""
config.py
Module for loading runtime settings from the environment (and an optional .env file).
"""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

GROQ_API_URL = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_MODEL = "llama-3.1-70b-versatile"
DEFAULT_CONSULTATION_FEE = 500.0


@dataclass
class Settings:
    groq_api_key: str = None
    llm_url: str = GROQ_API_URL
    llm_model: str = DEFAULT_MODEL
    llm_timeout: float = 10.0
    db_path: str = "doctorkoi.sqlite3"
    dataset_path: str = os.path.join("Datasets", "Original_Dataset.csv")
    seed_dir: str = "Datasets"
    session_idle_minutes: int = 30
    default_fee: float = DEFAULT_CONSULTATION_FEE
    log_level: str = "INFO"


def _env_float(name, default):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def get_settings():
    """Build settings from the current environment."""
    return Settings(
        groq_api_key=os.getenv("GROQ_API_KEY") or None,
        llm_url=os.getenv("DOCTORKOI_LLM_URL", GROQ_API_URL),
        llm_model=os.getenv("DOCTORKOI_LLM_MODEL", DEFAULT_MODEL),
        llm_timeout=_env_float("DOCTORKOI_LLM_TIMEOUT", 10.0),
        db_path=os.getenv("DOCTORKOI_DB_PATH", "doctorkoi.sqlite3"),
        dataset_path=os.getenv("DOCTORKOI_DATASET_PATH", os.path.join("Datasets", "Original_Dataset.csv")),
        seed_dir=os.getenv("DOCTORKOI_SEED_DIR", "Datasets"),
        session_idle_minutes=int(_env_float("DOCTORKOI_SESSION_IDLE_MINUTES", 30)),
        default_fee=_env_float("DOCTORKOI_DEFAULT_FEE", DEFAULT_CONSULTATION_FEE),
        log_level=os.getenv("DOCTORKOI_LOG_LEVEL", "INFO").upper(),
    )
