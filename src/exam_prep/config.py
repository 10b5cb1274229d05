"""Settings read from the environment (and an optional .env file)."""
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from exam_prep.db import DEFAULT_DB_PATH, DEFAULT_JSON_PATH, DEFAULT_STATE_KEY

STORAGE_BACKENDS = ("sqlite", "json")


@dataclass
class Settings:
    storage: str = "sqlite"  # sqlite | json
    db_path: str = DEFAULT_DB_PATH
    json_path: str = DEFAULT_JSON_PATH
    state_key: str = DEFAULT_STATE_KEY
    log_level: str = "WARNING"
    log_format: str = "text"  # text | json


def get_settings() -> Settings:
    load_dotenv()
    return Settings(
        storage=os.getenv("EXAM_PREP_STORAGE", "sqlite").lower(),
        db_path=os.getenv("EXAM_PREP_DB_PATH", DEFAULT_DB_PATH),
        json_path=os.getenv("EXAM_PREP_JSON_PATH", DEFAULT_JSON_PATH),
        state_key=os.getenv("EXAM_PREP_STATE_KEY", DEFAULT_STATE_KEY),
        log_level=os.getenv("EXAM_PREP_LOG_LEVEL", "WARNING"),
        log_format=os.getenv("EXAM_PREP_LOG_FORMAT", "text"),
    )
