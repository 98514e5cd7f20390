"""Runtime settings read from the environment and an optional ``.env`` file."""
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

DEFAULT_DB_PATH = str(Path.home() / ".recitation_review" / "academy.db")


@dataclass
class Settings:
    db_path: str = field(default_factory=lambda: os.getenv("RECITATION_DB_PATH", DEFAULT_DB_PATH))
    log_level: str = field(default_factory=lambda: os.getenv("RECITATION_LOG_LEVEL", "WARNING").upper())


def load_settings() -> Settings:
    # variables already in the environment win over the .env file
    load_dotenv(find_dotenv(usecwd=True))
    return Settings()
