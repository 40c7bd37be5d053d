"""Configuration for the PJI assessment module."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Find and load .env file
_env_candidates = [
    Path(__file__).parent.parent / ".env",
    Path(__file__).parent.parent / ".env.template",
]

for env_path in _env_candidates:
    if env_path.exists():
        load_dotenv(env_path)
        break


class Config:
    """PJI assessment configuration."""

    # --- Acute vs Chronic ---
    # Symptom onset within this many days of surgery is acute
    ACUTE_WINDOW_DAYS: int = int(os.getenv("ACUTE_WINDOW_DAYS", "21"))

    # --- Serology Criteria ---
    # Serum CRP above this value (mg/L) counts as elevated
    SEROLOGY_CRP_THRESHOLD: float = float(os.getenv("SEROLOGY_CRP_THRESHOLD", "10.0"))
    # Serum ESR above this value (mm/hr) counts as elevated
    SEROLOGY_ESR_THRESHOLD: float = float(os.getenv("SEROLOGY_ESR_THRESHOLD", "30.0"))

    # --- Treatment Suggestions ---
    # Confidence shown alongside the static regimen table (percent)
    DEFAULT_TREATMENT_CONFIDENCE: int = int(os.getenv("DEFAULT_TREATMENT_CONFIDENCE", "94"))

    # --- Logging ---
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def get_log_level(cls) -> int:
        """Resolve LOG_LEVEL to a logging level, defaulting to INFO."""
        return getattr(logging, cls.LOG_LEVEL.upper(), logging.INFO)

    @classmethod
    def has_custom_serology_thresholds(cls) -> bool:
        """Check if the serology cutoffs differ from the reference values."""
        return cls.SEROLOGY_CRP_THRESHOLD != 10.0 or cls.SEROLOGY_ESR_THRESHOLD != 30.0


# Module-level convenience instance
config = Config()
