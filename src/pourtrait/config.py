"""
Pourtrait Configuration
Centralized settings for the engine
"""

import os

from dotenv import load_dotenv

load_dotenv()

# OpenAI Model Configuration (adventurous pairing channel)
OPENAI_MODEL = os.getenv("POURTRAIT_OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TEMPERATURE = 0.0  # Deterministic for consistent results
OPENAI_SEED = 42  # Fixed seed for reproducibility

# External wine-data sources
EXTERNAL_SOURCE_TIMEOUT_SECONDS = float(os.getenv("POURTRAIT_SOURCE_TIMEOUT", "5.0"))

# Currency applied when a price range omits one
DEFAULT_CURRENCY = "USD"


def source_setting(source_id: str, suffix: str, default: str = "") -> str:
    """Read a per-source setting such as POURTRAIT_VIVINO_API_KEY."""
    return os.getenv(f"POURTRAIT_{source_id.upper()}_{suffix}", default)
