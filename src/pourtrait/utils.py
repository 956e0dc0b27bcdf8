"""
Utility functions for Pourtrait.

Logging setup, text normalization, and small numeric helpers.
"""

import logging
import re
import unicodedata
from typing import Iterable, List

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


# =======================
# INPUT SANITIZATION
# =======================

def sanitize_text_input(text: str, max_length: int = 500) -> str:
    """
    Normalize free-text input such as a food description.

    Truncates, drops non-printable characters, and collapses whitespace.

    Args:
        text: Raw user input
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFC", text[:max_length])
    text = ''.join(char for char in text if char.isprintable() or char in '\n\t')
    text = re.sub(r'\s+', ' ', text)

    return text.strip()


def contains_keyword(text: str, keyword: str) -> bool:
    """
    Case-insensitive whole-word match used by the keyword tables.

    Simple plurals count ("steaks" matches "steak"); words that merely
    contain the keyword do not ("graham" does not match "ham").
    """
    pattern = rf"\b{re.escape(keyword.lower())}(?:e?s)?\b"
    return re.search(pattern, text.lower()) is not None


def unique_ordered(values: Iterable[str]) -> List[str]:
    """Deduplicate while keeping order of first mention."""
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


# =======================
# NUMERIC HELPERS
# =======================

def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, handling zero division.

    Args:
        numerator: Number to divide
        denominator: Number to divide by
        default: Value to return if division by zero

    Returns:
        Result of division or default
    """
    if denominator == 0:
        logger.warning(f"Division by zero: {numerator}/{denominator}, returning {default}")
        return default
    return numerator / denominator


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    """Clamp a value into [lower, upper]."""
    return max(lower, min(upper, value))
