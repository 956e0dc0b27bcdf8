"""
Pourtrait Constants and Enums

Centralized enums, tuning constants, and static lookup tables shared by the
scoring, pairing, and drinking-window modules.
"""

from enum import Enum
from typing import Dict, Tuple


# =======================
# WINE ATTRIBUTE ENUMS
# =======================

class WineType(str, Enum):
    """Wine type categories."""
    RED = "red"
    WHITE = "white"
    ROSE = "rosé"
    SPARKLING = "sparkling"
    DESSERT = "dessert"
    FORTIFIED = "fortified"


class Body(str, Enum):
    """Body descriptors used in flavor profiles."""
    LIGHT = "light"
    MEDIUM = "medium"
    FULL = "full"


class ExperienceLevel(str, Enum):
    """Wine experience levels."""
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class DrinkingWindowStatus(str, Enum):
    """Lifecycle stage of a bottle relative to its drinking window."""
    TOO_YOUNG = "too_young"
    READY = "ready"
    PEAK = "peak"
    DECLINING = "declining"
    OVER_HILL = "over_hill"


class AlertType(str, Enum):
    """Drinking-window alerts surfaced alongside recommendations."""
    ENTERING_PEAK = "entering_peak"
    AT_PEAK = "at_peak"
    LEAVING_PEAK = "leaving_peak"
    URGENT = "urgent"
    OVER_HILL = "over_hill"


class FoodCategory(str, Enum):
    """Closed food taxonomy for pairing rules."""
    RED_MEAT = "red_meat"
    WHITE_FISH = "white_fish"
    SALMON = "salmon"
    POULTRY = "poultry"
    PORK = "pork"
    CHEESE = "cheese"
    PASTA = "pasta"
    SPICY_FOOD = "spicy_food"
    DESSERT = "dessert"
    GENERAL = "general"


class FoodIntensity(str, Enum):
    """Food intensity buckets."""
    LIGHT = "light"
    MEDIUM = "medium"
    INTENSE = "intense"


class SpiceLevel(str, Enum):
    NONE = "none"
    MILD = "mild"
    MEDIUM = "medium"
    HOT = "hot"


class Richness(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    RICH = "rich"


class RequestType(str, Enum):
    """Recommendation request types handled by the orchestrator."""
    TONIGHT = "tonight"
    PURCHASE = "purchase"
    PAIRING = "pairing"
    CONTEXTUAL = "contextual"


class PairingType(str, Enum):
    CLASSIC = "classic"
    REGIONAL = "regional"
    ADVENTUROUS = "adventurous"


class UrgencyFilter(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =======================
# ALGORITHM CONSTANTS
# =======================

class AlgorithmConstants:
    """
    Scoring constants.

    Empirically chosen weights carried over for behavioral compatibility.
    Treat them as configuration, not as a fitted model.
    """

    # PROFILE CONFIDENCE
    # Optional answers add at most 0.2; consistency adds at most 0.1
    OPTIONAL_ANSWER_WEIGHT = 0.2
    CONSISTENCY_BONUS_STEP = 0.05
    CONSISTENCY_BONUS_CAP = 0.1
    MAX_EDUCATIONAL_RECOMMENDATIONS = 5
    HIGH_FOOD_PAIRING_IMPORTANCE = 7

    # PREFERENCE SCORING
    CONTEXTUAL_BASE_SCORE = 0.5
    DEFAULT_URGENCY = 0.5  # Wine without a drinking window
    PURCHASE_URGENCY = 0.5

    # INTENSITY MATCH (wine vs food)
    INTENSITY_EXACT_MATCH = 1.0
    INTENSITY_ADJACENT_MATCH = 0.7
    INTENSITY_MISMATCH = 0.3

    # PAIRING
    MAX_WINES_PER_RULE = 2
    MAX_PRIMARY_RESULTS = 3
    MAX_ALTERNATIVES = 3
    MAX_ADVENTUROUS_PAIRINGS = 2
    ADVENTUROUS_STYLE_BONUS = 0.05

    # DRINKING WINDOW
    PREMIUM_REGION_BONUS_YEARS = 3
    PEAK_START_FRACTION = 0.3
    PEAK_END_FRACTION = 0.7
    MIN_PEAK_START_YEARS = 2
    MIN_PEAK_END_YEARS = 4
    WINDOW_ORDER_PENALTY = 0.25
    ENTERING_PEAK_ALERT_DAYS = 7
    LEAVING_PEAK_ALERT_DAYS = 30
    LEAVING_PEAK_TONIGHT_DAYS = 90
    DECLINING_URGENT_DAYS = 180

    # GAP ANALYSIS
    MIN_TYPE_PRESENCE = 1

    # EXTERNAL DATA
    EXTERNAL_CACHE_TTL_HOURS = 24
    MISSING_EXTERNAL_ID_PENALTY = 0.2
    DATA_ISSUE_PENALTY = 0.1
    MAX_ALCOHOL_CONTENT = 20.0
    MAX_AGING_POTENTIAL = 100

    # INPUT LIMITS
    MAX_FOOD_DESCRIPTION_LENGTH = 500

    # RETRY CONFIGURATION (LLM pairing channel)
    MAX_RETRIES = 3
    RETRY_MIN_WAIT_SECONDS = 2
    RETRY_MAX_WAIT_SECONDS = 10
    RETRY_MULTIPLIER = 1
    LLM_CACHE_TTL_HOURS = 24


# =======================
# DRINKING WINDOW TABLES
# =======================

# Fixed table, intentionally non-monotonic
STATUS_URGENCY: Dict[DrinkingWindowStatus, float] = {
    DrinkingWindowStatus.TOO_YOUNG: 0.1,
    DrinkingWindowStatus.READY: 0.6,
    DrinkingWindowStatus.PEAK: 0.9,
    DrinkingWindowStatus.DECLINING: 0.8,
    DrinkingWindowStatus.OVER_HILL: 0.3,
}

# Refined urgency bonuses: (days until latest, bonus, only when peak/declining)
URGENCY_PROXIMITY_BONUSES: Tuple[Tuple[int, float, bool], ...] = (
    (365, 0.1, False),
    (180, 0.1, False),
    (90, 0.2, True),
)

BASE_AGING_YEARS: Dict[WineType, int] = {
    WineType.RED: 8,
    WineType.WHITE: 4,
    WineType.SPARKLING: 6,
    WineType.DESSERT: 15,
    WineType.FORTIFIED: 20,
}
DEFAULT_AGING_YEARS = 5

MIN_AGING_YEARS: Dict[WineType, int] = {
    WineType.RED: 2,
    WineType.WHITE: 1,
    WineType.SPARKLING: 2,
    WineType.DESSERT: 3,
    WineType.FORTIFIED: 1,
}
DEFAULT_MIN_AGING_YEARS = 1

PREMIUM_AGING_REGIONS: Tuple[str, ...] = (
    "Bordeaux", "Burgundy", "Champagne", "Barolo", "Brunello di Montalcino",
    "Napa Valley", "Sonoma", "Willamette Valley", "Mosel", "Rheingau",
)


# =======================
# OCCASION AFFINITY
# =======================

# occasion -> (favored wine types, favored affinity, otherwise)
OCCASION_AFFINITY: Dict[str, Tuple[Tuple[WineType, ...], float, float]] = {
    "romantic dinner": ((WineType.RED,), 0.8, 0.6),
    "celebration": ((WineType.SPARKLING,), 1.0, 0.5),
    "casual dinner": ((), 0.8, 0.8),
    "business dinner": ((WineType.RED,), 0.9, 0.7),
    "holiday": ((WineType.RED, WineType.SPARKLING), 0.9, 0.6),
}
DEFAULT_OCCASION_AFFINITY = 0.5


# =======================
# WINE INTENSITY HEURISTICS
# =======================

INTENSE_RED_REGIONS: Tuple[str, ...] = ("Napa Valley", "Barossa Valley", "Mendoza", "Tuscany")
INTENSE_RED_VARIETALS: Tuple[str, ...] = ("Cabernet Sauvignon", "Syrah", "Malbec", "Nebbiolo")
MEDIUM_WHITE_VARIETALS: Tuple[str, ...] = ("Chardonnay", "Viognier", "Gewürztraminer")


# =======================
# SERVING GUIDE
# =======================

# wine type -> (serving temperature celsius, glass)
SERVING_GUIDE: Dict[WineType, Tuple[int, str]] = {
    WineType.RED: (16, "Bordeaux glass"),
    WineType.WHITE: (10, "White wine glass"),
    WineType.ROSE: (10, "White wine glass"),
    WineType.SPARKLING: (6, "Flute or tulip glass"),
    WineType.DESSERT: (8, "Dessert wine glass"),
    WineType.FORTIFIED: (16, "Port glass"),
}
SERVING_SIZE = "5 oz (150ml)"
DECANT_VINTAGE_CUTOFF = 2015
DECANT_OLD_RED_MINUTES = 60
DECANT_YOUNG_RED_MINUTES = 30
