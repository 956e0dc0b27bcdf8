"""
Onboarding questionnaire metadata.

Static configuration: question kinds, required flags, scale bounds, choice
values, and the lookup tables that turn categorical answers into preferred
varietals and regions.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class QuestionKind(str, Enum):
    SINGLE_CHOICE = "single-choice"
    MULTIPLE_CHOICE = "multiple-choice"
    SCALE = "scale"


@dataclass(frozen=True)
class QuizQuestion:
    """Metadata for one questionnaire question."""
    id: str
    kind: QuestionKind
    required: bool
    options: Tuple[Any, ...] = ()
    min_value: Optional[float] = None
    max_value: Optional[float] = None


class QuestionIds:
    """Question identifiers to avoid string hardcoding."""

    EXPERIENCE_LEVEL = "experience-level"
    WINE_TYPES_TRIED = "wine-types-tried"
    DRINKING_FREQUENCY = "drinking-frequency"
    SWEETNESS_PREFERENCE = "sweetness-preference"
    BODY_PREFERENCE = "body-preference"
    FLAVOR_INTENSITY = "flavor-intensity"
    PRICE_RANGE = "price-range"
    OCCASION_PREFERENCES = "occasion-preferences"
    FOOD_PAIRING_IMPORTANCE = "food-pairing-importance"
    REGIONAL_INTEREST = "regional-interest"
    DISLIKED_CHARACTERISTICS = "disliked-characteristics"


QUIZ_QUESTIONS: Tuple[QuizQuestion, ...] = (
    QuizQuestion(
        QuestionIds.EXPERIENCE_LEVEL, QuestionKind.SINGLE_CHOICE, True,
        options=("beginner", "intermediate", "advanced"),
    ),
    QuizQuestion(
        QuestionIds.WINE_TYPES_TRIED, QuestionKind.MULTIPLE_CHOICE, True,
        options=(
            "red-light", "red-medium", "red-full", "white-crisp", "white-rich",
            "rosé", "sparkling", "dessert", "fortified", "none",
        ),
    ),
    QuizQuestion(
        QuestionIds.DRINKING_FREQUENCY, QuestionKind.SINGLE_CHOICE, False,
        options=("rarely", "monthly", "weekly", "daily"),
    ),
    QuizQuestion(
        QuestionIds.SWEETNESS_PREFERENCE, QuestionKind.SCALE, True,
        min_value=1, max_value=10,
    ),
    QuizQuestion(
        QuestionIds.BODY_PREFERENCE, QuestionKind.SINGLE_CHOICE, True,
        options=("light", "medium", "full", "varies"),
    ),
    QuizQuestion(
        QuestionIds.FLAVOR_INTENSITY, QuestionKind.SINGLE_CHOICE, True,
        options=("subtle", "moderate", "bold"),
    ),
    QuizQuestion(
        QuestionIds.PRICE_RANGE, QuestionKind.SINGLE_CHOICE, True,
        options=(
            {"min": 0, "max": 15},
            {"min": 15, "max": 30},
            {"min": 30, "max": 60},
            {"min": 60, "max": 150},
        ),
    ),
    QuizQuestion(
        QuestionIds.OCCASION_PREFERENCES, QuestionKind.MULTIPLE_CHOICE, False,
        options=(
            "everyday", "casual dinner", "romantic dinner", "business dinner",
            "celebration", "holiday",
        ),
    ),
    QuizQuestion(
        QuestionIds.FOOD_PAIRING_IMPORTANCE, QuestionKind.SCALE, False,
        min_value=1, max_value=10,
    ),
    QuizQuestion(
        QuestionIds.REGIONAL_INTEREST, QuestionKind.MULTIPLE_CHOICE, False,
        options=("france", "italy", "spain", "california", "australia"),
    ),
    QuizQuestion(
        QuestionIds.DISLIKED_CHARACTERISTICS, QuestionKind.MULTIPLE_CHOICE, False,
        options=("oaky", "tannic", "sweet", "high-alcohol", "buttery"),
    ),
)

QUESTIONS_BY_ID: Dict[str, QuizQuestion] = {q.id: q for q in QUIZ_QUESTIONS}
REQUIRED_QUESTION_IDS: Tuple[str, ...] = tuple(q.id for q in QUIZ_QUESTIONS if q.required)
OPTIONAL_QUESTION_IDS: Tuple[str, ...] = tuple(q.id for q in QUIZ_QUESTIONS if not q.required)

# Frequencies counted as "weekly or more"
FREQUENT_DRINKING: Tuple[str, ...] = ("weekly", "daily")


# =======================
# ANSWER LOOKUP TABLES
# =======================

# flavor-intensity -> (fruitiness, earthiness, oakiness, tannins)
RED_INTENSITY_PROFILES: Dict[str, Tuple[int, int, int, int]] = {
    "subtle": (6, 4, 3, 4),
    "moderate": (7, 5, 5, 6),
    "bold": (8, 7, 7, 8),
}

# flavor-intensity -> (fruitiness, acidity, oakiness)
WHITE_INTENSITY_PROFILES: Dict[str, Tuple[int, int, int]] = {
    "subtle": (6, 7, 2),
    "moderate": (7, 6, 4),
    "bold": (8, 5, 6),
}

RED_VARIETALS_BY_TYPE_TRIED: Dict[str, Tuple[str, ...]] = {
    "red-light": ("Pinot Noir", "Gamay", "Sangiovese"),
    "red-medium": ("Merlot", "Grenache", "Tempranillo"),
    "red-full": ("Cabernet Sauvignon", "Syrah", "Malbec"),
}

WHITE_VARIETALS_BY_TYPE_TRIED: Dict[str, Tuple[str, ...]] = {
    "white-crisp": ("Sauvignon Blanc", "Pinot Grigio", "Albariño"),
    "white-rich": ("Chardonnay", "Viognier", "White Rioja"),
}

SPARKLING_VARIETALS_BY_TYPE_TRIED: Dict[str, Tuple[str, ...]] = {
    "sparkling": ("Champagne", "Prosecco", "Cava", "Crémant"),
}

REGIONS_BY_INTEREST: Dict[str, Tuple[str, ...]] = {
    "france": ("Bordeaux", "Burgundy", "Rhône Valley"),
    "italy": ("Tuscany", "Piedmont", "Veneto"),
    "spain": ("Rioja", "Ribera del Duero"),
    "california": ("Napa Valley", "Sonoma County"),
    "australia": ("Barossa Valley", "McLaren Vale"),
}

# Intensity and body answers that describe the same style
INTENSITY_BODY_ALIGNMENT: Dict[str, str] = {
    "subtle": "light",
    "moderate": "medium",
    "bold": "full",
}

# experience level -> (min types tried, max types tried)
EXPERIENCE_BREADTH: Dict[str, Tuple[int, Optional[int]]] = {
    "beginner": (0, 3),
    "intermediate": (3, 6),
    "advanced": (5, None),
}
