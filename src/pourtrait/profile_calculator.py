"""
ProfileCalculator: questionnaire answers to taste profile

Turns the ordered onboarding answers into a fully populated TasteProfile:
- Experience level (explicit, or inferred from breadth and frequency)
- Red / white / sparkling flavor sub-profiles from fixed rule tables
- General preferences (budget, occasions, food pairing importance)
- A confidence score rewarding completeness and internal consistency

Everything here is a pure function of the answer list. Timestamps never
influence the result and no answer is ever coerced into an exception;
validation is a separate step.
"""

import logging
from numbers import Real
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from pourtrait.constants import AlgorithmConstants, Body, ExperienceLevel
from pourtrait.error_handling import DataValidationError, QuizValidationError
from pourtrait.questionnaire import (
    EXPERIENCE_BREADTH,
    FREQUENT_DRINKING,
    INTENSITY_BODY_ALIGNMENT,
    OPTIONAL_QUESTION_IDS,
    QUESTIONS_BY_ID,
    RED_INTENSITY_PROFILES,
    RED_VARIETALS_BY_TYPE_TRIED,
    REGIONS_BY_INTEREST,
    REQUIRED_QUESTION_IDS,
    SPARKLING_VARIETALS_BY_TYPE_TRIED,
    WHITE_INTENSITY_PROFILES,
    WHITE_VARIETALS_BY_TYPE_TRIED,
    QuestionIds,
    QuestionKind,
)
from pourtrait.schema import (
    FlavorProfile,
    GeneralPreferences,
    PriceRange,
    QuizResponse,
    QuizValidationResult,
    TastePreferencesUpdate,
    TasteProfile,
)
from pourtrait.utils import clamp, safe_divide, unique_ordered

logger = logging.getLogger(__name__)

EDUCATIONAL_BY_LEVEL: Dict[ExperienceLevel, List[str]] = {
    ExperienceLevel.BEGINNER: [
        "Start with approachable wines like Pinot Noir or Sauvignon Blanc",
        "Try wines from different regions to discover your preferences",
    ],
    ExperienceLevel.INTERMEDIATE: [
        "Explore lesser-known grape varieties to expand your palate",
        "Try comparing wines from the same grape but different regions",
    ],
    ExperienceLevel.ADVANCED: [
        "Focus on specific producers and vintages to deepen your expertise",
        "Explore the aging potential of wines you enjoy",
        "Discover natural and biodynamic wines for new perspectives",
    ],
}

BODY_TIPS = {
    "light": "Look for wines from cooler climates, which tend to be lighter and more elegant",
    "full": "Wines from warmer regions typically offer fuller body and riper fruit",
}

INTENSITY_TIPS = {
    "subtle": "Old World wines from Europe often show more subtle, earthy characteristics",
    "bold": "New World wines often showcase bold, fruit-forward flavors",
}

PAIRING_TIPS = [
    "Learn the basics of food and wine pairing: match intensity and consider acidity",
    "Experiment with regional pairings, since dishes and wines from the same place often complement each other",
]


# =======================
# ANSWER ACCESS
# =======================

def _is_answered(value: Any) -> bool:
    return value is not None and value != "" and value != []


def _numeric(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, Real):
        return None
    return float(value)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def collect_answers(responses: Iterable[QuizResponse]) -> Dict[str, Any]:
    """Map question id to value. A later answer to the same question wins."""
    answers: Dict[str, Any] = {}
    for response in responses:
        if _is_answered(response.value):
            answers[response.question_id] = response.value
        else:
            answers.pop(response.question_id, None)
    return answers


def _choice(answers: Mapping[str, Any], question_id: str) -> Optional[str]:
    value = answers.get(question_id)
    return value if isinstance(value, str) else None


def _types_tried(answers: Mapping[str, Any]) -> List[str]:
    tried = unique_ordered(str(t) for t in _as_list(answers.get(QuestionIds.WINE_TYPES_TRIED)))
    return [t for t in tried if t != "none"]


def _sweetness(answers: Mapping[str, Any]) -> Optional[float]:
    sweetness = _numeric(answers.get(QuestionIds.SWEETNESS_PREFERENCE))
    return None if sweetness is None else clamp(sweetness, 1.0, 10.0)


def _body_answer(answers: Mapping[str, Any]) -> Body:
    body = _choice(answers, QuestionIds.BODY_PREFERENCE)
    if body in (Body.LIGHT.value, Body.MEDIUM.value, Body.FULL.value):
        return Body(body)
    return Body.MEDIUM  # "varies" or unanswered


# =======================
# PROFILE RULES
# =======================

def infer_experience_level(answers: Mapping[str, Any]) -> ExperienceLevel:
    """
    Experience level from an explicit answer, else from breadth and frequency.

    Fewer than 2 distinct types tried gives beginner; 5 or more types with a
    weekly-or-more habit gives advanced; anything else is intermediate.
    """
    explicit = _choice(answers, QuestionIds.EXPERIENCE_LEVEL)
    if explicit in [level.value for level in ExperienceLevel]:
        return ExperienceLevel(explicit)

    tried = _types_tried(answers)
    if "none" in _as_list(answers.get(QuestionIds.WINE_TYPES_TRIED)) or len(tried) < 2:
        return ExperienceLevel.BEGINNER

    if len(tried) >= 5 and _choice(answers, QuestionIds.DRINKING_FREQUENCY) in FREQUENT_DRINKING:
        return ExperienceLevel.ADVANCED

    return ExperienceLevel.INTERMEDIATE


def build_red_preferences(answers: Mapping[str, Any]) -> FlavorProfile:
    profile = {
        "fruitiness": 6, "earthiness": 5, "oakiness": 5,
        "acidity": 6, "tannins": 6, "sweetness": 2,
    }

    sweetness = _sweetness(answers)
    if sweetness is not None:
        profile["sweetness"] = max(1, sweetness - 2)

    intensity = _choice(answers, QuestionIds.FLAVOR_INTENSITY)
    if intensity in RED_INTENSITY_PROFILES:
        fruit, earth, oak, tannins = RED_INTENSITY_PROFILES[intensity]
        profile.update(fruitiness=fruit, earthiness=earth, oakiness=oak, tannins=tannins)

    tried = _types_tried(answers)
    varietals = [v for t in tried for v in RED_VARIETALS_BY_TYPE_TRIED.get(t, ())]

    interests = [str(i) for i in _as_list(answers.get(QuestionIds.REGIONAL_INTEREST))]
    regions = [r for i in interests for r in REGIONS_BY_INTEREST.get(i, ())]

    return FlavorProfile(
        **profile,
        body=_body_answer(answers),
        preferred_regions=unique_ordered(regions),
        preferred_varietals=unique_ordered(varietals),
        disliked_characteristics=_disliked(answers),
    )


def build_white_preferences(answers: Mapping[str, Any]) -> FlavorProfile:
    profile = {
        "fruitiness": 6, "earthiness": 3, "oakiness": 3,
        "acidity": 7, "tannins": 1, "sweetness": 3,
    }

    sweetness = _sweetness(answers)
    if sweetness is not None:
        profile["sweetness"] = sweetness

    intensity = _choice(answers, QuestionIds.FLAVOR_INTENSITY)
    if intensity in WHITE_INTENSITY_PROFILES:
        fruit, acidity, oak = WHITE_INTENSITY_PROFILES[intensity]
        profile.update(fruitiness=fruit, acidity=acidity, oakiness=oak)

    tried = _types_tried(answers)
    varietals = [v for t in tried for v in WHITE_VARIETALS_BY_TYPE_TRIED.get(t, ())]

    return FlavorProfile(
        **profile,
        body=_body_answer(answers),
        preferred_varietals=unique_ordered(varietals),
        disliked_characteristics=_disliked(answers),
    )


def build_sparkling_preferences(answers: Mapping[str, Any]) -> FlavorProfile:
    sweetness = _sweetness(answers)

    tried = _types_tried(answers)
    varietals = [v for t in tried for v in SPARKLING_VARIETALS_BY_TYPE_TRIED.get(t, ())]

    return FlavorProfile(
        fruitiness=6,
        earthiness=3,
        oakiness=2,
        acidity=8,
        tannins=1,
        sweetness=min(5, sweetness) if sweetness is not None else 2,
        body=Body.LIGHT,
        preferred_varietals=unique_ordered(varietals),
        disliked_characteristics=_disliked(answers),
    )


def _disliked(answers: Mapping[str, Any]) -> List[str]:
    return unique_ordered(str(d) for d in _as_list(answers.get(QuestionIds.DISLIKED_CHARACTERISTICS)))


def build_general_preferences(answers: Mapping[str, Any]) -> GeneralPreferences:
    price_range = PriceRange()
    raw_range = answers.get(QuestionIds.PRICE_RANGE)
    if isinstance(raw_range, Mapping):
        try:
            price_range = PriceRange.model_validate(raw_range)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed price range answer {raw_range!r}: {e}")

    importance = _numeric(answers.get(QuestionIds.FOOD_PAIRING_IMPORTANCE))
    if importance is None or not 1 <= importance <= 10:
        importance = 5

    return GeneralPreferences(
        price_range=price_range,
        occasion_preferences=unique_ordered(
            str(o) for o in _as_list(answers.get(QuestionIds.OCCASION_PREFERENCES))
        ),
        food_pairing_importance=importance,
    )


# =======================
# CONFIDENCE
# =======================

def consistency_bonus(answers: Mapping[str, Any], experience: ExperienceLevel) -> float:
    """Up to 0.1 for answers that agree with each other."""
    bonus = 0.0
    step = AlgorithmConstants.CONSISTENCY_BONUS_STEP

    intensity = _choice(answers, QuestionIds.FLAVOR_INTENSITY)
    body = _choice(answers, QuestionIds.BODY_PREFERENCE)
    if intensity in INTENSITY_BODY_ALIGNMENT and INTENSITY_BODY_ALIGNMENT[intensity] == body:
        bonus += step

    # Breadth is checked against a stated level only
    if QuestionIds.EXPERIENCE_LEVEL in answers and QuestionIds.WINE_TYPES_TRIED in answers:
        breadth = len(_types_tried(answers))
        low, high = EXPERIENCE_BREADTH[experience.value]
        if breadth >= low and (high is None or breadth <= high):
            bonus += step

    return min(bonus, AlgorithmConstants.CONSISTENCY_BONUS_CAP)


def calculate_confidence(answers: Mapping[str, Any], experience: ExperienceLevel) -> float:
    """
    Confidence in [0, 1] from completeness plus consistency.

    required share + optional share x 0.2 + consistency bonus (max 0.1)
    """
    answered_required = sum(1 for qid in REQUIRED_QUESTION_IDS if qid in answers)
    answered_optional = sum(1 for qid in OPTIONAL_QUESTION_IDS if qid in answers)

    score = safe_divide(answered_required, len(REQUIRED_QUESTION_IDS))
    score += safe_divide(answered_optional, len(OPTIONAL_QUESTION_IDS)) * AlgorithmConstants.OPTIONAL_ANSWER_WEIGHT
    score += consistency_bonus(answers, experience)

    return clamp(score)


def educational_recommendations(
    answers: Mapping[str, Any],
    experience: ExperienceLevel,
    general: GeneralPreferences
) -> List[str]:
    """Templated learning suggestions, at most five."""
    tips = list(EDUCATIONAL_BY_LEVEL[experience])
    tried = _types_tried(answers)

    if experience == ExperienceLevel.BEGINNER and "sparkling" not in tried:
        tips.append("Explore sparkling wines, which are great for celebrations and as aperitifs")
    if experience == ExperienceLevel.INTERMEDIATE and len(tried) < 6:
        tips.append("Branch out into styles you haven't tried yet, such as dessert or fortified wines")

    body = _choice(answers, QuestionIds.BODY_PREFERENCE)
    if body in BODY_TIPS:
        tips.append(BODY_TIPS[body])

    intensity = _choice(answers, QuestionIds.FLAVOR_INTENSITY)
    if intensity in INTENSITY_TIPS:
        tips.append(INTENSITY_TIPS[intensity])

    if general.food_pairing_importance >= AlgorithmConstants.HIGH_FOOD_PAIRING_IMPORTANCE:
        tips.extend(PAIRING_TIPS)

    return tips[:AlgorithmConstants.MAX_EDUCATIONAL_RECOMMENDATIONS]


def calculate_taste_profile(
    responses: Iterable[QuizResponse],
    user_id: Optional[str] = None
) -> TasteProfile:
    """
    Build a TasteProfile from questionnaire answers.

    Args:
        responses: Ordered answers; unknown ids are ignored here
        user_id: Owner of the profile

    Returns:
        Fully populated TasteProfile
    """
    answers = collect_answers(responses)
    experience = infer_experience_level(answers)
    general = build_general_preferences(answers)

    profile = TasteProfile(
        user_id=user_id,
        experience_level=experience,
        red_wine_preferences=build_red_preferences(answers),
        white_wine_preferences=build_white_preferences(answers),
        sparkling_preferences=build_sparkling_preferences(answers),
        general_preferences=general,
        confidence_score=calculate_confidence(answers, experience),
        educational_recommendations=educational_recommendations(answers, experience, general),
    )

    logger.debug(
        f"Taste profile computed: level={experience.value}, "
        f"confidence={profile.confidence_score:.2f}, answers={len(answers)}"
    )
    return profile


# =======================
# VALIDATION
# =======================

def _validate_value(question_id: str, value: Any) -> Optional[str]:
    question = QUESTIONS_BY_ID[question_id]

    if question.kind == QuestionKind.SCALE:
        number = _numeric(value)
        if number is None or not question.min_value <= number <= question.max_value:
            return (
                f"Value for {question_id} must be a number between "
                f"{question.min_value:g} and {question.max_value:g}"
            )
        return None

    if question.kind == QuestionKind.SINGLE_CHOICE:
        if value not in question.options:
            return f"Invalid option for {question_id}: {value!r}"
        return None

    if not isinstance(value, (list, tuple)):
        return f"Value for {question_id} must be a list of options"
    invalid = [v for v in value if v not in question.options]
    if invalid:
        return f"Invalid options for {question_id}: {invalid!r}"
    return None


def validate_quiz_responses(responses: Iterable[QuizResponse]) -> QuizValidationResult:
    """
    Check answers against the question table.

    Unknown question ids are errors, not skipped.
    """
    errors: List[str] = []
    answered = set()

    for response in responses:
        if response.question_id not in QUESTIONS_BY_ID:
            errors.append(f"Unknown question: {response.question_id}")
            continue
        if not _is_answered(response.value):
            continue
        answered.add(response.question_id)
        error = _validate_value(response.question_id, response.value)
        if error:
            errors.append(error)

    missing = [qid for qid in REQUIRED_QUESTION_IDS if qid not in answered]

    return QuizValidationResult(
        is_valid=not errors and not missing,
        missing_required=missing,
        errors=errors,
    )


def ensure_valid_responses(responses: Iterable[QuizResponse]) -> List[QuizResponse]:
    """Validate and return the responses, raising QuizValidationError on failure."""
    responses = list(responses)
    result = validate_quiz_responses(responses)
    if not result.is_valid:
        raise QuizValidationError(result)
    return responses


def validate_taste_preferences_update(patch: Mapping[str, Any]) -> TastePreferencesUpdate:
    """
    Validate a partial preferences patch.

    Only the sections and fields present are checked; nothing else is required.
    """
    try:
        return TastePreferencesUpdate.model_validate(dict(patch))
    except ValidationError as e:
        raise DataValidationError(f"Invalid taste preferences update: {e}") from e


def apply_taste_preferences_update(profile: TasteProfile, patch: Mapping[str, Any]) -> TasteProfile:
    """Return a new profile with a validated partial patch merged in."""
    update = validate_taste_preferences_update(patch)
    merged = profile.model_dump()

    for section, values in update.model_dump(exclude_none=True).items():
        merged[section] = {**merged[section], **values}

    return TasteProfile.model_validate(merged)
