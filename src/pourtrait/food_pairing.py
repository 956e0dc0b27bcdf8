"""
FoodPairingMatcher: dish description to ranked inventory pairings

Pipeline:
1. Analyze the dish: category (keyword taxonomy, first match wins), cooking
   impact (given or inferred method), intensity score, flavor components.
2. Apply every classic rule for the category plus cuisine-specific regional
   rules; score eligible wines with the pairing weights, at most two per rule.
3. Ask the adventurous provider for extra picks outside the classic rules.
   They are merged in, never substituted for classic results.
4. Rank by score, then base confidence: top three are the answer, the next
   three are alternatives.

No matches is a valid empty answer with zero confidence.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np

from pourtrait.constants import (
    DECANT_OLD_RED_MINUTES,
    DECANT_VINTAGE_CUTOFF,
    DECANT_YOUNG_RED_MINUTES,
    SERVING_GUIDE,
    SERVING_SIZE,
    AlgorithmConstants,
    FoodCategory,
    FoodIntensity,
    PairingType,
    RequestType,
    Richness,
    SpiceLevel,
    WineType,
)
from pourtrait.error_handling import safe_execute
from pourtrait.preference_scorer import (
    PAIRING_WEIGHTS,
    PreferenceScorer,
    WineScore,
    estimate_wine_intensity,
    filter_candidates,
)
from pourtrait.schema import (
    CookingImpact,
    FoodAnalysis,
    FoodPairingRequest,
    FoodPairingResponse,
    InventoryRecommendation,
    PairingDetails,
    ServingRecommendations,
    TasteProfile,
    Wine,
)
from pourtrait.utils import contains_keyword, sanitize_text_input, unique_ordered

logger = logging.getLogger(__name__)

NO_PAIRINGS_REASONING = "No suitable pairings found in your inventory."


# =======================
# ANALYSIS TABLES
# =======================

# Order matters: first matching category wins
FOOD_CATEGORY_KEYWORDS: Tuple[Tuple[FoodCategory, Tuple[str, ...]], ...] = (
    (FoodCategory.RED_MEAT, ("beef", "steak", "lamb", "venison", "bison")),
    (FoodCategory.WHITE_FISH, ("sole", "halibut", "cod", "sea bass", "flounder")),
    (FoodCategory.SALMON, ("salmon", "trout", "arctic char")),
    (FoodCategory.POULTRY, ("chicken", "turkey", "duck", "goose", "quail")),
    (FoodCategory.PORK, ("pork", "ham", "bacon", "prosciutto")),
    (FoodCategory.CHEESE, ("cheese", "brie", "cheddar", "goat cheese", "blue cheese")),
    (FoodCategory.PASTA, ("pasta", "spaghetti", "linguine", "penne", "ravioli")),
    (FoodCategory.SPICY_FOOD, ("curry", "chili", "jalapeño", "sriracha", "wasabi")),
    (FoodCategory.DESSERT, ("chocolate", "cake", "tart", "ice cream", "crème brûlée")),
)

# method -> (intensity, flavors, wine style hint)
COOKING_METHOD_IMPACTS: Dict[str, Tuple[str, Tuple[str, ...], str]] = {
    "grilled": ("high", ("smoky", "charred"), "bold"),
    "roasted": ("medium-high", ("caramelized", "concentrated"), "medium-full"),
    "fried": ("high", ("rich", "fatty"), "crisp-acidic"),
    "steamed": ("low", ("clean", "delicate"), "light-fresh"),
    "braised": ("medium", ("tender", "sauce-integrated"), "medium"),
    "raw": ("low", ("pure", "delicate"), "crisp-mineral"),
}
UNKNOWN_COOKING_IMPACT = ("medium", ("balanced",), "versatile")

COOKING_METHOD_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("grilled", ("grilled", "bbq", "barbecue")),
    ("roasted", ("roasted", "baked")),
    ("fried", ("fried",)),
    ("steamed", ("steamed",)),
    ("braised", ("braised", "stewed")),
    ("raw", ("raw", "tartare", "carpaccio")),
)

SPICE_OFFSETS = {SpiceLevel.NONE: 0, SpiceLevel.MILD: 1, SpiceLevel.MEDIUM: 2, SpiceLevel.HOT: 3}
RICHNESS_OFFSETS = {Richness.LIGHT: 0, Richness.MEDIUM: 1, Richness.RICH: 2}

# Each group shifts intensity once, however many of its words appear
INTENSITY_KEYWORDS: Tuple[Tuple[Tuple[str, ...], int], ...] = (
    (("truffle", "foie gras"), 2),
    (("delicate", "light"), -2),
)

FLAVOR_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "tomato": ("acidic", "umami"),
    "cream": ("rich", "fatty"),
    "lemon": ("acidic", "citrus"),
    "garlic": ("pungent", "savory"),
    "herbs": ("aromatic", "fresh"),
    "mushroom": ("earthy", "umami"),
    "cheese": ("salty", "umami", "fatty"),
}

CUISINE_COMPONENTS: Dict[str, Tuple[str, ...]] = {
    "italian": ("herbs", "tomato", "olive oil"),
    "french": ("butter", "cream", "wine"),
    "asian": ("soy", "ginger", "sesame"),
    "indian": ("spices", "heat", "complex"),
    "mexican": ("chili", "lime", "cilantro"),
}

# cooking-style hint -> wine intensity the adventurous channel looks for
STYLE_HINT_INTENSITY: Dict[str, FoodIntensity] = {
    "bold": FoodIntensity.INTENSE,
    "medium-full": FoodIntensity.INTENSE,
    "medium": FoodIntensity.MEDIUM,
    "crisp-acidic": FoodIntensity.LIGHT,
    "light-fresh": FoodIntensity.LIGHT,
    "crisp-mineral": FoodIntensity.LIGHT,
}


# =======================
# PAIRING RULES
# =======================

@dataclass(frozen=True)
class PairingRule:
    """Static association between a food category and compatible wine types."""
    id: str
    food_category: Optional[FoodCategory]  # None: any category (regional rules)
    wine_types: Tuple[WineType, ...]
    confidence: float
    reasoning: str
    examples: Tuple[str, ...] = ()
    pairing_type: PairingType = PairingType.CLASSIC
    cuisine: Optional[str] = None
    triggers: Tuple[str, ...] = ()


CLASSIC_PAIRING_RULES: Tuple[PairingRule, ...] = (
    PairingRule(
        "red_meat", FoodCategory.RED_MEAT, (WineType.RED,), 0.9,
        "Tannins in red wine complement the proteins and fats in red meat",
        ("Cabernet Sauvignon with steak", "Syrah with lamb"),
    ),
    PairingRule(
        "white_fish", FoodCategory.WHITE_FISH, (WineType.WHITE, WineType.SPARKLING), 0.85,
        "Light, crisp wines won't overpower delicate fish flavors",
        ("Sauvignon Blanc with sole", "Champagne with halibut"),
    ),
    PairingRule(
        "salmon", FoodCategory.SALMON, (WineType.WHITE, WineType.RED, WineType.ROSE), 0.8,
        "Salmon's richness pairs well with fuller whites or light reds",
        ("Pinot Noir with salmon", "Chardonnay with grilled salmon"),
    ),
    PairingRule(
        "poultry", FoodCategory.POULTRY, (WineType.WHITE, WineType.RED), 0.8,
        "Poultry is versatile and works with both white and light red wines",
        ("Chardonnay with roast chicken", "Pinot Noir with duck"),
    ),
    PairingRule(
        "pork", FoodCategory.PORK, (WineType.WHITE, WineType.RED, WineType.ROSE), 0.75,
        "Pork's mild flavor allows for diverse wine pairings",
        ("Riesling with pork chops", "Pinot Noir with pork tenderloin"),
    ),
    PairingRule(
        "cheese", FoodCategory.CHEESE, (WineType.RED, WineType.WHITE, WineType.SPARKLING), 0.8,
        "Wine and cheese share complementary flavor compounds",
        ("Sauvignon Blanc with goat cheese", "Port with blue cheese"),
    ),
    PairingRule(
        "spicy_food", FoodCategory.SPICY_FOOD, (WineType.WHITE, WineType.ROSE, WineType.SPARKLING), 0.85,
        "Off-dry wines with good acidity help balance spicy heat",
        ("Riesling with Thai curry", "Gewürztraminer with Indian food"),
    ),
    PairingRule(
        "dessert", FoodCategory.DESSERT, (WineType.DESSERT, WineType.SPARKLING), 0.9,
        "Dessert wines should be sweeter than the dessert itself",
        ("Port with chocolate", "Moscato d'Asti with fruit tart"),
    ),
)

REGIONAL_PAIRING_RULES: Tuple[PairingRule, ...] = (
    PairingRule(
        "pasta_tomato", FoodCategory.PASTA, (WineType.RED,), 0.9,
        "High-acid Italian reds match the acidity of tomato sauces",
        ("Chianti with spaghetti al pomodoro",),
        PairingType.REGIONAL, "italian", ("tomato", "marinara", "bolognese", "arrabbiata"),
    ),
    PairingRule(
        "pasta_cream", FoodCategory.PASTA, (WineType.WHITE,), 0.85,
        "Rich, textured whites mirror the weight of cream sauces",
        ("Soave with fettuccine alfredo",),
        PairingType.REGIONAL, "italian", ("cream", "alfredo", "carbonara"),
    ),
    PairingRule(
        "coq_au_vin", FoodCategory.POULTRY, (WineType.RED,), 0.95,
        "Serve the same Burgundian red the dish was braised in",
        ("Red Burgundy with coq au vin",),
        PairingType.REGIONAL, "french", ("coq au vin",),
    ),
    PairingRule(
        "sushi", None, (WineType.WHITE, WineType.SPARKLING), 0.8,
        "Crisp whites and sparkling wines refresh the palate between bites of raw fish",
        ("Champagne with sushi", "Grüner Veltliner with sashimi"),
        PairingType.REGIONAL, "asian", ("sushi", "sashimi"),
    ),
)


# =======================
# ANALYSIS
# =======================

def categorize_food(description: str) -> FoodCategory:
    for category, keywords in FOOD_CATEGORY_KEYWORDS:
        if any(contains_keyword(description, k) for k in keywords):
            return category
    return FoodCategory.GENERAL


def infer_cooking_method(description: str) -> str:
    for method, keywords in COOKING_METHOD_KEYWORDS:
        if any(contains_keyword(description, k) for k in keywords):
            return method
    return "unknown"


def cooking_impact(method: Optional[str], description: str = "") -> CookingImpact:
    """Impact of a cooking method, inferring it from the description when absent."""
    method = (method or "").strip().lower() or infer_cooking_method(description)
    intensity, flavors, style = COOKING_METHOD_IMPACTS.get(method, UNKNOWN_COOKING_IMPACT)
    if method not in COOKING_METHOD_IMPACTS:
        method = "unknown"
    return CookingImpact(method=method, intensity=intensity, flavors=list(flavors), wine_style=style)


def food_intensity(
    description: str,
    spice_level: Optional[SpiceLevel] = None,
    richness: Optional[Richness] = None
) -> FoodIntensity:
    """
    Intensity bucket from spice, richness, and signaling keywords.

    Starts at 1; unknown richness counts as medium.
    """
    score = 1
    score += SPICE_OFFSETS[spice_level] if spice_level else 0
    score += RICHNESS_OFFSETS[richness or Richness.MEDIUM]
    score += sum(
        offset
        for keywords, offset in INTENSITY_KEYWORDS
        if any(contains_keyword(description, k) for k in keywords)
    )

    if score <= 2:
        return FoodIntensity.LIGHT
    if score <= 4:
        return FoodIntensity.MEDIUM
    return FoodIntensity.INTENSE


def flavor_components(description: str, cuisine: Optional[str] = None) -> List[str]:
    components = [
        flavor
        for keyword, flavors in FLAVOR_KEYWORDS.items()
        if contains_keyword(description, keyword)
        for flavor in flavors
    ]
    if cuisine:
        components.extend(CUISINE_COMPONENTS.get(cuisine.strip().lower(), ()))
    return unique_ordered(components)


def analyze_food(request: FoodPairingRequest) -> FoodAnalysis:
    description = sanitize_text_input(request.food, AlgorithmConstants.MAX_FOOD_DESCRIPTION_LENGTH)
    cuisine = request.cuisine.strip().lower() if request.cuisine else None

    return FoodAnalysis(
        description=description,
        category=categorize_food(description),
        intensity=food_intensity(description, request.spice_level, request.richness),
        cooking_impact=cooking_impact(request.cooking_method, description),
        flavor_components=flavor_components(description, cuisine),
        cuisine=cuisine,
    )


def matching_rules(analysis: FoodAnalysis) -> List[PairingRule]:
    """Classic rules for the category plus triggered regional rules for the cuisine."""
    rules = [r for r in CLASSIC_PAIRING_RULES if r.food_category == analysis.category]
    for rule in REGIONAL_PAIRING_RULES:
        if rule.cuisine != analysis.cuisine:
            continue
        if rule.food_category is not None and rule.food_category != analysis.category:
            continue
        if rule.triggers and not any(contains_keyword(analysis.description, t) for t in rule.triggers):
            continue
        rules.append(rule)
    return rules


# =======================
# SERVING
# =======================

def serving_recommendations(wine: Wine, analysis: Optional[FoodAnalysis] = None) -> ServingRecommendations:
    celsius, glass = SERVING_GUIDE.get(wine.type, SERVING_GUIDE[WineType.SPARKLING])

    decanting = None
    if wine.type == WineType.RED:
        old = wine.vintage is not None and wine.vintage < DECANT_VINTAGE_CUTOFF
        decanting = DECANT_OLD_RED_MINUTES if old else DECANT_YOUNG_RED_MINUTES

    timing = None
    if analysis is not None and analysis.cooking_impact.intensity == "high":
        timing = "Open 15 minutes before the meal"

    return ServingRecommendations(
        temperature_celsius=celsius,
        temperature_fahrenheit=round(celsius * 9 / 5 + 32),
        decanting_minutes=decanting,
        glass_type=glass,
        serving_size=SERVING_SIZE,
        timing=timing,
    )


def serving_tips(wine: Wine, analysis: Optional[FoodAnalysis] = None) -> List[str]:
    serving = serving_recommendations(wine, analysis)
    tips = [
        f"Serve {wine.name} at {serving.temperature_celsius}°C "
        f"({serving.temperature_fahrenheit}°F) in a {serving.glass_type.lower()}",
    ]
    if serving.decanting_minutes:
        tips.append(f"Decant for about {serving.decanting_minutes} minutes before serving")
    if serving.timing:
        tips.append(serving.timing)
    return tips


# =======================
# ADVENTUROUS CHANNEL
# =======================

@dataclass(frozen=True)
class AdventurousPick:
    wine_id: str
    score: float
    base_confidence: float
    reasoning: str


class AdventurousPairingProvider(Protocol):
    """Proposes pairings outside the classic rule table."""

    def propose(
        self,
        analysis: FoodAnalysis,
        candidates: Sequence[Wine],
        profile: TasteProfile,
        today: Optional[date] = None
    ) -> List[AdventurousPick]:
        ...


class GeneralFallbackProvider:
    """
    Heuristic adventurous channel.

    Picks wines whose estimated intensity suits the cooking style hint.
    A "versatile" hint gives no basis for a pick, so it proposes nothing.
    """

    def __init__(self, scorer: Optional[PreferenceScorer] = None):
        self.scorer = scorer or PreferenceScorer()

    def propose(
        self,
        analysis: FoodAnalysis,
        candidates: Sequence[Wine],
        profile: TasteProfile,
        today: Optional[date] = None
    ) -> List[AdventurousPick]:
        target = STYLE_HINT_INTENSITY.get(analysis.cooking_impact.wine_style)
        if target is None:
            return []

        picks = []
        for wine in candidates:
            if estimate_wine_intensity(wine.type, wine.region, wine.varietal) != target:
                continue
            scored = self.scorer.score_wine(
                wine,
                profile,
                weights=PAIRING_WEIGHTS,
                food_intensity=analysis.intensity,
                today=today,
            )
            picks.append(AdventurousPick(
                wine_id=wine.id,
                score=min(1.0, scored.score + AlgorithmConstants.ADVENTUROUS_STYLE_BONUS),
                base_confidence=scored.base_confidence,
                reasoning=(
                    f"An adventurous choice: its {target.value} style stands up to the "
                    f"{' and '.join(analysis.cooking_impact.flavors)} character of "
                    f"{analysis.cooking_impact.method} dishes"
                ),
            ))

        picks.sort(key=lambda p: (-p.score, -p.base_confidence))
        return picks[:AlgorithmConstants.MAX_ADVENTUROUS_PAIRINGS]


# =======================
# MATCHER
# =======================

@dataclass
class _Candidate:
    wine: Wine
    score: float
    base_confidence: float
    urgency: float
    pairing_type: PairingType
    explanation: str
    rule: Optional[PairingRule] = None
    reasons: Tuple[str, ...] = ()


class FoodPairingMatcher:
    """
    Matches a dish against the inventory.

    Usage:
        matcher = FoodPairingMatcher()
        response = matcher.generate_pairings(request, inventory, profile)
    """

    def __init__(
        self,
        scorer: Optional[PreferenceScorer] = None,
        adventurous_provider: Optional[AdventurousPairingProvider] = None
    ):
        self.scorer = scorer or PreferenceScorer()
        self.adventurous_provider = adventurous_provider or GeneralFallbackProvider(self.scorer)

    def generate_pairings(
        self,
        request: FoodPairingRequest,
        inventory: Sequence[Wine],
        profile: TasteProfile,
        today: Optional[date] = None
    ) -> FoodPairingResponse:
        """
        Pair a dish with wines from the inventory.

        Args:
            request: Dish description and optional cooking details
            inventory: Candidate pool
            profile: User taste profile
            today: Reference date for drinking windows

        Returns:
            FoodPairingResponse; empty with zero confidence when nothing fits
        """
        analysis = analyze_food(request)
        candidates = filter_candidates(inventory, request.context, today)

        chosen = self._classic_candidates(analysis, candidates, profile, today)
        chosen.update(self._adventurous_candidates(analysis, candidates, chosen, profile, today))

        ranked = sorted(chosen.values(), key=lambda c: (-c.score, -c.base_confidence))
        if not ranked:
            logger.info(f"No pairings for '{analysis.description}' ({analysis.category.value})")
            return FoodPairingResponse(
                reasoning=NO_PAIRINGS_REASONING,
                confidence=0.0,
                food_analysis=analysis,
            )

        primary_count = AlgorithmConstants.MAX_PRIMARY_RESULTS
        primary = [self._to_recommendation(c, analysis) for c in ranked[:primary_count]]
        alternatives = [
            self._to_recommendation(c, analysis)
            for c in ranked[primary_count:primary_count + AlgorithmConstants.MAX_ALTERNATIVES]
        ]

        confidence = round(float(np.mean([r.confidence for r in primary])), 2)
        logger.info(
            f"Pairing for '{analysis.description}': {len(primary)} pairings, "
            f"{len(alternatives)} alternatives, confidence {confidence:.2f}"
        )

        return FoodPairingResponse(
            pairings=primary,
            alternatives=alternatives,
            reasoning=self._reasoning(analysis, ranked[:primary_count]),
            confidence=confidence,
            food_analysis=analysis,
            serving_tips=serving_tips(ranked[0].wine, analysis),
            educational_notes=self._educational_notes(ranked[:primary_count]),
        )

    def _classic_candidates(
        self,
        analysis: FoodAnalysis,
        candidates: Sequence[Wine],
        profile: TasteProfile,
        today: Optional[date]
    ) -> Dict[str, _Candidate]:
        chosen: Dict[str, _Candidate] = {}

        for rule in matching_rules(analysis):
            scored: List[Tuple[WineScore, Wine]] = []
            for wine in candidates:
                if wine.type not in rule.wine_types:
                    continue
                score = safe_execute(
                    self.scorer.score_pairing,
                    None,
                    f"Scoring wine {wine.id} for rule {rule.id} failed"
                )(wine, profile, rule.confidence, analysis.intensity, today)
                if score is not None:
                    scored.append((score, wine))

            scored.sort(key=lambda pair: (-pair[0].score, -pair[0].base_confidence))
            for score, wine in scored[:AlgorithmConstants.MAX_WINES_PER_RULE]:
                current = chosen.get(wine.id)
                if current is not None and current.score >= score.score:
                    continue
                chosen[wine.id] = _Candidate(
                    wine=wine,
                    score=score.score,
                    base_confidence=score.base_confidence,
                    urgency=score.urgency,
                    pairing_type=rule.pairing_type,
                    explanation=rule.reasoning,
                    rule=rule,
                    reasons=tuple(score.reasons),
                )

        return chosen

    def _adventurous_candidates(
        self,
        analysis: FoodAnalysis,
        candidates: Sequence[Wine],
        chosen: Dict[str, _Candidate],
        profile: TasteProfile,
        today: Optional[date]
    ) -> Dict[str, _Candidate]:
        remaining = [w for w in candidates if w.id not in chosen]
        if not remaining:
            return {}

        try:
            picks = self.adventurous_provider.propose(analysis, remaining, profile, today)
        except Exception as e:
            logger.error(f"Adventurous pairing provider failed: {type(e).__name__} - {e}")
            return {}

        by_id = {w.id: w for w in remaining}
        extra = {}
        for pick in picks:
            wine = by_id.get(pick.wine_id)
            if wine is None:
                logger.warning(f"Adventurous provider suggested unknown wine {pick.wine_id}")
                continue
            extra[wine.id] = _Candidate(
                wine=wine,
                score=min(max(pick.score, 0.0), 1.0),
                base_confidence=min(max(pick.base_confidence, 0.0), 1.0),
                urgency=AlgorithmConstants.DEFAULT_URGENCY,
                pairing_type=PairingType.ADVENTUROUS,
                explanation=pick.reasoning,
            )
        return extra

    def _to_recommendation(self, candidate: _Candidate, analysis: FoodAnalysis) -> InventoryRecommendation:
        wine = candidate.wine
        reasoning = f"{wine.name}: {candidate.explanation}"
        if candidate.reasons:
            reasoning += f" ({'; '.join(candidate.reasons)})"

        note = None
        if candidate.rule is not None and candidate.rule.examples:
            note = f"Classic example: {candidate.rule.examples[0]}"

        return InventoryRecommendation(
            request_type=RequestType.PAIRING,
            wine_id=wine.id,
            reasoning=reasoning,
            confidence=candidate.score,
            urgency=candidate.urgency,
            serving=serving_recommendations(wine, analysis),
            pairing=PairingDetails(
                pairing_type=candidate.pairing_type,
                score=candidate.score,
                rule_confidence=candidate.base_confidence,
                explanation=candidate.explanation,
            ),
            educational_note=note,
        )

    @staticmethod
    def _reasoning(analysis: FoodAnalysis, top: Sequence[_Candidate]) -> str:
        dish = analysis.category.value.replace("_", " ")
        names = ", ".join(c.wine.name for c in top)
        return (
            f"For {analysis.description} ({dish}, {analysis.intensity.value} intensity, "
            f"{analysis.cooking_impact.method} preparation), your best matches are {names}."
        )

    @staticmethod
    def _educational_notes(top: Sequence[_Candidate]) -> List[str]:
        rules = unique_ordered(c.rule.id for c in top if c.rule is not None)
        by_id = {r.id: r for r in CLASSIC_PAIRING_RULES + REGIONAL_PAIRING_RULES}
        return [f"{by_id[rule_id].reasoning}." for rule_id in rules]
