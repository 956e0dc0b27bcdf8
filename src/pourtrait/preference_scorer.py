"""
PreferenceScorer: one wine against one taste profile

Scores a candidate in [0, 1] starting from a base confidence (a pairing
rule's stated confidence, or 0.5 for pure contextual scoring) and adding
small capped bonuses:
- region and varietal preference matches
- drinking-window urgency
- occasion affinity
- budget fit
- food intensity match (pairing variant)
- gap novelty (purchase variant)

The final clamp to 1.0 is authoritative; intermediate values are never
renormalized.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Sequence

import numpy as np

from pourtrait.constants import (
    DEFAULT_OCCASION_AFFINITY,
    INTENSE_RED_REGIONS,
    INTENSE_RED_VARIETALS,
    MEDIUM_WHITE_VARIETALS,
    OCCASION_AFFINITY,
    AlgorithmConstants,
    DrinkingWindowStatus,
    FoodIntensity,
    UrgencyFilter,
    WineType,
)
from pourtrait.drinking_window import assess_window
from pourtrait.schema import (
    FlavorProfile,
    GapAnalysis,
    PriceRange,
    RecommendationContext,
    TasteProfile,
    Wine,
    WineSuggestion,
)
from pourtrait.utils import clamp, safe_divide

logger = logging.getLogger(__name__)

_INTENSITY_ORDER = [FoodIntensity.LIGHT, FoodIntensity.MEDIUM, FoodIntensity.INTENSE]


@dataclass(frozen=True)
class ScoringWeights:
    """Bonus weights for one scoring variant."""
    region_bonus: float
    varietal_bonus: float
    urgency_weight: float = 0.0
    intensity_weight: float = 0.0
    occasion_weight: float = 0.0
    budget_weight: float = 0.0
    novelty_weight: float = 0.0


PAIRING_WEIGHTS = ScoringWeights(region_bonus=0.1, varietal_bonus=0.1, urgency_weight=0.05, intensity_weight=0.1)
CONTEXTUAL_WEIGHTS = ScoringWeights(
    region_bonus=0.2, varietal_bonus=0.2, urgency_weight=0.1, occasion_weight=0.1, budget_weight=0.1
)
PURCHASE_WEIGHTS = ScoringWeights(
    region_bonus=0.2, varietal_bonus=0.2, occasion_weight=0.1, budget_weight=0.1, novelty_weight=0.1
)


@dataclass
class WineScore:
    """Score of one candidate with the pieces that produced it."""
    score: float
    base_confidence: float
    urgency: float
    status: Optional[DrinkingWindowStatus] = None
    reasons: List[str] = field(default_factory=list)

    @property
    def reasoning(self) -> str:
        return "; ".join(self.reasons)


# =======================
# COMPONENT HELPERS
# =======================

def _matches(value: str, preferred: Sequence[str]) -> bool:
    needle = value.strip().lower()
    return bool(needle) and any(needle == p.strip().lower() for p in preferred)


def region_preferred(region: str, profile: FlavorProfile) -> bool:
    return _matches(region, profile.preferred_regions)


def matching_varietals(varietals: Sequence[str], profile: FlavorProfile) -> List[str]:
    return [v for v in varietals if _matches(v, profile.preferred_varietals)]


def occasion_affinity(occasion: Optional[str], wine_type: WineType) -> float:
    """Affinity of a wine type for an occasion from the fixed table."""
    if not occasion:
        return DEFAULT_OCCASION_AFFINITY
    entry = OCCASION_AFFINITY.get(occasion.strip().lower())
    if entry is None:
        return DEFAULT_OCCASION_AFFINITY
    favored, favored_score, other_score = entry
    return favored_score if wine_type in favored else other_score


def budget_fit(price: Optional[float], price_range: Optional[PriceRange]) -> Optional[float]:
    """1 - |price - midpoint| / width, clamped to [0, 1]; None when unknown."""
    if price is None or price_range is None:
        return None
    if price_range.width == 0:
        return 1.0 if price == price_range.min else 0.0
    distance = abs(price - price_range.midpoint)
    return clamp(1.0 - safe_divide(distance, price_range.width))


def estimate_wine_intensity(wine_type: WineType, region: str, varietals: Sequence[str]) -> FoodIntensity:
    """Rough body/intensity estimate used to match food intensity."""
    if wine_type == WineType.RED:
        if any(r.lower() in region.lower() for r in INTENSE_RED_REGIONS):
            return FoodIntensity.INTENSE
        if any(_matches(v, INTENSE_RED_VARIETALS) for v in varietals):
            return FoodIntensity.INTENSE
        return FoodIntensity.MEDIUM
    if wine_type == WineType.WHITE:
        if any(_matches(v, MEDIUM_WHITE_VARIETALS) for v in varietals):
            return FoodIntensity.MEDIUM
        return FoodIntensity.LIGHT
    return FoodIntensity.MEDIUM


def intensity_match(wine_intensity: FoodIntensity, food_intensity: FoodIntensity) -> float:
    gap = abs(_INTENSITY_ORDER.index(wine_intensity) - _INTENSITY_ORDER.index(food_intensity))
    if gap == 0:
        return AlgorithmConstants.INTENSITY_EXACT_MATCH
    if gap == 1:
        return AlgorithmConstants.INTENSITY_ADJACENT_MATCH
    return AlgorithmConstants.INTENSITY_MISMATCH


def gap_novelty(suggestion: WineSuggestion, gaps: GapAnalysis) -> float:
    """Share of gap dimensions (region, varietal, type) the suggestion fills."""
    hits = np.array([
        _matches(suggestion.region, gaps.missing_regions),
        any(_matches(v, gaps.missing_varietals) for v in suggestion.varietal),
        suggestion.type in gaps.missing_types or suggestion.type in gaps.underrepresented_types,
    ], dtype=float)
    return float(hits.mean())


_URGENCY_FILTER_STATUSES = {
    UrgencyFilter.HIGH: (DrinkingWindowStatus.PEAK, DrinkingWindowStatus.DECLINING),
    UrgencyFilter.LOW: (DrinkingWindowStatus.READY, DrinkingWindowStatus.TOO_YOUNG),
}


def filter_candidates(
    wines: Iterable[Wine],
    context: Optional[RecommendationContext] = None,
    today: Optional[date] = None
) -> List[Wine]:
    """
    In-stock wines that satisfy the context constraints.

    Wines without a price pass the budget check; wines without a drinking
    window fail a high or low urgency filter.
    """
    candidates = [w for w in wines if w.in_stock]
    if context is None:
        return candidates

    if context.price_range is not None:
        candidates = [
            w for w in candidates
            if w.purchase_price is None or context.price_range.contains(w.purchase_price)
        ]

    if context.wine_types:
        candidates = [w for w in candidates if w.type in context.wine_types]

    allowed = _URGENCY_FILTER_STATUSES.get(context.urgency)
    if allowed:
        candidates = [
            w for w in candidates
            if w.drinking_window is not None
            and assess_window(w.drinking_window, today).status in allowed
        ]

    return candidates


# =======================
# SCORER
# =======================

class PreferenceScorer:
    """
    Scores wines against a taste profile under a situational context.

    The same scorer serves tonight, contextual, pairing, and purchase flows;
    only the ScoringWeights differ.
    """

    def score_wine(
        self,
        wine: Wine,
        profile: TasteProfile,
        context: Optional[RecommendationContext] = None,
        base_confidence: float = AlgorithmConstants.CONTEXTUAL_BASE_SCORE,
        weights: ScoringWeights = CONTEXTUAL_WEIGHTS,
        food_intensity: Optional[FoodIntensity] = None,
        today: Optional[date] = None
    ) -> WineScore:
        """
        Score an inventory wine.

        Args:
            wine: Candidate wine
            profile: User taste profile
            context: Occasion, budget, and filters for this request
            base_confidence: Starting score (rule confidence or 0.5)
            weights: Variant weights
            food_intensity: Dish intensity for the pairing variant
            today: Reference date for the drinking window

        Returns:
            WineScore in [0, 1]
        """
        flavor = profile.flavor_profile_for(wine.type)
        components = []
        reasons = []

        if weights.region_bonus and region_preferred(wine.region, flavor):
            components.append(weights.region_bonus)
            reasons.append(f"from {wine.region}, a region you enjoy")

        varietals = matching_varietals(wine.varietal, flavor)
        if weights.varietal_bonus and varietals:
            components.append(weights.varietal_bonus)
            reasons.append(f"made from {', '.join(varietals)}, which matches your taste")

        status = None
        urgency = AlgorithmConstants.DEFAULT_URGENCY
        if wine.drinking_window is not None:
            assessment = assess_window(wine.drinking_window, today)
            status, urgency = assessment.status, assessment.urgency
            if status == DrinkingWindowStatus.PEAK:
                reasons.append("at its peak drinking window")
            elif status == DrinkingWindowStatus.DECLINING:
                reasons.append("past its peak and best opened soon")
        components.append(urgency * weights.urgency_weight)

        if weights.intensity_weight and food_intensity is not None:
            wine_intensity = estimate_wine_intensity(wine.type, wine.region, wine.varietal)
            components.append(intensity_match(wine_intensity, food_intensity) * weights.intensity_weight)

        occasion = context.occasion if context else None
        if weights.occasion_weight and occasion:
            affinity = occasion_affinity(occasion, wine.type)
            components.append(affinity * weights.occasion_weight)
            if affinity > DEFAULT_OCCASION_AFFINITY:
                reasons.append(f"well suited to a {occasion}")

        if weights.budget_weight:
            fit = budget_fit(wine.purchase_price, context.price_range if context else None)
            if fit is not None:
                components.append(fit * weights.budget_weight)

        score = self._combine(base_confidence, components)
        return WineScore(
            score=score,
            base_confidence=base_confidence,
            urgency=urgency,
            status=status,
            reasons=reasons,
        )

    def score_pairing(
        self,
        wine: Wine,
        profile: TasteProfile,
        rule_confidence: float,
        food_intensity: Optional[FoodIntensity],
        today: Optional[date] = None
    ) -> WineScore:
        """Pairing variant: rule confidence plus preference, urgency, and intensity bonuses."""
        return self.score_wine(
            wine,
            profile,
            base_confidence=rule_confidence,
            weights=PAIRING_WEIGHTS,
            food_intensity=food_intensity,
            today=today,
        )

    def score_suggestion(
        self,
        suggestion: WineSuggestion,
        profile: TasteProfile,
        gaps: GapAnalysis,
        context: Optional[RecommendationContext] = None
    ) -> WineScore:
        """
        Purchase variant.

        Ignores drinking-window urgency; weighs gap novelty and budget fit
        against the context budget, or the profile budget when none is given.
        """
        weights = PURCHASE_WEIGHTS
        flavor = profile.flavor_profile_for(suggestion.type)
        components = []
        reasons = []

        if region_preferred(suggestion.region, flavor):
            components.append(weights.region_bonus)
            reasons.append(f"{suggestion.region} is one of your preferred regions")

        varietals = matching_varietals(suggestion.varietal, flavor)
        if varietals:
            components.append(weights.varietal_bonus)
            reasons.append(f"features {', '.join(varietals)}")

        novelty = gap_novelty(suggestion, gaps)
        components.append(novelty * weights.novelty_weight)
        if novelty > 0:
            reasons.append("fills a gap in your collection")

        occasion = context.occasion if context else None
        if occasion:
            components.append(occasion_affinity(occasion, suggestion.type) * weights.occasion_weight)

        price_range = (context.price_range if context else None) or profile.general_preferences.price_range
        fit = budget_fit(suggestion.estimated_price, price_range)
        if fit is not None:
            components.append(fit * weights.budget_weight)
            if fit >= 0.5:
                reasons.append("fits your budget")

        return WineScore(
            score=self._combine(AlgorithmConstants.CONTEXTUAL_BASE_SCORE, components),
            base_confidence=AlgorithmConstants.CONTEXTUAL_BASE_SCORE,
            urgency=AlgorithmConstants.PURCHASE_URGENCY,
            reasons=reasons,
        )

    @staticmethod
    def _combine(base: float, components: Sequence[float]) -> float:
        total = base + float(np.sum(components)) if components else base
        return float(np.clip(total, 0.0, 1.0))
