"""
RecommendationOrchestrator: one entry point per request type

- tonight: score in-stock bottles, rank by score then urgency
- purchase: gap analysis, templated candidates, purchase scoring
- pairing: delegate to the FoodPairingMatcher
- contextual: like tonight, constrained by an explicit context

Empty inventories are valid input and produce zero-confidence answers
with an explanation; missing context for pairing/contextual is a caller
error and raises MissingContextError.
"""

import asyncio
import logging
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from pourtrait.constants import (
    AlgorithmConstants,
    DrinkingWindowStatus,
    ExperienceLevel,
    RequestType,
    WineType,
)
from pourtrait.drinking_window import drinking_window_alert, refined_urgency
from pourtrait.error_handling import MissingContextError, safe_execute
from pourtrait.external_data import ExternalDataAggregator, WineSearchQuery
from pourtrait.food_pairing import (
    FoodPairingMatcher,
    analyze_food,
    matching_rules,
    serving_recommendations,
    serving_tips,
)
from pourtrait.gap_analyzer import GapAnalyzer
from pourtrait.inventory import InventoryStore
from pourtrait.preference_scorer import CONTEXTUAL_WEIGHTS, PreferenceScorer, WineScore, filter_candidates
from pourtrait.schema import (
    FoodPairingRequest,
    InventoryRecommendation,
    PurchaseRecommendation,
    RecommendationContext,
    RecommendationRequest,
    RecommendationResponse,
    TasteProfile,
    Wine,
)

logger = logging.getLogger(__name__)

EMPTY_INVENTORY_REASONING = (
    "No wines in your inventory yet. Add some bottles, or ask for purchase "
    "recommendations to start your collection."
)
NO_MATCH_REASONING = "No wines in your inventory match these constraints."
EMPTY_INVENTORY_QUESTIONS = [
    "Would you like recommendations for wines to purchase?",
    "What's your budget for building a wine collection?",
]
MAX_FOLLOW_UP_QUESTIONS = 2

STATUS_NOTES: Dict[DrinkingWindowStatus, str] = {
    DrinkingWindowStatus.TOO_YOUNG: "Still young; expect firm structure and primary fruit.",
    DrinkingWindowStatus.READY: "Drinking well now and will keep improving toward its peak.",
    DrinkingWindowStatus.PEAK: "At its peak: fruit, structure, and developed flavors are in balance.",
    DrinkingWindowStatus.DECLINING: "Past its peak; open it soon while the fruit is still present.",
    DrinkingWindowStatus.OVER_HILL: "Beyond its window; taste before serving, it may have faded.",
}
TYPE_NOTES: Dict[WineType, str] = {
    WineType.RED: "Reds show best slightly below room temperature.",
    WineType.WHITE: "Whites lose aromatics when served ice cold; take them out a few minutes early.",
    WineType.ROSE: "Rosé is best young and well chilled.",
    WineType.SPARKLING: "Open sparkling wine slowly at an angle to keep the bubbles.",
    WineType.DESSERT: "A small pour goes a long way with dessert wines.",
    WineType.FORTIFIED: "Fortified wines keep for weeks after opening.",
}


class RecommendationOrchestrator:
    """
    Coordinates scoring, pairing, gap analysis, and enrichment per request.

    Usage:
        orchestrator = RecommendationOrchestrator(inventory_store=store)
        response = orchestrator.recommend(RecommendationRequest(type="tonight", profile=profile, user_id="u1"))
    """

    def __init__(
        self,
        scorer: Optional[PreferenceScorer] = None,
        matcher: Optional[FoodPairingMatcher] = None,
        gap_analyzer: Optional[GapAnalyzer] = None,
        inventory_store: Optional[InventoryStore] = None,
        aggregator: Optional[ExternalDataAggregator] = None
    ):
        self.scorer = scorer or PreferenceScorer()
        self.matcher = matcher or FoodPairingMatcher(self.scorer)
        self.gap_analyzer = gap_analyzer or GapAnalyzer()
        self.inventory_store = inventory_store
        self.aggregator = aggregator

    def recommend(self, request: RecommendationRequest) -> RecommendationResponse:
        """
        Answer one recommendation request.

        Raises:
            MissingContextError: pairing without food, contextual without context
        """
        handlers = {
            RequestType.TONIGHT: self._tonight,
            RequestType.PURCHASE: self._purchase,
            RequestType.PAIRING: self._pairing,
            RequestType.CONTEXTUAL: self._contextual,
        }
        logger.info(f"Handling {request.type.value} recommendation request")
        return handlers[request.type](request)

    def _inventory(self, request: RecommendationRequest) -> List[Wine]:
        if request.inventory is not None:
            return list(request.inventory)
        user_id = request.user_id or request.profile.user_id
        if self.inventory_store is None or not user_id:
            logger.warning("No inventory supplied and no store to read from")
            return []
        return self.inventory_store.list_wines(user_id)

    # =======================
    # TONIGHT / CONTEXTUAL
    # =======================

    def _tonight(self, request: RecommendationRequest) -> RecommendationResponse:
        inventory = self._inventory(request)
        if not any(w.in_stock for w in inventory):
            return self._empty_response(RequestType.TONIGHT)

        candidates = filter_candidates(inventory, request.context, request.today)
        ranked = self._rank(candidates, request.profile, request.context, request.today)
        response = self._inventory_response(RequestType.TONIGHT, ranked, request)
        response.follow_up_questions = self._tonight_questions(request.context)
        return response

    def _contextual(self, request: RecommendationRequest) -> RecommendationResponse:
        context = request.context
        if context is None or context.is_empty():
            raise MissingContextError("Context is required for contextual recommendations")

        inventory = self._inventory(request)
        if not any(w.in_stock for w in inventory):
            return self._empty_response(RequestType.CONTEXTUAL)

        candidates = filter_candidates(inventory, context, request.today)
        rule_confidence: Dict[WineType, float] = {}
        if context.food_pairing:
            analysis = analyze_food(FoodPairingRequest(food=context.food_pairing))
            for rule in matching_rules(analysis):
                for wine_type in rule.wine_types:
                    rule_confidence[wine_type] = max(rule_confidence.get(wine_type, 0.0), rule.confidence)
            if rule_confidence:
                candidates = [w for w in candidates if w.type in rule_confidence]

        ranked = self._rank(candidates, request.profile, context, request.today, rule_confidence)
        return self._inventory_response(RequestType.CONTEXTUAL, ranked, request)

    def _rank(
        self,
        candidates: Sequence[Wine],
        profile: TasteProfile,
        context: Optional[RecommendationContext],
        today: Optional[date],
        rule_confidence: Optional[Dict[WineType, float]] = None
    ) -> List[Tuple[Wine, WineScore, float]]:
        """Score each candidate in isolation and sort by score, then refined urgency."""
        rule_confidence = rule_confidence or {}
        scored = []
        for wine in candidates:
            score = safe_execute(
                self.scorer.score_wine,
                None,
                f"Scoring wine {wine.id} failed"
            )(
                wine,
                profile,
                context,
                base_confidence=rule_confidence.get(wine.type, AlgorithmConstants.CONTEXTUAL_BASE_SCORE),
                weights=CONTEXTUAL_WEIGHTS,
                today=today,
            )
            if score is None:
                continue
            tiebreak = (
                refined_urgency(wine.drinking_window, today)
                if wine.drinking_window is not None
                else score.urgency
            )
            scored.append((wine, score, tiebreak))

        scored.sort(key=lambda item: (-item[1].score, -item[2]))
        return scored

    def _inventory_response(
        self,
        request_type: RequestType,
        ranked: Sequence[Tuple[Wine, WineScore, float]],
        request: RecommendationRequest
    ) -> RecommendationResponse:
        if not ranked:
            return RecommendationResponse(
                request_type=request_type,
                reasoning=NO_MATCH_REASONING,
                confidence=0.0,
                follow_up_questions=["Would you like to relax the price or type filters?"],
            )

        primary_count = AlgorithmConstants.MAX_PRIMARY_RESULTS
        primary = [
            self._inventory_recommendation(request_type, wine, score, request.today)
            for wine, score, _ in ranked[:primary_count]
        ]
        alternatives = [
            self._inventory_recommendation(request_type, wine, score, request.today)
            for wine, score, _ in ranked[primary_count:primary_count + AlgorithmConstants.MAX_ALTERNATIVES]
        ]
        confidence = round(float(np.mean([r.confidence for r in primary])), 2)
        top_wine = ranked[0][0]

        names = ", ".join(wine.name for wine, _, _ in ranked[:primary_count])
        return RecommendationResponse(
            request_type=request_type,
            recommendations=primary,
            alternatives=alternatives,
            reasoning=f"From {len(ranked)} matching bottles, your best options are {names}.",
            confidence=confidence,
            educational_notes=self._profile_notes(request.profile),
            serving_tips=serving_tips(top_wine),
        )

    @staticmethod
    def _inventory_recommendation(
        request_type: RequestType,
        wine: Wine,
        score: WineScore,
        today: Optional[date]
    ) -> InventoryRecommendation:
        reasoning = f"{wine.name}: {score.reasoning or 'a sound match for your taste profile'}"
        note = STATUS_NOTES.get(score.status) if score.status else TYPE_NOTES.get(wine.type)
        alert = drinking_window_alert(wine.drinking_window, today) if wine.drinking_window else None

        return InventoryRecommendation(
            request_type=request_type,
            wine_id=wine.id,
            reasoning=reasoning,
            confidence=score.score,
            urgency=score.urgency,
            serving=serving_recommendations(wine),
            educational_note=note,
            alert=alert,
        )

    @staticmethod
    def _profile_notes(profile: TasteProfile) -> List[str]:
        if profile.experience_level == ExperienceLevel.BEGINNER:
            return profile.educational_recommendations[:MAX_FOLLOW_UP_QUESTIONS]
        return []

    @staticmethod
    def _tonight_questions(context: Optional[RecommendationContext]) -> List[str]:
        questions = []
        if context is None or not context.food_pairing:
            questions.append("What will you be eating with this wine?")
        if context is None or not context.occasion:
            questions.append("What's the occasion for tonight's wine?")
        questions.append("Would you like serving temperature and decanting recommendations?")
        return questions[:MAX_FOLLOW_UP_QUESTIONS]

    @staticmethod
    def _empty_response(request_type: RequestType) -> RecommendationResponse:
        logger.info(f"Empty inventory for {request_type.value} request")
        return RecommendationResponse(
            request_type=request_type,
            reasoning=EMPTY_INVENTORY_REASONING,
            confidence=0.0,
            follow_up_questions=list(EMPTY_INVENTORY_QUESTIONS),
        )

    # =======================
    # PURCHASE
    # =======================

    def _purchase(self, request: RecommendationRequest) -> RecommendationResponse:
        inventory = self._inventory(request)
        gaps = self.gap_analyzer.analyze(request.profile, inventory)
        suggestions = self.gap_analyzer.suggest_purchases(gaps, inventory)

        scored = []
        for suggestion in suggestions:
            score = safe_execute(
                self.scorer.score_suggestion,
                None,
                f"Scoring suggestion {suggestion.name} failed"
            )(suggestion, request.profile, gaps, request.context)
            if score is not None:
                scored.append((suggestion, score))
        scored.sort(key=lambda item: -item[1].score)

        recommendations = []
        for suggestion, score in scored[:AlgorithmConstants.MAX_PRIMARY_RESULTS]:
            reasons = suggestion.gap_reasons + score.reasons
            recommendations.append(PurchaseRecommendation(
                request_type=RequestType.PURCHASE,
                suggested_wine=suggestion,
                reasoning=f"{suggestion.name}: {'; '.join(reasons)}",
                confidence=score.score,
                urgency=AlgorithmConstants.PURCHASE_URGENCY,
                educational_note=TYPE_NOTES.get(suggestion.type),
            ))

        if recommendations:
            confidence = round(float(np.mean([r.confidence for r in recommendations])), 2)
            reasoning = (
                f"Suggestions chosen to broaden your collection: {len(gaps.missing_regions)} regions, "
                f"{len(gaps.missing_varietals)} varietals, and {len(gaps.missing_types)} wine types "
                f"are not yet represented."
            )
        else:
            confidence = 0.0
            reasoning = "Your collection already covers everything we would suggest."

        return RecommendationResponse(
            request_type=RequestType.PURCHASE,
            recommendations=recommendations,
            reasoning=reasoning,
            confidence=confidence,
            educational_notes=self._profile_notes(request.profile),
            follow_up_questions=self._purchase_questions(request.context, len(gaps.missing_regions)),
            gap_analysis=gaps,
        )

    @staticmethod
    def _purchase_questions(context: Optional[RecommendationContext], missing_regions: int) -> List[str]:
        questions = []
        if context is None or context.price_range is None:
            questions.append("What's your budget for new wine purchases?")
        if missing_regions > 3:
            questions.append("Are there specific wine regions you're most interested in exploring?")
        questions.append("Would you like recommendations for wine shops or online retailers?")
        return questions[:MAX_FOLLOW_UP_QUESTIONS]

    async def enrich_purchase_suggestions(
        self,
        recommendations: Sequence[PurchaseRecommendation]
    ) -> List[PurchaseRecommendation]:
        """
        Attach external ids and professional ratings to purchase suggestions.

        Suggestions the aggregator cannot enrich are returned unchanged.
        """
        if self.aggregator is None:
            logger.warning("No external data aggregator configured, skipping enrichment")
            return list(recommendations)

        queries = [
            WineSearchQuery(
                name=r.suggested_wine.name,
                producer=r.suggested_wine.producer,
                vintage=r.suggested_wine.vintage,
                region=r.suggested_wine.region,
                varietal=r.suggested_wine.varietal,
                type=r.suggested_wine.type,
            )
            for r in recommendations
        ]
        results = await asyncio.gather(*(self.aggregator.enrich(q) for q in queries))

        enriched = []
        for recommendation, result in zip(recommendations, results):
            if not result.success or result.enriched_data is None:
                enriched.append(recommendation)
                continue
            wine = recommendation.suggested_wine.model_copy(update={
                "external_id": result.enriched_data.wine_db_id,
                "professional_ratings": result.enriched_data.professional_ratings,
            })
            enriched.append(recommendation.model_copy(update={"suggested_wine": wine}))
        return enriched

    # =======================
    # PAIRING
    # =======================

    def _pairing(self, request: RecommendationRequest) -> RecommendationResponse:
        if request.food is None:
            raise MissingContextError("A food description is required for pairing recommendations")

        food = request.food
        if food.context is None and request.context is not None:
            food = food.model_copy(update={"context": request.context})

        pairing = self.matcher.generate_pairings(food, self._inventory(request), request.profile, request.today)
        return RecommendationResponse(
            request_type=RequestType.PAIRING,
            recommendations=pairing.pairings,
            alternatives=pairing.alternatives,
            reasoning=pairing.reasoning,
            confidence=pairing.confidence,
            educational_notes=pairing.educational_notes,
            serving_tips=pairing.serving_tips,
            food_analysis=pairing.food_analysis,
        )
