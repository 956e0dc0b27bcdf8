"""
Tests for the RecommendationOrchestrator.

Covers each request type, the empty-inventory and missing-context paths,
and async enrichment of purchase suggestions.
"""

import asyncio
from datetime import date

import pytest

from pourtrait.constants import ExperienceLevel, RequestType, WineType
from pourtrait.error_handling import MissingContextError
from pourtrait.inventory import InMemoryInventoryStore
from pourtrait.orchestrator import (
    EMPTY_INVENTORY_QUESTIONS,
    EMPTY_INVENTORY_REASONING,
    NO_MATCH_REASONING,
    RecommendationOrchestrator,
)
from pourtrait.schema import (
    DataEnrichmentResult,
    DrinkingWindow,
    ExternalWineData,
    FlavorProfile,
    FoodPairingRequest,
    InventoryRecommendation,
    PriceRange,
    ProfessionalRating,
    PurchaseRecommendation,
    RecommendationContext,
    RecommendationRequest,
    TasteProfile,
    Wine,
)

TODAY = date(2024, 6, 1)

PEAK_WINDOW = DrinkingWindow(
    earliest_date=date(2020, 1, 1),
    peak_start_date=date(2022, 1, 1),
    peak_end_date=date(2027, 1, 1),
    latest_date=date(2030, 1, 1),
)
DECLINING_WINDOW = DrinkingWindow(
    earliest_date=date(2012, 1, 1),
    peak_start_date=date(2015, 1, 1),
    peak_end_date=date(2020, 1, 1),
    latest_date=date(2025, 1, 1),
)


@pytest.fixture
def profile():
    return TasteProfile(
        user_id="u1",
        red_wine_preferences=FlavorProfile(preferred_regions=["Bordeaux"], preferred_varietals=["Merlot"]),
        educational_recommendations=["Try a Pinot Noir", "Taste Old vs New World", "Learn about tannin"],
    )


@pytest.fixture
def inventory():
    return [
        Wine(id="bdx", name="Pomerol", type=WineType.RED, region="Bordeaux", varietal=["Merlot"],
             vintage=2015, purchase_price=45, drinking_window=PEAK_WINDOW),
        Wine(id="rioja", name="Rioja Reserva", type=WineType.RED, region="Rioja", varietal=["Tempranillo"],
             vintage=2012, purchase_price=25, drinking_window=DECLINING_WINDOW),
        Wine(id="sb", name="Sancerre", type=WineType.WHITE, region="Loire Valley",
             varietal=["Sauvignon Blanc"], vintage=2022, purchase_price=22),
        Wine(id="champ", name="Champagne Brut", type=WineType.SPARKLING, region="Champagne",
             varietal=["Chardonnay", "Pinot Noir"], purchase_price=40),
        Wine(id="gone", name="Empty Slot", type=WineType.RED, quantity=0),
    ]


@pytest.fixture
def orchestrator():
    return RecommendationOrchestrator()


def request(kind, profile, **kwargs):
    kwargs.setdefault("today", TODAY)
    return RecommendationRequest(type=kind, profile=profile, **kwargs)


class TestTonight:
    """Test tonight recommendations."""

    def test_empty_inventory(self, orchestrator, profile):
        """An empty cellar gives an explanation instead of an error."""
        response = orchestrator.recommend(request(RequestType.TONIGHT, profile, inventory=[]))

        assert response.recommendations == []
        assert response.confidence == 0.0
        assert response.reasoning == EMPTY_INVENTORY_REASONING
        assert response.follow_up_questions == EMPTY_INVENTORY_QUESTIONS

    def test_only_empty_bottles(self, orchestrator, profile):
        """Out-of-stock wines count as an empty cellar."""
        gone = [Wine(id="gone", name="Gone", type=WineType.RED, quantity=0)]
        response = orchestrator.recommend(request(RequestType.TONIGHT, profile, inventory=gone))
        assert response.reasoning == EMPTY_INVENTORY_REASONING

    def test_ranked_inventory(self, orchestrator, profile, inventory):
        """Preferred wines rank first; out-of-stock wines never appear."""
        response = orchestrator.recommend(request(RequestType.TONIGHT, profile, inventory=inventory))

        ids = [r.wine_id for r in response.recommendations + response.alternatives]
        assert ids[0] == "bdx"
        assert "gone" not in ids
        assert len(response.recommendations) == 3
        assert all(isinstance(r, InventoryRecommendation) for r in response.recommendations)

        scores = [r.confidence for r in response.recommendations + response.alternatives]
        assert scores == sorted(scores, reverse=True)

    def test_follow_ups_capped(self, orchestrator, profile, inventory):
        """At most two follow-up questions, asking for what is missing."""
        response = orchestrator.recommend(request(RequestType.TONIGHT, profile, inventory=inventory))

        assert len(response.follow_up_questions) == 2
        assert "eating" in response.follow_up_questions[0]

    def test_response_details(self, orchestrator, profile, inventory):
        """Serving, notes, and alerts are attached."""
        response = orchestrator.recommend(request(RequestType.TONIGHT, profile, inventory=inventory))

        top = response.recommendations[0]
        assert top.serving is not None
        assert top.educational_note
        assert response.serving_tips
        assert response.educational_notes == ["Try a Pinot Noir", "Taste Old vs New World"]

    def test_notes_only_for_beginners(self, orchestrator, profile, inventory):
        """Experienced drinkers are spared the primer."""
        advanced = profile.model_copy(update={"experience_level": ExperienceLevel.ADVANCED})
        response = orchestrator.recommend(request(RequestType.TONIGHT, advanced, inventory=inventory))
        assert response.educational_notes == []

    def test_inventory_from_store(self, profile, inventory):
        """Without an explicit inventory the store is read by user id."""
        store = InMemoryInventoryStore({"u1": inventory})
        orchestrator = RecommendationOrchestrator(inventory_store=store)

        response = orchestrator.recommend(request(RequestType.TONIGHT, profile))
        assert response.recommendations
        assert response.recommendations[0].wine_id == "bdx"

    def test_no_store_means_empty(self, orchestrator, profile):
        """No inventory and no store is treated as an empty cellar."""
        response = orchestrator.recommend(request(RequestType.TONIGHT, profile))
        assert response.reasoning == EMPTY_INVENTORY_REASONING

    def test_all_scores_in_unit_interval(self, orchestrator, profile, inventory):
        """Confidence and urgency stay within [0, 1]."""
        response = orchestrator.recommend(request(RequestType.TONIGHT, profile, inventory=inventory))

        assert 0 <= response.confidence <= 1
        for rec in response.recommendations + response.alternatives:
            assert 0 <= rec.confidence <= 1
            assert 0 <= rec.urgency <= 1


class TestContextual:
    """Test context-constrained recommendations."""

    def test_missing_context_raises(self, orchestrator, profile, inventory):
        """Contextual requests need a context."""
        with pytest.raises(MissingContextError):
            orchestrator.recommend(request(RequestType.CONTEXTUAL, profile, inventory=inventory))

        with pytest.raises(MissingContextError):
            orchestrator.recommend(request(
                RequestType.CONTEXTUAL, profile, inventory=inventory, context=RecommendationContext(),
            ))

    def test_food_hint_filters_types(self, orchestrator, profile, inventory):
        """A steak hint leaves only the types the matching rule allows."""
        context = RecommendationContext(food_pairing="grilled beef steak")
        response = orchestrator.recommend(request(RequestType.CONTEXTUAL, profile, inventory=inventory, context=context))

        ids = {r.wine_id for r in response.recommendations + response.alternatives}
        assert ids == {"bdx", "rioja"}

    def test_price_filter(self, orchestrator, profile, inventory):
        """The budget removes pricier bottles."""
        context = RecommendationContext(price_range=PriceRange(min=10, max=30))
        response = orchestrator.recommend(request(RequestType.CONTEXTUAL, profile, inventory=inventory, context=context))

        ids = {r.wine_id for r in response.recommendations + response.alternatives}
        assert ids == {"rioja", "sb"}

    def test_no_match(self, orchestrator, profile, inventory):
        """Constraints that exclude everything give an explicit answer."""
        context = RecommendationContext(wine_types=[WineType.DESSERT])
        response = orchestrator.recommend(request(RequestType.CONTEXTUAL, profile, inventory=inventory, context=context))

        assert response.recommendations == []
        assert response.confidence == 0.0
        assert response.reasoning == NO_MATCH_REASONING


class TestPairing:
    """Test pairing requests."""

    def test_missing_food_raises(self, orchestrator, profile, inventory):
        """Pairing without a dish is a caller error."""
        with pytest.raises(MissingContextError):
            orchestrator.recommend(request(RequestType.PAIRING, profile, inventory=inventory))

    def test_delegates_to_matcher(self, orchestrator, profile, inventory):
        """The matcher's answer is carried over with the food analysis."""
        response = orchestrator.recommend(request(
            RequestType.PAIRING, profile, inventory=inventory, food=FoodPairingRequest(food="grilled beef steak"),
        ))

        assert response.request_type == RequestType.PAIRING
        assert response.food_analysis is not None
        assert {"bdx", "rioja"} <= {r.wine_id for r in response.recommendations}

    def test_request_context_applies_to_food(self, orchestrator, profile, inventory):
        """The request context constrains the pairing candidates."""
        context = RecommendationContext(price_range=PriceRange(min=10, max=30))
        response = orchestrator.recommend(request(
            RequestType.PAIRING, profile, inventory=inventory, context=context,
            food=FoodPairingRequest(food="grilled beef steak"),
        ))

        assert "bdx" not in {r.wine_id for r in response.recommendations + response.alternatives}


class TestPurchase:
    """Test purchase recommendations."""

    def test_gap_driven_suggestions(self, orchestrator, profile, inventory):
        """Suggestions are purchase recommendations with a gap analysis attached."""
        response = orchestrator.recommend(request(RequestType.PURCHASE, profile, inventory=inventory))

        assert response.gap_analysis is not None
        assert 0 < len(response.recommendations) <= 3
        for rec in response.recommendations:
            assert isinstance(rec, PurchaseRecommendation)
            assert rec.urgency == 0.5
            assert rec.suggested_wine.gap_reasons
        assert len(response.follow_up_questions) <= 2

    def test_empty_inventory_still_suggests(self, orchestrator, profile):
        """A new cellar gets starter suggestions."""
        response = orchestrator.recommend(request(RequestType.PURCHASE, profile, inventory=[]))

        assert response.recommendations
        assert response.confidence > 0

    def test_budget_question_skipped_with_price_range(self, orchestrator, profile, inventory):
        """The budget question is only asked when no budget is given."""
        context = RecommendationContext(price_range=PriceRange(min=10, max=40))
        response = orchestrator.recommend(request(RequestType.PURCHASE, profile, inventory=inventory, context=context))

        assert not any("budget" in q for q in response.follow_up_questions)


class FakeAggregator:
    def __init__(self):
        self.queries = []

    async def enrich(self, query):
        self.queries.append(query)
        if query.name == "Sauternes":
            return DataEnrichmentResult(success=False, errors=["No source returned data for this wine"])
        return DataEnrichmentResult(
            success=True,
            enriched_data=ExternalWineData(
                wine_db_id=f"ext-{query.name}",
                professional_ratings=[ProfessionalRating(source="Critic", score=91)],
            ),
            sources=["Fake"],
            confidence=0.8,
        )


class TestEnrichPurchaseSuggestions:
    """Test async enrichment of purchase suggestions."""

    def test_enriches_successful_lookups(self, profile, inventory):
        """External ids and ratings are copied onto the suggestion."""
        aggregator = FakeAggregator()
        orchestrator = RecommendationOrchestrator(aggregator=aggregator)
        response = orchestrator.recommend(request(RequestType.PURCHASE, profile, inventory=inventory))

        enriched = asyncio.run(orchestrator.enrich_purchase_suggestions(response.recommendations))

        assert len(aggregator.queries) == len(response.recommendations)
        for original, rec in zip(response.recommendations, enriched):
            if original.suggested_wine.name == "Sauternes":
                assert rec == original
            else:
                assert rec.suggested_wine.external_id == f"ext-{original.suggested_wine.name}"
                assert rec.suggested_wine.professional_ratings[0].score == 91

    def test_without_aggregator(self, orchestrator, profile, inventory):
        """No aggregator leaves suggestions untouched."""
        response = orchestrator.recommend(request(RequestType.PURCHASE, profile, inventory=inventory))
        enriched = asyncio.run(orchestrator.enrich_purchase_suggestions(response.recommendations))
        assert enriched == response.recommendations
