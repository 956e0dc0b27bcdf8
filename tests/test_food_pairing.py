"""
Tests for the FoodPairingMatcher.

Covers:
- Dish analysis (category, cooking impact, intensity, flavors)
- Classic and regional rule matching with the per-rule cap
- The adventurous channel merge
- Empty results and ranking
"""

import pytest

from pourtrait.constants import FoodCategory, FoodIntensity, PairingType, Richness, SpiceLevel, WineType
from pourtrait.food_pairing import (
    NO_PAIRINGS_REASONING,
    AdventurousPick,
    FoodPairingMatcher,
    GeneralFallbackProvider,
    analyze_food,
    categorize_food,
    cooking_impact,
    flavor_components,
    food_intensity,
    matching_rules,
    serving_recommendations,
)
from pourtrait.schema import FoodPairingRequest, TasteProfile, Wine


class NoPicks:
    def propose(self, analysis, candidates, profile, today=None):
        return []


class FixedPicks:
    def __init__(self, picks):
        self.picks = picks

    def propose(self, analysis, candidates, profile, today=None):
        return self.picks


class BrokenProvider:
    def propose(self, analysis, candidates, profile, today=None):
        raise RuntimeError("provider down")


@pytest.fixture
def inventory():
    return [
        Wine(id="cab", name="Napa Cabernet", type=WineType.RED, region="Napa Valley",
             varietal=["Cabernet Sauvignon"], vintage=2018),
        Wine(id="pinot", name="Bourgogne Rouge", type=WineType.RED, region="Burgundy",
             varietal=["Pinot Noir"], vintage=2020),
        Wine(id="sb", name="Sancerre", type=WineType.WHITE, region="Loire Valley",
             varietal=["Sauvignon Blanc"], vintage=2022),
        Wine(id="champ", name="Champagne Brut", type=WineType.SPARKLING, region="Champagne",
             varietal=["Chardonnay", "Pinot Noir"]),
        Wine(id="sauternes", name="Sauternes", type=WineType.DESSERT, region="Bordeaux",
             varietal=["Sémillon"], vintage=2015),
    ]


@pytest.fixture
def profile():
    return TasteProfile()


class TestAnalyzeFood:
    """Test dish analysis."""

    def test_grilled_beef_steak(self):
        """Red meat, high-intensity cooking, smoky flavors."""
        analysis = analyze_food(FoodPairingRequest(food="grilled beef steak"))

        assert analysis.category == FoodCategory.RED_MEAT
        assert analysis.cooking_impact.method == "grilled"
        assert analysis.cooking_impact.intensity == "high"
        assert "smoky" in analysis.cooking_impact.flavors

    def test_first_matching_category_wins(self):
        """Taxonomy order decides ties."""
        assert categorize_food("chicken curry") == FoodCategory.POULTRY
        assert categorize_food("beef with blue cheese") == FoodCategory.RED_MEAT
        assert categorize_food("Thai green curry") == FoodCategory.SPICY_FOOD

    def test_keywords_match_whole_words(self):
        """Keywords inside longer words do not count; plurals do."""
        assert categorize_food("graham cracker crust") == FoodCategory.GENERAL
        assert categorize_food("tuna tartare") == FoodCategory.GENERAL
        assert categorize_food("two ribeye steaks") == FoodCategory.RED_MEAT
        assert categorize_food("roast tomatoes with chilies") == FoodCategory.SPICY_FOOD

    def test_no_match_is_general(self):
        """Unrecognized dishes fall back to general."""
        assert categorize_food("mystery casserole") == FoodCategory.GENERAL

    def test_explicit_cooking_method(self):
        """A given method overrides inference."""
        impact = cooking_impact("Steamed", "grilled fish")
        assert impact.method == "steamed"
        assert impact.wine_style == "light-fresh"

    def test_inferred_and_unknown_cooking(self):
        """Method inferred from keywords, else unknown."""
        assert cooking_impact(None, "slow roasted pork").method == "roasted"
        assert cooking_impact(None, "beef tartare").method == "raw"
        unknown = cooking_impact(None, "salad")
        assert unknown.method == "unknown"
        assert unknown.wine_style == "versatile"

    @pytest.mark.parametrize("description, spice, richness, expected", [
        ("plain rice", None, None, FoodIntensity.LIGHT),
        ("delicate sole", None, Richness.LIGHT, FoodIntensity.LIGHT),
        ("pork belly", SpiceLevel.MILD, Richness.RICH, FoodIntensity.MEDIUM),
        ("truffle risotto", None, Richness.RICH, FoodIntensity.INTENSE),
        ("vindaloo", SpiceLevel.HOT, Richness.MEDIUM, FoodIntensity.INTENSE),
        ("truffle and foie gras terrine", None, None, FoodIntensity.MEDIUM),
        ("light and delicate broth", SpiceLevel.MEDIUM, Richness.RICH, FoodIntensity.MEDIUM),
        ("turkish delight", None, Richness.RICH, FoodIntensity.MEDIUM),
    ])
    def test_intensity_buckets(self, description, spice, richness, expected):
        """Spice, richness, and keywords sum into a bucket."""
        assert food_intensity(description, spice, richness) == expected

    def test_flavor_components_with_cuisine(self):
        """Keyword flavors plus cuisine components, without duplicates."""
        components = flavor_components("pasta with tomato and garlic", "Italian")

        assert components[:4] == ["acidic", "umami", "pungent", "savory"]
        assert "olive oil" in components
        assert components.count("umami") == 1


class TestMatchingRules:
    """Test classic and regional rule selection."""

    def test_classic_rule_for_category(self):
        """Red meat matches the red meat rule only."""
        analysis = analyze_food(FoodPairingRequest(food="lamb chops"))
        assert [r.id for r in matching_rules(analysis)] == ["red_meat"]

    def test_regional_rule_needs_cuisine_and_trigger(self):
        """Tomato pasta triggers the Italian rule only with the Italian cuisine."""
        italian = analyze_food(FoodPairingRequest(food="spaghetti with tomato sauce", cuisine="italian"))
        plain = analyze_food(FoodPairingRequest(food="spaghetti with tomato sauce"))

        assert [r.id for r in matching_rules(italian)] == ["pasta_tomato"]
        assert matching_rules(plain) == []

    def test_regional_rule_for_any_category(self):
        """Sushi applies on top of the salmon rule."""
        analysis = analyze_food(FoodPairingRequest(food="salmon sushi", cuisine="asian"))
        assert [r.id for r in matching_rules(analysis)] == ["salmon", "sushi"]


class TestServing:
    """Test serving recommendations."""

    def test_old_red_decants_longer(self):
        """Older reds get the longer decant."""
        old = Wine(id="a", name="Old", type=WineType.RED, vintage=2010)
        young = Wine(id="b", name="Young", type=WineType.RED, vintage=2020)

        assert serving_recommendations(old).decanting_minutes == 60
        assert serving_recommendations(young).decanting_minutes == 30

    def test_white_serving(self):
        """Whites are chilled and never decanted."""
        serving = serving_recommendations(Wine(id="a", name="White", type=WineType.WHITE))

        assert serving.temperature_celsius == 10
        assert serving.temperature_fahrenheit == 50
        assert serving.decanting_minutes is None
        assert serving.serving_size == "5 oz (150ml)"


class TestGeneratePairings:
    """Test the full pairing pipeline."""

    def test_steak_pairs_with_reds(self, inventory, profile):
        """Red meat picks reds with the rule explanation attached."""
        matcher = FoodPairingMatcher()
        response = matcher.generate_pairings(FoodPairingRequest(food="grilled beef steak"), inventory, profile)

        ids = [r.wine_id for r in response.pairings]
        assert set(ids) == {"cab", "pinot"}
        first = response.pairings[0]
        assert first.pairing.pairing_type == PairingType.CLASSIC
        assert first.pairing.rule_confidence == 0.9
        assert "Tannins" in first.reasoning
        assert first.serving is not None
        assert 0 < response.confidence <= 1
        assert response.food_analysis.category == FoodCategory.RED_MEAT
        assert response.serving_tips

    def test_at_most_two_wines_per_rule(self, profile):
        """A single rule contributes no more than two wines."""
        reds = [
            Wine(id=f"red{i}", name=f"Red {i}", type=WineType.RED, region="Oregon", varietal=["Pinot Noir"])
            for i in range(5)
        ]
        matcher = FoodPairingMatcher(adventurous_provider=NoPicks())
        response = matcher.generate_pairings(FoodPairingRequest(food="lamb"), reds, profile)

        assert len(response.pairings) == 2
        assert response.alternatives == []

    def test_ranked_by_score(self, inventory, profile):
        """Pairings come out in non-increasing score order."""
        matcher = FoodPairingMatcher()
        response = matcher.generate_pairings(FoodPairingRequest(food="roast chicken"), inventory, profile)

        scores = [r.confidence for r in response.pairings + response.alternatives]
        assert scores == sorted(scores, reverse=True)

    def test_empty_inventory(self, profile):
        """No wines gives an explicit empty answer."""
        response = FoodPairingMatcher().generate_pairings(FoodPairingRequest(food="grilled beef steak"), [], profile)

        assert response.pairings == []
        assert response.alternatives == []
        assert response.confidence == 0.0
        assert response.reasoning == NO_PAIRINGS_REASONING

    def test_no_matching_rule(self, inventory, profile):
        """Unknown dishes with no cooking hint produce no forced recommendation."""
        response = FoodPairingMatcher().generate_pairings(FoodPairingRequest(food="mystery casserole"), inventory, profile)

        assert response.pairings == []
        assert response.confidence == 0.0

    def test_adventurous_picks_are_merged(self, inventory, profile):
        """Provider picks join the classic results without replacing them."""
        provider = FixedPicks([AdventurousPick("sauternes", 1.0, 0.7, "Sweet and salty contrast")])
        matcher = FoodPairingMatcher(adventurous_provider=provider)
        response = matcher.generate_pairings(FoodPairingRequest(food="grilled beef steak"), inventory, profile)

        by_id = {r.wine_id: r for r in response.pairings}
        assert {"cab", "pinot", "sauternes"} <= set(by_id)
        assert by_id["sauternes"].pairing.pairing_type == PairingType.ADVENTUROUS
        assert response.pairings[0].wine_id == "sauternes"

    def test_unknown_adventurous_pick_ignored(self, inventory, profile):
        """Picks for wines outside the candidate pool are dropped."""
        provider = FixedPicks([AdventurousPick("not-in-cellar", 0.9, 0.9, "Invented")])
        matcher = FoodPairingMatcher(adventurous_provider=provider)
        response = matcher.generate_pairings(FoodPairingRequest(food="grilled beef steak"), inventory, profile)

        assert "not-in-cellar" not in [r.wine_id for r in response.pairings + response.alternatives]

    def test_provider_failure_keeps_classic_results(self, inventory, profile):
        """A failing provider is isolated."""
        matcher = FoodPairingMatcher(adventurous_provider=BrokenProvider())
        response = matcher.generate_pairings(FoodPairingRequest(food="grilled beef steak"), inventory, profile)

        assert {r.wine_id for r in response.pairings} == {"cab", "pinot"}

    def test_all_scores_in_unit_interval(self, inventory, profile):
        """Every confidence and urgency lies in [0, 1]."""
        matcher = FoodPairingMatcher()
        for food in ("grilled beef steak", "steamed cod", "chocolate cake", "salmon sushi"):
            response = matcher.generate_pairings(FoodPairingRequest(food=food, cuisine="asian"), inventory, profile)
            assert 0 <= response.confidence <= 1
            for rec in response.pairings + response.alternatives:
                assert 0 <= rec.confidence <= 1
                assert 0 <= rec.urgency <= 1


class TestGeneralFallbackProvider:
    """Test the heuristic adventurous channel."""

    def test_versatile_hint_abstains(self, inventory, profile):
        """No cooking hint, no picks."""
        analysis = analyze_food(FoodPairingRequest(food="mystery casserole"))
        assert GeneralFallbackProvider().propose(analysis, inventory, profile) == []

    def test_bold_hint_picks_intense_wines(self, inventory, profile):
        """Grilled dishes look for intense wines."""
        analysis = analyze_food(FoodPairingRequest(food="grilled halloumi"))
        picks = GeneralFallbackProvider().propose(analysis, inventory, profile)

        assert [p.wine_id for p in picks] == ["cab"]
        assert 0 < picks[0].score <= 1
