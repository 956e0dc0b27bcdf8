"""
Tests for the GapAnalyzer.
"""

import pytest

from pourtrait.constants import WineType
from pourtrait.gap_analyzer import (
    EXPLORATION_REGIONS,
    EXPLORATION_VARIETALS,
    GapAnalyzer,
    inventory_frame,
)
from pourtrait.schema import FlavorProfile, GapAnalysis, TasteProfile, Wine


@pytest.fixture
def profile():
    return TasteProfile(
        red_wine_preferences=FlavorProfile(
            preferred_regions=["Bordeaux", "Rioja"],
            preferred_varietals=["Merlot", "Tempranillo"],
        ),
    )


@pytest.fixture
def inventory():
    return [
        Wine(id="w1", name="Château Example", type=WineType.RED, region="bordeaux", varietal=["Merlot", "Cabernet Franc"]),
        Wine(id="w2", name="Sancerre", type=WineType.WHITE, region="Loire Valley", varietal=["Sauvignon Blanc"]),
    ]


class TestInventoryFrame:
    """Test the tabular view of the inventory."""

    def test_one_row_per_varietal(self, inventory):
        """Blends expand to one row per grape."""
        df = inventory_frame(inventory)

        assert len(df) == 3
        assert set(df["varietal_key"]) == {"merlot", "cabernet franc", "sauvignon blanc"}

    def test_empty_inventory(self):
        """An empty cellar still has the expected columns."""
        df = inventory_frame([])
        assert df.empty
        assert "region_key" in df.columns


class TestAnalyze:
    """Test gap detection."""

    def test_missing_preferences(self, profile, inventory):
        """Preferred minus observed, matched case-insensitively."""
        gaps = GapAnalyzer().analyze(profile, inventory)

        assert gaps.missing_regions == ["Rioja"]
        assert gaps.missing_varietals == ["Tempranillo"]

    def test_missing_and_underrepresented_types(self, profile, inventory):
        """Types never seen, and core types below the presence threshold."""
        gaps = GapAnalyzer().analyze(profile, inventory)

        assert gaps.missing_types == [WineType.SPARKLING, WineType.ROSE, WineType.DESSERT]
        assert gaps.underrepresented_types == [WineType.SPARKLING, WineType.ROSE]
        assert gaps.type_counts["red"] == 1
        assert gaps.type_counts["white"] == 1

    def test_blend_counted_once(self, profile):
        """A multi-varietal wine counts as one bottle of its type."""
        blend = Wine(id="w1", name="Blend", type=WineType.RED, varietal=["Grenache", "Syrah", "Mourvèdre"])
        gaps = GapAnalyzer().analyze(profile, [blend])
        assert gaps.type_counts["red"] == 1

    def test_higher_presence_threshold(self, profile, inventory):
        """A stricter threshold flags singly-held core types."""
        gaps = GapAnalyzer(min_type_presence=2).analyze(profile, inventory)
        assert WineType.RED in gaps.underrepresented_types

    def test_profile_without_preferences_uses_exploration_lists(self):
        """Empty preference lists fall back to the exploration sets."""
        gaps = GapAnalyzer().analyze(TasteProfile(), [])

        assert gaps.missing_regions == list(EXPLORATION_REGIONS)
        assert gaps.missing_varietals == list(EXPLORATION_VARIETALS)
        assert gaps.has_gaps


class TestSuggestPurchases:
    """Test templated purchase candidates."""

    def test_suggestions_fill_gaps(self, profile, inventory):
        """Every suggestion explains which gap it fills."""
        analyzer = GapAnalyzer()
        gaps = analyzer.analyze(profile, inventory)
        suggestions = analyzer.suggest_purchases(gaps, inventory)

        names = [s.name for s in suggestions]
        assert "Rioja Crianza" in names
        assert "Sauternes" in names
        assert "Bordeaux Supérieur" not in names
        assert all(s.gap_reasons for s in suggestions)
        assert all(s.producer == "Various" for s in suggestions)

    def test_limit(self, profile, inventory):
        """Limit truncates the list."""
        analyzer = GapAnalyzer()
        gaps = analyzer.analyze(profile, inventory)
        assert len(analyzer.suggest_purchases(gaps, inventory, limit=2)) == 2

    def test_no_gaps_suggests_new_regions(self, inventory):
        """Without gaps, suggestions come from regions not held."""
        suggestions = GapAnalyzer().suggest_purchases(GapAnalysis(), inventory)

        regions = {s.region for s in suggestions}
        assert suggestions
        assert "Bordeaux" not in regions
        assert "Loire Valley" not in regions
        assert all(r.startswith("broadens") for s in suggestions for r in s.gap_reasons)
