"""
GapAnalyzer: what the collection is missing

Compares the held inventory against the taste profile:
- missing regions / varietals: preferred set minus what the inventory holds
- missing types: exploration types never seen in the inventory
- underrepresented types: core types below the minimal presence threshold

The result drives purchase suggestions toward breadth instead of more of
what is already in the cellar.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from pourtrait.constants import AlgorithmConstants, WineType
from pourtrait.schema import GapAnalysis, TasteProfile, Wine, WineSuggestion
from pourtrait.utils import unique_ordered

logger = logging.getLogger(__name__)

CORE_TYPES: Tuple[WineType, ...] = (WineType.RED, WineType.WHITE, WineType.SPARKLING, WineType.ROSE)
EXPLORATION_TYPES: Tuple[WineType, ...] = CORE_TYPES + (WineType.DESSERT,)

# Used when the profile names no regions or varietals of its own
EXPLORATION_REGIONS: Tuple[str, ...] = (
    "Bordeaux", "Burgundy", "Tuscany", "Rioja", "Napa Valley", "Barossa Valley",
)
EXPLORATION_VARIETALS: Tuple[str, ...] = (
    "Cabernet Sauvignon", "Pinot Noir", "Chardonnay", "Sauvignon Blanc", "Riesling", "Syrah",
)


@dataclass(frozen=True)
class CatalogEntry:
    """Templated purchase candidate."""
    name: str
    region: str
    country: str
    varietals: Tuple[str, ...]
    wine_type: WineType
    estimated_price: float


EXPLORATION_CATALOG: Tuple[CatalogEntry, ...] = (
    CatalogEntry("Bordeaux Supérieur", "Bordeaux", "France", ("Merlot", "Cabernet Sauvignon"), WineType.RED, 22),
    CatalogEntry("Bourgogne Rouge", "Burgundy", "France", ("Pinot Noir",), WineType.RED, 28),
    CatalogEntry("Côtes du Rhône", "Rhône Valley", "France", ("Grenache", "Syrah"), WineType.RED, 16),
    CatalogEntry("Chianti Classico", "Tuscany", "Italy", ("Sangiovese",), WineType.RED, 24),
    CatalogEntry("Barbera d'Alba", "Piedmont", "Italy", ("Barbera",), WineType.RED, 20),
    CatalogEntry("Rioja Crianza", "Rioja", "Spain", ("Tempranillo",), WineType.RED, 18),
    CatalogEntry("Ribera del Duero Roble", "Ribera del Duero", "Spain", ("Tempranillo",), WineType.RED, 21),
    CatalogEntry("Napa Valley Cabernet", "Napa Valley", "United States", ("Cabernet Sauvignon",), WineType.RED, 45),
    CatalogEntry("Sonoma Coast Chardonnay", "Sonoma County", "United States", ("Chardonnay",), WineType.WHITE, 30),
    CatalogEntry("Barossa Shiraz", "Barossa Valley", "Australia", ("Syrah",), WineType.RED, 26),
    CatalogEntry("McLaren Vale Grenache", "McLaren Vale", "Australia", ("Grenache",), WineType.RED, 27),
    CatalogEntry("Mendoza Malbec", "Mendoza", "Argentina", ("Malbec",), WineType.RED, 17),
    CatalogEntry("Sancerre", "Loire Valley", "France", ("Sauvignon Blanc",), WineType.WHITE, 29),
    CatalogEntry("Rías Baixas Albariño", "Rías Baixas", "Spain", ("Albariño",), WineType.WHITE, 19),
    CatalogEntry("Mosel Riesling Kabinett", "Mosel", "Germany", ("Riesling",), WineType.WHITE, 22),
    CatalogEntry("Condrieu", "Rhône Valley", "France", ("Viognier",), WineType.WHITE, 55),
    CatalogEntry("Prosecco Superiore", "Veneto", "Italy", ("Prosecco",), WineType.SPARKLING, 18),
    CatalogEntry("Champagne Brut NV", "Champagne", "France", ("Champagne",), WineType.SPARKLING, 45),
    CatalogEntry("Cava Brut Reserva", "Penedès", "Spain", ("Cava",), WineType.SPARKLING, 15),
    CatalogEntry("Côtes de Provence Rosé", "Provence", "France", ("Grenache", "Cinsault"), WineType.ROSE, 18),
    CatalogEntry("Sauternes", "Bordeaux", "France", ("Sémillon",), WineType.DESSERT, 35),
)


def inventory_frame(inventory: Sequence[Wine]) -> pd.DataFrame:
    """One row per wine/varietal pair with normalized keys for set comparisons."""
    rows = [
        {
            "wine_id": wine.id,
            "type": wine.type.value,
            "region": wine.region,
            "varietal": varietal,
        }
        for wine in inventory
        for varietal in (wine.varietal or [""])
    ]
    df = pd.DataFrame(rows, columns=["wine_id", "type", "region", "varietal"])
    df["region_key"] = df["region"].str.strip().str.lower()
    df["varietal_key"] = df["varietal"].str.strip().str.lower()
    return df


def _missing(preferred: Sequence[str], observed: pd.Series) -> List[str]:
    seen = set(observed.dropna())
    return [p for p in preferred if p.strip().lower() not in seen]


class GapAnalyzer:
    """Surfaces under-explored regions, varietals, and wine types."""

    def __init__(self, min_type_presence: int = AlgorithmConstants.MIN_TYPE_PRESENCE):
        self.min_type_presence = min_type_presence

    def analyze(self, profile: TasteProfile, inventory: Sequence[Wine]) -> GapAnalysis:
        df = inventory_frame(inventory)

        preferred_regions = unique_ordered(
            r for fp in profile.flavor_profiles() for r in fp.preferred_regions
        ) or list(EXPLORATION_REGIONS)
        preferred_varietals = unique_ordered(
            v for fp in profile.flavor_profiles() for v in fp.preferred_varietals
        ) or list(EXPLORATION_VARIETALS)

        # Count wines, not varietal rows
        type_counts = df.drop_duplicates("wine_id")["type"].value_counts()
        counts = {t.value: int(type_counts.get(t.value, 0)) for t in WineType}

        analysis = GapAnalysis(
            missing_regions=_missing(preferred_regions, df["region_key"]),
            missing_varietals=_missing(preferred_varietals, df["varietal_key"]),
            missing_types=[t for t in EXPLORATION_TYPES if counts[t.value] == 0],
            underrepresented_types=[t for t in CORE_TYPES if counts[t.value] < self.min_type_presence],
            type_counts=counts,
        )

        logger.info(
            f"Gap analysis over {len(inventory)} wines: "
            f"{len(analysis.missing_regions)} regions, {len(analysis.missing_varietals)} varietals, "
            f"{len(analysis.missing_types)} types missing"
        )
        return analysis

    def suggest_purchases(
        self,
        gaps: GapAnalysis,
        inventory: Sequence[Wine],
        limit: Optional[int] = None
    ) -> List[WineSuggestion]:
        """
        Templated candidates that fill the gaps.

        Falls back to catalog entries from regions the inventory does not hold
        when the analysis finds no gaps.
        """
        missing_regions = {r.lower() for r in gaps.missing_regions}
        missing_varietals = {v.lower() for v in gaps.missing_varietals}
        missing_types = set(gaps.missing_types) | set(gaps.underrepresented_types)
        held_regions = set(inventory_frame(inventory)["region_key"])

        suggestions = []
        for entry in EXPLORATION_CATALOG:
            reasons = []
            if entry.region.lower() in missing_regions:
                reasons.append(f"adds {entry.region}, a region you want to explore")
            varietals = [v for v in entry.varietals if v.lower() in missing_varietals]
            if varietals:
                reasons.append(f"introduces {', '.join(varietals)}")
            if entry.wine_type in missing_types:
                reasons.append(f"adds {entry.wine_type.value} wine to your collection")
            if not reasons and not gaps.has_gaps and entry.region.lower() not in held_regions:
                reasons.append(f"broadens your cellar with {entry.region}")
            if reasons:
                suggestions.append(self._suggestion(entry, reasons))

        return suggestions[:limit] if limit else suggestions

    @staticmethod
    def _suggestion(entry: CatalogEntry, reasons: List[str]) -> WineSuggestion:
        return WineSuggestion(
            name=entry.name,
            producer="Various",
            region=entry.region,
            country=entry.country,
            varietal=list(entry.varietals),
            type=entry.wine_type,
            estimated_price=entry.estimated_price,
            gap_reasons=reasons,
        )
