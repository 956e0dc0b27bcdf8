"""Pydantic schemas for Pourtrait data validation."""

from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, confloat, model_validator

from pourtrait.config import DEFAULT_CURRENCY
from pourtrait.constants import (
    AlertType,
    Body,
    ExperienceLevel,
    FoodCategory,
    FoodIntensity,
    PairingType,
    RequestType,
    Richness,
    SpiceLevel,
    UrgencyFilter,
    WineType,
)

UnitScore = confloat(ge=0.0, le=1.0)
FlavorAxis = confloat(ge=0.0, le=10.0)


# =======================
# TASTE PROFILE
# =======================

class PriceRange(BaseModel):
    """Budget range for a bottle."""

    min: float = Field(0.0, ge=0, description="Lower bound")
    max: float = Field(50.0, ge=0, description="Upper bound")
    currency: str = Field(DEFAULT_CURRENCY, min_length=3, max_length=3)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PriceRange":
        if self.max < self.min:
            raise ValueError("price range max must be greater than or equal to min")
        return self

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2

    @property
    def width(self) -> float:
        return self.max - self.min

    def contains(self, price: float) -> bool:
        return self.min <= price <= self.max


class FlavorProfile(BaseModel):
    """Preferences for one wine color."""

    fruitiness: FlavorAxis = 6
    earthiness: FlavorAxis = 5
    oakiness: FlavorAxis = 5
    acidity: FlavorAxis = 6
    tannins: FlavorAxis = 6
    sweetness: FlavorAxis = 2
    body: Body = Body.MEDIUM
    preferred_regions: List[str] = Field(default_factory=list)
    preferred_varietals: List[str] = Field(default_factory=list)
    disliked_characteristics: List[str] = Field(default_factory=list)


class GeneralPreferences(BaseModel):
    """Preferences that apply regardless of wine color."""

    price_range: PriceRange = Field(default_factory=PriceRange)
    occasion_preferences: List[str] = Field(default_factory=list)
    food_pairing_importance: confloat(ge=1.0, le=10.0) = 5


class TasteProfile(BaseModel):
    """Structured taste model computed from questionnaire answers."""

    user_id: Optional[str] = None
    experience_level: ExperienceLevel = ExperienceLevel.BEGINNER
    red_wine_preferences: FlavorProfile = Field(default_factory=FlavorProfile)
    white_wine_preferences: FlavorProfile = Field(default_factory=FlavorProfile)
    sparkling_preferences: FlavorProfile = Field(default_factory=FlavorProfile)
    general_preferences: GeneralPreferences = Field(default_factory=GeneralPreferences)
    confidence_score: UnitScore = Field(0.0, description="Confidence in the profile (0-1)")
    educational_recommendations: List[str] = Field(default_factory=list)

    def flavor_profile_for(self, wine_type: WineType) -> FlavorProfile:
        """Sub-profile used to judge a wine; types without one fall back to red."""
        if wine_type == WineType.WHITE:
            return self.white_wine_preferences
        if wine_type == WineType.SPARKLING:
            return self.sparkling_preferences
        return self.red_wine_preferences

    def flavor_profiles(self) -> List[FlavorProfile]:
        return [self.red_wine_preferences, self.white_wine_preferences, self.sparkling_preferences]


class FlavorProfileUpdate(BaseModel):
    """Partial flavor profile patch; every field optional, bounds still enforced."""

    model_config = ConfigDict(extra="forbid")

    fruitiness: Optional[FlavorAxis] = None
    earthiness: Optional[FlavorAxis] = None
    oakiness: Optional[FlavorAxis] = None
    acidity: Optional[FlavorAxis] = None
    tannins: Optional[FlavorAxis] = None
    sweetness: Optional[FlavorAxis] = None
    body: Optional[Body] = None
    preferred_regions: Optional[List[str]] = None
    preferred_varietals: Optional[List[str]] = None
    disliked_characteristics: Optional[List[str]] = None


class GeneralPreferencesUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    price_range: Optional[PriceRange] = None
    occasion_preferences: Optional[List[str]] = None
    food_pairing_importance: Optional[confloat(ge=1.0, le=10.0)] = None


class TastePreferencesUpdate(BaseModel):
    """Partial taste-preferences patch accepted by profile updates."""

    model_config = ConfigDict(extra="ignore")

    red_wine_preferences: Optional[FlavorProfileUpdate] = None
    white_wine_preferences: Optional[FlavorProfileUpdate] = None
    sparkling_preferences: Optional[FlavorProfileUpdate] = None
    general_preferences: Optional[GeneralPreferencesUpdate] = None


class QuizResponse(BaseModel):
    """One questionnaire answer as delivered by the transport."""

    question_id: str = Field(..., min_length=1)
    value: Any = None
    timestamp: Optional[datetime] = None


class QuizValidationResult(BaseModel):
    is_valid: bool
    missing_required: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


# =======================
# WINES
# =======================

class DrinkingWindow(BaseModel):
    """Four drinking-window checkpoints. Ordering is checked separately."""

    earliest_date: date
    peak_start_date: date
    peak_end_date: date
    latest_date: date


class ProfessionalRating(BaseModel):
    source: str = ""
    score: float
    max_score: float = 100
    reviewer: Optional[str] = None
    review_date: Optional[date] = None
    note: Optional[str] = None


class ServingTemperature(BaseModel):
    min: float = Field(..., description="Lower serving temperature in celsius")
    max: float = Field(..., description="Upper serving temperature in celsius")


class ExternalWineData(BaseModel):
    """Metadata contributed by external wine-data sources."""

    wine_db_id: Optional[str] = Field(None, description="Identifier in the external database")
    professional_ratings: List[ProfessionalRating] = Field(default_factory=list)
    tasting_notes: Optional[str] = None
    alcohol_content: Optional[float] = None
    serving_temperature: Optional[ServingTemperature] = None
    decanting_time: Optional[int] = Field(None, description="Minutes")
    aging_potential: Optional[int] = Field(None, description="Years")
    last_updated: Optional[datetime] = None


class Wine(BaseModel):
    """Inventory or catalog entry, read-only for the engine."""

    id: str = Field(..., min_length=1)
    name: str
    producer: str = ""
    vintage: Optional[int] = Field(None, ge=1800, le=2100)
    type: WineType
    region: str = ""
    country: str = ""
    varietal: List[str] = Field(default_factory=list)
    quantity: int = Field(1, ge=0)
    purchase_price: Optional[float] = Field(None, ge=0)
    personal_rating: Optional[float] = Field(None, ge=1, le=10)
    drinking_window: Optional[DrinkingWindow] = None
    external_data: Optional[ExternalWineData] = None

    @property
    def in_stock(self) -> bool:
        return self.quantity > 0


class WineSuggestion(BaseModel):
    """A wine proposed for purchase; not yet in the inventory."""

    name: str
    producer: str = ""
    vintage: Optional[int] = None
    region: str = ""
    country: str = ""
    varietal: List[str] = Field(default_factory=list)
    type: WineType
    estimated_price: Optional[float] = Field(None, ge=0)
    external_id: Optional[str] = None
    professional_ratings: List[ProfessionalRating] = Field(default_factory=list)
    gap_reasons: List[str] = Field(default_factory=list)


# =======================
# RECOMMENDATIONS
# =======================

class ServingRecommendations(BaseModel):
    temperature_celsius: int
    temperature_fahrenheit: int
    decanting_minutes: Optional[int] = None
    glass_type: str
    serving_size: str
    timing: Optional[str] = None


class PairingDetails(BaseModel):
    pairing_type: PairingType
    score: UnitScore
    rule_confidence: UnitScore
    explanation: str


class RecommendationBase(BaseModel):
    """Fields shared by every recommendation variant."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    request_type: RequestType
    reasoning: str
    confidence: UnitScore
    urgency: UnitScore
    serving: Optional[ServingRecommendations] = None
    pairing: Optional[PairingDetails] = None
    educational_note: Optional[str] = None
    alert: Optional[AlertType] = None


class InventoryRecommendation(RecommendationBase):
    """Recommendation pointing at a bottle the user already owns."""

    type: Literal["inventory"] = "inventory"
    wine_id: str = Field(..., min_length=1)


class PurchaseRecommendation(RecommendationBase):
    """Recommendation for a bottle to buy."""

    type: Literal["purchase"] = "purchase"
    suggested_wine: WineSuggestion


Recommendation = Annotated[
    Union[InventoryRecommendation, PurchaseRecommendation],
    Field(discriminator="type"),
]


class RecommendationContext(BaseModel):
    """Situational constraints for a recommendation request."""

    occasion: Optional[str] = None
    price_range: Optional[PriceRange] = None
    wine_types: Optional[List[WineType]] = None
    urgency: Optional[UrgencyFilter] = None
    food_pairing: Optional[str] = None

    def is_empty(self) -> bool:
        return not any([
            self.occasion,
            self.price_range,
            self.wine_types,
            self.urgency,
            self.food_pairing,
        ])


# =======================
# FOOD PAIRING
# =======================

class FoodPairingRequest(BaseModel):
    food: str = Field(..., min_length=1, description="Free-text food description")
    cuisine: Optional[str] = None
    cooking_method: Optional[str] = None
    spice_level: Optional[SpiceLevel] = None
    richness: Optional[Richness] = None
    context: Optional[RecommendationContext] = None


class CookingImpact(BaseModel):
    method: str
    intensity: str
    flavors: List[str]
    wine_style: str


class FoodAnalysis(BaseModel):
    """Derived, per-request analysis of a dish."""

    description: str
    category: FoodCategory
    intensity: FoodIntensity
    cooking_impact: CookingImpact
    flavor_components: List[str] = Field(default_factory=list)
    cuisine: Optional[str] = None


class FoodPairingResponse(BaseModel):
    pairings: List[Recommendation] = Field(default_factory=list)
    alternatives: List[Recommendation] = Field(default_factory=list)
    reasoning: str
    confidence: UnitScore
    food_analysis: FoodAnalysis
    serving_tips: List[str] = Field(default_factory=list)
    educational_notes: List[str] = Field(default_factory=list)


# =======================
# EXTERNAL DATA
# =======================

class DataQualityReport(BaseModel):
    issues: List[str] = Field(default_factory=list)
    score: UnitScore = 1.0

    @property
    def is_valid(self) -> bool:
        return not self.issues


class DataEnrichmentResult(BaseModel):
    success: bool
    enriched_data: Optional[ExternalWineData] = None
    sources: List[str] = Field(default_factory=list)
    confidence: UnitScore = 0.0
    errors: List[str] = Field(default_factory=list)
    quality: Optional[DataQualityReport] = None


# =======================
# ORCHESTRATION
# =======================

class GapAnalysis(BaseModel):
    missing_regions: List[str] = Field(default_factory=list)
    missing_varietals: List[str] = Field(default_factory=list)
    missing_types: List[WineType] = Field(default_factory=list)
    underrepresented_types: List[WineType] = Field(default_factory=list)
    type_counts: Dict[str, int] = Field(default_factory=dict)

    @property
    def has_gaps(self) -> bool:
        return bool(
            self.missing_regions
            or self.missing_varietals
            or self.missing_types
            or self.underrepresented_types
        )


class RecommendationRequest(BaseModel):
    type: RequestType
    profile: TasteProfile
    user_id: Optional[str] = None
    inventory: Optional[List[Wine]] = Field(
        None, description="Candidate pool; read from the inventory store when omitted"
    )
    context: Optional[RecommendationContext] = None
    food: Optional[FoodPairingRequest] = None
    today: Optional[date] = None


class RecommendationResponse(BaseModel):
    request_type: RequestType
    recommendations: List[Recommendation] = Field(default_factory=list)
    alternatives: List[Recommendation] = Field(default_factory=list)
    reasoning: str
    confidence: UnitScore
    educational_notes: List[str] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list)
    serving_tips: List[str] = Field(default_factory=list)
    gap_analysis: Optional[GapAnalysis] = None
    food_analysis: Optional[FoodAnalysis] = None
