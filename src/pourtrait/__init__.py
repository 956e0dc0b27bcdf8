"""Pourtrait - a wine recommendation engine: taste profiles, pairings, and cellar insights."""

from pourtrait.orchestrator import RecommendationOrchestrator
from pourtrait.profile_calculator import calculate_taste_profile, validate_quiz_responses
from pourtrait.food_pairing import FoodPairingMatcher
from pourtrait.external_data import ExternalDataAggregator
from pourtrait.schema import RecommendationRequest, RecommendationResponse, TasteProfile, Wine

__version__ = "0.1.0"

__all__ = [
    'RecommendationOrchestrator',
    'calculate_taste_profile',
    'validate_quiz_responses',
    'FoodPairingMatcher',
    'ExternalDataAggregator',
    'RecommendationRequest',
    'RecommendationResponse',
    'TasteProfile',
    'Wine',
    '__version__',
]
