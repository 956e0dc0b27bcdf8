"""
LLM-backed adventurous pairing provider.

Asks an OpenAI chat model for unexpected-but-sound pairings among the wines
the classic rules did not pick. Output is JSON validated with pydantic; ids
the model invents are dropped. Responses are cached per (dish, candidates,
profile) and calls go through the shared rate limiter.
"""

import json
import os
from datetime import date
from typing import List, Optional, Sequence

from openai import OpenAI, RateLimitError, APIError
from pydantic import BaseModel, Field, confloat
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from pourtrait.cache import TTLCache
from pourtrait.config import OPENAI_MODEL, OPENAI_SEED, OPENAI_TEMPERATURE
from pourtrait.constants import AlgorithmConstants
from pourtrait.error_handling import LLMError, handle_llm_error, validate_payload
from pourtrait.food_pairing import AdventurousPick
from pourtrait.rate_limiter import RateLimiter, RateLimitError as RLError, get_global_limiter
from pourtrait.schema import FoodAnalysis, TasteProfile, Wine
from pourtrait.utils import logger

RATE_LIMIT_KEY = "openai"
OPENAI_REQUESTS_PER_MINUTE = 20
OPENAI_REQUESTS_PER_DAY = 500

SYSTEM_PROMPT = (
    "You are a sommelier suggesting adventurous but sound food and wine pairings. "
    "Only choose wines from the provided list, by id. Return JSON only."
)


class LLMPairingPick(BaseModel):
    """One pairing proposed by the model."""

    wine_id: str = Field(..., min_length=1)
    confidence: confloat(ge=0, le=1) = Field(..., description="How well the wine suits the dish (0-1)")
    reasoning: str = Field(..., description="Why this unexpected pairing works")


class LLMPairingResponse(BaseModel):
    pairings: List[LLMPairingPick] = Field(default_factory=list)


class OpenAIPairingProvider:
    """
    Adventurous pairing channel backed by an OpenAI chat model.

    Usage:
        matcher = FoodPairingMatcher(adventurous_provider=OpenAIPairingProvider())
    """

    def __init__(
        self,
        client: Optional[OpenAI] = None,
        model: str = OPENAI_MODEL,
        rate_limiter: Optional[RateLimiter] = None,
        cache: Optional[TTLCache] = None
    ):
        if client is None:
            api_key = os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise ValueError("OPENAI_API_KEY not found in environment variables")
            client = OpenAI(api_key=api_key)

        self.client = client
        self.model = model
        self.cache = cache or TTLCache(ttl_hours=AlgorithmConstants.LLM_CACHE_TTL_HOURS)
        self.rate_limiter = rate_limiter or get_global_limiter()
        if RATE_LIMIT_KEY not in self.rate_limiter.configs:
            self.rate_limiter.register(
                RATE_LIMIT_KEY,
                requests_per_minute=OPENAI_REQUESTS_PER_MINUTE,
                requests_per_day=OPENAI_REQUESTS_PER_DAY,
                display_name="OpenAI",
            )

    def propose(
        self,
        analysis: FoodAnalysis,
        candidates: Sequence[Wine],
        profile: TasteProfile,
        today: Optional[date] = None
    ) -> List[AdventurousPick]:
        """
        Ask the model for adventurous pairings.

        Returns:
            At most MAX_ADVENTUROUS_PAIRINGS picks referring to known candidates;
            empty when the model answer is unusable
        """
        if not candidates:
            return []

        prompt = self._build_prompt(analysis, candidates, profile)
        cache_key = TTLCache.make_key("adventurous_pairing", {"model": self.model, "prompt": prompt})

        data = self.cache.get(cache_key)
        if data is None:
            messages = [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ]
            try:
                data = self._call_openai_with_retry(messages)
            except Exception as e:
                return handle_llm_error(e, "adventurous pairing", fallback_value=[])

            if not validate_payload(data, ["pairings"], "adventurous pairing"):
                return []
            self.cache.set(cache_key, data)
        else:
            logger.info("Using cached adventurous pairing")

        try:
            parsed = LLMPairingResponse.model_validate(data)
        except Exception as e:
            return handle_llm_error(e, "adventurous pairing", fallback_value=[])

        known = {w.id for w in candidates}
        picks = []
        for pick in parsed.pairings:
            if pick.wine_id not in known:
                logger.warning(f"Model suggested wine outside the candidate list: {pick.wine_id}")
                continue
            picks.append(AdventurousPick(
                wine_id=pick.wine_id,
                score=pick.confidence,
                base_confidence=pick.confidence,
                reasoning=pick.reasoning,
            ))

        picks.sort(key=lambda p: -p.score)
        return picks[:AlgorithmConstants.MAX_ADVENTUROUS_PAIRINGS]

    @staticmethod
    def _build_prompt(analysis: FoodAnalysis, candidates: Sequence[Wine], profile: TasteProfile) -> str:
        wines = "\n".join(
            f"- id={w.id}: {w.name} ({w.type.value}, {w.region or 'unknown region'}, "
            f"{', '.join(w.varietal) or 'unknown varietal'}, {w.vintage or 'NV'})"
            for w in candidates
        )
        impact = analysis.cooking_impact
        flavors = ", ".join(analysis.flavor_components) or "none noted"

        return f"""Suggest up to {AlgorithmConstants.MAX_ADVENTUROUS_PAIRINGS} adventurous wine pairings for this dish.

DISH: {analysis.description}
Category: {analysis.category.value}
Intensity: {analysis.intensity.value}
Cooking: {impact.method} ({', '.join(impact.flavors)})
Flavors: {flavors}

DRINKER: {profile.experience_level.value} experience

AVAILABLE WINES:
{wines}

Return JSON: {{"pairings": [{{"wine_id": str, "confidence": 0-1, "reasoning": str}}]}}
"""

    @retry(
        stop=stop_after_attempt(AlgorithmConstants.MAX_RETRIES),
        wait=wait_exponential(
            multiplier=AlgorithmConstants.RETRY_MULTIPLIER,
            min=AlgorithmConstants.RETRY_MIN_WAIT_SECONDS,
            max=AlgorithmConstants.RETRY_MAX_WAIT_SECONDS,
        ),
        retry=retry_if_exception_type((RateLimitError, APIError)),
        reraise=True
    )
    def _call_openai_with_retry(self, messages: list) -> dict:
        """
        Call OpenAI API with automatic retry on transient errors.

        Raises:
            LLMError: If the local rate limit is exhausted
            OpenAIError: If all retries fail
        """
        try:
            self.rate_limiter.check_and_increment(RATE_LIMIT_KEY)
        except RLError as e:
            raise LLMError(str(e)) from e

        logger.debug("Calling OpenAI API...")
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=OPENAI_TEMPERATURE,
            seed=OPENAI_SEED,
        )
        return json.loads(completion.choices[0].message.content)
