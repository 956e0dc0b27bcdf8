"""
ExternalDataAggregator: concurrent multi-source wine metadata

Fans a wine-identifying query out to every configured source at once,
merges what comes back, and scores the merged record:
- per-source sliding-window rate limiting and a 24 hour response cache
  (a cache hit skips both the limiter and the network)
- per-source timeout; one slow or failing source never blocks the others
- ratings concatenated across sources, scalar fields from the single
  highest-confidence source
- overall confidence weighted by each source's reliability x data quality

Partial success is the normal outcome. Failures become error strings on the
result; nothing is retried within one call.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import httpx
import numpy as np
from pydantic import BaseModel, Field

from pourtrait.cache import TTLCache
from pourtrait.config import EXTERNAL_SOURCE_TIMEOUT_SECONDS, source_setting
from pourtrait.constants import AlgorithmConstants, WineType
from pourtrait.error_handling import ExternalSourceError, handle_source_error, validate_payload
from pourtrait.rate_limiter import RateLimiter, RateLimitError
from pourtrait.schema import (
    DataEnrichmentResult,
    DataQualityReport,
    ExternalWineData,
    UnitScore,
)
from pourtrait.utils import clamp

logger = logging.getLogger(__name__)

EMPTY_QUERY_ERROR = "Empty query: at least one identifying field is required"
NO_DATA_ERROR = "No source returned data for this wine"

# Scalar fields copied from the most confident source
SCALAR_FIELDS: Tuple[str, ...] = (
    "wine_db_id",
    "tasting_notes",
    "alcohol_content",
    "serving_temperature",
    "decanting_time",
    "aging_potential",
)

# (max age in days, freshness)
FRESHNESS_STEPS: Tuple[Tuple[int, float], ...] = ((7, 1.0), (30, 0.8), (90, 0.6), (365, 0.4))
STALE_FRESHNESS = 0.2


@dataclass(frozen=True)
class WineDataSourceConfig:
    """Static metadata for one external wine-data source."""
    id: str
    name: str
    base_url: str
    requests_per_minute: int
    requests_per_day: int
    reliability: float
    data_quality: float

    @property
    def weight(self) -> float:
        return self.reliability * self.data_quality


WINE_DATA_SOURCES: Tuple[WineDataSourceConfig, ...] = (
    WineDataSourceConfig(
        "vivino", "Vivino",
        source_setting("vivino", "URL", "https://www.vivino.com/api"), 60, 1000, 0.85, 0.80,
    ),
    WineDataSourceConfig(
        "wine_searcher", "Wine-Searcher",
        source_setting("wine_searcher", "URL", "https://www.wine-searcher.com/api"), 30, 500, 0.90, 0.85,
    ),
    WineDataSourceConfig(
        "cellar_tracker", "CellarTracker",
        source_setting("cellar_tracker", "URL", "https://www.cellartracker.com/api"), 20, 200, 0.95, 0.90,
    ),
    WineDataSourceConfig(
        "wine_spectator", "Wine Spectator",
        source_setting("wine_spectator", "URL", "https://www.winespectator.com/api"), 10, 100, 0.98, 0.95,
    ),
)


class WineSearchQuery(BaseModel):
    """Wine-identifying fields; any subset may be present."""

    name: Optional[str] = None
    producer: Optional[str] = None
    vintage: Optional[int] = None
    region: Optional[str] = None
    varietal: List[str] = Field(default_factory=list)
    type: Optional[WineType] = None

    def is_empty(self) -> bool:
        text_fields = (self.name, self.producer, self.region)
        return (
            not any(f and f.strip() for f in text_fields)
            and self.vintage is None
            and not self.varietal
            and self.type is None
        )

    def cache_payload(self) -> Dict[str, Any]:
        """Normalized identity used for caching."""
        def norm(value: Optional[str]) -> Optional[str]:
            return value.strip().lower() if value else None

        return {
            "name": norm(self.name),
            "producer": norm(self.producer),
            "region": norm(self.region),
            "vintage": self.vintage,
        }

    def to_params(self) -> Dict[str, Any]:
        params = {
            "name": self.name,
            "producer": self.producer,
            "vintage": self.vintage,
            "region": self.region,
            "varietal": ",".join(self.varietal) or None,
            "type": self.type.value if self.type else None,
        }
        return {k: v for k, v in params.items() if v is not None}


class WineDataResult(BaseModel):
    """One source's answer."""

    source: str
    confidence: UnitScore
    data: ExternalWineData
    last_updated: Optional[datetime] = None


class WineDataSource(Protocol):
    """Contract for an external provider: request by identifying fields."""

    config: WineDataSourceConfig

    async def search(self, query: WineSearchQuery) -> Optional[WineDataResult]:
        ...


class HttpWineDataSource:
    """
    JSON-over-HTTP provider.

    GET {base_url}/wines/search with the query as parameters. Expects
    {"confidence": float, "data": {...}}; 404 means no match.
    """

    def __init__(self, config: WineDataSourceConfig, client: httpx.AsyncClient, api_key: Optional[str] = None):
        self.config = config
        self.client = client
        self.api_key = api_key if api_key is not None else source_setting(config.id, "API_KEY")

    async def search(self, query: WineSearchQuery) -> Optional[WineDataResult]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        response = await self.client.get(
            f"{self.config.base_url.rstrip('/')}/wines/search",
            params=query.to_params(),
            headers=headers,
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()

        payload = response.json()
        if not validate_payload(payload, ["confidence", "data"], f"{self.config.name} search"):
            raise ExternalSourceError("malformed response")

        return WineDataResult(
            source=self.config.id,
            confidence=payload["confidence"],
            data=ExternalWineData.model_validate(payload["data"]),
            last_updated=payload.get("last_updated"),
        )


# =======================
# MERGE / SCORE / VALIDATE
# =======================

def merge_wine_data(
    results: Sequence[WineDataResult],
    sources: Optional[Sequence[WineDataSourceConfig]] = None
) -> ExternalWineData:
    """
    Merge source answers.

    Ratings are concatenated in source order. Every scalar field comes from
    the single most confident result (first one wins a tie).
    """
    order = {s.id: i for i, s in enumerate(sources or WINE_DATA_SOURCES)}
    ordered = sorted(results, key=lambda r: order.get(r.source, len(order)))

    best = max(ordered, key=lambda r: r.confidence)
    merged = {field: getattr(best.data, field) for field in SCALAR_FIELDS}
    merged["professional_ratings"] = [
        rating for result in ordered for rating in result.data.professional_ratings
    ]
    timestamps = [r.last_updated or r.data.last_updated for r in ordered]
    timestamps = [t for t in timestamps if t is not None]
    merged["last_updated"] = max(timestamps) if timestamps else None

    return ExternalWineData(**merged)


def calculate_confidence(
    results: Sequence[WineDataResult],
    sources: Optional[Sequence[WineDataSourceConfig]] = None
) -> float:
    """Σ(confidence × reliability × quality) / Σ(reliability × quality)."""
    by_id = {s.id: s for s in (sources or WINE_DATA_SOURCES)}
    pairs = [(r.confidence, by_id[r.source].weight) for r in results if r.source in by_id]
    if not pairs:
        return 0.0

    confidences, weights = np.array(pairs).T
    if weights.sum() == 0:
        return 0.0
    return float(np.clip(np.average(confidences, weights=weights), 0.0, 1.0))


def validate_wine_data(data: ExternalWineData) -> DataQualityReport:
    """Flag data-quality issues. Never raises; the record stays usable."""
    issues = []
    score = 1.0

    if not data.wine_db_id:
        issues.append("Missing external wine id")
        score -= AlgorithmConstants.MISSING_EXTERNAL_ID_PENALTY

    for rating in data.professional_ratings:
        if not rating.source:
            issues.append("Professional rating missing source")
            score -= AlgorithmConstants.DATA_ISSUE_PENALTY
        if rating.score < 0 or rating.score > rating.max_score:
            issues.append(f"Invalid rating score {rating.score} (max {rating.max_score}) from {rating.source or 'unknown'}")
            score -= AlgorithmConstants.DATA_ISSUE_PENALTY

    if data.alcohol_content is not None and not 0 <= data.alcohol_content <= AlgorithmConstants.MAX_ALCOHOL_CONTENT:
        issues.append(f"Alcohol content out of range: {data.alcohol_content}")
        score -= AlgorithmConstants.DATA_ISSUE_PENALTY

    temperature = data.serving_temperature
    if temperature is not None and temperature.min >= temperature.max:
        issues.append(f"Invalid serving temperature range: {temperature.min}-{temperature.max}")
        score -= AlgorithmConstants.DATA_ISSUE_PENALTY

    if data.aging_potential is not None and not 0 <= data.aging_potential <= AlgorithmConstants.MAX_AGING_POTENTIAL:
        issues.append(f"Aging potential out of range: {data.aging_potential}")
        score -= AlgorithmConstants.DATA_ISSUE_PENALTY

    return DataQualityReport(issues=issues, score=clamp(score))


def data_freshness(last_updated: Optional[datetime], now: Optional[datetime] = None) -> float:
    """Freshness score decaying with the age of the data."""
    if last_updated is None:
        return STALE_FRESHNESS
    now = now or datetime.now(last_updated.tzinfo)
    age_days = (now - last_updated).days
    for max_days, freshness in FRESHNESS_STEPS:
        if age_days <= max_days:
            return freshness
    return STALE_FRESHNESS


# =======================
# AGGREGATOR
# =======================

class ExternalDataAggregator:
    """
    Queries every source concurrently and merges the answers.

    Usage:
        async with httpx.AsyncClient() as client:
            aggregator = ExternalDataAggregator.from_client(client)
            result = await aggregator.enrich(WineSearchQuery(name="Opus One", vintage=2018))
    """

    def __init__(
        self,
        sources: Sequence[WineDataSource],
        rate_limiter: Optional[RateLimiter] = None,
        cache: Optional[TTLCache] = None,
        timeout_seconds: float = EXTERNAL_SOURCE_TIMEOUT_SECONDS
    ):
        self.sources = list(sources)
        self.rate_limiter = rate_limiter or RateLimiter()
        self.cache = cache or TTLCache()
        self.timeout_seconds = timeout_seconds

        for source in self.sources:
            config = source.config
            if config.id not in self.rate_limiter.configs:
                self.rate_limiter.register(
                    config.id,
                    requests_per_minute=config.requests_per_minute,
                    requests_per_day=config.requests_per_day,
                    display_name=config.name,
                )

    @classmethod
    def from_client(cls, client: httpx.AsyncClient, **kwargs) -> "ExternalDataAggregator":
        """Aggregator over the default HTTP sources sharing one client."""
        return cls([HttpWineDataSource(config, client) for config in WINE_DATA_SOURCES], **kwargs)

    async def enrich(self, query: WineSearchQuery) -> DataEnrichmentResult:
        """
        Enrich one wine from all sources.

        Args:
            query: Identifying fields

        Returns:
            DataEnrichmentResult; success False with errors when nothing answered
        """
        if query.is_empty():
            logger.warning("Refusing to enrich an empty wine query")
            return DataEnrichmentResult(success=False, confidence=0.0, errors=[EMPTY_QUERY_ERROR])

        outcomes = await asyncio.gather(*(self._query_source(s, query) for s in self.sources))

        results: List[WineDataResult] = []
        errors: List[str] = []
        names: List[str] = []
        for source, (result, error) in zip(self.sources, outcomes):
            if error:
                errors.append(error)
            elif result is not None:
                results.append(result)
                names.append(source.config.name)

        if not results:
            return DataEnrichmentResult(
                success=False,
                confidence=0.0,
                errors=errors or [NO_DATA_ERROR],
            )

        configs = [s.config for s in self.sources]
        merged = merge_wine_data(results, configs)
        confidence = calculate_confidence(results, configs)

        logger.info(
            f"Enriched '{query.name or query.producer}' from {len(results)}/{len(self.sources)} sources "
            f"(confidence {confidence:.2f}, {len(errors)} errors)"
        )

        return DataEnrichmentResult(
            success=True,
            enriched_data=merged,
            sources=names,
            confidence=confidence,
            errors=errors,
            quality=validate_wine_data(merged),
        )

    async def _query_source(
        self,
        source: WineDataSource,
        query: WineSearchQuery
    ) -> Tuple[Optional[WineDataResult], Optional[str]]:
        """Query one source in isolation; returns (result, error)."""
        config = source.config
        cache_key = TTLCache.make_key(config.id, query.cache_payload())

        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached, None

        try:
            self.rate_limiter.check_and_increment(config.id)
        except RateLimitError:
            return None, f"Rate limit exceeded for {config.name}"

        try:
            result = await asyncio.wait_for(source.search(query), timeout=self.timeout_seconds)
        except Exception as e:
            return None, handle_source_error(e, config.name)

        if result is not None:
            # Weights and merge order are keyed on the configured id
            if result.source != config.id:
                result = result.model_copy(update={"source": config.id})
            self.cache.set(cache_key, result)
        return result, None
