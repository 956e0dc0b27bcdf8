"""
DrinkingWindowClassifier: lifecycle stage and urgency for a bottle

Given the four drinking-window checkpoints and today's date, derives a
status and a fixed urgency weight. Out-of-order checkpoints are a data
quality defect in the source record: they are reported through
validate_drinking_window and the classifier still returns a best-effort
status computed against the sorted checkpoints.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Tuple

from pourtrait.constants import (
    BASE_AGING_YEARS,
    DEFAULT_AGING_YEARS,
    DEFAULT_MIN_AGING_YEARS,
    MIN_AGING_YEARS,
    PREMIUM_AGING_REGIONS,
    STATUS_URGENCY,
    URGENCY_PROXIMITY_BONUSES,
    AlertType,
    AlgorithmConstants,
    DrinkingWindowStatus,
    WineType,
)
from pourtrait.schema import DataQualityReport, DrinkingWindow, Wine
from pourtrait.utils import clamp

logger = logging.getLogger(__name__)

_CHECKPOINTS = ("earliest_date", "peak_start_date", "peak_end_date", "latest_date")


@dataclass(frozen=True)
class WindowAssessment:
    """Status and urgency of one bottle on a given day."""
    status: DrinkingWindowStatus
    urgency: float
    ordered: bool  # False when checkpoints had to be sorted


@dataclass(frozen=True)
class WindowAlert:
    wine_id: str
    alert: AlertType
    days: int  # days until the relevant checkpoint (negative once passed)


def urgency_for_status(status: DrinkingWindowStatus) -> float:
    """Fixed urgency table: peak > declining > ready > over_hill > too_young."""
    return STATUS_URGENCY[status]


def _checkpoints(window: DrinkingWindow) -> Tuple[date, date, date, date]:
    return tuple(getattr(window, name) for name in _CHECKPOINTS)


def validate_drinking_window(window: DrinkingWindow) -> DataQualityReport:
    """Report ordering violations between consecutive checkpoints."""
    points = _checkpoints(window)
    issues = [
        f"{_CHECKPOINTS[i]} ({points[i]}) is after {_CHECKPOINTS[i + 1]} ({points[i + 1]})"
        for i in range(len(points) - 1)
        if points[i] > points[i + 1]
    ]
    score = clamp(1.0 - AlgorithmConstants.WINDOW_ORDER_PENALTY * len(issues))
    return DataQualityReport(issues=issues, score=score)


def classify_status(
    earliest: date,
    peak_start: date,
    peak_end: date,
    latest: date,
    today: date
) -> DrinkingWindowStatus:
    """Total function of the four checkpoints and today's date."""
    if today < earliest:
        return DrinkingWindowStatus.TOO_YOUNG
    if today < peak_start:
        return DrinkingWindowStatus.READY
    if today <= peak_end:
        return DrinkingWindowStatus.PEAK
    if today <= latest:
        return DrinkingWindowStatus.DECLINING
    return DrinkingWindowStatus.OVER_HILL


def assess_window(window: DrinkingWindow, today: Optional[date] = None) -> WindowAssessment:
    """
    Classify a drinking window.

    Args:
        window: Drinking window checkpoints
        today: Reference date (defaults to date.today())

    Returns:
        WindowAssessment with status and urgency
    """
    today = today or date.today()
    points = _checkpoints(window)
    ordered = list(points) == sorted(points)

    if not ordered:
        logger.warning(f"Drinking window checkpoints out of order {points}, classifying on sorted dates")
        points = tuple(sorted(points))

    status = classify_status(*points, today)
    return WindowAssessment(status=status, urgency=urgency_for_status(status), ordered=ordered)


def refined_urgency(window: DrinkingWindow, today: Optional[date] = None) -> float:
    """Table urgency plus bonuses as the latest date approaches, capped at 1."""
    today = today or date.today()
    assessment = assess_window(window, today)
    days_left = (max(_checkpoints(window)) - today).days

    urgency = assessment.urgency
    drinkable_now = assessment.status in (DrinkingWindowStatus.PEAK, DrinkingWindowStatus.DECLINING)
    for horizon, bonus, needs_drinkable in URGENCY_PROXIMITY_BONUSES:
        if 0 <= days_left <= horizon and (drinkable_now or not needs_drinkable):
            urgency += bonus

    return clamp(urgency)


def drinking_window_alert(window: DrinkingWindow, today: Optional[date] = None) -> Optional[AlertType]:
    """Alert to attach to a recommendation for tonight, if any."""
    today = today or date.today()
    assessment = assess_window(window, today)
    earliest, peak_start, peak_end, latest = sorted(_checkpoints(window))

    if assessment.status == DrinkingWindowStatus.PEAK:
        if (peak_end - today).days <= AlgorithmConstants.LEAVING_PEAK_TONIGHT_DAYS:
            return AlertType.LEAVING_PEAK
        return AlertType.AT_PEAK
    if assessment.status == DrinkingWindowStatus.DECLINING:
        if (latest - today).days <= AlgorithmConstants.DECLINING_URGENT_DAYS:
            return AlertType.URGENT
        return None
    if assessment.status == DrinkingWindowStatus.OVER_HILL:
        return AlertType.OVER_HILL
    return None


def wines_needing_alerts(wines: Iterable[Wine], today: Optional[date] = None) -> List[WindowAlert]:
    """
    Scan in-stock wines for notification-worthy transitions.

    Entering peak within 7 days, leaving peak within 30 days, or over the hill.
    """
    today = today or date.today()
    alerts: List[WindowAlert] = []

    for wine in wines:
        if not wine.in_stock or wine.drinking_window is None:
            continue

        _, peak_start, peak_end, latest = sorted(_checkpoints(wine.drinking_window))
        to_peak = (peak_start - today).days
        to_peak_end = (peak_end - today).days

        if 0 < to_peak <= AlgorithmConstants.ENTERING_PEAK_ALERT_DAYS:
            alerts.append(WindowAlert(wine.id, AlertType.ENTERING_PEAK, to_peak))
        elif peak_start <= today and 0 <= to_peak_end <= AlgorithmConstants.LEAVING_PEAK_ALERT_DAYS:
            alerts.append(WindowAlert(wine.id, AlertType.LEAVING_PEAK, to_peak_end))
        elif today > latest:
            alerts.append(WindowAlert(wine.id, AlertType.OVER_HILL, (latest - today).days))

    return alerts


def estimate_drinking_window(
    wine_type: WineType,
    vintage: int,
    region: str = "",
    aging_potential: Optional[int] = None
) -> DrinkingWindow:
    """
    Estimate a drinking window from type, vintage, and region.

    An aging potential from external data replaces the type-based estimate.
    """
    if aging_potential is None:
        aging_potential = BASE_AGING_YEARS.get(wine_type, DEFAULT_AGING_YEARS)
        if any(premium.lower() in region.lower() for premium in PREMIUM_AGING_REGIONS):
            aging_potential += AlgorithmConstants.PREMIUM_REGION_BONUS_YEARS

    min_aging = MIN_AGING_YEARS.get(wine_type, DEFAULT_MIN_AGING_YEARS)
    peak_start = max(math.floor(aging_potential * AlgorithmConstants.PEAK_START_FRACTION),
                     AlgorithmConstants.MIN_PEAK_START_YEARS)
    peak_end = max(math.floor(aging_potential * AlgorithmConstants.PEAK_END_FRACTION),
                   AlgorithmConstants.MIN_PEAK_END_YEARS)
    latest = max(aging_potential, peak_end)

    return DrinkingWindow(
        earliest_date=date(vintage + min(min_aging, peak_start), 1, 1),
        peak_start_date=date(vintage + peak_start, 1, 1),
        peak_end_date=date(vintage + peak_end, 12, 31),
        latest_date=date(vintage + latest, 12, 31),
    )
