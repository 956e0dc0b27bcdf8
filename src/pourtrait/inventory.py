"""Inventory access: the read-only store the engine pulls candidate wines from."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

import pandas as pd
from pydantic import ValidationError

from pourtrait.schema import DrinkingWindow, Wine

logger = logging.getLogger(__name__)

WINDOW_COLUMNS = ("earliest_date", "peak_start_date", "peak_end_date", "latest_date")


class InventoryStore(Protocol):
    """Anything that can list a user's wines."""

    def list_wines(self, user_id: str) -> List[Wine]:
        ...


class InMemoryInventoryStore:
    """Dict-backed store keyed by user id."""

    def __init__(self, wines_by_user: Optional[Mapping[str, Iterable[Wine]]] = None):
        self._wines: Dict[str, List[Wine]] = {
            user_id: list(wines) for user_id, wines in (wines_by_user or {}).items()
        }

    def add(self, user_id: str, wine: Wine) -> None:
        self._wines.setdefault(user_id, []).append(wine)

    def list_wines(self, user_id: str) -> List[Wine]:
        return list(self._wines.get(user_id, []))


def _clean(value: Any) -> Any:
    """Missing cells become None."""
    if isinstance(value, (list, tuple)):
        return value
    if pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.date()
    return value


def _varietals(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if str(v).strip()]
    return [v.strip() for v in str(value).split(",") if v.strip()]


def wines_from_dataframe(df: pd.DataFrame) -> List[Wine]:
    """
    Convert a cellar table into Wine models.

    Expects at least id, name and type columns. Varietals may be a list or a
    comma-separated string; the four drinking-window date columns are optional.
    Rows that fail validation are logged and skipped.
    """
    wines = []
    for index, row in df.iterrows():
        record = {key: _clean(value) for key, value in row.items()}
        record["varietal"] = _varietals(record.get("varietal"))

        if all(record.get(col) is not None for col in WINDOW_COLUMNS):
            record["drinking_window"] = {col: record[col] for col in WINDOW_COLUMNS}
        for col in WINDOW_COLUMNS:
            record.pop(col, None)

        if record.get("vintage") is not None:
            record["vintage"] = int(record["vintage"])
        if record.get("quantity") is None:
            record.pop("quantity", None)
        else:
            record["quantity"] = int(record["quantity"])
        if record.get("id") is not None:
            record["id"] = str(record["id"])

        try:
            wines.append(Wine.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping inventory row {index}: {e.error_count()} validation errors")

    logger.info(f"Loaded {len(wines)} of {len(df)} inventory rows")
    return wines


def wines_to_dataframe(wines: Iterable[Wine]) -> pd.DataFrame:
    """Flatten wines into one row each, the shape wines_from_dataframe reads."""
    rows = []
    for wine in wines:
        row = wine.model_dump(exclude={"drinking_window", "external_data"})
        row["type"] = wine.type.value
        row["varietal"] = ", ".join(wine.varietal)
        window: Optional[DrinkingWindow] = wine.drinking_window
        for col in WINDOW_COLUMNS:
            row[col] = getattr(window, col) if window else None
        rows.append(row)
    return pd.DataFrame(rows)
