"""
Tests for inventory loading from tables and the in-memory store.
"""

from datetime import date

import numpy as np
import pandas as pd
import pytest

from pourtrait.constants import WineType
from pourtrait.inventory import InMemoryInventoryStore, wines_from_dataframe, wines_to_dataframe
from pourtrait.schema import Wine


@pytest.fixture
def cellar_df():
    return pd.DataFrame([
        {
            "id": 1, "name": "Pomerol", "type": "red", "region": "Bordeaux",
            "varietal": "Merlot, Cabernet Franc", "vintage": 2015.0, "quantity": 2.0,
            "purchase_price": 45.0,
            "earliest_date": pd.Timestamp("2020-01-01"), "peak_start_date": pd.Timestamp("2022-01-01"),
            "peak_end_date": pd.Timestamp("2027-01-01"), "latest_date": pd.Timestamp("2030-01-01"),
        },
        {
            "id": 2, "name": "Sancerre", "type": "white", "region": "Loire Valley",
            "varietal": "Sauvignon Blanc", "vintage": np.nan, "quantity": np.nan,
            "purchase_price": np.nan,
            "earliest_date": pd.NaT, "peak_start_date": pd.NaT,
            "peak_end_date": pd.NaT, "latest_date": pd.NaT,
        },
        {
            "id": 3, "name": "Mystery", "type": "orange", "region": "",
            "varietal": "", "vintage": np.nan, "quantity": 1.0,
            "purchase_price": 10.0,
            "earliest_date": pd.NaT, "peak_start_date": pd.NaT,
            "peak_end_date": pd.NaT, "latest_date": pd.NaT,
        },
    ])


class TestWinesFromDataframe:
    """Test table to model conversion."""

    def test_valid_rows_loaded(self, cellar_df):
        """Invalid rows are skipped, the rest convert."""
        wines = wines_from_dataframe(cellar_df)
        assert [w.id for w in wines] == ["1", "2"]

    def test_types_and_window(self, cellar_df):
        """Numbers, varietals, and window dates are normalized."""
        pomerol = wines_from_dataframe(cellar_df)[0]

        assert pomerol.type == WineType.RED
        assert pomerol.vintage == 2015
        assert pomerol.quantity == 2
        assert pomerol.varietal == ["Merlot", "Cabernet Franc"]
        assert pomerol.drinking_window.peak_start_date == date(2022, 1, 1)

    def test_missing_cells_use_defaults(self, cellar_df):
        """NaN becomes None and an absent quantity means one bottle."""
        sancerre = wines_from_dataframe(cellar_df)[1]

        assert sancerre.vintage is None
        assert sancerre.purchase_price is None
        assert sancerre.quantity == 1
        assert sancerre.drinking_window is None

    def test_list_varietals(self):
        """List-valued varietal cells are accepted as is."""
        df = pd.DataFrame([{"id": "a", "name": "Blend", "type": "red", "varietal": ["Grenache", "Syrah"]}])
        assert wines_from_dataframe(df)[0].varietal == ["Grenache", "Syrah"]

    def test_round_trip_shape(self, cellar_df):
        """wines_to_dataframe writes the columns wines_from_dataframe reads."""
        df = wines_to_dataframe(wines_from_dataframe(cellar_df))

        assert {"id", "name", "type", "varietal", "peak_start_date"} <= set(df.columns)
        assert df.loc[0, "varietal"] == "Merlot, Cabernet Franc"
        assert pd.isna(df.loc[1, "peak_start_date"])


class TestInMemoryInventoryStore:
    """Test the dict-backed store."""

    def test_lists_per_user(self):
        """Each user sees only their own wines."""
        store = InMemoryInventoryStore({"u1": [Wine(id="a", name="A", type=WineType.RED)]})
        store.add("u2", Wine(id="b", name="B", type=WineType.WHITE))

        assert [w.id for w in store.list_wines("u1")] == ["a"]
        assert [w.id for w in store.list_wines("u2")] == ["b"]
        assert store.list_wines("nobody") == []

    def test_returns_copy(self):
        """Mutating the returned list does not change the store."""
        store = InMemoryInventoryStore({"u1": [Wine(id="a", name="A", type=WineType.RED)]})
        store.list_wines("u1").clear()
        assert len(store.list_wines("u1")) == 1
