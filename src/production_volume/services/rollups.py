# src/production_volume/services/rollups.py

"""
Chart-facing rollups of a production series.

Takes the flat (date, plant, quantity) series and produces:

    - monthly totals per plant for one year (annual chart)
    - daily quantities per plant for one month (month drill-down)
    - per-plant totals (summary cards)
    - current vs previous year series (comparison overlay)

Every matrix carries all seven plants, zero-filled, in chart order.
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

from production_volume.data.models import Plant, ProductionRecord

# chart legend order
CHART_ORDER = [
    Plant.LP,
    Plant.PLATING_SUB,
    Plant.PLATING_GREITMO,
    Plant.BRAZING,
    Plant.DOM,
    Plant.EXP,
    Plant.EXP2,
]


def plants_in_phase(phase: str) -> List[Plant]:
    return [p for p in CHART_ORDER if p.phase == phase]


def to_frame(records: Sequence[ProductionRecord]) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {"tran_date": r.tran_date, "plant": r.plant.value, "quantity": float(r.quantity)}
            for r in records
        ],
        columns=["tran_date", "plant", "quantity"],
    )
    df["tran_date"] = pd.to_datetime(df["tran_date"])
    return df


def _matrix(df: pd.DataFrame, column: str, periods: range, plants: Optional[Sequence[Plant]]) -> pd.DataFrame:
    plant_index = [p.value for p in (plants or CHART_ORDER)]
    if df.empty:
        return pd.DataFrame(0.0, index=plant_index, columns=list(periods))

    pivot = (
        df.groupby(["plant", column])["quantity"]
        .sum()
        .unstack(fill_value=0.0)
    )
    return pivot.reindex(index=plant_index, columns=list(periods), fill_value=0.0).fillna(0.0)


def monthly_totals(
    records: Sequence[ProductionRecord],
    year: int,
    plants: Optional[Sequence[Plant]] = None,
) -> pd.DataFrame:
    """Plant x month (1..12) totals for ``year``."""
    df = to_frame(records)
    df = df[df["tran_date"].dt.year == year].copy()
    df["month"] = df["tran_date"].dt.month
    return _matrix(df, "month", range(1, 13), plants)


def daily_matrix(
    records: Sequence[ProductionRecord],
    year: int,
    month: int,
    plants: Optional[Sequence[Plant]] = None,
) -> pd.DataFrame:
    """Plant x day-of-month quantities for one month."""
    days_in_month = calendar.monthrange(year, month)[1]
    df = to_frame(records)
    df = df[(df["tran_date"].dt.year == year) & (df["tran_date"].dt.month == month)].copy()
    df["day"] = df["tran_date"].dt.day
    return _matrix(df, "day", range(1, days_in_month + 1), plants)


def plant_totals(records: Sequence[ProductionRecord]) -> Dict[str, float]:
    df = to_frame(records)
    totals = df.groupby("plant")["quantity"].sum()
    return {p.value: round(float(totals.get(p.value, 0.0)), 2) for p in CHART_ORDER}


def fetch_year_over_year(service, year: int) -> Dict[str, List[ProductionRecord]]:
    """Full-year series for ``year`` and the year before it."""
    return {
        "current": service.get_production_data(date(year, 1, 1), date(year, 12, 31)),
        "previous": service.get_production_data(date(year - 1, 1, 1), date(year - 1, 12, 31)),
    }
