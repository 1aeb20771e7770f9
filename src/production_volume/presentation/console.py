from __future__ import annotations

import io
import json
from typing import List, Sequence

import pandas as pd

from production_volume.data.models import DateRange, ProductionRecord
from production_volume.services.rollups import CHART_ORDER, plant_totals, to_frame


def _format_table(rows: Sequence[Sequence[object]], headers: List[str], max_rows: int | None = None) -> str:
    output = io.StringIO()
    rows = list(rows)

    if max_rows is not None and len(rows) > max_rows:
        shown = rows[:max_rows]
        omitted = len(rows) - max_rows
    else:
        shown = rows
        omitted = 0

    widths = [len(h) for h in headers]
    for row in shown:
        for i, v in enumerate(row):
            widths[i] = max(widths[i], len(str(v)))

    def fmt(r):
        return " ".join(str(r[i]).ljust(widths[i]) for i in range(len(headers)))

    print(fmt(headers), file=output)
    print(" ".join("-" * w for w in widths), file=output)
    for row in shown:
        print(fmt(row), file=output)

    if omitted:
        print(f"... ({omitted} more rows omitted) ...", file=output)

    return output.getvalue()


def render_production(date_range: DateRange, records: Sequence[ProductionRecord], max_rows: int | None = None) -> str:
    out = io.StringIO()

    print("=" * 60, file=out)
    print(f"PRODUCTION VOLUME - {date_range.start.isoformat()} to {date_range.end.isoformat()}", file=out)
    print("=" * 60, file=out)

    if not records:
        print("No production rows returned.", file=out)
        return out.getvalue()

    rows = [
        (r.tran_date.isoformat(), r.plant.display_name, f"{r.quantity:,.2f}")
        for r in records
    ]
    print(_format_table(rows, ["Date", "Plant", "Quantity"], max_rows=max_rows), file=out)

    print("== Plant Totals ==", file=out)
    totals = plant_totals(records)
    for plant in CHART_ORDER:
        print(f"  {plant.display_name:<18} {totals[plant.value]:>14,.2f}", file=out)

    return out.getvalue()


def render_pivot(records: Sequence[ProductionRecord]) -> str:
    """Date x plant matrix, newest date first, with a Total row."""
    df = to_frame(records)
    if df.empty:
        return "No production rows returned.\n"

    pivot = (
        df.groupby([df["tran_date"].dt.date, "plant"])["quantity"]
        .sum()
        .unstack(fill_value=0.0)
        .reindex(columns=[p.value for p in CHART_ORDER], fill_value=0.0)
        .sort_index(ascending=False)
    )
    pivot.columns = [p.display_name for p in CHART_ORDER]
    pivot.loc["Total"] = pivot.sum()
    pivot["Total Result"] = pivot.sum(axis=1)

    with pd.option_context("display.width", 200, "display.max_columns", None):
        return pivot.round(2).to_string() + "\n"


def render_json(records: Sequence[ProductionRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2)
