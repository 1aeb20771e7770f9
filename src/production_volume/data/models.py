from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, Tuple

QUANTITY_STEP = Decimal("0.01")


# ------------------------------------------------------------
# Production lines reported on the chart
# ------------------------------------------------------------
class Plant(str, Enum):
    BRAZING = "brazing"
    LP = "lp"
    PLATING_SUB = "plating-sub"
    PLATING_GREITMO = "plating-greitmo"
    DOM = "dom"
    EXP = "exp"
    EXP2 = "exp2"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def phase(self) -> str:
        """Chart phase the plant belongs to ("8" or "4")."""
        return "4" if self in (Plant.DOM, Plant.EXP, Plant.EXP2) else "8"


_DISPLAY_NAMES = {
    Plant.LP: "LP",
    Plant.PLATING_SUB: "Plating - Sub",
    Plant.PLATING_GREITMO: "Plating - Greitmo",
    Plant.BRAZING: "Brazing",
    Plant.DOM: "DOM",
    Plant.EXP: "EXP",
    Plant.EXP2: "EXP2",
}


def as_quantity(value: Any) -> Decimal:
    """Normalise a driver value (Decimal, float, int, None) to DECIMAL(18,2)."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def as_date(value: Any) -> date:
    """Truncate a date, datetime, pandas Timestamp or ISO string to a date."""
    if isinstance(value, str):
        return datetime.strptime(value[:10], "%Y-%m-%d").date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # pandas.Timestamp and numpy datetime64 expose to_pydatetime / date
    if hasattr(value, "to_pydatetime"):
        return value.to_pydatetime().date()
    raise TypeError(f"Cannot interpret {value!r} as a date")


# ------------------------------------------------------------
# Output / cache unit
# ------------------------------------------------------------
@dataclass(frozen=True)
class ProductionRecord:
    tran_date: date
    plant: Plant
    quantity: Decimal

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape consumed by the chart endpoint."""
        return {
            "tranDate": self.tran_date.isoformat(),
            "tranQty": float(self.quantity),
            "plant": self.plant.value,
        }


# ------------------------------------------------------------
# Requested window (inclusive on both ends)
# ------------------------------------------------------------
@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(f"start date {self.start} is after end date {self.end}")

    @classmethod
    def of(cls, start: Any, end: Any) -> "DateRange":
        return cls(as_date(start), as_date(end))

    def is_historical(self, today: date) -> bool:
        # today is still being posted at the source
        return self.end < today

    def bounds(self) -> Tuple[datetime, datetime]:
        """Half-open datetime bounds covering every moment of start..end."""
        return (
            datetime.combine(self.start, time.min),
            datetime.combine(self.end + timedelta(days=1), time.min),
        )

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"
