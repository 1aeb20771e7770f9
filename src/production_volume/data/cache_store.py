"""
Cache store for historical production volumes (``iot_pdvolume``).

Rows are keyed by (TranDate, Plant). A range is rewritten by deleting every
row inside it and inserting the freshly computed series; readers may briefly
see the range empty while that happens.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Sequence

import pandas as pd
from sqlalchemy import Engine, delete, insert, inspect, select
from sqlalchemy.exc import SQLAlchemyError

from production_volume.data.models import (
    DateRange,
    Plant,
    ProductionRecord,
    as_date,
    as_quantity,
)
from production_volume.data.tables import (
    CACHE_INDEX_NAME,
    CACHE_TABLE_NAME,
    cache_metadata,
    pd_volume,
)
from production_volume.utils.exceptions import (
    CacheWriteError,
    SchemaBootstrapError,
    SourceQueryError,
)
from production_volume.utils.logger import get_logger

logger = get_logger(__name__)


def _range_clause(date_range: DateRange):
    start, end_exclusive = date_range.bounds()
    return (pd_volume.c.TranDate >= start) & (pd_volume.c.TranDate < end_exclusive)


def records_from_frame(df: pd.DataFrame) -> List[ProductionRecord]:
    """Frame with TranDate / Plant / TranQty columns -> records."""
    return [
        ProductionRecord(
            tran_date=as_date(row.TranDate),
            plant=Plant(row.Plant),
            quantity=as_quantity(row.TranQty),
        )
        for row in df.itertuples(index=False)
    ]


class CacheStore:
    def __init__(self, engine: Engine):
        self._engine = engine

    # ============================================================
    # SCHEMA BOOTSTRAP
    # ============================================================

    def ensure_schema(self) -> None:
        """
        Create the cache table and its date index when missing.

        Safe to call on every request. A concurrent caller winning the race
        to create the objects is not an error.
        """
        try:
            with self._engine.begin() as conn:
                cache_metadata.create_all(conn, checkfirst=True)
        except SQLAlchemyError as exc:
            if self._schema_present():
                logger.info("Cache table %s was created concurrently", CACHE_TABLE_NAME)
                return
            logger.error("Cache table bootstrap failed: %s", exc)
            raise SchemaBootstrapError(
                f"could not create {CACHE_TABLE_NAME}: {exc}"
            ) from exc

    def _schema_present(self) -> bool:
        try:
            insp = inspect(self._engine)
            if not insp.has_table(CACHE_TABLE_NAME):
                return False
            return any(ix["name"] == CACHE_INDEX_NAME for ix in insp.get_indexes(CACHE_TABLE_NAME))
        except SQLAlchemyError as exc:
            logger.error("Could not inspect cache schema: %s", exc)
            return False

    # ============================================================
    # READ
    # ============================================================

    def fetch_range(self, date_range: DateRange) -> List[ProductionRecord]:
        """Cached rows inside the range, ordered like the live series."""
        stmt = (
            select(pd_volume.c.TranDate, pd_volume.c.TranQty, pd_volume.c.Plant)
            .where(_range_clause(date_range))
            # hand-inserted rows with unknown tags are not part of the series
            .where(pd_volume.c.Plant.in_([p.value for p in Plant]))
            .order_by(pd_volume.c.Plant, pd_volume.c.TranDate.desc())
        )
        try:
            with self._engine.connect() as conn:
                df = pd.read_sql(stmt, conn, coerce_float=False)
        except SQLAlchemyError as exc:
            logger.error("Cache lookup failed for %s: %s", date_range, exc)
            raise SourceQueryError(
                f"cache lookup failed: {exc}", database=CACHE_TABLE_NAME
            ) from exc

        return records_from_frame(df)

    # ============================================================
    # WRITE
    # ============================================================

    def persist(self, date_range: DateRange, records: Sequence[ProductionRecord]) -> None:
        """Replace every cached row inside the range with ``records``."""
        rows = [
            {
                "TranDate": datetime.combine(r.tran_date, datetime.min.time()),
                "Plant": r.plant.value,
                "TranQty": r.quantity,
            }
            for r in records
        ]
        try:
            with self._engine.begin() as conn:
                conn.execute(delete(pd_volume).where(_range_clause(date_range)))
                if rows:
                    conn.execute(insert(pd_volume), rows)
        except SQLAlchemyError as exc:
            raise CacheWriteError(f"cache write failed for {date_range}: {exc}") from exc

        logger.info("Cached %d rows for %s", len(rows), date_range)

    def purge(self, date_range: DateRange) -> int:
        """Delete cached rows inside the range; returns the number removed."""
        try:
            with self._engine.begin() as conn:
                result = conn.execute(delete(pd_volume).where(_range_clause(date_range)))
        except SQLAlchemyError as exc:
            logger.error("Cache purge failed for %s: %s", date_range, exc)
            raise CacheWriteError(f"cache purge failed for {date_range}: {exc}") from exc

        logger.info("Purged %d cached rows for %s", result.rowcount, date_range)
        return result.rowcount
