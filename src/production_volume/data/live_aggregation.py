"""
Live aggregation across the operational databases.

Purpose:
- Run one partial query per (plant, database) descriptor
- Merge the partials into one series, one row per (plant, date)

Important:
- Any failing partial aborts the whole call (no partial series)
- Worker threads always finish and release their connections before
  a failure, a cancellation or a timeout reaches the caller
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Sequence

import pandas as pd
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from production_volume.data.cache_store import records_from_frame
from production_volume.data.models import DateRange, ProductionRecord
from production_volume.data.sources import (
    PLANT_RULES,
    PlantRule,
    SourceDatabase,
    SourceQuery,
    build_partial_select,
    source_queries,
)
from production_volume.utils.exceptions import AggregationCancelled, SourceQueryError
from production_volume.utils.logger import get_logger

logger = get_logger(__name__)

POLL_INTERVAL_SECONDS = 0.25

PARTIAL_COLUMNS = ["TranDate", "TranQty", "Plant"]


def _sum_quantities(values: Iterable) -> Decimal:
    # exact sum; rounding happens once per (plant, day) total
    return sum((Decimal(str(v)) for v in values if v is not None), Decimal("0"))


def merge_partials(frames: Sequence[pd.DataFrame]) -> List[ProductionRecord]:
    """
    Concatenate per-source partials, re-group by (plant, day) and order by
    plant, then date descending.
    """
    frames = [f for f in frames if not f.empty]
    if not frames:
        return []

    df = pd.concat(frames, ignore_index=True)
    df["TranDate"] = pd.to_datetime(df["TranDate"]).dt.normalize()

    merged = (
        df.groupby(["Plant", "TranDate"], as_index=False)
        .agg(TranQty=("TranQty", _sum_quantities))
        .sort_values(["Plant", "TranDate"], ascending=[True, False])
    )
    return records_from_frame(merged)


class LiveAggregator:
    def __init__(
        self,
        engines: Mapping[SourceDatabase, Engine],
        max_workers: int = 4,
        rules: Sequence[PlantRule] = PLANT_RULES,
    ):
        self._engines = engines
        self._max_workers = max(1, max_workers)
        self._queries = source_queries(rules)

    def compute(
        self,
        date_range: DateRange,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[ProductionRecord]:
        """
        Run every partial query for the range and merge the results.

        ``timeout`` bounds the whole fan-out in seconds; setting
        ``cancel_event`` stops it early. Both raise AggregationCancelled.
        """
        logger.info("Live aggregation | range=%s | partials=%d", date_range, len(self._queries))
        started = time.monotonic()
        deadline = None if timeout is None else started + timeout

        stop = threading.Event()
        executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="pdvolume"
        )
        try:
            futures: List[Future] = [
                executor.submit(self._run_partial, q, date_range, stop)
                for q in self._queries
            ]
            pending = set(futures)
            while pending:
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning("Live aggregation cancelled by caller | range=%s", date_range)
                    raise AggregationCancelled(f"aggregation for {date_range} was cancelled")

                wait_for = POLL_INTERVAL_SECONDS
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        logger.warning("Live aggregation timed out after %.1fs | range=%s", timeout, date_range)
                        raise AggregationCancelled(
                            f"aggregation for {date_range} exceeded {timeout}s"
                        )
                    wait_for = min(wait_for, remaining)

                done, pending = wait(pending, timeout=wait_for, return_when=FIRST_EXCEPTION)
                for future in done:
                    exc = future.exception()
                    if exc is not None:
                        raise exc

            frames = [f.result() for f in futures]
        finally:
            stop.set()
            # running partials finish and release their connections first
            executor.shutdown(wait=True, cancel_futures=True)

        records = merge_partials(frames)
        logger.info(
            "Live aggregation done | range=%s | rows=%d | %.1fs",
            date_range,
            len(records),
            time.monotonic() - started,
        )
        return records

    def _run_partial(
        self, query: SourceQuery, date_range: DateRange, stop: threading.Event
    ) -> pd.DataFrame:
        if stop.is_set():
            raise AggregationCancelled(f"{query} skipped")

        engine = self._engines.get(query.database)
        if engine is None:
            logger.error("No engine configured for database %s", query.database.value)
            raise SourceQueryError(
                f"no connection configured for {query.database.value}",
                database=query.database.value,
                plant=query.plant.value,
            )

        stmt = build_partial_select(query.rule, date_range)
        try:
            with engine.connect() as conn:
                df = pd.read_sql(stmt, conn, coerce_float=False)
        except SQLAlchemyError as exc:
            logger.error("Live query failed | %s | %s", query, exc)
            raise SourceQueryError(
                f"query for {query} failed: {exc}",
                database=query.database.value,
                plant=query.plant.value,
            ) from exc

        df["Plant"] = query.plant.value
        return df[PARTIAL_COLUMNS]
