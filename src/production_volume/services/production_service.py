# src/production_volume/services/production_service.py
"""
Production volume read-through cache.

Flow for one request:
    ensure cache schema
    -> historical range? try the cache (non-empty result is a hit)
    -> live aggregation across every source database
    -> historical range with rows? rewrite the cached range
    -> return the series

A range is historical when it ends before today; today is still being
posted at the source so it is never cached.

An empty cached result counts as a miss, so a past range with no production
at all is recomputed on every call.
"""

from __future__ import annotations

import threading
from datetime import date, datetime
from typing import Callable, List, Optional

from production_volume.data.cache_store import CacheStore
from production_volume.data.live_aggregation import LiveAggregator
from production_volume.data.models import DateRange, ProductionRecord
from production_volume.utils.exceptions import CacheWriteError
from production_volume.utils.logger import get_logger

logger = get_logger(__name__)


class ProductionDataService:
    def __init__(
        self,
        cache_store: CacheStore,
        aggregator: LiveAggregator,
        clock: Callable[[], date] = date.today,
    ):
        self._cache = cache_store
        self._aggregator = aggregator
        self._clock = clock

    def lookup(
        self, date_range: DateRange, today: Optional[date] = None
    ) -> Optional[List[ProductionRecord]]:
        """Cached series for a historical range, or None on a miss."""
        if today is None:
            today = self._clock()
        if not date_range.is_historical(today):
            return None

        cached = self._cache.fetch_range(date_range)
        if not cached:
            logger.info("Cache miss | range=%s", date_range)
            return None

        logger.info("Cache hit | range=%s | rows=%d", date_range, len(cached))
        return cached

    def get_production_data(
        self,
        start_date: str | date | datetime,
        end_date: str | date | datetime,
        timeout: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[ProductionRecord]:
        date_range = DateRange.of(start_date, end_date)
        today = self._clock()
        historical = date_range.is_historical(today)

        self._cache.ensure_schema()

        cached = self.lookup(date_range, today)
        if cached is not None:
            return cached

        live = self._aggregator.compute(date_range, timeout=timeout, cancel_event=cancel_event)

        if historical and live:
            try:
                self._cache.persist(date_range, live)
            except CacheWriteError as exc:
                # the live series is still the answer
                logger.error("%s", exc)

        return live


# ===================================================================
# Default wiring (SQL Server engines from config)
# ===================================================================

_default_service: Optional[ProductionDataService] = None
_service_lock = threading.Lock()


def build_default_service() -> ProductionDataService:
    from production_volume.utils.config import config
    from production_volume.utils.db_utils import get_cache_engine, get_engines

    return ProductionDataService(
        cache_store=CacheStore(get_cache_engine()),
        aggregator=LiveAggregator(get_engines(), max_workers=config.AGGREGATION_WORKERS),
    )


def get_production_data(
    start_date: str | date | datetime,
    end_date: str | date | datetime,
    timeout: Optional[float] = None,
    cancel_event: Optional[threading.Event] = None,
) -> List[ProductionRecord]:
    """Boundary operation used by the web endpoint."""
    global _default_service
    with _service_lock:
        if _default_service is None:
            _default_service = build_default_service()
        service = _default_service

    return service.get_production_data(
        start_date, end_date, timeout=timeout, cancel_event=cancel_event
    )
