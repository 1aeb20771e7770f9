"""
Shared fixtures: one file-backed SQLite database per operational source plus
one for the cache store, all created from the production table metadata.
"""

import os
import tempfile
from collections import Counter
from datetime import date, datetime
from decimal import Decimal

os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "production_volume_test_logs"))

import pytest
from sqlalchemy import create_engine, event, insert

from production_volume.data.cache_store import CacheStore
from production_volume.data.live_aggregation import LiveAggregator
from production_volume.data.models import Plant
from production_volume.data.sources import SourceDatabase
from production_volume.data.tables import (
    material_tran,
    process_detail,
    product,
    product_tran,
    source_metadata,
)
from production_volume.services.production_service import ProductionDataService

TODAY = date(2026, 1, 28)

MARCH_2025 = (date(2025, 3, 1), date(2025, 3, 31))


def _tran(day, part, qty, tran_type="RP", inventory="32", hour=0, minute=0):
    return {
        "TranDate": datetime(2025, 3, day, hour, minute),
        "PartNo": part,
        "TranType": tran_type,
        "DInventoryNo": inventory,
        "TranQty": Decimal(str(qty)),
    }


def _material(day, qty, tran_type="RG", inventory="11"):
    return {
        "TranDate": datetime(2025, 3, day),
        "TranType": tran_type,
        "DInventoryNo": inventory,
        "TranQty": Decimal(str(qty)),
    }


PLATING_PRODUCTS = [
    {"PartNo": "S-1", "ProductType": "S"},
    {"PartNo": "P-1", "ProductType": "P"},
    {"PartNo": "P-2", "ProductType": "P"},
]

PLATING_PROCESS = [
    {"PartNo": "S-1", "ProcessAreaNo": "6"},
    {"PartNo": "P-2", "ProcessAreaNo": "6"},
    {"PartNo": "P-1", "ProcessAreaNo": "3"},
]

SEED = {
    SourceDatabase.BRAZING: {
        product: [
            {"PartNo": "P-100", "ProductType": "P"},
            {"PartNo": "P-200", "ProductType": "S"},
        ],
        product_tran: [
            _tran(3, "P-100", "10.00"),
            _tran(3, "P-100", "5.50", hour=14, minute=30),
            _tran(4, "P-100", "7"),
            _tran(4, "P-100", "100", tran_type="XX"),
            _tran(4, "P-200", "100"),
            _tran(4, "P-100", "100", inventory="31"),
            _tran(31, "P-100", "1", hour=18),
            {**_tran(1, "P-100", "50"), "TranDate": datetime(2025, 4, 1)},
        ],
    },
    SourceDatabase.USUI: {
        product: [{"PartNo": "P-100", "ProductType": "P"}],
        product_tran: [_tran(3, "P-100", "20")],
    },
    SourceDatabase.SPDB_EXP: {
        product: PLATING_PRODUCTS,
        process_detail: PLATING_PROCESS,
        product_tran: [
            _tran(5, "S-1", "4", inventory="31"),
            _tran(5, "P-1", "8"),
            _tran(5, "P-2", "9"),
        ],
        material_tran: [_material(5, "3"), _material(5, "40", inventory="12")],
    },
    SourceDatabase.SPDB_EXP2: {
        product: PLATING_PRODUCTS,
        process_detail: PLATING_PROCESS,
        product_tran: [
            _tran(5, "S-1", "6", inventory="31"),
            _tran(5, "P-1", "2"),
        ],
        material_tran: [_material(5, "1"), _material(6, "2")],
    },
    SourceDatabase.SPDB_DOM: {
        product: PLATING_PRODUCTS,
        process_detail: PLATING_PROCESS,
        product_tran: [
            _tran(6, "P-1", "11"),
            _tran(6, "S-1", "1", inventory="31"),
        ],
    },
}

# (date, plant, quantity) in engine order: plant, then date descending
EXPECTED_MARCH = [
    (date(2025, 3, 31), Plant.BRAZING, Decimal("1.00")),
    (date(2025, 3, 4), Plant.BRAZING, Decimal("7.00")),
    (date(2025, 3, 3), Plant.BRAZING, Decimal("15.50")),
    (date(2025, 3, 6), Plant.DOM, Decimal("11.00")),
    (date(2025, 3, 5), Plant.EXP, Decimal("8.00")),
    (date(2025, 3, 5), Plant.EXP2, Decimal("2.00")),
    (date(2025, 3, 3), Plant.LP, Decimal("20.00")),
    (date(2025, 3, 6), Plant.PLATING_GREITMO, Decimal("2.00")),
    (date(2025, 3, 5), Plant.PLATING_GREITMO, Decimal("4.00")),
    (date(2025, 3, 6), Plant.PLATING_SUB, Decimal("1.00")),
    (date(2025, 3, 5), Plant.PLATING_SUB, Decimal("10.00")),
]


def as_tuples(records):
    return [(r.tran_date, r.plant, r.quantity) for r in records]


def sqlite_engine(path):
    return create_engine(
        f"sqlite:///{path}", connect_args={"check_same_thread": False}
    )


def seed_source(engine, tables):
    with engine.begin() as conn:
        for table, rows in tables.items():
            if rows:
                conn.execute(insert(table), rows)


@pytest.fixture
def source_engines(tmp_path):
    engines = {}
    for source in SourceDatabase:
        engine = sqlite_engine(tmp_path / f"{source.value}.db")
        source_metadata.create_all(engine)
        engines[source] = engine
    yield engines
    for engine in engines.values():
        engine.dispose()


@pytest.fixture
def seeded_sources(source_engines):
    for source, tables in SEED.items():
        seed_source(source_engines[source], tables)
    return source_engines


@pytest.fixture
def cache_engine(tmp_path):
    engine = sqlite_engine(tmp_path / "cache.db")
    yield engine
    engine.dispose()


@pytest.fixture
def cache_store(cache_engine):
    return CacheStore(cache_engine)


@pytest.fixture
def query_counter(seeded_sources):
    """Counts statements executed against each source database."""
    counts = Counter()

    def _listener_for(source):
        def _count(conn, cursor, statement, parameters, context, executemany):
            counts[source] += 1
        return _count

    for source, engine in seeded_sources.items():
        event.listen(engine, "before_cursor_execute", _listener_for(source))
    return counts


@pytest.fixture
def aggregator(seeded_sources):
    return LiveAggregator(seeded_sources, max_workers=3)


@pytest.fixture
def service(cache_store, aggregator):
    return ProductionDataService(cache_store, aggregator, clock=lambda: TODAY)
