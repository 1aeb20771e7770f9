from datetime import date, datetime
from decimal import Decimal
from unittest import mock

import pytest
from sqlalchemy import create_engine, func, insert, inspect, select
from sqlalchemy.exc import OperationalError

from production_volume.data.cache_store import CacheStore
from production_volume.data.models import DateRange, Plant, ProductionRecord
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

MARCH = DateRange.of("2025-03-01", "2025-03-31")


def _rec(day, plant, qty, month=3):
    return ProductionRecord(date(2025, month, day), plant, Decimal(qty))


def _row_count(engine):
    with engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(pd_volume)).scalar()


class TestEnsureSchema:
    def test_creates_table_and_date_index(self, cache_store, cache_engine):
        cache_store.ensure_schema()

        insp = inspect(cache_engine)
        assert insp.has_table(CACHE_TABLE_NAME)
        indexes = insp.get_indexes(CACHE_TABLE_NAME)
        assert [ix["column_names"] for ix in indexes if ix["name"] == CACHE_INDEX_NAME] == [["TranDate"]]

    def test_is_idempotent(self, cache_store, cache_engine):
        cache_store.ensure_schema()
        cache_store.persist(MARCH, [_rec(3, Plant.LP, "20.00")])
        cache_store.ensure_schema()

        assert _row_count(cache_engine) == 1

    def test_tolerates_concurrent_creation(self, cache_store, cache_engine):
        real_create_all = cache_metadata.create_all

        def _lost_race(conn, checkfirst=True):
            # another request creates the objects between check and create
            real_create_all(cache_engine)
            raise OperationalError("CREATE TABLE iot_pdvolume", {}, Exception("table iot_pdvolume already exists"))

        with mock.patch.object(cache_metadata, "create_all", side_effect=_lost_race):
            cache_store.ensure_schema()

        assert inspect(cache_engine).has_table(CACHE_TABLE_NAME)

    def test_other_failures_are_fatal(self, cache_store):
        failure = OperationalError("CREATE TABLE iot_pdvolume", {}, Exception("permission denied"))
        with mock.patch.object(cache_metadata, "create_all", side_effect=failure):
            with pytest.raises(SchemaBootstrapError):
                cache_store.ensure_schema()


class TestReadWrite:
    @pytest.fixture(autouse=True)
    def _schema(self, cache_store):
        cache_store.ensure_schema()

    def test_fetch_is_inclusive_and_ordered(self, cache_store):
        cache_store.persist(
            MARCH,
            [
                _rec(1, Plant.LP, "2"),
                _rec(31, Plant.LP, "3"),
                _rec(15, Plant.BRAZING, "1.25"),
            ],
        )

        records = cache_store.fetch_range(MARCH)

        assert [(r.tran_date.day, r.plant) for r in records] == [
            (15, Plant.BRAZING),
            (31, Plant.LP),
            (1, Plant.LP),
        ]
        assert records[0].quantity == Decimal("1.25")

    def test_persist_replaces_only_the_range(self, cache_store):
        april = DateRange.of("2025-04-01", "2025-04-30")
        cache_store.persist(april, [_rec(2, Plant.DOM, "5", month=4)])
        cache_store.persist(MARCH, [_rec(3, Plant.LP, "20"), _rec(4, Plant.LP, "21")])

        cache_store.persist(MARCH, [_rec(3, Plant.LP, "25")])

        assert [(r.tran_date, r.quantity) for r in cache_store.fetch_range(MARCH)] == [
            (date(2025, 3, 3), Decimal("25.00"))
        ]
        assert len(cache_store.fetch_range(april)) == 1

    def test_rows_with_unknown_plant_tags_are_ignored(self, cache_store, cache_engine):
        cache_store.persist(MARCH, [_rec(3, Plant.LP, "20")])
        with cache_engine.begin() as conn:
            conn.execute(
                insert(pd_volume),
                [{"TranDate": datetime(2025, 3, 3), "Plant": "paint-shop", "TranQty": Decimal("1")}],
            )

        records = cache_store.fetch_range(MARCH)

        assert [(r.plant, r.quantity) for r in records] == [(Plant.LP, Decimal("20.00"))]

    def test_purge_returns_deleted_count(self, cache_store, cache_engine):
        cache_store.persist(MARCH, [_rec(3, Plant.LP, "20"), _rec(4, Plant.EXP, "1")])

        assert cache_store.purge(MARCH) == 2
        assert _row_count(cache_engine) == 0

    def test_fetch_failure_is_a_source_query_error(self, tmp_path):
        broken = CacheStore(create_engine(f"sqlite:///{tmp_path / 'missing.db'}"))
        with pytest.raises(SourceQueryError):
            broken.fetch_range(MARCH)

    def test_write_failure_is_a_cache_write_error(self, tmp_path):
        broken = CacheStore(create_engine(f"sqlite:///{tmp_path / 'missing.db'}"))
        with pytest.raises(CacheWriteError):
            broken.persist(MARCH, [_rec(3, Plant.LP, "20")])
