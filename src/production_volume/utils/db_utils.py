# utils/db_utils.py
"""
Pooled SQLAlchemy engines, one per SQL Server database.

Engines are created on first use and shared by every request; connections are
checked out per query with ``with engine.connect()`` and go back to the pool on
exit.
"""

from __future__ import annotations

import threading
from typing import Dict

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import URL

from production_volume.data.sources import SourceDatabase
from production_volume.utils.config import config
from production_volume.utils.logger import get_logger

logger = get_logger(__name__)

_engines: Dict[str, Engine] = {}
_lock = threading.Lock()


def build_engine(database: str) -> Engine:
    """mssql+pyodbc engine for one database with the driver timeout applied."""
    url = URL.create(
        "mssql+pyodbc",
        query={"odbc_connect": config.odbc_connection_string(database)},
    )
    engine = create_engine(
        url,
        pool_size=config.POOL_SIZE,
        pool_pre_ping=True,
        fast_executemany=True,
    )

    @event.listens_for(engine, "connect")
    def _set_query_timeout(dbapi_connection, connection_record):
        # pyodbc: seconds before a running statement is abandoned
        dbapi_connection.timeout = config.QUERY_TIMEOUT_SECONDS

    if config.DB_SCHEMA:
        engine = engine.execution_options(schema_translate_map={None: config.DB_SCHEMA})

    logger.info("Created engine for database %s", database)
    return engine


def get_engine(database: str) -> Engine:
    with _lock:
        engine = _engines.get(database)
        if engine is None:
            engine = build_engine(database)
            _engines[database] = engine
        return engine


def get_engines() -> Dict[SourceDatabase, Engine]:
    """Engines for every operational source database."""
    return {
        source: get_engine(config.database_name(source.name))
        for source in SourceDatabase
    }


def get_cache_engine() -> Engine:
    return get_engine(config.CACHE_DATABASE)


def dispose_engines() -> None:
    with _lock:
        for engine in _engines.values():
            engine.dispose()
        _engines.clear()
