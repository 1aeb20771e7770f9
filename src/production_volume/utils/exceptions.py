"""
Failure types raised by the production volume data layer.

Callers only need to catch ``DataAccessError``; the subclasses say which
step failed.
"""

from __future__ import annotations


class DataAccessError(Exception):
    """Base class for every failure surfaced to callers."""


class SchemaBootstrapError(DataAccessError):
    """The cache table or its index could not be created."""


class SourceQueryError(DataAccessError):
    """A query against the cache store or an operational database failed."""

    def __init__(self, message: str, database: str | None = None, plant: str | None = None):
        super().__init__(message)
        self.database = database
        self.plant = plant


class CacheWriteError(DataAccessError):
    """Persisting a freshly computed series failed.

    Logged, never raised to the caller: the live series is still returned.
    """


class AggregationCancelled(DataAccessError):
    """Live aggregation stopped by the caller or by its deadline."""
