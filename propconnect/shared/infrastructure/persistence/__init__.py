"""Persistence adapters (DuckDB)."""

from .duckdb_storage import DuckDBStateStorage

__all__ = ["DuckDBStateStorage"]
