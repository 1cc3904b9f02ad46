"""DuckDB-backed durable client storage.

Holds named JSON blobs (one per storage key), the client-side equivalent of
a browser's local storage.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import duckdb

logger = logging.getLogger(__name__)

STORAGE_SCHEMA_VERSION = 1


class DuckDBStateStorage:
    """Key/value blob store on a DuckDB connection."""

    def __init__(self, db_path: Optional[str] = None):
        # No path means a throwaway in-memory database
        self.db_path = db_path or ":memory:"
        self.conn: Optional[duckdb.DuckDBPyConnection] = None

    def open(self) -> None:
        """Connect and create the schema if needed."""
        if self.conn is not None:
            return
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = duckdb.connect(self.db_path)
        self._create_schema()
        logger.info(f"Client storage initialized: {self.db_path}")

    def _create_schema(self) -> None:
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS client_state (
                storage_key VARCHAR PRIMARY KEY,
                state_json TEXT NOT NULL,
                version INTEGER NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    def save(self, key: str, state: Dict[str, Any], version: int = STORAGE_SCHEMA_VERSION) -> None:
        """Upsert the blob stored under ``key``."""
        if self.conn is None:
            raise RuntimeError("Storage is not open")
        state_json = json.dumps(state, default=str)
        self.conn.execute("""
            INSERT INTO client_state (storage_key, state_json, version, updated_at)
            VALUES (?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT (storage_key) DO UPDATE SET
                state_json = excluded.state_json,
                version = excluded.version,
                updated_at = excluded.updated_at
        """, [key, state_json, version])

    def load(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the blob under ``key``, or None if absent or unreadable."""
        if self.conn is None:
            raise RuntimeError("Storage is not open")
        row = self.conn.execute(
            "SELECT state_json FROM client_state WHERE storage_key = ?",
            [key],
        ).fetchone()
        if not row:
            return None
        try:
            state = json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding corrupt stored state '{key}': {e}")
            return None
        return state if isinstance(state, dict) else None

    def remove(self, key: str) -> None:
        if self.conn is None:
            raise RuntimeError("Storage is not open")
        self.conn.execute("DELETE FROM client_state WHERE storage_key = ?", [key])

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None
