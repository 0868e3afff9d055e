"""
Persistence substrates: durable key -> serialized collection storage.

The entity store only ever calls read(key) and write(key, payload). A payload
is the JSON text of one whole collection. Two backends ship here:

  MemorySubstrate  - dict-backed, process-local (tests, throwaway boards)
  SqliteSubstrate  - one key/value table in a SQLite file
"""
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from .errors import SubstrateError

logger = logging.getLogger(__name__)


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection in WAL mode."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class Substrate:
    """Interface every storage backend implements."""

    def read(self, key: str) -> Optional[str]:
        """Return the stored payload for key, or None if nothing was ever written."""
        raise NotImplementedError

    def write(self, key: str, payload: str) -> None:
        """Replace the payload stored under key."""
        raise NotImplementedError


class MemorySubstrate(Substrate):
    """In-memory substrate. Contents vanish with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, payload: str) -> None:
        self._data[key] = payload

    def snapshot(self) -> Dict[str, str]:
        """Copy of every stored payload, keyed by storage key."""
        return dict(self._data)


class SqliteSubstrate(Substrate):
    """SQLite-backed substrate storing one row per collection key."""

    def __init__(self, db_path: Optional[str] = None):
        """Initialize the substrate and create its table if needed."""
        if db_path is None:
            db_path = str(Path.home() / ".local" / "share" / "taskboard" / "taskboard.db")
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _init_schema(self):
        try:
            with _connect(self.db_path) as conn:
                conn.execute("""
                    CREATE TABLE IF NOT EXISTS kv_store (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                """)
                conn.commit()
        except sqlite3.Error as e:
            raise SubstrateError(f"Cannot initialise {self.db_path}: {e}") from e

    def read(self, key: str) -> Optional[str]:
        try:
            with _connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?", (key,)
                ).fetchone()
        except sqlite3.Error as e:
            logger.error(f"Failed to read {key} from {self.db_path}: {e}")
            raise SubstrateError(f"Read of {key} failed: {e}") from e
        return row["value"] if row else None

    def write(self, key: str, payload: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        try:
            with _connect(self.db_path) as conn:
                conn.execute("""
                    INSERT INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """, (key, payload, now))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Failed to write {key} to {self.db_path}: {e}")
            raise SubstrateError(f"Write of {key} failed: {e}") from e
