"""
SQLite configuration store.

The store is a table ``amsl`` with one row per attachment request:

    isil, sid, tcid, mc, hflink, hfeval, cflink, cfelink
"""

import sqlite3
import threading
from pathlib import Path
from typing import List, Protocol, Sequence, Union

from shared.errors import ConfigStoreError
from shared.logging import get_logger
from ..rules.models import ConfigRule


class ConfigStore(Protocol):
    """Source of configuration rules."""

    def rules_for(self, source_id: str, collections: Sequence[str]) -> List[ConfigRule]:
        """Return rules for a source, whose collection or technical collection is in collections."""
        ...


class SQLiteConfigStore:
    """Read-only SQLite configuration store, safe to query from threads."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = get_logger("tagger.persistence.sqlite")
        self._lock = threading.Lock()
        if not self.path.is_file():
            raise ConfigStoreError(f"configuration database not found: {self.path}")
        try:
            self.conn = sqlite3.connect(
                f"{self.path.resolve().as_uri()}?mode=ro",
                uri=True,
                check_same_thread=False
            )
            self.conn.execute("SELECT count(*) FROM amsl LIMIT 1").fetchone()
        except sqlite3.Error as e:
            raise ConfigStoreError(f"cannot open configuration database {self.path}: {e}") from e
        self.logger.info("Opened configuration database", path=str(self.path))

    def rules_for(self, source_id: str, collections: Sequence[str]) -> List[ConfigRule]:
        if not collections:
            return []
        placeholders = ", ".join("?" for _ in collections)
        query = (
            "SELECT isil, sid, tcid, mc, hflink, hfeval, cflink, cfelink FROM amsl "
            f"WHERE sid = ? AND (mc IN ({placeholders}) OR tcid IN ({placeholders}))"
        )
        args = [source_id, *collections, *collections]
        with self._lock:
            try:
                rows = self.conn.execute(query, args).fetchall()
            except sqlite3.Error as e:
                raise ConfigStoreError(f"query failed: {e}", details={"sid": source_id}) from e
        return [
            ConfigRule(*["" if value is None else str(value) for value in row])
            for row in rows
        ]

    def close(self):
        with self._lock:
            self.conn.close()
