"""SQLite connection management and named ledger snapshots."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

COMPLETIONS_STORE = "carelog-checklist-store"
JOURNAL_STORE = "carelog-shift-journal-store"

SCHEMA = """
CREATE TABLE IF NOT EXISTS ledger_snapshots (
    name TEXT PRIMARY KEY,
    version INTEGER NOT NULL,
    payload TEXT NOT NULL DEFAULT '[]',
    updated_at TEXT DEFAULT (datetime('now'))
);
"""


def init_db(db_path: Path) -> sqlite3.Connection:
    """Initialize the database, creating tables if needed."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.executescript(SCHEMA)
    conn.commit()
    return conn


@contextmanager
def get_db(db_path: Path):
    """Context manager for database connections."""
    conn = init_db(db_path)
    try:
        yield conn
    finally:
        conn.close()


class SnapshotStore:
    """Loads and saves whole-ledger snapshots under a name."""

    def __init__(self, db: sqlite3.Connection, version: int = SNAPSHOT_VERSION):
        self.db = db
        self.version = version

    def load(self, name: str) -> list[dict]:
        row = self.db.execute(
            "SELECT version, payload FROM ledger_snapshots WHERE name = ?", (name,)
        ).fetchone()
        if not row:
            return []
        if row["version"] != self.version:
            logger.warning(
                "Ignoring snapshot %s with version %s (expected %s)",
                name, row["version"], self.version,
            )
            return []
        return json.loads(row["payload"])

    def save(self, name: str, records: list[dict]):
        self.db.execute(
            """INSERT INTO ledger_snapshots (name, version, payload) VALUES (?, ?, ?)
               ON CONFLICT(name) DO UPDATE SET
                   version = excluded.version,
                   payload = excluded.payload,
                   updated_at = datetime('now')""",
            (name, self.version, json.dumps(records)),
        )
        self.db.commit()
