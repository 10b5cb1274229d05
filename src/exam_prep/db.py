"""Persistence slots for the application state blob."""
import json
import logging
import os
import sqlite3
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = str(Path.home() / ".exam_prep" / "exam_prep.db")
DEFAULT_JSON_PATH = str(Path.home() / ".exam_prep" / "exam_prep.json")
DEFAULT_STATE_KEY = "smart-exam-prep-data"

SCHEMA = """
CREATE TABLE IF NOT EXISTS app_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT
);
"""


class StateSlot(Protocol):
    def load(self) -> dict | None: ...

    def save(self, data: dict) -> None: ...


def get_connection(db_path: str = DEFAULT_DB_PATH) -> sqlite3.Connection:
    """Return a SQLite connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str = DEFAULT_DB_PATH) -> None:
    """Initialize the database, creating the state table if it doesn't exist."""
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = get_connection(db_path)
    conn.executescript(SCHEMA)
    conn.commit()
    conn.close()


class SqliteSlot:
    """Stores the blob as one row of a key/value table."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH, key: str = DEFAULT_STATE_KEY):
        self.db_path = db_path
        self.key = key
        init_db(db_path)

    def load(self) -> dict | None:
        conn = get_connection(self.db_path)
        row = conn.execute("SELECT value FROM app_state WHERE key = ?", (self.key,)).fetchone()
        conn.close()
        return json.loads(row["value"]) if row else None

    def save(self, data: dict) -> None:
        payload = json.dumps(data)
        conn = get_connection(self.db_path)
        try:
            # the connection context manager commits on success, rolls back on error
            with conn:
                conn.execute(
                    "INSERT INTO app_state (key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at",
                    (self.key, payload, datetime.now().isoformat()),
                )
        finally:
            conn.close()
        logger.debug("Saved %d bytes under %r", len(payload), self.key)


class JsonFileSlot:
    """Stores the blob as a JSON file, replaced atomically on every save."""

    def __init__(self, path: str):
        self.path = Path(path)

    def load(self) -> dict | None:
        if not self.path.exists():
            return None
        return json.loads(self.path.read_text())

    def save(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.debug("Saved state to %s", self.path)


class MemorySlot:
    """Keeps the serialized blob in memory. Useful for tests."""

    def __init__(self, text: str | None = None):
        self.text = text
        self.saves = 0

    def load(self) -> dict | None:
        return json.loads(self.text) if self.text else None

    def save(self, data: dict) -> None:
        self.text = json.dumps(data)
        self.saves += 1
