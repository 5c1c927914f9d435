"""
Local snapshot of the Store in SQLite.

One row per storage key holding the JSON blob {"rows": [...], "statuses": [...]}.
A missing or unreadable snapshot loads as the seed Store.
"""

import json
import logging
import os
import sqlite3

from phoning_tracker.config import STORAGE_KEY
from phoning_tracker.models import Row, Store, initial_store, unique_statuses

logger = logging.getLogger(__name__)


def store_to_json(store: Store) -> str:
    return json.dumps({
        "rows": [r.to_dict() for r in store.rows],
        "statuses": list(store.statuses),
    }, ensure_ascii=False)


def store_from_json(raw: str) -> Store:
    """Rebuild a Store from a snapshot blob; missing parts fall back to the seeds."""
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        raise ValueError("snapshot is not an object")

    seed = initial_store()
    raw_rows = parsed.get("rows")
    if isinstance(raw_rows, list):
        rows = tuple(Row.from_dict(r, i) for i, r in enumerate(raw_rows) if isinstance(r, dict))
    else:
        rows = seed.rows

    raw_statuses = parsed.get("statuses")
    statuses = unique_statuses(raw_statuses) if isinstance(raw_statuses, list) else seed.statuses
    return Store(rows=rows, statuses=statuses)


class SnapshotStore:
    def __init__(self, db_path: str, key: str = STORAGE_KEY):
        self.db_path = db_path
        self.key = key
        self._init_db()

    def get_db(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        directory = os.path.dirname(os.path.abspath(self.db_path))
        os.makedirs(directory, exist_ok=True)
        conn = self.get_db()
        conn.execute('''
            CREATE TABLE IF NOT EXISTS snapshots (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')
        conn.commit()
        conn.close()

    def load(self) -> Store:
        try:
            conn = self.get_db()
            try:
                row = conn.execute('SELECT value FROM snapshots WHERE key = ?', (self.key,)).fetchone()
            finally:
                conn.close()
            if row is None:
                return initial_store()
            return store_from_json(row['value'])
        except (sqlite3.Error, ValueError, TypeError, AttributeError) as e:
            logger.debug("Snapshot %s unreadable, using seed data: %s", self.key, e)
            return initial_store()

    def save(self, store: Store):
        conn = self.get_db()
        try:
            conn.execute('''
                INSERT INTO snapshots (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
            ''', (self.key, store_to_json(store)))
            conn.commit()
        finally:
            conn.close()
