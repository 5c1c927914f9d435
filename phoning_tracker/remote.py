"""
Remote row table (Supabase) and the background mirror that writes to it.

Local edits are applied first. The mirror then upserts the touched rows
on a worker thread; a failed write is logged and never rolled back.
Each write is a full-row upsert, so out-of-order completion is harmless.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Dict, Iterable, List, Optional

from phoning_tracker.models import Row

logger = logging.getLogger(__name__)

# Row field -> remote column
COLUMN_MAP = {
    "id": "id",
    "name": "restaurant",
    "address": "adresse",
    "phone": "telephone",
    "new": "nouveau",
    "stars": "etoiles",
    "arr": "arr",
    "status": "statut",
    "last_updated": "derniere_maj",
    "comment": "commentaire",
    "cv_sent": "cv_envoye",
    "cover_letter_sent": "lm_envoye",
}


def row_to_record(row: Row) -> Dict[str, Any]:
    data = row.to_dict()
    record = {column: data[field] for field, column in COLUMN_MAP.items()}
    # date columns reject empty strings
    record["derniere_maj"] = record["derniere_maj"] or None
    return record


def record_to_row(record: Dict[str, Any], index: int = 0) -> Row:
    data = {field: record[column] for field, column in COLUMN_MAP.items() if column in record}
    return Row.from_dict(data, index)


class RemoteRowStore:
    def __init__(self, client: Any, table: str = "restaurants"):
        if client is None or not hasattr(client, "table"):
            raise RuntimeError("RemoteRowStore requires a Supabase client with table(name)")
        self._client = client
        self.table = table

    def fetch_all(self) -> List[Row]:
        response = self._client.table(self.table).select("*").order("created_at").execute()
        records = response.data or []
        return [record_to_row(r, i) for i, r in enumerate(records)]

    def upsert(self, row: Row) -> Optional[Dict[str, Any]]:
        response = self._client.table(self.table).upsert(row_to_record(row), on_conflict="id").execute()
        return response.data[0] if response.data else None


class RemoteMirror:
    """Fire-and-forget upserts of locally changed rows."""

    def __init__(self, remote: RemoteRowStore, executor: Optional[ThreadPoolExecutor] = None):
        self.remote = remote
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="remote-sync")
        self._pending: List[Future] = []
        self._lock = threading.Lock()

    def _write(self, row: Row) -> bool:
        try:
            self.remote.upsert(row)
            return True
        except Exception as e:
            logger.warning("Remote upsert failed for %s: %s", row.id, e)
            return False

    def enqueue(self, rows: Iterable[Row]) -> List[Future]:
        futures = [self._executor.submit(self._write, row) for row in rows]
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()] + futures
        return futures

    def flush(self, timeout: Optional[float] = None):
        with self._lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]

    def close(self):
        self._executor.shutdown(wait=True)
