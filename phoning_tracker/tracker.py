"""
Tracker: the single owner of the in-process Store.

dispatch(action):
    1) reduce the current Store with the action (pure),
    2) save the local snapshot,
    3) hand changed rows to the remote mirror, if one is configured.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Mapping, Optional

from phoning_tracker import reconcile
from phoning_tracker.config import Settings
from phoning_tracker.db import get_supabase
from phoning_tracker.export import export_csv
from phoning_tracker.identity import Identity
from phoning_tracker.importer import ImportResult, parse_import
from phoning_tracker.models import Row, Store
from phoning_tracker.remote import RemoteMirror, RemoteRowStore
from phoning_tracker.snapshot import SnapshotStore
from phoning_tracker.views import Filters, build_view, status_counts

logger = logging.getLogger(__name__)


class Tracker:
    def __init__(
        self,
        snapshot: SnapshotStore,
        remote: Optional[RemoteRowStore] = None,
        mirror: Optional[RemoteMirror] = None,
        identity: Optional[Identity] = None,
    ):
        self.snapshot = snapshot
        self.remote = remote
        self.mirror = mirror if mirror is not None else (RemoteMirror(remote) if remote else None)
        self.identity = identity
        self.user: Optional[Dict[str, Any]] = None
        self._subscription = None
        self._lock = threading.RLock()
        self.store: Store = snapshot.load()

    def dispatch(self, action: reconcile.Action, mirror: bool = True) -> Store:
        # Requests are served on several threads; actions apply one at a time.
        with self._lock:
            before = self.store
            self.store = reconcile.reduce(before, action)
            self.snapshot.save(self.store)
            if mirror and self.mirror is not None:
                changed = reconcile.changed_rows(before, self.store)
                if changed:
                    self.mirror.enqueue(changed)
            return self.store

    def update_row(self, row_id: str, patch: Mapping[str, Any]) -> Row:
        store = self.dispatch(reconcile.UpdateRow(row_id=row_id, patch=dict(patch)))
        return store.get(row_id)

    def import_text(self, text: str, match: str = reconcile.MATCH_BY_ID) -> ImportResult:
        result = parse_import(text)
        if result.rows:
            self.dispatch(reconcile.ImportRows(rows=tuple(result.rows), match=match))
        logger.info("Imported %d rows (%d without a name)", len(result.rows), result.rejected)
        return result

    def add_status(self, label: str) -> Store:
        if not (label or "").strip():
            raise reconcile.InvalidPatch("Status label is required")
        return self.dispatch(reconcile.AddStatus(label=label.strip()), mirror=False)

    def reset(self, confirm: bool = False) -> bool:
        """Discard all local state and go back to the seeds. Needs explicit confirmation."""
        if not confirm:
            return False
        self.dispatch(reconcile.Reset(), mirror=False)
        return True

    def load_remote(self) -> int:
        if self.remote is None:
            return 0
        try:
            rows = self.remote.fetch_all()
        except Exception as e:
            logger.warning("Remote load failed, keeping local state: %s", e)
            return 0
        if rows:
            self.dispatch(reconcile.LoadRemote(rows=tuple(rows)), mirror=False)
        return len(rows)

    def view(self, filters: Optional[Filters] = None) -> Dict[str, Any]:
        return build_view(self.store.rows, self.store.statuses, filters or Filters())

    def stats(self) -> Dict[str, Any]:
        return {
            "total": len(self.store.rows),
            "by_status": status_counts(self.store.rows, self.store.statuses),
        }

    def export_csv(self) -> str:
        return export_csv(self.store.rows)

    def _on_auth_change(self, event: str, user: Optional[Dict[str, Any]]):
        logger.info("Auth state changed: %s", event)
        self.user = user

    def start(self):
        if self.identity is not None:
            self.user = self.identity.current_user()
            self._subscription = self.identity.subscribe(self._on_auth_change)
        self.load_remote()

    def close(self):
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self.mirror is not None:
            self.mirror.close()


def build_tracker(settings: Settings) -> Tracker:
    snapshot = SnapshotStore(settings.db_path)
    remote = identity = None
    if settings.remote_enabled:
        client = get_supabase(settings)
        remote = RemoteRowStore(client, settings.remote_table)
        identity = Identity(client, settings.auth_redirect_url)
    return Tracker(snapshot, remote=remote, identity=identity)
