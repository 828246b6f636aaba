"""Snapshot listener that feeds profile writes into the sync engine."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Callable

from leaguebook.constants import USERS_COLLECTION

from .engine import SyncReport, sync_user_profile
from .visibility import VisibilityRules

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

REMOVED = "REMOVED"


class ProfileWatcher:
    """Listens on the users collection and republishes every changed profile.

    The listener only delivers the new state of a document, so the watcher
    keeps the last state it saw per user to hand the engine a ``before``
    snapshot. After a restart the first event for a user has no ``before``
    and pruning falls back to the keys recorded on each membership.
    """

    def __init__(
        self,
        db: Client,
        rules: VisibilityRules | None = None,
        sync: Callable[..., SyncReport] = sync_user_profile,
    ) -> None:
        self.db = db
        self.rules = rules or VisibilityRules()
        self._sync = sync
        self._last_seen: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._watch: Any = None

    def handle_change(self, uid: str, after: dict[str, Any] | None) -> SyncReport:
        """Run the engine for one document change."""
        with self._lock:
            before = self._last_seen.get(uid)
            if after is None:
                self._last_seen.pop(uid, None)
            else:
                self._last_seen[uid] = after
        return self._sync(self.db, uid, before, after, self.rules)

    def _on_snapshot(self, col_snapshot: Any, changes: Any, read_time: Any) -> None:
        for change in changes:
            doc = change.document
            after = None if change.type.name == REMOVED else (doc.to_dict() or {})
            try:
                self.handle_change(doc.id, after)
            except Exception:
                logger.exception(f"Sync failed for profile {doc.id}")

    def start(self) -> None:
        """Attach the listener. Existing profiles arrive first as additions."""
        if self._watch is not None:
            return
        self._watch = self.db.collection(USERS_COLLECTION).on_snapshot(
            self._on_snapshot
        )
        logger.info("Profile watcher started")

    def stop(self) -> None:
        """Detach the listener."""
        if self._watch is None:
            return
        self._watch.unsubscribe()
        self._watch = None
        logger.info("Profile watcher stopped")
