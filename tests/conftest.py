"""Common utilities for tests."""

from __future__ import annotations

import unittest
from typing import Any
from unittest.mock import patch

from mockfirestore import MockFirestore

from leaguebook import create_app
from tests.mock_utils import MockFirestoreBuilder, patch_mockfirestore

__all__ = ["FirestoreTestCase", "patch_mockfirestore"]


class FirestoreTestCase(unittest.TestCase):
    """Runs each test against a fresh in-memory Firestore inside an app context."""

    def setUp(self) -> None:
        patch_mockfirestore()
        self.db = MockFirestore()
        self.transaction = MockFirestoreBuilder.patch_db_transaction(self.db)

        # firestore.transactional retries and commits; the mock commits eagerly.
        transactional = patch(
            "firebase_admin.firestore.transactional", side_effect=lambda f: f
        )
        transactional.start()
        self.addCleanup(transactional.stop)

        self.app = create_app({"TESTING": True})
        self.app_context = self.app.app_context()
        self.app_context.push()
        self.addCleanup(self.app_context.pop)

    def tearDown(self) -> None:
        self.db.reset()

    def add_user(self, uid: str, **data: Any) -> None:
        self.db.collection("users").document(uid).set({"uid": uid, **data})

    def doc(self, path: str) -> dict[str, Any] | None:
        """Return the stored data at ``path``, or None when it does not exist."""
        parts = path.split("/")
        ref = self.db.collection(parts[0]).document(parts[1])
        for i in range(2, len(parts), 2):
            ref = ref.collection(parts[i]).document(parts[i + 1])
        snap = ref.get()
        return snap.to_dict() if snap.exists else None
