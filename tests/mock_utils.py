"""Mock utilities for Firestore and Auth."""

from __future__ import annotations

import unittest.mock
from typing import Any, Optional

from mockfirestore import CollectionReference, Query
from mockfirestore.document import DocumentReference


class MockTransaction:
    """Stands in for a Firestore transaction.

    ``UnitOfWork`` only hands writes over at commit time, so applying them
    straight to the mock documents keeps the all-or-nothing behaviour.
    """

    def __init__(self) -> None:
        self.writes: list[tuple[str, Any]] = []

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append(("set", ref))
        ref.set(data, merge=merge)

    def update(self, ref: Any, data: Any) -> None:
        self.writes.append(("update", ref))
        ref.update(data)

    def delete(self, ref: Any) -> None:
        self.writes.append(("delete", ref))
        ref.delete()


class MockFirestoreBuilder:
    """Builder to modularize mockfirestore and firebase_admin patching."""

    @staticmethod
    def patch_db_read() -> None:
        """Apply monkeypatches to mockfirestore to support FieldFilter and transactions."""

        def collection_where(
            self: Any,
            field_path: Optional[str] = None,
            op_string: Optional[str] = None,
            value: Any = None,
            filter: Any = None,
        ) -> Any:  # noqa: E501
            if filter:
                return self._where(filter.field_path, filter.op_string, filter.value)
            return self._where(field_path, op_string, value)

        if not hasattr(CollectionReference, "_where"):
            CollectionReference._where = CollectionReference.where
            CollectionReference.where = collection_where

        def query_where(
            self: Any,
            field_path: Optional[str] = None,
            op_string: Optional[str] = None,
            value: Any = None,
            filter: Any = None,
        ) -> Any:
            if filter:
                return self._where(filter.field_path, filter.op_string, filter.value)
            return self._where(field_path, op_string, value)

        if not hasattr(Query, "_where"):
            Query._where = Query.where
            Query.where = query_where

        # Patch DocumentReference.get to handle transaction argument
        if not hasattr(DocumentReference, "_orig_get"):
            DocumentReference._orig_get = DocumentReference.get

            def doc_ref_get(self: Any, transaction: Any = None) -> Any:
                """Handle transaction argument in get."""
                return self._orig_get()

            DocumentReference.get = doc_ref_get

    @staticmethod
    def patch_db_transaction(db: Any) -> MockTransaction:
        """Make ``db.transaction()`` return a ``MockTransaction``."""
        transaction = MockTransaction()
        db.transaction = unittest.mock.MagicMock(return_value=transaction)
        return transaction


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and transactions."""
    MockFirestoreBuilder.patch_db_read()
