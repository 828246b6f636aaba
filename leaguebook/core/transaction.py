"""Transaction helpers shared by the multi-document workflows."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, TypeVar

from firebase_admin import firestore

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction

T = TypeVar("T")


class UnitOfWork:
    """Reads through a Firestore transaction and buffers writes until commit.

    Reads see the transaction snapshot; queued writes are not visible to later
    reads in the same unit. Nothing is handed to the transaction before
    ``commit``, so a workflow may read after queuing writes, and raising at any
    point leaves no partial writes behind.
    """

    def __init__(self, transaction: Transaction) -> None:
        self.transaction = transaction
        self._writes: list[tuple[str, DocumentReference, Any, bool]] = []

    def get(self, ref: DocumentReference) -> DocumentSnapshot:
        """Read a document inside the transaction."""
        return ref.get(transaction=self.transaction)

    def set(
        self, ref: DocumentReference, data: dict[str, Any], merge: bool = False
    ) -> None:
        """Queue a set (or merge) of a document."""
        self._writes.append(("set", ref, data, merge))

    def update(self, ref: DocumentReference, data: dict[str, Any]) -> None:
        """Queue an update of an existing document."""
        self._writes.append(("update", ref, data, False))

    def delete(self, ref: DocumentReference) -> None:
        """Queue a document deletion."""
        self._writes.append(("delete", ref, None, False))

    def commit(self) -> None:
        """Hand every queued write to the transaction, in order."""
        for op, ref, data, merge in self._writes:
            if op == "set":
                self.transaction.set(ref, data, merge=merge)
            elif op == "update":
                self.transaction.update(ref, data)
            else:
                self.transaction.delete(ref)
        self._writes = []


def run_transaction(db: Client, work: Callable[[UnitOfWork], T]) -> T:
    """Run ``work`` in a Firestore transaction and return its result.

    Firestore may call ``work`` more than once on contention; each attempt gets
    a fresh ``UnitOfWork``.
    """

    @firestore.transactional
    def _run(transaction: Transaction) -> T:
        uow = UnitOfWork(transaction)
        result = work(uow)
        uow.commit()
        return result

    return _run(db.transaction())
