"""Handle registry: one globally unique, human-chosen handle per user."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from flask import current_app

from leaguebook.constants import (
    HANDLE_MAX_LENGTH,
    HANDLE_MIN_LENGTH,
    HANDLE_PATTERN,
    HANDLES_COLLECTION,
    USERS_COLLECTION,
)
from leaguebook.core.transaction import UnitOfWork, run_transaction
from leaguebook.errors import AlreadyExists, FailedPrecondition, InvalidArgument
from leaguebook.sync.projector import canonicalize_keys

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

_HANDLE_RE = re.compile(HANDLE_PATTERN)


def normalize_handle(raw_handle: Any) -> tuple[str, str]:
    """Trim and validate a handle, returning it and its lowercase key."""
    handle = str(raw_handle if raw_handle is not None else "").strip()
    if not HANDLE_MIN_LENGTH <= len(handle) <= HANDLE_MAX_LENGTH:
        raise InvalidArgument(
            f"Handle must be {HANDLE_MIN_LENGTH} to {HANDLE_MAX_LENGTH} characters."
        )
    if not _HANDLE_RE.match(handle):
        raise InvalidArgument(
            "Handle may only contain letters, numbers, dots, underscores and hyphens."
        )
    return handle, handle.lower()


def reserve_handle(db: Client, uid: str, raw_handle: Any) -> dict[str, str]:
    """Claim a handle for ``uid`` and release the one it held before.

    The registry entry and the profile's handle fields are written in the same
    transaction. The previous entry is only deleted while it still belongs to
    ``uid``; it may already have been claimed by someone else.
    """
    handle, handle_lower = normalize_handle(raw_handle)
    handles = db.collection(HANDLES_COLLECTION)
    entry_ref = handles.document(handle_lower)
    user_ref = db.collection(USERS_COLLECTION).document(uid)

    def _reserve(uow: UnitOfWork) -> None:
        entry_snap = uow.get(entry_ref)
        user_snap = uow.get(user_ref)

        if not user_snap.exists:
            raise FailedPrecondition("User profile not found.")

        if entry_snap.exists:
            owner_uid = str((entry_snap.to_dict() or {}).get("uid") or "")
            if owner_uid and owner_uid != uid:
                raise AlreadyExists("Handle already taken.")

        user_data = canonicalize_keys(user_snap.to_dict() or {})
        old_lower = str(user_data.get("handleLower") or "").lower()
        if old_lower and old_lower != handle_lower:
            old_ref = handles.document(old_lower)
            old_snap = uow.get(old_ref)
            if old_snap.exists and (old_snap.to_dict() or {}).get("uid") == uid:
                uow.delete(old_ref)

        uow.set(
            entry_ref,
            {
                "uid": uid,
                "handle": handle,
                "handleLower": handle_lower,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
            merge=True,
        )
        uow.set(
            user_ref,
            {
                "handle": handle,
                "handleLower": handle_lower,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
            merge=True,
        )

    run_transaction(db, _reserve)
    current_app.logger.info(f"User {uid} now holds handle {handle_lower}")
    return {"handle": handle, "handleLower": handle_lower}
