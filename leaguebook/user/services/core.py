from __future__ import annotations

import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, cast

from firebase_admin import firestore
from flask import current_app
from google.cloud.firestore_v1.field_path import render_field_path

from leaguebook.constants import FIELD_ALIASES, USERS_COLLECTION
from leaguebook.core.transaction import UnitOfWork, run_transaction
from leaguebook.errors import InvalidArgument, NotFound
from leaguebook.sync.projector import canonicalize_keys, canonicalize_privacy

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

    from ..models import User

FIELD_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def get_user_by_id(db: Client, user_id: str) -> User | None:
    """Fetch a user by their ID."""
    user_ref = db.collection(USERS_COLLECTION).document(user_id)
    user_doc = cast("DocumentSnapshot", user_ref.get())
    if not user_doc.exists:
        return None
    data = user_doc.to_dict()
    if data is None:
        return None
    data["id"] = user_id
    return cast("User", data)


def ensure_user_doc(db: Client, uid: str, email: str | None) -> dict[str, str]:
    """Record the login e-mail on the user document, creating it if needed."""
    email = (email or "").strip()
    if not email:
        existing = get_user_by_id(db, uid) or {}
        email = str(existing.get("email") or "")
        return {"email": email, "emailLower": email.lower()}

    db.collection(USERS_COLLECTION).document(uid).set(
        {
            "uid": uid,
            "email": email,
            "emailLower": email.lower(),
            "updatedAt": firestore.SERVER_TIMESTAMP,
        },
        merge=True,
    )
    return {"email": email, "emailLower": email.lower()}


def _profile_path(section: str, key: str) -> str:
    return render_field_path(["profile", section, key])


def update_profile_fields(
    db: Client, uid: str, fields: Any, privacy: Any = None
) -> None:
    """Merge custom fields and privacy entries into the user's profile.

    Keys that are not part of the request keep their stored value.
    """
    if privacy is None:
        privacy = {}
    if not isinstance(fields, Mapping):
        raise InvalidArgument("fields must be an object.")
    if not isinstance(privacy, Mapping):
        raise InvalidArgument("privacy must be an object.")

    custom_updates = canonicalize_keys({str(k): v for k, v in fields.items()})
    privacy_updates = canonicalize_privacy({str(k): v for k, v in privacy.items()})
    if "" in custom_updates or "" in privacy_updates:
        raise InvalidArgument("Field keys must not be empty.")

    user_ref = db.collection(USERS_COLLECTION).document(uid)

    def _update(uow: UnitOfWork) -> None:
        user_snap = uow.get(user_ref)
        if not user_snap.exists:
            raise NotFound("User not found.")
        profile = (user_snap.to_dict() or {}).get("profile") or {}

        # Each key is written on its own path so concurrent edits survive.
        updates: dict[str, Any] = {"updatedAt": firestore.SERVER_TIMESTAMP}
        for section, stored, incoming, canonical in (
            ("custom", profile.get("custom") or {}, custom_updates, canonicalize_keys),
            (
                "privacy",
                profile.get("privacy") or {},
                privacy_updates,
                canonicalize_privacy,
            ),
        ):
            renamed = canonical(stored)
            for key in stored:
                if key not in renamed:
                    updates[_profile_path(section, key)] = firestore.DELETE_FIELD
            for key, value in renamed.items():
                if key not in stored and key not in incoming:
                    updates[_profile_path(section, key)] = value
            for key, value in incoming.items():
                updates[_profile_path(section, key)] = value

        uow.update(user_ref, updates)

    run_transaction(db, _update)
    current_app.logger.info(
        f"User {uid} updated {len(fields)} fields and {len(privacy)} privacy entries"
    )


def update_profile_field(db: Client, uid: str, field_key: Any, value: Any) -> str:
    """Set one custom profile field, leaving every other field untouched."""
    key = str(field_key if field_key is not None else "").strip()
    if not key:
        raise InvalidArgument("fieldKey is required.")
    if not FIELD_KEY_RE.match(key):
        raise InvalidArgument("fieldKey must be a simple identifier.")
    key = FIELD_ALIASES.get(key, key)

    if get_user_by_id(db, uid) is None:
        raise NotFound("User not found.")

    db.collection(USERS_COLLECTION).document(uid).update(
        {f"profile.custom.{key}": value, "updatedAt": firestore.SERVER_TIMESTAMP}
    )
    return key
