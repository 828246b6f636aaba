"""Data models for the user blueprint."""

from __future__ import annotations

from typing import Any, TypedDict

from leaguebook.core.types import FirestoreDocument


class PrivacyEntry(TypedDict, total=False):
    """One field's visibility policy inside ``profile.privacy``."""

    mode: str
    emails: list[str]
    uids: list[str]
    wholeGroup: bool
    public: bool


class Profile(TypedDict, total=False):
    """The editable ``profile`` mapping of a user document."""

    custom: dict[str, Any]
    privacy: dict[str, PrivacyEntry]


class User(FirestoreDocument, total=False):
    """A user document in Firestore."""

    uid: str
    email: str
    emailLower: str
    name: str
    surname: str
    handle: str
    handleLower: str
    profile: Profile
    groupIds: list[str]
    activeGroupId: str

