"""Projection of a profile document into its access-scoped views."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from leaguebook.constants import FIELD_ALIASES, INTERNAL_PROFILE_KEYS

from .visibility import (
    BUCKET_ALLOWLIST,
    BUCKET_GROUP,
    BUCKET_PUBLIC,
    CUSTOM_PREFIX,
    DEPARTMENT,
    EMAILS,
    IDENTITIES,
    OWNER,
    SPECIAL,
    VisibilityRules,
    bucket_for,
    canonical_policy_entry,
    lookup_policy,
    resolve_mode,
    strip_custom_prefix,
)

IDENTITY_TEXT_FIELDS = (
    "name",
    "surname",
    "handle",
    "photoUrl",
    "coverUrl",
    "thought",
)
IDENTITY_VERSION_FIELDS = ("photoV", "coverV")


@dataclass
class ShareTargets:
    """Who the allow-list view is addressed to."""

    emails_lower: list[str] = field(default_factory=list)
    uids: list[str] = field(default_factory=list)
    same_department: bool = False
    owner: bool = False
    special: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "targetEmailsLower": sorted(set(self.emails_lower)),
            "targetUids": sorted(set(self.uids)),
            "sameDepartment": self.same_department,
            "owner": self.owner,
            "special": self.special,
        }


@dataclass
class Projection:
    """A profile split into disjoint projection buckets."""

    public_fields: dict[str, Any]
    group_fields: dict[str, Any]
    shared_fields: dict[str, Any]
    derived: dict[str, Any]
    field_modes: dict[str, str]
    field_targets: dict[str, dict[str, list[str]]]
    share_targets: ShareTargets


def as_int(value: Any) -> int:
    """Coerce a stored counter (photo/cover version) to an int, defaulting to 0."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return math.trunc(value) if math.isfinite(value) else 0
    try:
        return int(str(value if value is not None else "").strip())
    except ValueError:
        return 0


def _as_mapping(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def _text(value: Any) -> str:
    return str(value if value is not None else "").strip()


def canonicalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Rename legacy field names; the current spelling wins when both exist."""
    out = {key: value for key, value in data.items() if key not in FIELD_ALIASES}
    for legacy, current in FIELD_ALIASES.items():
        if legacy in data and out.get(current) is None:
            out[current] = data[legacy]
    return out


def _canonical_policy_key(key: str) -> str:
    prefix = CUSTOM_PREFIX if key.startswith(CUSTOM_PREFIX) else ""
    raw_key = strip_custom_prefix(key)
    return prefix + FIELD_ALIASES.get(raw_key, raw_key)


def canonicalize_privacy(privacy: Mapping[str, Any]) -> dict[str, Any]:
    """Rename legacy field names used as privacy keys."""
    out: dict[str, Any] = {}
    legacy: dict[str, Any] = {}
    for key, entry in privacy.items():
        canonical = _canonical_policy_key(str(key))
        if canonical == key:
            out[canonical] = entry
        else:
            legacy[canonical] = entry
    for key, entry in legacy.items():
        out.setdefault(key, entry)
    return out


def canonicalize_profile(doc: Any) -> dict[str, Any]:
    """Return a copy of a user document in the current schema."""
    data = canonicalize_keys(_as_mapping(doc))
    profile = canonicalize_keys(_as_mapping(data.get("profile")))
    profile["custom"] = canonicalize_keys(_as_mapping(profile.get("custom")))
    profile["privacy"] = canonicalize_privacy(_as_mapping(profile.get("privacy")))
    data["profile"] = profile
    return data


def resolve_public_identity(
    doc: Any, fallback: Mapping[str, Any] | None = None
) -> dict[str, Any]:
    """Resolve the always-public identity values of a user document.

    Values are looked up in ``profile.custom``, then ``profile``, then at the
    top level of the document. ``fallback`` supplies the login e-mail when the
    document does not have it yet.
    """
    data = canonicalize_profile(doc)
    profile = data["profile"]
    custom = profile["custom"]
    fallback = fallback or {}

    def pick(key: str) -> Any:
        for source in (custom, profile, data):
            if source.get(key) is not None:
                return source[key]
        return None

    identity: dict[str, Any] = {key: _text(pick(key)) for key in IDENTITY_TEXT_FIELDS}
    for key in IDENTITY_VERSION_FIELDS:
        identity[key] = as_int(pick(key))

    email = _text(data.get("email") or fallback.get("email"))
    email_lower = _text(
        data.get("emailLower") or fallback.get("emailLower") or email.lower()
    )
    identity["email"] = email
    identity["emailLower"] = email_lower
    identity["displayName"] = " ".join(
        part for part in (identity["surname"], identity["name"]) if part
    )
    return identity


def member_public_fields(identity: Mapping[str, Any]) -> dict[str, Any]:
    """Derived display and search fields shared by every public projection."""
    name = _text(identity.get("name"))
    surname = _text(identity.get("surname"))
    handle = _text(identity.get("handle"))
    display_name = _text(identity.get("displayName")) or " ".join(
        part for part in (surname, name) if part
    )

    return {
        "displayGivenName": name,
        "displaySurname": surname,
        "displayGivenNameLower": name.lower(),
        "displaySurnameLower": surname.lower(),
        "displayName": display_name,
        "displayNameLower": display_name.lower(),
        "fullNameLower": " ".join(p for p in (surname, name) if p).lower(),
        "reverseNameLower": " ".join(p for p in (name, surname) if p).lower(),
        "handle": handle or None,
        "handleLower": handle.lower() or None,
        "photoUrl": _text(identity.get("photoUrl")) or None,
        "photoV": as_int(identity.get("photoV")),
        "coverUrl": _text(identity.get("coverUrl")) or None,
        "coverV": as_int(identity.get("coverV")),
        "emailLogin": _text(identity.get("email")),
        "emailLower": _text(identity.get("emailLower")),
    }


def _scan_share_targets(privacy: Mapping[str, Any]) -> ShareTargets:
    targets = ShareTargets()
    for raw_entry in privacy.values():
        entry = canonical_policy_entry(raw_entry)
        if entry is None:
            continue
        mode = resolve_mode(entry)
        if mode == EMAILS:
            targets.emails_lower.extend(entry["emails"])
        elif mode == IDENTITIES:
            targets.uids.extend(entry["uids"])
        elif mode == DEPARTMENT:
            targets.same_department = True
        elif mode == OWNER:
            targets.owner = True
        elif mode == SPECIAL:
            targets.special = True
    return targets


def project(doc: Any, rules: VisibilityRules | None = None) -> Projection:
    """Partition a user document into public, group-wide and allow-list fields."""
    rules = rules or VisibilityRules()
    data = canonicalize_profile(doc)
    profile = data["profile"]
    custom = profile["custom"]
    privacy = profile["privacy"]

    candidates = [
        (key, key, value)
        for key, value in profile.items()
        if key not in INTERNAL_PROFILE_KEYS
    ]
    # Custom fields come last so they win over a flat field with the same name.
    candidates += [
        (key, f"{CUSTOM_PREFIX}{key}", value)
        for key, value in custom.items()
        if key not in INTERNAL_PROFILE_KEYS
    ]

    public: dict[str, Any] = {}
    group: dict[str, Any] = {}
    shared: dict[str, Any] = {}
    modes: dict[str, str] = {}
    targets: dict[str, dict[str, list[str]]] = {}

    for key, policy_key, value in candidates:
        for bucket in (public, group, shared, modes, targets):
            bucket.pop(key, None)

        mode = rules.classify(policy_key, privacy)
        bucket = bucket_for(mode)
        if bucket == BUCKET_PUBLIC:
            public[key] = value
        elif bucket == BUCKET_GROUP:
            group[key] = value
        elif bucket == BUCKET_ALLOWLIST:
            shared[key] = value
            modes[key] = mode
            entry = canonical_policy_entry(lookup_policy(policy_key, privacy))
            if entry and mode == EMAILS:
                targets[key] = {"emails": entry["emails"], "uids": []}
            elif entry and mode == IDENTITIES:
                targets[key] = {"emails": [], "uids": entry["uids"]}

    identity = resolve_public_identity(data)
    for key in IDENTITY_TEXT_FIELDS:
        if key in rules.always_public and identity[key]:
            public[key] = identity[key]
    for key in IDENTITY_VERSION_FIELDS:
        if key in rules.always_public:
            public[key] = identity[key]

    return Projection(
        public_fields=public,
        group_fields=group,
        shared_fields=shared,
        derived=member_public_fields(identity),
        field_modes=modes,
        field_targets=targets,
        share_targets=_scan_share_targets(privacy),
    )
