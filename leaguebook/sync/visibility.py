"""Field visibility classification.

Every profile field is classified into one visibility mode, and every mode
belongs to one projection bucket:

* ``public`` goes to the public directory and to every membership mirror.
* ``group`` goes to the group-wide shared view of each group.
* ``emails``, ``identities``, ``owner``, ``special`` and ``department`` go to
  the allow-list shared view.
* ``private`` is never projected.

Privacy entries have changed shape over time. Older clients write
``{"mode": "private" | "shared", "emails": [...], "uids": [...],
"allLeague": true}`` or just ``{"public": true}``; current clients write an
explicit mode. Both are read without a migration step.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from leaguebook.constants import ALWAYS_PUBLIC_FIELDS, SENSITIVE_FIELDS

CUSTOM_PREFIX = "custom."

PUBLIC = "public"
GROUP = "group"
EMAILS = "emails"
IDENTITIES = "identities"
OWNER = "owner"
SPECIAL = "special"
DEPARTMENT = "department"
PRIVATE = "private"

EXPLICIT_MODES = frozenset(
    {PUBLIC, GROUP, EMAILS, IDENTITIES, OWNER, SPECIAL, DEPARTMENT}
)
LEGACY_MODES = frozenset({"private", "shared"})
ALLOWLIST_MODES = frozenset({EMAILS, IDENTITIES, OWNER, SPECIAL, DEPARTMENT})
MODE_ALIASES = {"league": GROUP, "comparto": DEPARTMENT, "uids": IDENTITIES}

BUCKET_PUBLIC = "public"
BUCKET_GROUP = "group"
BUCKET_ALLOWLIST = "allowlist"
BUCKET_PRIVATE = "private"


def _string_list(value: Any) -> list[str]:
    """Coerce a share-target value into a list of unique, non-empty strings."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        return []
    out: list[str] = []
    for item in value:
        text = str(item).strip() if item is not None else ""
        if text and text not in out:
            out.append(text)
    return out


def strip_custom_prefix(field_key: str) -> str:
    """Return the raw field name of ``custom.<key>`` policy keys."""
    if field_key.startswith(CUSTOM_PREFIX):
        return field_key[len(CUSTOM_PREFIX) :]
    return field_key


def canonical_policy_entry(entry: Any) -> dict[str, Any] | None:
    """Normalize one privacy entry, or return None if it is not a mapping."""
    if not isinstance(entry, Mapping):
        return None

    mode = str(entry.get("mode") or "").strip().lower()
    mode = MODE_ALIASES.get(mode, mode)

    emails: list[str] = []
    for email in _string_list(entry.get("emails")):
        if email.lower() not in emails:
            emails.append(email.lower())

    whole_group = entry.get("wholeGroup", entry.get("allLeague"))
    return {
        "mode": mode,
        "emails": emails,
        "uids": _string_list(entry.get("uids")),
        "wholeGroup": whole_group is True,
        "public": entry.get("public") is True,
    }


def reinterpret_legacy_mode(entry: Mapping[str, Any]) -> str:
    """Resolve a legacy ``private``/``shared`` entry from its share targets."""
    if entry.get("wholeGroup"):
        return GROUP
    if entry.get("uids") and not entry.get("emails"):
        return IDENTITIES
    if entry.get("emails"):
        return EMAILS
    return PRIVATE


def resolve_mode(entry: Mapping[str, Any]) -> str:
    """Return the visibility mode of a canonical policy entry."""
    mode = entry.get("mode") or ""
    if mode in EXPLICIT_MODES:
        return mode
    if mode in LEGACY_MODES:
        return reinterpret_legacy_mode(entry)
    if not mode and entry.get("public"):
        return PUBLIC
    return PRIVATE


def lookup_policy(field_key: str, policy_map: Any) -> Any:
    """Find the raw policy entry for a field (``custom.k`` first, then ``k``)."""
    if not isinstance(policy_map, Mapping):
        return None
    entry = policy_map.get(field_key)
    raw_key = strip_custom_prefix(field_key)
    if entry is None and raw_key != field_key:
        entry = policy_map.get(raw_key)
    return entry


def classify(
    field_key: str,
    policy_map: Any,
    always_public: frozenset[str] | set[str],
    sensitive: frozenset[str] | set[str],
) -> str:
    """Classify a field into a visibility mode."""
    raw_key = strip_custom_prefix(field_key)
    if raw_key in always_public:
        return PUBLIC

    raw_entry = lookup_policy(field_key, policy_map)
    if raw_key in sensitive and raw_entry is None:
        return PRIVATE

    entry = canonical_policy_entry(raw_entry)
    if entry is None:
        return PRIVATE
    return resolve_mode(entry)


def bucket_for(mode: str) -> str:
    """Map a visibility mode to the projection bucket it feeds."""
    if mode == PUBLIC:
        return BUCKET_PUBLIC
    if mode == GROUP:
        return BUCKET_GROUP
    if mode in ALLOWLIST_MODES:
        return BUCKET_ALLOWLIST
    return BUCKET_PRIVATE


@dataclass(frozen=True)
class VisibilityRules:
    """The two field sets the classifier is configured with."""

    always_public: frozenset[str] = ALWAYS_PUBLIC_FIELDS
    sensitive: frozenset[str] = SENSITIVE_FIELDS

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> VisibilityRules:
        """Build the rules from a Flask config mapping."""
        return cls(
            always_public=frozenset(
                config.get("ALWAYS_PUBLIC_FIELDS") or ALWAYS_PUBLIC_FIELDS
            ),
            sensitive=frozenset(config.get("SENSITIVE_FIELDS") or SENSITIVE_FIELDS),
        )

    def classify(self, field_key: str, policy_map: Any) -> str:
        """Classify ``field_key`` against these rules."""
        return classify(field_key, policy_map, self.always_public, self.sensitive)
