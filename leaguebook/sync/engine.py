"""Profile synchronization: republish a user's projections after every write.

The user document is the only source of truth. Every projection written here
(the public directory entry, the public part of each membership record and the
three group-scoped sharing records) is owned by this module and is rewritten in
full on each run, so a later run always wins over a stale one.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from leaguebook.constants import (
    GROUPS_COLLECTION,
    MEMBER_RESERVED_KEYS,
    MEMBERS_COLLECTION,
    SHARE_PREFERENCES_COLLECTION,
    SHARED_PROFILES_ALL_COLLECTION,
    SHARED_PROFILES_COLLECTION,
    USERS_PUBLIC_COLLECTION,
)

from .projector import Projection, canonicalize_profile, project
from .visibility import VisibilityRules

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference

logger = logging.getLogger(__name__)

SHARED_VIEW_DISPLAY_KEYS = (
    "displayName",
    "displayNameLower",
    "handle",
    "photoUrl",
    "photoV",
)


@dataclass
class SyncReport:
    """What a single synchronization run did."""

    uid: str
    written: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.written or self.deleted)


def _comparable(data: Mapping[str, Any] | None) -> dict[str, Any]:
    return {k: v for k, v in (data or {}).items() if k != "updatedAt"}


def _write_if_changed(
    ref: DocumentReference, payload: dict[str, Any], label: str, report: SyncReport
) -> None:
    """Overwrite a projection unless it already holds exactly ``payload``."""
    snapshot = ref.get()
    if snapshot.exists and _comparable(snapshot.to_dict()) == payload:
        report.skipped.append(label)
        return
    ref.set({**payload, "updatedAt": firestore.SERVER_TIMESTAMP})
    report.written.append(label)


def _delete_if_present(ref: DocumentReference, label: str, report: SyncReport) -> None:
    """Best-effort delete of a projection; failures are logged, not raised."""
    try:
        snapshot = ref.get()
        if not snapshot.exists:
            report.skipped.append(label)
            return
        ref.delete()
        report.deleted.append(label)
    except Exception as e:
        logger.warning(f"Could not delete {label}: {e}")


def _group_ids(value: Any) -> list[str]:
    if not isinstance(value, (list, tuple)):
        return []
    ids: list[str] = []
    for item in value:
        group_id = str(item if item is not None else "").strip()
        if group_id and group_id not in ids:
            ids.append(group_id)
    return ids


def _raw_privacy(doc: Mapping[str, Any]) -> dict[str, Any]:
    profile = doc.get("profile")
    if not isinstance(profile, Mapping):
        return {}
    privacy = profile.get("privacy")
    return dict(privacy) if isinstance(privacy, Mapping) else {}


def _sync_membership(
    db: Client,
    uid: str,
    group_id: str,
    projection: Projection,
    previous_keys: set[str],
    report: SyncReport,
) -> None:
    """Mirror the public fields into an existing membership record.

    Keys that were public before this write and are not any more are deleted
    from the record; a merge alone would leave them behind.
    """
    label = f"{GROUPS_COLLECTION}/{group_id}/{MEMBERS_COLLECTION}/{uid}"
    member_ref = (
        db.collection(GROUPS_COLLECTION)
        .document(group_id)
        .collection(MEMBERS_COLLECTION)
        .document(uid)
    )
    snapshot = member_ref.get()
    if not snapshot.exists:
        report.skipped.append(label)
        return

    current = snapshot.to_dict() or {}
    public = {
        k: v
        for k, v in projection.public_fields.items()
        if k not in MEMBER_RESERVED_KEYS
    }
    payload = {
        "uid": uid,
        **public,
        **projection.derived,
        "publicFieldKeys": sorted(public),
    }

    recorded = current.get("publicFieldKeys")
    stale = set(previous_keys)
    if isinstance(recorded, list):
        stale.update(str(k) for k in recorded)
    stale -= set(payload) | MEMBER_RESERVED_KEYS
    prune = sorted(k for k in stale if k in current)

    if not prune and all(k in current and current[k] == v for k, v in payload.items()):
        report.skipped.append(label)
        return

    update = {**payload, "updatedAt": firestore.SERVER_TIMESTAMP}
    for key in prune:
        update[key] = firestore.DELETE_FIELD
    member_ref.set(update, merge=True)
    report.written.append(label)
    if prune:
        logger.debug(f"Pruned {prune} from {label}")


def _sync_group_shares(
    db: Client,
    uid: str,
    group_id: str,
    projection: Projection,
    raw_privacy: dict[str, Any],
    report: SyncReport,
) -> None:
    """Publish the group-scoped sharing records of one group."""
    group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
    prefix = f"{GROUPS_COLLECTION}/{group_id}"
    display = {k: projection.derived[k] for k in SHARED_VIEW_DISPLAY_KEYS}

    _write_if_changed(
        group_ref.collection(SHARE_PREFERENCES_COLLECTION).document(uid),
        {"uid": uid, "privacy": raw_privacy},
        f"{prefix}/{SHARE_PREFERENCES_COLLECTION}/{uid}",
        report,
    )

    all_ref = group_ref.collection(SHARED_PROFILES_ALL_COLLECTION).document(uid)
    all_label = f"{prefix}/{SHARED_PROFILES_ALL_COLLECTION}/{uid}"
    if projection.group_fields:
        _write_if_changed(
            all_ref,
            {"uid": uid, "fields": projection.group_fields, **display},
            all_label,
            report,
        )
    else:
        _delete_if_present(all_ref, all_label, report)

    shared_ref = group_ref.collection(SHARED_PROFILES_COLLECTION).document(uid)
    shared_label = f"{prefix}/{SHARED_PROFILES_COLLECTION}/{uid}"
    if projection.shared_fields:
        _write_if_changed(
            shared_ref,
            {
                "uid": uid,
                "fields": projection.shared_fields,
                "fieldModes": projection.field_modes,
                "fieldTargets": projection.field_targets,
                **projection.share_targets.to_dict(),
                **display,
            },
            shared_label,
            report,
        )
    else:
        _delete_if_present(shared_ref, shared_label, report)


def sync_user_profile(
    db: Client,
    uid: str,
    before: Mapping[str, Any] | None,
    after: Mapping[str, Any] | None,
    rules: VisibilityRules | None = None,
) -> SyncReport:
    """Recompute and republish every projection of ``users/{uid}``.

    ``before`` and ``after`` are the document states around the write that
    triggered the run; ``after`` is None when the user document was deleted.
    """
    report = SyncReport(uid=uid)
    public_ref = db.collection(USERS_PUBLIC_COLLECTION).document(uid)
    public_label = f"{USERS_PUBLIC_COLLECTION}/{uid}"

    if after is None:
        _delete_if_present(public_ref, public_label, report)
        return report

    rules = rules or VisibilityRules()
    projection = project(after, rules)
    previous_keys = set(project(before, rules).public_fields) if before else set()

    _write_if_changed(
        public_ref,
        {"uid": uid, "fields": projection.public_fields, **projection.derived},
        public_label,
        report,
    )

    raw_privacy = _raw_privacy(after)
    for group_id in _group_ids(canonicalize_profile(after).get("groupIds")):
        try:
            _sync_membership(db, uid, group_id, projection, previous_keys, report)
            _sync_group_shares(db, uid, group_id, projection, raw_privacy, report)
        except Exception:
            logger.exception(f"Profile sync failed for user {uid} in group {group_id}")
            report.failed.append(group_id)

    logger.info(
        f"Synced profile {uid}: {len(report.written)} written, "
        f"{len(report.deleted)} deleted, {len(report.failed)} failed"
    )
    return report
