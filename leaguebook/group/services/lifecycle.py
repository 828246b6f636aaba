from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from flask import current_app

from leaguebook.constants import (
    DEFAULT_ROLE_ID,
    FOUNDER_ROLE_ID,
    GROUPS_COLLECTION,
    INVITE_EMAIL_FIELDS,
    INVITES_COLLECTION,
    JOIN_CODE_MAX_ATTEMPTS,
    MAX_INVITE_RESULTS,
    MAX_JOINED_GROUPS,
    MAX_MEMBERSHIP_LOOKUP,
    MEMBERS_COLLECTION,
    PERMISSION_KEYS,
    ROLES_COLLECTION,
    STATUS_PENDING,
    USERS_COLLECTION,
)
from leaguebook.core.transaction import UnitOfWork, run_transaction
from leaguebook.errors import InvalidArgument, PermissionDenied
from leaguebook.sync.projector import (
    canonicalize_keys,
    member_public_fields,
    resolve_public_identity,
)
from leaguebook.user.services import UserService
from leaguebook.utils import text

from ..utils import decode_logo, generate_join_code, upload_logo

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from ..models import InvitedGroup, JoinedGroup


def member_snapshot(db: Client, uid: str, email: str | None = None) -> dict[str, Any]:
    """Return the display fields copied onto membership and join records."""
    ensured = UserService.ensure_user_doc(db, uid, email)
    user = UserService.get_user_by_id(db, uid) or {}
    return member_public_fields(resolve_public_identity(user, ensured))


def group_index_update(user_data: dict[str, Any], group_id: str) -> dict[str, Any]:
    """Profile update that adds ``group_id`` to the membership index.

    Ids still held under the legacy ``leagueIds`` key are carried over.
    """
    ids = []
    legacy = user_data.get("leagueIds")
    if isinstance(legacy, list):
        ids = [text(x) for x in legacy if text(x)]
    if group_id not in ids:
        ids.append(group_id)
    return {
        "activeGroupId": group_id,
        "groupIds": firestore.ArrayUnion(ids),
        "updatedAt": firestore.SERVER_TIMESTAMP,
    }


def _id_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    ids: list[str] = []
    for item in value:
        group_id = text(item)
        if group_id and group_id not in ids:
            ids.append(group_id)
    return ids


def allocate_join_code(db: Client) -> str:
    """Pick a join code that no group uses yet.

    The check is not part of the transaction that creates the group, and after
    the retry budget the last code is used unchecked.
    """
    groups = db.collection(GROUPS_COLLECTION)
    code = generate_join_code()
    for _ in range(JOIN_CODE_MAX_ATTEMPTS):
        taken = list(
            groups.where(filter=firestore.FieldFilter("joinCodeUpper", "==", code))
            .limit(1)
            .stream()
        )
        if not taken:
            return code
        code = generate_join_code()
    current_app.logger.warning(
        f"Join code {code} used unchecked after {JOIN_CODE_MAX_ATTEMPTS} collisions"
    )
    return code


def create_group(
    db: Client,
    uid: str,
    email: str | None,
    name: Any,
    founder_name: Any,
    founder_surname: Any,
    logo_base64: Any = None,
    logo_content_type: Any = None,
) -> dict[str, Any]:
    """Create a group with its founder role and founding membership."""
    name = text(name)
    founder_name = text(founder_name)
    founder_surname = text(founder_surname)
    if not name:
        raise InvalidArgument("Group name is required.")
    if not founder_name or not founder_surname:
        raise InvalidArgument("Founder name and surname are required.")
    logo_bytes = decode_logo(logo_base64) if text(logo_base64) else None

    ensured = UserService.ensure_user_doc(db, uid, email)
    user = UserService.get_user_by_id(db, uid) or {}
    identity = resolve_public_identity(user, ensured)
    identity.update(name=founder_name, surname=founder_surname, displayName="")
    founder_fields = member_public_fields(identity)

    join_code = allocate_join_code(db)
    group_ref = db.collection(GROUPS_COLLECTION).document()
    group_id = group_ref.id

    logo_url = None
    if logo_bytes:
        logo_url = upload_logo(group_id, logo_bytes, text(logo_content_type) or None)

    user_ref = db.collection(USERS_COLLECTION).document(uid)

    def _create(uow: UnitOfWork) -> None:
        user_snap = uow.get(user_ref)
        user_data = (user_snap.to_dict() or {}) if user_snap.exists else {}

        uow.set(
            group_ref,
            {
                "name": name,
                "joinCode": join_code,
                "joinCodeUpper": join_code,
                "createdByUid": uid,
                "logoUrl": logo_url,
                "memberCount": 1,
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
            merge=True,
        )
        uow.set(
            group_ref.collection(ROLES_COLLECTION).document(FOUNDER_ROLE_ID),
            {
                "name": "Owner",
                "tier": 1,
                "permissions": {key: True for key in PERMISSION_KEYS},
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
            merge=True,
        )
        uow.set(
            group_ref.collection(MEMBERS_COLLECTION).document(uid),
            {
                "uid": uid,
                "roleId": FOUNDER_ROLE_ID,
                "joinCode": join_code,
                **founder_fields,
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
            merge=True,
        )
        uow.set(
            user_ref,
            {
                "name": founder_name,
                "surname": founder_surname,
                **group_index_update(user_data, group_id),
            },
            merge=True,
        )

    run_transaction(db, _create)
    current_app.logger.info(f"User {uid} created group {group_id}")
    return {"groupId": group_id, "joinCode": join_code, "logoUrl": logo_url}


def role_allows(db: Client, group_id: str, role_id: Any, permission_key: str) -> bool:
    """Whether ``role_id`` grants ``permission_key``; unknown roles grant nothing."""
    role_id = text(role_id)
    if not role_id:
        return False
    if role_id == FOUNDER_ROLE_ID:
        return True

    role_snap = (
        db.collection(GROUPS_COLLECTION)
        .document(group_id)
        .collection(ROLES_COLLECTION)
        .document(role_id)
        .get()
    )
    if not role_snap.exists:
        return False
    permissions = (role_snap.to_dict() or {}).get("permissions") or {}
    return permissions.get(permission_key) is True


def caller_is_manager(db: Client, group_id: str, uid: str, permission_key: str) -> bool:
    """Whether ``uid`` is a member whose role grants ``permission_key``."""
    member_snap = (
        db.collection(GROUPS_COLLECTION)
        .document(group_id)
        .collection(MEMBERS_COLLECTION)
        .document(uid)
        .get()
    )
    if not member_snap.exists:
        return False
    role_id = (member_snap.to_dict() or {}).get("roleId")
    return role_allows(db, group_id, role_id, permission_key)


def set_active_group(db: Client, uid: str, group_id: Any) -> dict[str, str]:
    """Make one of the caller's groups the active one."""
    group_id = text(group_id)
    if not group_id:
        raise InvalidArgument("groupId is required.")

    member_snap = (
        db.collection(GROUPS_COLLECTION)
        .document(group_id)
        .collection(MEMBERS_COLLECTION)
        .document(uid)
        .get()
    )
    if not member_snap.exists:
        raise PermissionDenied("You are not a member of this group.")

    db.collection(USERS_COLLECTION).document(uid).set(
        {"activeGroupId": group_id, "updatedAt": firestore.SERVER_TIMESTAMP},
        merge=True,
    )
    return {"groupId": group_id}


def _membership_group_ids(db: Client, uid: str) -> list[str]:
    """Find a user's groups from their membership records."""
    try:
        docs = (
            db.collection_group(MEMBERS_COLLECTION)
            .where(filter=firestore.FieldFilter("uid", "==", uid))
            .limit(MAX_MEMBERSHIP_LOOKUP)
            .stream()
        )
        ids = []
        for doc in docs:
            group_ref = doc.reference.parent.parent
            if group_ref is not None and group_ref.id not in ids:
                ids.append(group_ref.id)
        return ids
    except Exception as e:
        current_app.logger.warning(f"Membership lookup for {uid} failed: {e}")
        return []


def _pending_invites(db: Client, email_lower: str) -> list[InvitedGroup]:
    """Pending invites addressed to ``email_lower`` under any e-mail field."""
    if not email_lower:
        return []

    invites: dict[tuple[str, str], InvitedGroup] = {}
    for field in INVITE_EMAIL_FIELDS:
        try:
            docs = (
                db.collection_group(INVITES_COLLECTION)
                .where(filter=firestore.FieldFilter(field, "==", email_lower))
                .limit(MAX_INVITE_RESULTS)
                .stream()
            )
            for doc in docs:
                invite = doc.to_dict() or {}
                status = text(invite.get("status") or STATUS_PENDING).lower()
                if status != STATUS_PENDING:
                    continue
                group_ref = doc.reference.parent.parent
                if group_ref is None:
                    continue
                key = (group_ref.id, doc.id)
                if key in invites:
                    continue

                group = canonicalize_keys(group_ref.get().to_dict() or {})
                invites[key] = {
                    "groupId": group_ref.id,
                    "inviteId": doc.id,
                    "roleId": text(invite.get("roleId")) or DEFAULT_ROLE_ID,
                    "name": text(group.get("name")) or "Group",
                    "logoUrl": text(group.get("logoUrl")),
                }
        except Exception as e:
            current_app.logger.warning(f"Invite lookup on {field} failed: {e}")

    return sorted(invites.values(), key=lambda invite: invite["name"].lower())


def list_groups_for_user(db: Client, uid: str, email: str | None) -> dict[str, Any]:
    """Return the caller's groups (active first) and their pending invites."""
    ensured = UserService.ensure_user_doc(db, uid, email)
    user = canonicalize_keys(UserService.get_user_by_id(db, uid) or {})
    active_group_id = text(user.get("activeGroupId"))

    group_ids = _id_list(user.get("groupIds"))
    if not group_ids:
        group_ids = _membership_group_ids(db, uid)

    joined: list[JoinedGroup] = []
    for group_id in group_ids[:MAX_JOINED_GROUPS]:
        group_snap = db.collection(GROUPS_COLLECTION).document(group_id).get()
        if not group_snap.exists:
            continue
        group = canonicalize_keys(group_snap.to_dict() or {})
        joined.append(
            {
                "groupId": group_id,
                "name": text(group.get("name")) or "Group",
                "joinCode": text(group.get("joinCode")),
                "logoUrl": text(group.get("logoUrl")),
                "active": group_id == active_group_id,
            }
        )
    joined.sort(key=lambda group: (not group["active"], group["name"].lower()))

    return {
        "activeGroupId": active_group_id,
        "joined": joined,
        "invited": _pending_invites(db, ensured["emailLower"]),
    }
