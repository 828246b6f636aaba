"""Invite, join-by-code and join-request workflows.

Invites and join requests move from ``pending`` to ``accepted`` or
``rejected`` exactly once. The status is re-read inside the transaction that
performs the transition, so of two concurrent accepts only one commits.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from flask import current_app

from leaguebook.constants import (
    DEFAULT_ROLE_ID,
    FOUNDER_ROLE_ID,
    GROUPS_COLLECTION,
    INVITES_COLLECTION,
    JOIN_REQUESTS_COLLECTION,
    MAX_JOIN_REQUESTS,
    MEMBERS_COLLECTION,
    MEMBERS_MANAGE_PERMISSION,
    STATUS_ACCEPTED,
    STATUS_PENDING,
    STATUS_REJECTED,
    USERS_COLLECTION,
)
from leaguebook.core.transaction import UnitOfWork, run_transaction
from leaguebook.errors import (
    FailedPrecondition,
    InvalidArgument,
    NotFound,
    PermissionDenied,
)
from leaguebook.utils import text

from ..utils import canonical_join_code
from .lifecycle import caller_is_manager, group_index_update, member_snapshot

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference


def _status(data: dict[str, Any], default: str = "") -> str:
    return text(data.get("status") or default).lower()


def _join(
    uow: UnitOfWork,
    group_ref: DocumentReference,
    member_ref: DocumentReference,
    user_ref: DocumentReference,
    uid: str,
    role_id: str,
    join_code: str | None,
    snapshot: dict[str, Any],
) -> bool:
    """Queue the writes that make ``uid`` a member of the group.

    Returns True when a new membership record is created; only then is the
    member count incremented.
    """
    member_snap = uow.get(member_ref)
    user_snap = uow.get(user_ref)
    is_new = not member_snap.exists

    member = {
        "uid": uid,
        "roleId": role_id,
        "joinCode": join_code or None,
        **snapshot,
        "updatedAt": firestore.SERVER_TIMESTAMP,
    }
    if is_new:
        member["createdAt"] = firestore.SERVER_TIMESTAMP
        uow.update(
            group_ref,
            {
                "memberCount": firestore.Increment(1),
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
        )
    uow.set(member_ref, member, merge=True)

    user_data = (user_snap.to_dict() or {}) if user_snap.exists else {}
    uow.set(user_ref, group_index_update(user_data, group_ref.id), merge=True)
    return is_new


def accept_invite(
    db: Client, uid: str, email: str | None, group_id: Any, invite_id: Any
) -> dict[str, str]:
    """Accept a pending invite and join its group."""
    group_id = text(group_id)
    invite_id = text(invite_id)
    if not group_id or not invite_id:
        raise InvalidArgument("groupId and inviteId are required.")

    snapshot = member_snapshot(db, uid, email)
    group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
    user_ref = db.collection(USERS_COLLECTION).document(uid)

    def _accept(uow: UnitOfWork) -> str:
        group_snap = uow.get(group_ref)
        if not group_snap.exists:
            raise NotFound("Group not found.")
        group = group_snap.to_dict() or {}

        invite_ref = group_ref.collection(INVITES_COLLECTION).document(invite_id)
        invite_snap = uow.get(invite_ref)
        if not invite_snap.exists:
            raise NotFound("Invite not found.")
        invite = invite_snap.to_dict() or {}
        if _status(invite, STATUS_PENDING) != STATUS_PENDING:
            raise FailedPrecondition("This invite is no longer valid.")

        if text(group.get("createdByUid")) == uid:
            role_id = FOUNDER_ROLE_ID
        else:
            role_id = text(invite.get("roleId")) or DEFAULT_ROLE_ID

        _join(
            uow,
            group_ref,
            group_ref.collection(MEMBERS_COLLECTION).document(uid),
            user_ref,
            uid,
            role_id,
            text(group.get("joinCode")).upper(),
            snapshot,
        )
        uow.set(
            invite_ref,
            {
                "status": STATUS_ACCEPTED,
                "acceptedByUid": uid,
                "acceptedAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            },
            merge=True,
        )
        return role_id

    role_id = run_transaction(db, _accept)
    current_app.logger.info(f"User {uid} accepted invite {invite_id} to {group_id}")
    return {"groupId": group_id, "inviteId": invite_id, "roleId": role_id}


def request_join_by_code(
    db: Client, uid: str, email: str | None, raw_code: Any
) -> dict[str, Any]:
    """Ask to join the group that uses ``raw_code``."""
    join_code = canonical_join_code(raw_code)
    if not join_code:
        raise InvalidArgument("joinCode is required.")

    snapshot = member_snapshot(db, uid, email)
    matches = list(
        db.collection(GROUPS_COLLECTION)
        .where(filter=firestore.FieldFilter("joinCodeUpper", "==", join_code))
        .limit(1)
        .stream()
    )
    if not matches:
        raise NotFound("No group uses this join code.")

    group_id = matches[0].id
    group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
    result = {"groupId": group_id, "alreadyMember": False, "alreadyRequested": False}

    member_snap = group_ref.collection(MEMBERS_COLLECTION).document(uid).get()
    if member_snap.exists:
        user_ref = db.collection(USERS_COLLECTION).document(uid)
        user_snap = user_ref.get()
        user_data = (user_snap.to_dict() or {}) if user_snap.exists else {}
        user_ref.set(group_index_update(user_data, group_id), merge=True)
        return {**result, "alreadyMember": True}

    request_ref = group_ref.collection(JOIN_REQUESTS_COLLECTION).document(uid)
    request_snap = request_ref.get()
    if request_snap.exists and _status(request_snap.to_dict() or {}) == STATUS_PENDING:
        return {**result, "alreadyRequested": True}

    request_ref.set(
        {
            "uid": uid,
            "status": STATUS_PENDING,
            **snapshot,
            "createdAt": firestore.SERVER_TIMESTAMP,
            "updatedAt": firestore.SERVER_TIMESTAMP,
        }
    )
    current_app.logger.info(f"User {uid} requested to join {group_id}")
    return result


def list_join_requests(db: Client, uid: str, group_id: Any) -> list[dict[str, Any]]:
    """Pending join requests of a group, newest first. Managers only."""
    group_id = text(group_id)
    if not group_id:
        raise InvalidArgument("groupId is required.")
    if not caller_is_manager(db, group_id, uid, MEMBERS_MANAGE_PERMISSION):
        raise PermissionDenied()

    docs = (
        db.collection(GROUPS_COLLECTION)
        .document(group_id)
        .collection(JOIN_REQUESTS_COLLECTION)
        .where(filter=firestore.FieldFilter("status", "==", STATUS_PENDING))
        .order_by("createdAt", direction=firestore.Query.DESCENDING)
        .limit(MAX_JOIN_REQUESTS)
        .stream()
    )
    return [{"id": doc.id, **(doc.to_dict() or {})} for doc in docs]


def _require_pending(snap: DocumentSnapshot) -> dict[str, Any]:
    if not snap.exists:
        raise NotFound("Join request not found.")
    data = snap.to_dict() or {}
    if _status(data) != STATUS_PENDING:
        raise FailedPrecondition("This join request has already been handled.")
    return data


def respond_to_join_request(
    db: Client,
    caller_uid: str,
    group_id: Any,
    request_id: Any,
    accept: bool,
    role_id: Any = None,
) -> dict[str, Any]:
    """Accept or reject a pending join request. Managers only."""
    group_id = text(group_id)
    request_id = text(request_id)
    if not group_id or not request_id:
        raise InvalidArgument("groupId and requestId are required.")
    role_id = text(role_id) or DEFAULT_ROLE_ID

    if not caller_is_manager(db, group_id, caller_uid, MEMBERS_MANAGE_PERMISSION):
        raise PermissionDenied()

    group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
    request_ref = group_ref.collection(JOIN_REQUESTS_COLLECTION).document(request_id)

    # Re-checked inside the transaction.
    pending = _require_pending(request_ref.get())
    target_uid = text(pending.get("uid")) or request_id
    snapshot = member_snapshot(db, target_uid) if accept else {}

    def _respond(uow: UnitOfWork) -> None:
        _require_pending(uow.get(request_ref))
        decision = {
            "decidedByUid": caller_uid,
            "decidedAt": firestore.SERVER_TIMESTAMP,
            "updatedAt": firestore.SERVER_TIMESTAMP,
        }
        if not accept:
            uow.set(request_ref, {"status": STATUS_REJECTED, **decision}, merge=True)
            return

        group_snap = uow.get(group_ref)
        if not group_snap.exists:
            raise NotFound("Group not found.")
        group = group_snap.to_dict() or {}

        _join(
            uow,
            group_ref,
            group_ref.collection(MEMBERS_COLLECTION).document(target_uid),
            db.collection(USERS_COLLECTION).document(target_uid),
            target_uid,
            role_id,
            text(group.get("joinCode")).upper(),
            snapshot,
        )
        uow.set(request_ref, {"status": STATUS_ACCEPTED, **decision}, merge=True)

    run_transaction(db, _respond)
    current_app.logger.info(
        f"{caller_uid} {'accepted' if accept else 'rejected'} join request "
        f"{request_id} in {group_id}"
    )
    return {"groupId": group_id, "requestId": request_id, "accept": accept}


def accept_join_request(
    db: Client, caller_uid: str, group_id: Any, requester_uid: Any
) -> dict[str, Any]:
    """Older clients accept requests by requester uid; same as accepting."""
    group_id = text(group_id)
    requester_uid = text(requester_uid)
    if not group_id or not requester_uid:
        raise InvalidArgument("groupId and requesterUid are required.")
    return respond_to_join_request(db, caller_uid, group_id, requester_uid, True)
