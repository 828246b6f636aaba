"""Routes for the group blueprint."""

from firebase_admin import firestore
from flask import g, jsonify

from leaguebook.auth.decorators import auth_required
from leaguebook.utils import json_body

from . import bp
from .services import GroupService


@bp.route("/create", methods=["POST"])
@auth_required
def create_group():
    """Create a group with the caller as founder."""
    data = json_body()
    db = firestore.client()
    result = GroupService.create_group(
        db,
        g.uid,
        g.email,
        data.get("name"),
        data.get("founderName"),
        data.get("founderSurname"),
        logo_base64=data.get("logoBase64"),
        logo_content_type=data.get("logoContentType"),
    )
    return jsonify({"ok": True, **result})


@bp.route("/list", methods=["POST"])
@auth_required
def list_groups():
    """List the caller's groups and pending invites."""
    db = firestore.client()
    result = GroupService.list_groups_for_user(db, g.uid, g.email)
    return jsonify({"ok": True, **result})


@bp.route("/active", methods=["POST"])
@auth_required
def set_active_group():
    db = firestore.client()
    result = GroupService.set_active_group(db, g.uid, json_body().get("groupId"))
    return jsonify({"ok": True, **result})


@bp.route("/invites/accept", methods=["POST"])
@auth_required
def accept_invite():
    data = json_body()
    db = firestore.client()
    result = GroupService.accept_invite(
        db, g.uid, g.email, data.get("groupId"), data.get("inviteId")
    )
    return jsonify({"ok": True, **result})


@bp.route("/join", methods=["POST"])
@auth_required
def request_join():
    """Request to join a group by its join code."""
    db = firestore.client()
    result = GroupService.request_join_by_code(
        db, g.uid, g.email, json_body().get("joinCode")
    )
    return jsonify({"ok": True, **result})


@bp.route("/join-requests/list", methods=["POST"])
@auth_required
def list_join_requests():
    db = firestore.client()
    requests = GroupService.list_join_requests(db, g.uid, json_body().get("groupId"))
    return jsonify({"ok": True, "requests": requests})


@bp.route("/join-requests/respond", methods=["POST"])
@auth_required
def respond_to_join_request():
    """Accept or reject a pending join request."""
    data = json_body()
    db = firestore.client()
    result = GroupService.respond_to_join_request(
        db,
        g.uid,
        data.get("groupId"),
        data.get("requestId"),
        data.get("accept") is True,
        role_id=data.get("roleId"),
    )
    return jsonify({"ok": True, **result})


@bp.route("/join-requests/accept", methods=["POST"])
@auth_required
def accept_join_request():
    """Accept a join request by requester uid (older clients)."""
    data = json_body()
    db = firestore.client()
    result = GroupService.accept_join_request(
        db,
        g.uid,
        data.get("groupId"),
        data.get("requesterUid") or data.get("requestId"),
    )
    return jsonify({"ok": True, **result})
