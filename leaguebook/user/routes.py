"""Routes for the user blueprint."""

from firebase_admin import firestore
from flask import g, jsonify

from leaguebook.auth.decorators import auth_required
from leaguebook.utils import json_body

from . import bp
from .services import UserService


@bp.route("/handle", methods=["POST"])
@auth_required
def set_handle():
    """Claim a unique handle for the caller."""
    db = firestore.client()
    result = UserService.reserve_handle(db, g.uid, json_body().get("handle"))
    return jsonify({"ok": True, **result})


@bp.route("/profile", methods=["POST"])
@auth_required
def update_profile():
    """Merge custom fields and privacy entries into the caller's profile."""
    data = json_body()
    db = firestore.client()
    UserService.update_profile_fields(
        db, g.uid, data.get("fields") or {}, data.get("privacy") or {}
    )
    return jsonify({"ok": True})


@bp.route("/profile/field", methods=["POST"])
@auth_required
def update_profile_field():
    """Set a single custom profile field."""
    data = json_body()
    db = firestore.client()
    key = UserService.update_profile_field(
        db, g.uid, data.get("fieldKey"), data.get("value")
    )
    return jsonify({"ok": True, "fieldKey": key})
