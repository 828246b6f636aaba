"""Decorators for authenticated API routes."""

from functools import wraps

from firebase_admin import auth
from flask import current_app, g, request

from leaguebook.errors import Unauthenticated


def _bearer_token():
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def auth_required(f):
    """Verify the caller's Firebase ID token before running the view.

    The verified uid and e-mail are stored on ``g.uid`` and ``g.email``.

    Usage:
    @bp.route("/thing", methods=["POST"])
    @auth_required
    def thing():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            raise Unauthenticated()
        try:
            decoded_token = auth.verify_id_token(token)
        except (ValueError, auth.InvalidIdTokenError, auth.CertificateFetchError) as e:
            current_app.logger.warning(f"Rejected ID token: {e}")
            raise Unauthenticated("Invalid or expired credentials.") from e

        uid = decoded_token.get("uid")
        if not uid:
            raise Unauthenticated()
        g.uid = uid
        g.email = decoded_token.get("email") or ""
        return f(*args, **kwargs)

    return decorated_function
