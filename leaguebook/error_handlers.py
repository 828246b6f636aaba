from flask import Blueprint, current_app, jsonify

from .errors import AppError

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(code, message, status_code):
    return jsonify({"ok": False, "error": {"code": code, "message": message}}), (
        status_code
    )


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Render any application error with its stable code."""
    if error.status_code >= 500:
        current_app.logger.error(f"Application Error: {error.message}")
    else:
        current_app.logger.warning(f"{error.code}: {error.message}")
    return _error_response(error.code, error.message, error.status_code)


@error_handlers_bp.app_errorhandler(404)
def handle_404(e):
    """Handles generic 404 errors for routes that don't exist."""
    return _error_response("not-found", "No such endpoint.", 404)


@error_handlers_bp.app_errorhandler(405)
def handle_405(e):
    """Handles requests made with the wrong HTTP method."""
    return _error_response("invalid-argument", "Method not allowed.", 405)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    # Avoid exposing raw error details to the caller
    return _error_response("internal", "An unexpected error occurred.", 500)
