"""Utility functions for the application."""

from flask import request

from .errors import InvalidArgument


def json_body():
    """Return the request's JSON object, or an empty dict when there is none.

    Raises:
        InvalidArgument: If the body is JSON but not an object.
    """
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidArgument("Request body must be a JSON object.")
    return data


def text(value):
    """Coerce an optional request value to a stripped string."""
    return str(value if value is not None else "").strip()
