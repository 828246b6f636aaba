"""Utility functions for the group blueprint."""

import base64
import binascii
import secrets

from firebase_admin import storage
from flask import current_app

from leaguebook.constants import (
    DEFAULT_LOGO_CONTENT_TYPE,
    JOIN_CODE_ALPHABET,
    JOIN_CODE_LENGTH,
    LOGO_MAX_BYTES,
    LOGO_PATH_TEMPLATE,
)
from leaguebook.errors import InvalidArgument
from leaguebook.utils import text


def generate_join_code(length=JOIN_CODE_LENGTH):
    """Return a random join code drawn from the unambiguous alphabet."""
    return "".join(secrets.choice(JOIN_CODE_ALPHABET) for _ in range(length))


def canonical_join_code(raw_code):
    """Join codes are matched case-insensitively, on their uppercase form."""
    return text(raw_code).upper()


def decode_logo(logo_base64):
    """Decode a base64 logo payload (a data URL prefix is allowed).

    Raises:
        InvalidArgument: If the payload is not base64, is empty or is too big.
    """
    payload = text(logo_base64)
    if payload.startswith("data:") and "," in payload:
        payload = payload.split(",", 1)[1]
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidArgument("logoBase64 is not valid base64.") from e
    if not data:
        raise InvalidArgument("Logo is empty.")

    max_bytes = current_app.config.get("LOGO_MAX_BYTES", LOGO_MAX_BYTES)
    if len(data) > max_bytes:
        raise InvalidArgument(f"Logo must be at most {max_bytes} bytes.")
    return data


def upload_logo(group_id, data, content_type=None):
    """Store a group logo and return its public URL."""
    bucket = storage.bucket()
    blob = bucket.blob(LOGO_PATH_TEMPLATE.format(group_id=group_id))
    blob.upload_from_string(data, content_type=content_type or DEFAULT_LOGO_CONTENT_TYPE)
    blob.make_public()
    return blob.public_url
