from .core import (
    ensure_user_doc as _ensure_user_doc,
    get_user_by_id as _get_user_by_id,
    update_profile_field as _update_profile_field,
    update_profile_fields as _update_profile_fields,
)
from .handles import (
    normalize_handle as _normalize_handle,
    reserve_handle as _reserve_handle,
)


class UserService:
    """Service class for user profile operations and Firestore interaction."""

    get_user_by_id = staticmethod(_get_user_by_id)
    ensure_user_doc = staticmethod(_ensure_user_doc)
    update_profile_fields = staticmethod(_update_profile_fields)
    update_profile_field = staticmethod(_update_profile_field)
    normalize_handle = staticmethod(_normalize_handle)
    reserve_handle = staticmethod(_reserve_handle)
