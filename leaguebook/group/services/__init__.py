from .lifecycle import (
    allocate_join_code as _allocate_join_code,
    caller_is_manager as _caller_is_manager,
    create_group as _create_group,
    list_groups_for_user as _list_groups_for_user,
    role_allows as _role_allows,
    set_active_group as _set_active_group,
)
from .membership import (
    accept_invite as _accept_invite,
    accept_join_request as _accept_join_request,
    list_join_requests as _list_join_requests,
    request_join_by_code as _request_join_by_code,
    respond_to_join_request as _respond_to_join_request,
)


class GroupService:
    """Service class for group lifecycle and membership workflows."""

    allocate_join_code = staticmethod(_allocate_join_code)
    create_group = staticmethod(_create_group)
    role_allows = staticmethod(_role_allows)
    caller_is_manager = staticmethod(_caller_is_manager)
    set_active_group = staticmethod(_set_active_group)
    list_groups_for_user = staticmethod(_list_groups_for_user)
    accept_invite = staticmethod(_accept_invite)
    request_join_by_code = staticmethod(_request_join_by_code)
    list_join_requests = staticmethod(_list_join_requests)
    respond_to_join_request = staticmethod(_respond_to_join_request)
    accept_join_request = staticmethod(_accept_join_request)
