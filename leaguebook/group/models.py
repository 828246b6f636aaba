"""Data models for the group blueprint."""

from __future__ import annotations

from typing import TypedDict


class JoinedGroup(TypedDict):
    """A group the caller belongs to, as returned by the group listing."""

    groupId: str
    name: str
    joinCode: str
    logoUrl: str
    active: bool


class InvitedGroup(TypedDict):
    """A pending invite addressed to the caller's e-mail."""

    groupId: str
    inviteId: str
    roleId: str
    name: str
    logoUrl: str
