"""Profile projection and synchronization."""

from .engine import SyncReport, sync_user_profile
from .projector import Projection, project
from .visibility import VisibilityRules, classify

__all__ = [
    "Projection",
    "SyncReport",
    "VisibilityRules",
    "classify",
    "project",
    "sync_user_profile",
]
