"""API routes"""

from jiramirror.api import accounts, auth, dashboard, data, sync

__all__ = ["auth", "accounts", "sync", "data", "dashboard"]
