"""Security-related helpers (OAuth state).

Every authorization attempt gets its own single-use ``state`` token, bound to
the account details the user typed before being sent to Atlassian.
"""

from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass(frozen=True)
class PendingAuthorization:
    state: str
    account_info: dict[str, Any] = field(default_factory=dict)
    created_at: float = 0.0


class AuthStateRegistry:
    """In-memory registry of outstanding OAuth ``state`` values.

    ``consume()`` hands the bound account info back exactly once; unknown,
    reused or expired states return None.
    """

    def __init__(self, ttl_seconds: int = 600, *, clock: Callable[[], float] | None = None):
        self._ttl = ttl_seconds
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._pending: dict[str, PendingAuthorization] = {}

    def issue(self, account_info: dict[str, Any] | None = None) -> str:
        state = secrets.token_urlsafe(32)
        info = {k: v for k, v in (account_info or {}).items() if v}
        with self._lock:
            self._prune()
            self._pending[state] = PendingAuthorization(state, info, self._clock())
        return state

    def consume(self, state: str | None) -> dict[str, Any] | None:
        if not state:
            return None
        with self._lock:
            self._prune()
            match = None
            for candidate in self._pending:
                if secrets.compare_digest(candidate.encode("utf-8"), state.encode("utf-8")):
                    match = candidate
                    break
            if match is None:
                return None
            pending = self._pending.pop(match)
        return dict(pending.account_info)

    def __len__(self) -> int:
        with self._lock:
            self._prune()
            return len(self._pending)

    def _prune(self) -> None:
        cutoff = self._clock() - self._ttl
        for state in [s for s, p in self._pending.items() if p.created_at <= cutoff]:
            del self._pending[state]
