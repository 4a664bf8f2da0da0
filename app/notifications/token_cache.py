"""
In-process cache of the most recently registered push token per user.

Used for low-latency lookups by ad-hoc test sends. It is an optimization
only: the device_tokens table stays the source of truth, and a miss always
falls back to the store.
"""

import threading
from typing import Dict, Optional


class TokenCache:
    """Thread-safe user_id -> last registered token map."""

    def __init__(self):
        self._tokens: Dict[str, str] = {}
        self._lock = threading.Lock()

    def set(self, user_id: str, token: str) -> None:
        with self._lock:
            self._tokens[user_id] = token

    def get(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._tokens.get(user_id)

    def discard(self, user_id: str, token: Optional[str] = None) -> None:
        """Forget the cached token, only if it still matches `token` when given."""
        with self._lock:
            if token is None or self._tokens.get(user_id) == token:
                self._tokens.pop(user_id, None)

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
