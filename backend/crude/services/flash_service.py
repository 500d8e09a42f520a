"""
Crude — Flash Message Store
=============================

What:  One-shot success/error messages that survive exactly one redirect.
Why:   After a POST (create, update) the pipeline redirects; the outcome has
       to be shown on the page the browser lands on next.
How:   Messages are queued in memory under the client's flash key (a cookie
       assigned by FlashMiddleware) and removed by the first request that
       consumes them.
Who:   CrudController (add on redirect, consume before rendering).

Lifecycle:
    request N:    add(request, "error", "...")  → 303 redirect
    request N+1:  consume(request, "error")     → "..." (and it's gone)
    request N+2:  consume(request, "error")     → None

Memory:
    Messages a client never comes back for are pruned once older than
    settings.flash_ttl_seconds. Pruning runs on every add (amortized cost is
    tiny: the store only holds messages between a redirect and the next page).

Without FlashMiddleware there is no flash key; add() and consume() log at
DEBUG and do nothing.
"""

import logging
import time
from typing import Dict, List, Optional, Tuple

from starlette.requests import Request

from crude.config import settings

logger = logging.getLogger(__name__)

FLASH_ERROR = "error"
FLASH_SUCCESS = "success"


class FlashStore:
    """In-memory flash queue keyed by client flash key and message kind."""

    def __init__(self, ttl_seconds: Optional[int] = None):
        self.ttl_seconds = ttl_seconds or settings.flash_ttl_seconds
        # key → kind → [(queued_at, message), ...]
        self._messages: Dict[str, Dict[str, List[Tuple[float, str]]]] = {}

    def push(self, key: str, kind: str, message: str) -> None:
        now = time.time()
        self._prune(now)
        self._messages.setdefault(key, {}).setdefault(kind, []).append((now, message))

    def pop(self, key: str, kind: str) -> List[str]:
        """Remove and return every queued message of `kind` for `key`."""
        kinds = self._messages.get(key)
        if not kinds:
            return []
        entries = kinds.pop(kind, [])
        if not kinds:
            del self._messages[key]
        return [message for _, message in entries]

    def pending(self, key: str) -> int:
        """Number of queued messages for `key` (all kinds)."""
        return sum(len(entries) for entries in self._messages.get(key, {}).values())

    def _prune(self, now: float) -> None:
        cutoff = now - self.ttl_seconds
        stale = []
        for key, kinds in self._messages.items():
            for kind in list(kinds):
                kinds[kind] = [entry for entry in kinds[kind] if entry[0] > cutoff]
                if not kinds[kind]:
                    del kinds[kind]
            if not kinds:
                stale.append(key)
        for key in stale:
            del self._messages[key]
        if stale:
            logger.debug("Pruned flash messages for %d clients", len(stale))

    # ── Request-level helpers ─────────────────────────────────────────────

    def add(self, request: Request, kind: str, message: str) -> None:
        key = getattr(request.state, "flash_key", None)
        if key is None:
            logger.debug("No flash key on request; dropping %s message", kind)
            return
        self.push(key, kind, message)

    def consume(self, request: Request, kind: str) -> Optional[str]:
        """Pop pending messages of `kind` for this client, joined; None if none."""
        key = getattr(request.state, "flash_key", None)
        if key is None:
            return None
        messages = self.pop(key, kind)
        return " ".join(messages) if messages else None


# Singleton: shared by every controller in the process
flash_store = FlashStore()
