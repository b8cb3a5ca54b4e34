"""In-process registry of pending OAuth authorizations.

Each login redirect registers a random state token together with the
provider's verifier material. The callback consumes the entry exactly once.
Entries expire after a fixed TTL whether or not they were used.

Storage is a ``cachetools.TTLCache``: expired entries are invisible to lookups
immediately and are physically dropped on the next write or by the periodic
sweeper started from the app lifespan.
"""

import asyncio
import logging
import secrets
import time
from collections.abc import Callable

from cachetools import TTLCache  # type: ignore[import-untyped]

from unrustle.core.exceptions import StateNotFoundError, StateRegistryFullError
from unrustle.models import PendingAuthorization

logger = logging.getLogger(__name__)

DEFAULT_STATE_TTL = 300.0


class StateRegistry:
    """Single-use OAuth state tokens with TTL expiry.

    All mutations go through one ``asyncio.Lock``. ``contains`` is a plain
    read and does not wait on the lock. Removal by expiry and removal by
    ``consume`` are both no-ops when the entry is already gone.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_STATE_TTL,
        maxsize: int = 10_000,
        timer: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl
        self._entries: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def new_state() -> str:
        """Generate a fresh URL-safe state token"""
        return secrets.token_urlsafe(32)

    async def register(
        self, service: str, verifier: str | None = None, state: str | None = None
    ) -> str:
        """Store a pending authorization and return its state token.

        Raises StateRegistryFullError when *maxsize* unexpired logins are pending.
        """
        state = state or self.new_state()
        entry = PendingAuthorization(state=state, service=service, verifier=verifier)

        async with self._lock:
            # Only expired entries make room, live ones are never evicted
            self._entries.expire()
            if len(self._entries) >= self._entries.maxsize:
                logger.warning(
                    f"State registry full ({self._entries.maxsize}), rejecting {service} login"
                )
                raise StateRegistryFullError(f"{self._entries.maxsize} logins pending")
            self._entries[state] = entry

        logger.debug(f"Registered {service} state (pending={len(self._entries)})")
        return state

    async def consume(self, state: str | None, service: str) -> str | None:
        """Remove a pending authorization and return its verifier.

        Raises StateNotFoundError when the state is unknown, already consumed,
        expired, or was registered for another service.
        """
        if not state:
            raise StateNotFoundError("missing state")

        async with self._lock:
            entry: PendingAuthorization | None = self._entries.get(state)
            if entry is None or entry.service != service:
                raise StateNotFoundError(f"unknown {service} state")
            self._entries.pop(state, None)

        logger.debug(f"Consumed {service} state")
        return entry.verifier

    def contains(self, state: str) -> bool:
        """Check whether a state is pending, without consuming it"""
        return state in self._entries

    async def sweep(self) -> int:
        """Drop expired entries. Returns the number removed."""
        async with self._lock:
            expired = self._entries.expire()
        if expired:
            logger.debug(f"Swept {len(expired)} expired OAuth states")
        return len(expired)

    async def run_sweeper(self, interval: float = 60.0) -> None:
        """Sweep expired entries every *interval* seconds until cancelled"""
        while True:
            await asyncio.sleep(interval)
            await self.sweep()
