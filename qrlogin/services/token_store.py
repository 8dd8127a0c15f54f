# In-memory QR login token store (creation, lookup, per-token atomic
# updates, deletion and purge).

import logging
import secrets
import threading
import time
from typing import Callable

from qrlogin.services.errors import CapacityExceeded, NotFound
from qrlogin.services.state_machine import SessionToken, TokenState

logger = logging.getLogger(__name__)

Transition = Callable[[SessionToken], SessionToken]


def short_id(token_id: str) -> str:
    return token_id[:8]


class TokenStore:
    """
    Owns every QR login token for one application instance.

    Each token has its own lock; transitions on different tokens never wait
    on each other. The registry lock only guards adding and removing keys.
    Reads take no lock: tokens are immutable and replaced as a whole.
    """

    def __init__(
        self,
        ttl_seconds: int,
        max_outstanding: int | None = None,
        token_bytes: int = 24,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_outstanding = max_outstanding
        self.token_bytes = token_bytes
        self._clock = clock

        self._tokens: dict[str, SessionToken] = {}
        # Exchanged tokens removed from the live set, kept to answer replays
        self._tombstones: dict[str, SessionToken] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def now(self) -> float:
        return self._clock()

    @property
    def outstanding(self) -> int:
        return len(self._tokens)

    def _new_id(self) -> str:
        return secrets.token_urlsafe(self.token_bytes)

    def _reclaim_expired(self, now: float) -> int:
        """Purges live tokens past their TTL so they stop counting against capacity."""
        with self._registry_lock:
            stale = [token.id for token in self._tokens.values() if now > token.expires_at]

        reclaimed = sum(1 for token_id in stale if self.purge(token_id))
        if reclaimed:
            logger.info(f"Reclaimed {reclaimed} expired tokens at capacity")
        return reclaimed

    def create(self) -> tuple[str, int]:
        now = self.now()
        if self.max_outstanding is not None and len(self._tokens) >= self.max_outstanding:
            self._reclaim_expired(now)

        with self._registry_lock:
            if self.max_outstanding is not None and len(self._tokens) >= self.max_outstanding:
                logger.warning(f"Token creation rejected: {len(self._tokens)} tokens outstanding")
                raise CapacityExceeded()

            token_id = self._new_id()
            while token_id in self._tokens or token_id in self._tombstones:
                token_id = self._new_id()

            self._locks[token_id] = threading.Lock()
            self._tokens[token_id] = SessionToken(
                id=token_id,
                created_at=now,
                expires_at=now + self.ttl_seconds,
            )

        logger.info(f"Token created: token={short_id(token_id)}, ttl={self.ttl_seconds}s")
        return token_id, self.ttl_seconds

    def get(self, token_id: str) -> SessionToken:
        token = self._tokens.get(token_id) or self._tombstones.get(token_id)
        if token is None:
            raise NotFound()
        return token

    def update(self, token_id: str, transition: Transition) -> SessionToken:
        """
        Applies ``transition`` to the current token under that token's lock
        and stores the result. If the transition raises, nothing changes.
        """
        lock = self._locks.get(token_id)
        if lock is None:
            raise NotFound()

        with lock:
            if token_id in self._tokens:
                target = self._tokens
            elif token_id in self._tombstones:
                target = self._tombstones
            else:
                # Purged while we waited for the lock
                raise NotFound()

            updated = transition(target[token_id])
            target[token_id] = updated
            return updated

    def delete(self, token_id: str) -> None:
        """
        Removes a token from the live set. An Exchanged token leaves a
        tombstone behind until it is purged.
        """
        lock = self._locks.get(token_id)
        if lock is None:
            return

        with lock, self._registry_lock:
            token = self._tokens.get(token_id)
            if token is None:
                return
            if token.state == TokenState.EXCHANGED:
                self._tombstones[token_id] = token
            else:
                self._locks.pop(token_id, None)
            del self._tokens[token_id]

    def purge(self, token_id: str) -> bool:
        lock = self._locks.get(token_id)
        if lock is None:
            return False

        with lock, self._registry_lock:
            removed = self._tokens.pop(token_id, None) or self._tombstones.pop(token_id, None)
            self._locks.pop(token_id, None)
        return removed is not None

    def snapshot(self) -> list[SessionToken]:
        with self._registry_lock:
            return list(self._tokens.values()) + list(self._tombstones.values())
