import asyncio
import logging
from dataclasses import dataclass

from qrlogin.services import state_machine
from qrlogin.services.errors import NotFound
from qrlogin.services.token_store import TokenStore

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    expired: int = 0
    purged: int = 0


class ExpirySweeper:
    """
    Expires tokens past their TTL and purges terminal tokens once they have
    been terminal for longer than the grace period.
    """

    def __init__(self, store: TokenStore, grace_seconds: float):
        self.store = store
        self.grace_seconds = grace_seconds

    def sweep(self, now: float | None = None) -> SweepResult:
        if now is None:
            now = self.store.now()
        result = SweepResult()

        for token in self.store.snapshot():
            if not state_machine.is_terminal(token) and state_machine.is_past_expiry(token, now):
                try:
                    token = self.store.update(token.id, lambda t: state_machine.expire(t, now))
                except NotFound:
                    continue
                if token.state == state_machine.TokenState.EXPIRED:
                    result.expired += 1

            if state_machine.is_terminal(token):
                terminal_at = token.terminal_at if token.terminal_at is not None else token.expires_at
                if now - terminal_at > self.grace_seconds and self.store.purge(token.id):
                    result.purged += 1

        if result.expired or result.purged:
            logger.info(f"Sweep finished: expired={result.expired}, purged={result.purged}, outstanding={self.store.outstanding}")
        return result

    async def run(self, interval: float) -> None:
        # Sweeps run in a worker thread so the event loop keeps serving polls
        logger.info(f"Expiry sweeper started: interval={interval}s, grace={self.grace_seconds}s")
        try:
            while True:
                await asyncio.sleep(interval)
                await asyncio.to_thread(self.sweep)
        except asyncio.CancelledError:
            logger.info("Expiry sweeper stopped")
            raise
