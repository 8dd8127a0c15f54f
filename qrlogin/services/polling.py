import logging

from qrlogin.services import state_machine
from qrlogin.services.errors import NotFound
from qrlogin.services.state_machine import TokenState
from qrlogin.services.token_store import TokenStore

logger = logging.getLogger(__name__)


class PollingGateway:
    """
    Read-only status view for the device showing the QR code.

    Unknown, purged and expired tokens all raise the same NotFound, so a
    poller learns nothing beyond "authorized" or "start over".
    """

    def __init__(self, store: TokenStore):
        self.store = store

    def status(self, token_id: str) -> bool:
        token = self.store.get(token_id)

        if token.state == TokenState.EXPIRED or state_machine.is_past_expiry(token, self.store.now()):
            raise NotFound()

        return state_machine.is_authorized(token)
