import logging

from qrlogin.db import InMemoryDB, User
from qrlogin.services import state_machine
from qrlogin.services.audit import QR_LOGIN_SIGN_IN, AuditLog
from qrlogin.services.errors import QRLoginError, Unauthorized
from qrlogin.services.token_store import TokenStore, short_id

logger = logging.getLogger(__name__)


class ConfirmationAuthority:
    """Confirm and exchange operations on QR login tokens."""

    def __init__(self, store: TokenStore, db: InMemoryDB, audit: AuditLog | None = None):
        self.store = store
        self.db = db
        self.audit = audit or AuditLog()

    def confirm(self, token_id: str, user: User | None, client_ip: str | None = None, user_agent: str | None = None) -> None:
        """
        Called from the scanning device, which must already hold a session.
        Binds the token to that device's user.
        """
        if user is None or self.db.get_user(user.id) is None:
            logger.warning(f"Confirm rejected: token={short_id(token_id)} without a valid user")
            raise Unauthorized()

        now = self.store.now()
        try:
            self.store.update(token_id, lambda t: state_machine.confirm(t, user.id, now))
        except QRLoginError as e:
            logger.warning(f"Confirm failed: token={short_id(token_id)}, user={user.id}, reason={e.code}")
            raise

        logger.info(f"Token confirmed: token={short_id(token_id)}, user={user.id}")
        self.audit.record(QR_LOGIN_SIGN_IN, user.id, client_ip, user_agent)

    def exchange(self, token_id: str) -> User:
        """
        Called from the polling device once status reports authorized.
        The token is single-use: it leaves the store on success.
        """
        now = self.store.now()
        resolved = {}

        def transition(t):
            exchanged, user_id = state_machine.exchange(t, now)
            # Resolved before the swap so a missing user leaves the token Confirmed
            user = self.db.get_user(user_id)
            if user is None:
                raise Unauthorized("Unknown user")
            resolved["user"] = user
            return exchanged

        try:
            self.store.update(token_id, transition)
        except QRLoginError as e:
            logger.warning(f"Exchange failed: token={short_id(token_id)}, reason={e.code}")
            raise

        self.store.delete(token_id)

        user = resolved["user"]
        logger.info(f"Token exchanged: token={short_id(token_id)}, user={user.id}")
        return user
