# Pure transition logic for QR login tokens. No I/O and no locking:
# every function takes a token and returns a new one.

import enum
from dataclasses import dataclass, replace

from qrlogin.services.errors import AlreadyConsumed, Expired, InvalidState


class TokenState(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    EXCHANGED = "exchanged"
    EXPIRED = "expired"


@dataclass(frozen=True)
class SessionToken:
    id: str
    created_at: float
    expires_at: float
    state: TokenState = TokenState.PENDING
    bound_user: str | None = None
    consumed: bool = False
    confirmed_at: float | None = None
    terminal_at: float | None = None


def is_past_expiry(token: SessionToken, now: float) -> bool:
    return now > token.expires_at


def is_authorized(token: SessionToken) -> bool:
    return token.state in (TokenState.CONFIRMED, TokenState.EXCHANGED)


def is_terminal(token: SessionToken) -> bool:
    return token.state in (TokenState.EXCHANGED, TokenState.EXPIRED)


def confirm(token: SessionToken, user: str, now: float) -> SessionToken:
    """
    Binds the token to the confirming user.
    Only a Pending token inside its TTL can be confirmed.
    """
    if is_past_expiry(token, now):
        raise Expired()
    if token.state != TokenState.PENDING:
        raise InvalidState(f"Token cannot be confirmed from state {token.state.value}")

    return replace(token, state=TokenState.CONFIRMED, bound_user=user, confirmed_at=now)


def exchange(token: SessionToken, now: float) -> tuple[SessionToken, str]:
    """
    Consumes a Confirmed token and hands back the bound user exactly once.
    """
    if is_past_expiry(token, now):
        raise Expired()
    if token.state == TokenState.EXCHANGED or token.consumed:
        raise AlreadyConsumed()
    if token.state != TokenState.CONFIRMED:
        raise InvalidState(f"Token cannot be exchanged from state {token.state.value}")

    exchanged = replace(token, state=TokenState.EXCHANGED, consumed=True, terminal_at=now)
    return exchanged, token.bound_user


def expire(token: SessionToken, now: float) -> SessionToken:
    # Exchanged and Expired are terminal: nothing to do
    if is_terminal(token):
        return token

    return replace(token, state=TokenState.EXPIRED, bound_user=None, terminal_at=now)
