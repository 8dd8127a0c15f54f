# Security-related helpers: JWT access token creation and validation,
# and the session service that resolves a bearer credential to a user.
import logging
import time

import jwt

from qrlogin.core.config import Settings
from qrlogin.db import InMemoryDB, User
from qrlogin.services.errors import Unauthorized

logger = logging.getLogger(__name__)


def create_access_token(settings: Settings, sub: str, extra: dict | None = None, exp_seconds: int | None = None) -> str:
    now = int(time.time())
    if exp_seconds is None:
        exp_seconds = settings.session_duration_seconds
    payload = {
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "nbf": now,
        "exp": now + exp_seconds,
        "sub": sub,
    }

    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_access_token(settings: Settings, token: str) -> dict:
    return jwt.decode(
        token,
        settings.JWT_SECRET,
        algorithms=["HS256"],
        audience=settings.JWT_AUDIENCE,
        issuer=settings.JWT_ISSUER,
    )


class SessionService:
    """Issues sessions for users and resolves existing ones."""

    def __init__(self, settings: Settings, db: InMemoryDB):
        self.settings = settings
        self.db = db

    def issue(self, user: User) -> str:
        return create_access_token(self.settings, user.id, extra={"username": user.username})

    def authenticate(self, token: str | None) -> User:
        if not token:
            raise Unauthorized()

        try:
            claims = decode_access_token(self.settings, token)
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected access token: {type(e).__name__}")
            raise Unauthorized("Invalid or expired session") from e

        user = self.db.get_user(claims.get("sub", ""))
        if user is None:
            logger.warning(f"Access token for unknown user: sub={claims.get('sub')}")
            raise Unauthorized("Unknown user")
        return user
