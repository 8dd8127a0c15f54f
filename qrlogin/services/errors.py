# Error taxonomy for the QR login handshake. Services raise these;
# the HTTP layer maps them to status codes in one place.


class QRLoginError(Exception):
    code = "qr_login_error"
    status_code = 400
    default_detail = "QR login request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail}


class NotFound(QRLoginError):
    # Unknown and expired tokens share this message so polling cannot tell them apart
    code = "not_found"
    status_code = 404
    default_detail = "Token is invalid or expired"


class Expired(QRLoginError):
    code = "expired"
    status_code = 410
    default_detail = "Token has expired"


class InvalidState(QRLoginError):
    code = "invalid_state"
    status_code = 409
    default_detail = "Token is not in a state that allows this operation"


class AlreadyConsumed(InvalidState):
    code = "already_consumed"
    default_detail = "Token has already been used"


class Unauthorized(QRLoginError):
    code = "unauthorized"
    status_code = 401
    default_detail = "A valid session is required"


class CapacityExceeded(QRLoginError):
    code = "capacity_exceeded"
    status_code = 429
    default_detail = "Too many outstanding login requests"


class RateLimited(QRLoginError):
    code = "rate_limited"
    status_code = 429
    default_detail = "Too many login attempts. Please wait."


_BY_CODE = {
    cls.code: cls
    for cls in (NotFound, Expired, InvalidState, AlreadyConsumed, Unauthorized, CapacityExceeded, RateLimited)
}

_BY_STATUS = {
    404: NotFound,
    410: Expired,
    409: InvalidState,
    401: Unauthorized,
    429: CapacityExceeded,
}


def error_for_status(status_code: int, body: dict | None = None) -> QRLoginError:
    """
    Rebuilds the matching exception from an HTTP error response.
    The error code in the body wins over the status code when both are present.
    """
    body = body or {}
    cls = _BY_CODE.get(body.get("error")) or _BY_STATUS.get(status_code, QRLoginError)
    err = cls(body.get("detail"))
    if cls is QRLoginError:
        err.status_code = status_code
    return err
