"""HTTP client for the QR login endpoints.

Used on both sides of the handshake: the polling device calls
``init_session``, ``get_status`` and ``exchange_session``; the scanning
device calls ``confirm_session`` with its own access token.
"""

import logging
import time

import requests

from qrlogin.services.errors import NotFound, QRLoginError, error_for_status

logger = logging.getLogger(__name__)


class QRLoginClient:
    def __init__(self, base_url: str = "", access_token: str | None = None, session=None, timeout: float = 10.0):
        # ``session`` may be any object with requests' get/post surface
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout

    def _headers(self) -> dict:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}

    def _request(self, method: str, path: str):
        resp = getattr(self.session, method)(f"{self.base_url}{path}", headers=self._headers(), timeout=self.timeout)
        if resp.status_code >= 400:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            raise error_for_status(resp.status_code, body if isinstance(body, dict) else {})
        return resp

    def init_session(self) -> dict:
        data = self._request("post", "/qr-login/init").json()
        return {"token": data["token"], "expiresIn": data["expiresIn"]}

    def get_status(self, token: str) -> dict:
        data = self._request("get", f"/qr-login/status/{token}").json()
        return {"authorized": bool(data["authorized"])}

    def confirm_session(self, token: str) -> None:
        self._request("post", f"/qr-login/confirm/{token}")

    def exchange_session(self, token: str) -> dict:
        return self._request("post", f"/qr-login/exchange/{token}").json()

    def wait_for_authorization(self, token: str, interval: float = 0.8, timeout: float | None = None) -> bool:
        """
        Polls until the token is authorized. Returns False when the token
        expires (the caller should start over with a new one) or the
        timeout runs out.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            try:
                if self.get_status(token)["authorized"]:
                    return True
            except NotFound:
                logger.info("QR login token expired while waiting for authorization")
                return False

            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(interval)


__all__ = ["QRLoginClient", "QRLoginError"]
