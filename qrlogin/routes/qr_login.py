# QR login routes: token creation, status polling, confirmation from
# the scanning device and the single-use exchange.

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from qrlogin.db import User

router = APIRouter(prefix="/qr-login", tags=["qr-login"])
bearer = HTTPBearer(auto_error=False)


class InitResp(BaseModel):
    token: str
    expiresIn: int


class StatusResp(BaseModel):
    authorized: bool


class UserResp(BaseModel):
    id: str
    username: str
    email: str
    first_name: str
    last_name: str
    is_admin: bool


def init_rate_limit(request: Request):
    request.app.state.init_limiter.check(request)


def exchange_rate_limit(request: Request):
    request.app.state.exchange_limiter.check(request)


def current_user(request: Request, credentials: HTTPAuthorizationCredentials | None = Depends(bearer)) -> User:
    # Bearer header first, then the cookie set by a previous exchange
    token = credentials.credentials if credentials else request.cookies.get(request.app.state.settings.ACCESS_TOKEN_COOKIE)
    return request.app.state.sessions.authenticate(token)


@router.post("/init", response_model=InitResp, dependencies=[Depends(init_rate_limit)])
def init_session(request: Request):
    # Polling device asks for a fresh token to render as a QR code
    token, expires_in = request.app.state.store.create()
    return InitResp(token=token, expiresIn=expires_in)


@router.get("/status/{token}", response_model=StatusResp)
def get_status(token: str, request: Request):
    authorized = request.app.state.polling.status(token)
    return StatusResp(authorized=authorized)


@router.post("/confirm/{token}", status_code=204)
def confirm_session(token: str, request: Request, user: User = Depends(current_user)):
    # Scanning device authorizes the token with its own session
    request.app.state.authority.confirm(
        token,
        user,
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return Response(status_code=204)


@router.post("/exchange/{token}", response_model=UserResp, dependencies=[Depends(exchange_rate_limit)])
def exchange_session(token: str, request: Request, response: Response):
    # Polling device trades the confirmed token for its own session
    state = request.app.state
    user = state.authority.exchange(token)
    access_token = state.sessions.issue(user)

    response.set_cookie(
        key=state.settings.ACCESS_TOKEN_COOKIE,
        value=access_token,
        max_age=state.settings.session_duration_seconds,
        httponly=True,
        secure=True,
        samesite="lax",
    )
    return UserResp(**user.to_dict())
