"""Authentication helpers and FastAPI security dependency.

Admin sessions use two signed JWTs carried in http-only cookies:

- `access-token`: short lived, proves identity for the current window;
- `refresh-token`: longer lived, only used to mint new access tokens.

`get_current_principal` gates the admin routes. A valid access token is
accepted as is. Otherwise a valid refresh token mints a fresh access
token, which is set on the response, and the request proceeds. The refresh
token itself is never rotated. With neither token valid the request is
rejected with 401 before the route runs.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from fastapi import Cookie, Depends, Request, Response
from sqlmodel import Session

from .config import Settings
from .database import get_session
from .errors import Unauthorized
from .services import AuthService

ACCESS_COOKIE = "access-token"
REFRESH_COOKIE = "refresh-token"
ACCESS = "access"
REFRESH = "refresh"

logger = logging.getLogger("app.auth")


@dataclass
class Principal:
    id: int
    username: str


def get_settings(request: Request) -> Settings:
    """Return the settings the running application was built with."""
    return request.app.state.settings


def _ttl(settings: Settings, token_type: str) -> int:
    if token_type == ACCESS:
        return settings.ACCESS_TOKEN_TTL_SECONDS
    return settings.REFRESH_TOKEN_TTL_SECONDS


def create_token(user_id: int, token_type: str, settings: Settings, ttl_seconds: Optional[int] = None) -> str:
    """Sign a token of `token_type` for `user_id`.

    `ttl_seconds` defaults to the configured lifetime for the type.
    """
    secret = settings.require_jwt_secret()
    ttl = _ttl(settings, token_type) if ttl_seconds is None else ttl_seconds
    expire = datetime.now(timezone.utc) + timedelta(seconds=ttl)
    payload = {"user_id": user_id, "type": token_type, "exp": int(expire.timestamp())}
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str, token_type: str, settings: Settings) -> int:
    """Verify a token and return the user id it was issued for.

    Raises `Unauthorized` if the token is expired, malformed, signed with
    another key or of the wrong type.
    """
    secret = settings.require_jwt_secret()
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise Unauthorized(f"{token_type} token expired")
    except jwt.InvalidTokenError:
        raise Unauthorized(f"invalid {token_type} token")
    user_id = payload.get("user_id")
    if payload.get("type") != token_type or not isinstance(user_id, int):
        raise Unauthorized(f"invalid {token_type} token payload")
    return user_id


def set_token_cookie(response: Response, token_type: str, token: str, settings: Settings) -> None:
    """Attach `token` as an http-only cookie expiring with the token."""
    ttl = _ttl(settings, token_type)
    response.set_cookie(
        ACCESS_COOKIE if token_type == ACCESS else REFRESH_COOKIE,
        token,
        max_age=ttl,
        expires=ttl,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )


def clear_token_cookies(response: Response, settings: Settings) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, httponly=True, secure=settings.COOKIE_SECURE, samesite="lax")


def issue_tokens(response: Response, user_id: int, settings: Settings) -> Tuple[str, str]:
    """Mint an access/refresh pair and set both cookies."""
    access = create_token(user_id, ACCESS, settings)
    refresh = create_token(user_id, REFRESH, settings)
    set_token_cookie(response, ACCESS, access, settings)
    set_token_cookie(response, REFRESH, refresh, settings)
    return access, refresh


def refresh_access_token(refresh_token: Optional[str], settings: Settings) -> Tuple[int, str]:
    """Verify a refresh token and mint a new access token from it.

    Returns `(user_id, access_token)`; raises `Unauthorized` when the
    refresh token is missing or does not verify.
    """
    settings.require_jwt_secret()
    if not refresh_token:
        raise Unauthorized("No refresh token provided")
    user_id = decode_token(refresh_token, REFRESH, settings)
    return user_id, create_token(user_id, ACCESS, settings)


def resolve_user_id(access_token: Optional[str], refresh_token: Optional[str],
                    settings: Settings) -> Tuple[int, Optional[str]]:
    """Work out who is calling from the two cookies.

    Returns the user id and, when the access token had to be re-minted
    from the refresh token, the new access token (otherwise `None`).
    """
    settings.require_jwt_secret()
    if not access_token and not refresh_token:
        raise Unauthorized("No token provided")
    if access_token:
        try:
            return decode_token(access_token, ACCESS, settings), None
        except Unauthorized as e:
            logger.debug("access token rejected: %s", e.message)
    user_id, new_access = refresh_access_token(refresh_token, settings)
    return user_id, new_access


def load_principal(db: Session, user_id: int) -> Principal:
    """Return the principal for `user_id`, or raise `Unauthorized` if the user is gone."""
    user = AuthService(db).get_user(user_id)
    if not user:
        raise Unauthorized("user not found")
    return Principal(id=user.id, username=user.username)


def get_current_principal(
    response: Response,
    access_token: Optional[str] = Cookie(default=None, alias=ACCESS_COOKIE),
    refresh_token: Optional[str] = Cookie(default=None, alias=REFRESH_COOKIE),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_session),
) -> Principal:
    """FastAPI dependency that returns the authenticated admin.

    Sets a new `access-token` cookie on the response when the request was
    let through on the strength of the refresh token alone.
    """
    user_id, new_access = resolve_user_id(access_token, refresh_token, settings)
    principal = load_principal(db, user_id)
    if new_access:
        set_token_cookie(response, ACCESS, new_access, settings)
        logger.info("access token refreshed user_id=%s", user_id)
    return principal
