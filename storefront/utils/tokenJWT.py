# storefront/utils/tokenJWT.py
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Cookie, Depends, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from storefront.config import Settings, get_app_settings
from storefront.exceptions import Forbidden, Unauthenticated

logger = logging.getLogger(__name__)

AUTH_TOKEN_COOKIE_NAME = "authToken"

# Token may come from the Authorization header or from the auth cookie
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, as bound into the access token."""

    user_id: int
    name: str
    email: str
    is_admin: bool = False


# Generate a new JWT access token for the given principal
def create_access_token(principal: Principal, settings: Settings, expires_delta: timedelta = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "userId": principal.user_id,
        "name": principal.name,
        "email": principal.email,
        "isAdmin": principal.is_admin,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


# Verify signature and expiry, then map claims onto a Principal
def decode_access_token(token: str, settings: Settings) -> Principal:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.info("Token verification error: %s", e)
        raise Unauthenticated("Invalid authentication token")

    user_id = payload.get("userId")
    email = payload.get("email")
    if not isinstance(user_id, int) or isinstance(user_id, bool) or not email:
        logger.info("Token verification error: missing or malformed claims")
        raise Unauthenticated("Invalid authentication token")

    return Principal(
        user_id=user_id,
        name=payload.get("name") or "",
        email=email,
        is_admin=bool(payload.get("isAdmin", False)),
    )


def set_auth_cookie(response: Response, token: str, settings: Settings):
    response.set_cookie(
        key=AUTH_TOKEN_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
        domain=settings.COOKIE_DOMAIN,
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )


def clear_auth_cookie(response: Response, settings: Settings):
    response.delete_cookie(
        key=AUTH_TOKEN_COOKIE_NAME,
        path="/",
        domain=settings.COOKIE_DOMAIN,
        secure=settings.cookie_secure,
        httponly=True,
        samesite="lax",
    )


# Retrieve the currently authenticated principal from the bearer header or cookie
def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_token: Optional[str] = Cookie(None, alias=AUTH_TOKEN_COOKIE_NAME),
    settings: Settings = Depends(get_app_settings),
) -> Principal:
    token = credentials.credentials if credentials else auth_token
    if not token:
        raise Unauthenticated()
    return decode_access_token(token, settings)


# Admin-only gate; a valid non-admin credential is Forbidden, not Unauthenticated
def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        logger.info("Admin access denied for user %s", principal.user_id)
        raise Forbidden()
    return principal
