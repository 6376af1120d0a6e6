import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBasic, HTTPBearer

from .entities import SYSTEM_ACTOR
from .errors import AuthError, AuthFailure

logger = logging.getLogger("bookapi.auth")

bearer = HTTPBearer(auto_error=False)
basic = HTTPBasic(auto_error=False)

DEFAULT_TOKEN_TTL = timedelta(hours=24)


@dataclass(frozen=True)
class Principal:
    """Authenticated identity of a request, used for audit stamping."""

    username: str
    user_id: int | None = None


def audit_actor(principal: Principal | None) -> str:
    return principal.username if principal is not None else SYSTEM_ACTOR


class TokenSigner:
    """Issues and verifies HS256 tokens carrying ``user_id`` and ``username``."""

    algorithm = "HS256"

    def __init__(self, secret: str, ttl: timedelta = DEFAULT_TOKEN_TTL, leeway_seconds: int = 0):
        self.secret = secret
        self.ttl = ttl
        self.leeway_seconds = leeway_seconds

    def issue(self, user_id: int, username: str, issued_at: datetime | None = None) -> str:
        issued_at = issued_at or datetime.now(timezone.utc)
        payload = {
            "user_id": user_id,
            "username": username,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Principal:
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                key=self.secret,
                algorithms=[self.algorithm],
                leeway=self.leeway_seconds,
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthError(AuthFailure.EXPIRED, "token has expired") from exc
        except jwt.InvalidSignatureError as exc:
            raise AuthError(AuthFailure.INVALID_SIGNATURE, "token signature is invalid") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthError(AuthFailure.MALFORMED, "token could not be parsed") from exc

        user_id = claims.get("user_id")
        username = claims.get("username")
        if not isinstance(user_id, int) or not isinstance(username, str) or not username:
            raise AuthError(AuthFailure.MALFORMED, "token is missing identity claims")
        return Principal(username=username, user_id=user_id)


def _basic_principal(request: Request, username: str, password: str) -> Principal:
    settings = request.app.state.settings
    user_ok = secrets.compare_digest(username.encode("utf-8"), settings.basic_auth_username.encode("utf-8"))
    password_ok = secrets.compare_digest(password.encode("utf-8"), settings.basic_auth_password.encode("utf-8"))
    if not (user_ok and password_ok):
        raise AuthError(AuthFailure.INVALID_CREDENTIALS, "invalid username or password", scheme="Basic")
    return Principal(username=username)


async def require_principal(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Principal:
    """Gate for protected route groups; fails closed with 401 before the handler runs."""
    try:
        if request.app.state.settings.auth_mode == "basic":
            basic_creds = await basic(request)
            if basic_creds is None:
                raise AuthError(AuthFailure.MISSING, "authorization header is required", scheme="Basic")
            return _basic_principal(request, basic_creds.username, basic_creds.password)

        if creds is None:
            raise AuthError(AuthFailure.MISSING, "authorization header is required")
        return request.app.state.token_signer.verify(creds.credentials)
    except AuthError as exc:
        logger.warning("auth.rejected", extra={"path": request.url.path, "reason": exc.reason.value})
        raise
