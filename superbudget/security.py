"""Password hashing, access tokens and bearer authentication."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from fastapi import HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext

from .config import AuthSettings
from .errors import UnauthorizedError
from .models import User

BCRYPT_ROUNDS = 10

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)


def hash_password(password: str, *, rounds: Optional[int] = None) -> str:
    """Return a salted bcrypt hash of ``password``."""

    if not password:
        raise ValueError("Password must not be empty")
    if rounds is None:
        return _pwd_context.hash(password)
    return _pwd_context.handler("bcrypt").using(rounds=rounds).hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not password or not hashed:
        return False
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    email: str
    expires_at: datetime


class TokenIssuer:
    """Sign and verify HS256 access tokens carrying a user id and email."""

    def __init__(self, settings: AuthSettings, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._settings = settings
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self._settings.token_ttl_minutes)

    def issue(self, user: User) -> str:
        issued_at = self._clock()
        payload = {
            "sub": user.id,
            "email": user.email,
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(payload, self._settings.secret, algorithm=self._settings.algorithm)

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                self._settings.secret,
                algorithms=[self._settings.algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise UnauthorizedError("Token expired") from exc
        except jwt.InvalidTokenError as exc:
            raise UnauthorizedError("Invalid token") from exc

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise UnauthorizedError("Invalid token")
        return TokenClaims(
            subject=subject,
            email=str(payload.get("email") or ""),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        )


class BearerAuth:
    """FastAPI dependency resolving the current user from a bearer token."""

    def __init__(self, issuer: TokenIssuer, resolve_user: Callable[[str], Optional[User]]) -> None:
        self._issuer = issuer
        self._resolve_user = resolve_user
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> User:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise self._unauthorized("Missing bearer token")

        try:
            claims = self._issuer.verify(credentials.credentials)
        except UnauthorizedError as exc:
            raise self._unauthorized(exc.message) from exc

        user = self._resolve_user(claims.subject)
        if user is None:
            raise self._unauthorized("Unknown user")
        return user

    @staticmethod
    def _unauthorized(detail: str) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


__all__ = [
    "BCRYPT_ROUNDS",
    "BearerAuth",
    "TokenClaims",
    "TokenIssuer",
    "hash_password",
    "verify_password",
]
