"""User registration and sign-in."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Optional

import anyio

from .database import Database
from .errors import ConflictError, UnauthorizedError, ValidationError
from .models import User
from .security import TokenIssuer, hash_password, verify_password

logger = logging.getLogger("superbudget.identity")


@dataclass(frozen=True)
class AuthResult:
    """Access token plus the sanitized user it was issued for."""

    access_token: str
    user: User


class IdentityService:
    """Register users and exchange credentials for signed access tokens."""

    def __init__(
        self,
        database: Database,
        issuer: TokenIssuer,
        *,
        hash_rounds: Optional[int] = None,
    ) -> None:
        self._database = database
        self._issuer = issuer
        self._hash_rounds = hash_rounds

    async def signup(self, email: str, password: str, name: str) -> AuthResult:
        """Create a user and sign them in.

        Raises :class:`~superbudget.errors.ConflictError` when the email is taken.
        """

        if not email or not password or not name:
            raise ValidationError("Email, password and name are required")
        if self._database.get_user_by_email(email) is not None:
            raise ConflictError("A user with that email already exists")

        # Hashing runs in a worker thread.
        password_hash = await anyio.to_thread.run_sync(
            partial(hash_password, password, rounds=self._hash_rounds)
        )
        user = self._database.create_user(email, name, password_hash)
        logger.info("Registered user %s", user.id)
        return AuthResult(access_token=self._issuer.issue(user), user=user)

    async def signin(self, email: str, password: str) -> AuthResult:
        user = await self.validate_credentials(email, password)
        if user is None:
            logger.warning("Failed sign-in attempt for %s", email)
            raise UnauthorizedError("Invalid credentials")
        logger.info("User %s signed in", user.id)
        return AuthResult(access_token=self._issuer.issue(user), user=user)

    async def validate_credentials(self, email: str, password: str) -> Optional[User]:
        """Return the sanitized user when the password matches, otherwise ``None``."""

        credentials = self._database.get_user_credentials(email)
        if credentials is None:
            return None
        user, stored_hash = credentials
        matches = await anyio.to_thread.run_sync(verify_password, password, stored_hash)
        if not matches:
            return None
        return user


__all__ = ["AuthResult", "IdentityService"]
