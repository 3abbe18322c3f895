"""Auth service — registration and the session lifecycle.

Learn: A session moves Anonymous → Authenticated → (Refreshed)* → LoggedOut.
Each account has at most ONE live refresh token, stored on the user row:
- login / change_password overwrite it (older sessions die),
- refresh rotates it (the presented token becomes unusable),
- logout clears it.

A refresh token that verifies cryptographically but doesn't match the
stored value is "stale" — it was already rotated, logged out, or stolen.

Every public method commits its own unit of work. If anything raises,
nothing is committed.
"""

import hmac
import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.auth.jwt import TokenPair, issue_token_pair, verify_refresh_token
from vidtube.auth.password import (
    hash_password,
    password_policy_violation,
    verify_password,
)
from vidtube.db.models import User
from vidtube.errors import (
    ConflictError,
    InvalidCredentialsError,
    InvalidTokenError,
    MissingTokenError,
    NotFoundError,
    StaleTokenError,
    ValidationError,
)
from vidtube.repositories.users import SqlAlchemyUserRepository, UserRepository

logger = structlog.get_logger()


@dataclass
class LoginResult:
    user: User
    tokens: TokenPair


def _require(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not value or not value.strip()]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def _check_password_strength(password: str) -> None:
    problem = password_policy_violation(password)
    if problem:
        raise ValidationError(problem)


class AuthService:
    """Session manager: password check, token issue/rotation, persistence."""

    def __init__(self, db: AsyncSession, users: Optional[UserRepository] = None):
        self.db = db
        self.users = users or SqlAlchemyUserRepository(db)

    # ─── Registration ───────────────────────────────────

    async def register(
        self, username: str, email: str, fullname: str, password: str
    ) -> User:
        _require(username=username, email=email, fullname=fullname, password=password)
        _check_password_strength(password)

        if await self.users.exists(username=username, email=email):
            raise ConflictError("User with the same email or username already exists")

        user = await self.users.create(
            username=username,
            email=email,
            fullname=fullname,
            password_hash=hash_password(password),
        )
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration.
            await self.db.rollback()
            raise ConflictError("User with the same email or username already exists")

        logger.info("auth.registered", user_id=str(user.id))
        return user

    # ─── Login / logout ─────────────────────────────────

    async def login(self, identifier: str, password: str) -> LoginResult:
        """Accepts a username or an email as identifier.

        Unknown identifier and wrong password produce the same error so
        callers can't probe which accounts exist.
        """
        _require(identifier=identifier, password=password)

        user = await self.users.get_by_username_or_email(identifier)
        if user is None:
            logger.info("auth.login_failed", reason="unknown_user")
            raise InvalidCredentialsError()
        if not verify_password(password, user.password_hash):
            logger.info("auth.login_failed", reason="bad_password", user_id=str(user.id))
            raise InvalidCredentialsError()

        tokens = issue_token_pair(user)
        await self.users.set_refresh_token(user.id, tokens.refresh_token)
        await self.db.commit()

        logger.info("auth.login_succeeded", user_id=str(user.id))
        return LoginResult(user=user, tokens=tokens)

    async def logout(self, user_id: uuid.UUID) -> None:
        """Forget the stored refresh token. Safe to call repeatedly."""
        await self.users.set_refresh_token(user_id, None)
        await self.db.commit()
        logger.info("auth.logged_out", user_id=str(user_id))

    # ─── Refresh ────────────────────────────────────────

    async def refresh_session(self, presented: Optional[str]) -> TokenPair:
        """Exchange the current refresh token for a brand-new pair.

        Learn: The final write is a compare-and-swap. If another request
        rotated the same token between our read and our write, the swap
        matches zero rows and this request fails as stale.
        """
        if not presented or not presented.strip():
            raise MissingTokenError()

        claims = verify_refresh_token(presented)
        try:
            user_id = uuid.UUID(claims["sub"])
        except (ValueError, TypeError):
            raise InvalidTokenError()

        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        stored = user.refresh_token or ""
        if not hmac.compare_digest(stored.encode(), presented.encode()):
            logger.warning("auth.refresh_stale", user_id=str(user.id))
            raise StaleTokenError()

        tokens = issue_token_pair(user)
        swapped = await self.users.swap_refresh_token(
            user.id, expected=presented, new=tokens.refresh_token
        )
        if not swapped:
            logger.warning("auth.refresh_race_lost", user_id=str(user.id))
            raise StaleTokenError()

        await self.db.commit()
        logger.info("auth.refreshed", user_id=str(user.id))
        return tokens

    # ─── Password change ────────────────────────────────

    async def change_password(
        self, user_id: uuid.UUID, old_password: str, new_password: str
    ) -> TokenPair:
        """Re-hash the password and rotate the session.

        The refresh token is replaced, so every other session holding
        the previous one will fail its next refresh.
        """
        _require(old_password=old_password, new_password=new_password)

        user = await self.get_current_identity(user_id)
        if not verify_password(old_password, user.password_hash):
            raise InvalidCredentialsError("Invalid old password")
        _check_password_strength(new_password)

        tokens = issue_token_pair(user)
        await self.users.update_fields(
            user.id,
            password_hash=hash_password(new_password),
            refresh_token=tokens.refresh_token,
        )
        await self.db.commit()

        logger.info("auth.password_changed", user_id=str(user.id))
        return tokens

    # ─── Current identity ───────────────────────────────

    async def get_current_identity(self, user_id: uuid.UUID) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
