"""User persistence — the credential store behind AuthService.

Learn: AuthService only needs a handful of operations, captured by the
UserRepository protocol. Any store that implements them (relational,
document, in-memory fake) can back the session manager.

The important one is swap_refresh_token: a single conditional UPDATE
("set new token WHERE id = ? AND refresh_token = expected"). Two
concurrent refreshes with the same token can both pass the read-side
comparison, but only one of them can win the swap.
"""

import uuid
from typing import Optional, Protocol

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vidtube.db.models import User


def normalize(value: str) -> str:
    """usernames and emails are case-insensitive: store and match lower-case."""
    return value.strip().lower()


class UserRepository(Protocol):
    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]: ...

    async def get_by_username(self, username: str) -> Optional[User]: ...

    async def get_by_username_or_email(self, identifier: str) -> Optional[User]: ...

    async def exists(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool: ...

    async def create(
        self, username: str, email: str, fullname: str, password_hash: str
    ) -> User: ...

    async def update_fields(self, user_id: uuid.UUID, **patch) -> None: ...

    async def set_refresh_token(
        self, user_id: uuid.UUID, token: Optional[str]
    ) -> None: ...

    async def swap_refresh_token(
        self, user_id: uuid.UUID, expected: str, new: str
    ) -> bool: ...


class SqlAlchemyUserRepository:
    """UserRepository on an AsyncSession. Flushes, never commits."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.username == normalize(username))
        )
        return result.scalars().first()

    async def get_by_username_or_email(self, identifier: str) -> Optional[User]:
        value = normalize(identifier)
        result = await self.db.execute(
            select(User).where(or_(User.username == value, User.email == value))
        )
        return result.scalars().first()

    async def exists(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> bool:
        conditions = []
        if username:
            conditions.append(User.username == normalize(username))
        if email:
            conditions.append(User.email == normalize(email))
        if not conditions:
            return False

        q = select(User.id).where(or_(*conditions))
        if exclude_id is not None:
            q = q.where(User.id != exclude_id)
        result = await self.db.execute(q.limit(1))
        return result.first() is not None

    async def create(
        self, username: str, email: str, fullname: str, password_hash: str
    ) -> User:
        user = User(
            username=normalize(username),
            email=normalize(email),
            fullname=fullname.strip(),
            password_hash=password_hash,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    async def update_fields(self, user_id: uuid.UUID, **patch) -> None:
        if "username" in patch:
            patch["username"] = normalize(patch["username"])
        if "email" in patch:
            patch["email"] = normalize(patch["email"])
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(**patch)
            .execution_options(synchronize_session=False)
        )
        await self._reload(user_id)

    async def set_refresh_token(
        self, user_id: uuid.UUID, token: Optional[str]
    ) -> None:
        await self.update_fields(user_id, refresh_token=token)

    async def swap_refresh_token(
        self, user_id: uuid.UUID, expected: str, new: str
    ) -> bool:
        """Compare-and-swap the stored refresh token. True if we won."""
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, User.refresh_token == expected)
            .values(refresh_token=new)
            .execution_options(synchronize_session=False)
        )
        swapped = result.rowcount == 1
        if swapped:
            await self._reload(user_id)
        return swapped

    async def _reload(self, user_id: uuid.UUID) -> None:
        """Bring an already-loaded User in line with a bulk UPDATE."""
        await self.db.get(User, user_id, populate_existing=True)
