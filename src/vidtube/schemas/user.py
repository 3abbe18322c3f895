"""Pydantic schemas for users and sessions.

Learn: UserRead is the only shape a user ever leaves the API in —
password_hash and the stored refresh_token are simply not fields here.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from vidtube.auth.password import password_policy_violation


def _new_password(value: str) -> str:
    problem = password_policy_violation(value)
    if problem:
        raise ValueError(problem)
    return value


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    fullname: str = Field(..., min_length=1, max_length=100)
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return _new_password(value)


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: str


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, value: str) -> str:
        return _new_password(value)


class AccountUpdate(BaseModel):
    fullname: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")


class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    fullname: str
    avatar: Optional[str] = None
    cover_image: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TokenPairRead(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"

    model_config = {"from_attributes": True}


class LoginRead(TokenPairRead):
    user: UserRead


class ChannelProfileRead(BaseModel):
    id: uuid.UUID
    username: str
    fullname: str
    avatar: Optional[str] = None
    cover_image: Optional[str] = None
    videos_count: int
    total_views: int
    is_own_channel: bool

    model_config = {"from_attributes": True}
