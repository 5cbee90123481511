from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(slots=True)
class User:
    """Account record as held by the account store, password hash included."""

    id: int
    email: str
    password_hash: str
    name: str
    is_verified: bool
    verification_token: Optional[str]
    verification_token_expires_at: Optional[datetime]
    reset_password_token: Optional[str]
    reset_password_expires_at: Optional[datetime]
    last_login: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @property
    def has_pending_reset(self) -> bool:
        return self.reset_password_token is not None

    def to_public(self) -> PublicUser:
        return PublicUser(
            id=self.id,
            email=self.email,
            name=self.name,
            is_verified=self.is_verified,
            last_login=self.last_login,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email} verified={self.is_verified}>"


@dataclass(slots=True, frozen=True)
class PublicUser:
    """Projection of a user handed back to callers; never carries secrets."""

    id: int
    email: str
    name: str
    is_verified: bool
    last_login: Optional[datetime]
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True, frozen=True)
class SessionCredential:
    token: str
    user_id: int
    expires_at: datetime
    max_age: int


@dataclass(slots=True, frozen=True)
class AuthenticatedAccount:
    user: PublicUser
    credential: SessionCredential
