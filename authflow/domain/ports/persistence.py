from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol

from ..models import User


class PersistenceError(RuntimeError):
    """Raised by store adapters when the backing storage fails."""


class DuplicateEmailError(PersistenceError):
    """Raised when a write would violate email uniqueness."""


class AccountRepository(Protocol):
    """Abstract storage for user accounts.

    Token lookups are expiry aware: a token only matches while its expiry is
    strictly later than ``now``. The ``consume_*`` operations match and clear a
    token in one atomic step and return ``None`` when nothing matched.
    """

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        ...

    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        verification_token: str,
        verification_token_expires_at: datetime,
    ) -> User:
        ...

    def record_login(self, user_id: int, at: datetime) -> User:
        ...

    def set_verification_token(self, user_id: int, token: str, expires_at: datetime) -> User:
        ...

    def verification_token_in_use(self, token: str, now: datetime) -> bool:
        ...

    def consume_verification_token(self, token: str, now: datetime) -> Optional[User]:
        ...

    def set_reset_token(self, user_id: int, token: str, expires_at: datetime) -> User:
        ...

    def find_by_reset_token(self, token: str, now: datetime) -> Optional[User]:
        ...

    def consume_reset_token(self, token: str, now: datetime, password_hash: str) -> Optional[User]:
        ...
