"""Generation of verification codes and password reset tokens."""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(slots=True, frozen=True)
class IssuedToken:
    value: str
    expires_at: datetime


class TokenGenerator:
    """Issues single-use secrets with an expiry relative to the injected clock."""

    def __init__(
        self,
        *,
        verification_ttl: timedelta = timedelta(hours=24),
        reset_ttl: timedelta = timedelta(hours=1),
        reset_token_bytes: int = 20,
        clock: Clock = utc_now,
    ) -> None:
        self._verification_ttl = verification_ttl
        self._reset_ttl = reset_ttl
        self._reset_token_bytes = reset_token_bytes
        self._clock = clock

    def new_verification_code(self) -> IssuedToken:
        """Six digit numeric code, uniform over 100000-999999."""
        code = str(100000 + secrets.randbelow(900000))
        return IssuedToken(value=code, expires_at=self._clock() + self._verification_ttl)

    def new_reset_token(self) -> IssuedToken:
        token = secrets.token_hex(self._reset_token_bytes)
        return IssuedToken(value=token, expires_at=self._clock() + self._reset_ttl)
