"""Stateless session credentials carried in an HTTP-only cookie."""

import logging
from datetime import timedelta
from typing import Optional

import jwt
from fastapi import Response

from ..domain.models import SessionCredential
from .tokens import Clock, utc_now

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "token"


class SessionIssuer:
    """Mints and validates signed session tokens bound to a user id.

    There is no server-side session table. Revocation only clears the cookie on
    the client; a copied token stays valid until it expires.
    """

    def __init__(
        self,
        secret: str,
        *,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=7),
        secure_cookies: bool = False,
        clock: Clock = utc_now,
    ) -> None:
        if not secret:
            raise RuntimeError("SESSION_SECRET is not configured.")
        if secret == "change-me":
            logger.warning("SESSION_SECRET is using the default value. Configure a real secret in production.")
        self._secret = secret
        self._algorithm = algorithm
        self._lifetime = lifetime
        self._secure_cookies = secure_cookies
        self._clock = clock

    def issue(self, user_id: int) -> SessionCredential:
        now = self._clock()
        expires_at = now + self._lifetime
        payload = {"sub": str(user_id), "iat": now, "exp": expires_at}
        token = jwt.encode(payload, self._secret, algorithm=self._algorithm)
        return SessionCredential(
            token=token,
            user_id=user_id,
            expires_at=expires_at,
            max_age=int(self._lifetime.total_seconds()),
        )

    def validate(self, token: Optional[str]) -> Optional[int]:
        """Return the user id the token asserts, or None for any invalid token."""
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.InvalidTokenError:
            return None
        try:
            return int(payload["sub"])
        except (TypeError, ValueError):
            return None

    def attach(self, response: Response, credential: SessionCredential) -> None:
        response.set_cookie(
            key=SESSION_COOKIE_NAME,
            value=credential.token,
            max_age=credential.max_age,
            httponly=True,
            secure=self._secure_cookies,
            samesite="strict",
        )

    def revoke(self, response: Response) -> None:
        response.delete_cookie(
            key=SESSION_COOKIE_NAME,
            httponly=True,
            secure=self._secure_cookies,
            samesite="strict",
        )
