from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import Response

from ...domain.models import AuthenticatedAccount, PublicUser
from ...domain.ports.notifications import NotificationError
from ...domain.ports.persistence import AccountRepository, DuplicateEmailError, PersistenceError
from ...domain.results import ErrorKind, Outcome
from ...services.notification_dispatcher import NotificationDispatcher, NotificationJob, NotificationKind
from ...services.passwords import PasswordHasher
from ...services.sessions import SessionIssuer
from ...services.tokens import Clock, IssuedToken, TokenGenerator, utc_now

logger = logging.getLogger(__name__)

MISSING_FIELDS = "All fields are required"
USER_EXISTS = "User already exists"
INVALID_CREDENTIALS = "Invalid credentials"
INVALID_VERIFICATION_CODE = "Invalid or expired verification code"
INVALID_RESET_TOKEN = "Invalid or expired reset token"
USER_NOT_FOUND = "User not found"
ALREADY_VERIFIED = "Email already verified"
INTERNAL_ERROR = "Internal server error"

# Attempts at drawing a verification code no pending account currently holds.
CODE_ATTEMPTS = 5


class AccountService:
    """Account lifecycle: signup, verification, login and password reset.

    Every operation returns an :class:`Outcome`; domain failures never raise.
    Store and notification failures are logged here and reported as
    ``DEPENDENCY_FAILURE``.
    """

    def __init__(
        self,
        repository: AccountRepository,
        hasher: PasswordHasher,
        tokens: TokenGenerator,
        sessions: SessionIssuer,
        notifications: NotificationDispatcher,
        *,
        client_url: str,
        clock: Clock = utc_now,
    ) -> None:
        self._repository = repository
        self._hasher = hasher
        self._tokens = tokens
        self._sessions = sessions
        self._notifications = notifications
        self._client_url = client_url.rstrip("/")
        self._clock = clock

    # ------------------------------------------------------------------
    async def signup(
        self, email: Optional[str], password: Optional[str], name: Optional[str]
    ) -> Outcome[AuthenticatedAccount]:
        if not email or not password or not name:
            return Outcome.failure(ErrorKind.VALIDATION, MISSING_FIELDS)
        try:
            if self._repository.get_user_by_email(email):
                return Outcome.failure(ErrorKind.DUPLICATE_ACCOUNT, USER_EXISTS)
            password_hash = await asyncio.to_thread(self._hasher.hash, password)
            code = self._new_verification_code()
            user = self._repository.create_user(
                email=email,
                password_hash=password_hash,
                name=name,
                verification_token=code.value,
                verification_token_expires_at=code.expires_at,
            )
        except DuplicateEmailError:
            return Outcome.failure(ErrorKind.DUPLICATE_ACCOUNT, USER_EXISTS)
        except PersistenceError:
            return self._dependency_failure("signup", email)

        logger.info("Created account %s for %s", user.id, user.email)
        credential = self._sessions.issue(user.id)
        # The account stays created even when the verification email never goes out.
        await self._notifications.enqueue(
            NotificationJob(kind=NotificationKind.VERIFICATION, email=user.email, code=code.value)
        )
        return Outcome.success(AuthenticatedAccount(user=user.to_public(), credential=credential))

    async def login(self, email: Optional[str], password: Optional[str]) -> Outcome[AuthenticatedAccount]:
        if not email or not password:
            return Outcome.failure(ErrorKind.VALIDATION, MISSING_FIELDS)
        try:
            user = self._repository.get_user_by_email(email)
            if not user:
                return Outcome.failure(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS)
            matches = await asyncio.to_thread(self._hasher.verify, password, user.password_hash)
            if not matches:
                return Outcome.failure(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS)
            credential = self._sessions.issue(user.id)
            user = self._repository.record_login(user.id, self._clock())
        except PersistenceError:
            return self._dependency_failure("login", email)
        return Outcome.success(AuthenticatedAccount(user=user.to_public(), credential=credential))

    async def verify_email(self, code: Optional[str]) -> Outcome[PublicUser]:
        if not code:
            return Outcome.failure(ErrorKind.VALIDATION, MISSING_FIELDS)
        try:
            user = self._repository.consume_verification_token(code, self._clock())
        except PersistenceError:
            return self._dependency_failure("verify_email", "<code>")
        if not user:
            return Outcome.failure(ErrorKind.INVALID_OR_EXPIRED_TOKEN, INVALID_VERIFICATION_CODE)

        logger.info("Verified email for account %s", user.id)
        failure = await self._deliver(
            "verify_email",
            NotificationJob(kind=NotificationKind.WELCOME, email=user.email, name=user.name),
        )
        if failure:
            return failure
        return Outcome.success(user.to_public())

    async def resend_verification(self, email: Optional[str]) -> Outcome[None]:
        if not email:
            return Outcome.failure(ErrorKind.VALIDATION, MISSING_FIELDS)
        try:
            user = self._repository.get_user_by_email(email)
            if not user:
                # Same acknowledgement as for a known email.
                return Outcome.success()
            if user.is_verified:
                return Outcome.failure(ErrorKind.VALIDATION, ALREADY_VERIFIED)
            code = self._new_verification_code()
            self._repository.set_verification_token(user.id, code.value, code.expires_at)
        except PersistenceError:
            return self._dependency_failure("resend_verification", email)

        await self._notifications.enqueue(
            NotificationJob(kind=NotificationKind.VERIFICATION, email=user.email, code=code.value)
        )
        return Outcome.success()

    async def forgot_password(self, email: Optional[str]) -> Outcome[None]:
        if not email:
            return Outcome.failure(ErrorKind.VALIDATION, MISSING_FIELDS)
        try:
            user = self._repository.get_user_by_email(email)
            if not user:
                # Unlike login, this reveals whether the account exists.
                return Outcome.failure(ErrorKind.ACCOUNT_NOT_FOUND, USER_NOT_FOUND)
            token = self._tokens.new_reset_token()
            self._repository.set_reset_token(user.id, token.value, token.expires_at)
        except PersistenceError:
            return self._dependency_failure("forgot_password", email)

        logger.info("Password reset requested for account %s", user.id)
        failure = await self._deliver(
            "forgot_password",
            NotificationJob(kind=NotificationKind.RESET_LINK, email=user.email, url=self.reset_url(token.value)),
        )
        return failure or Outcome.success()

    async def reset_password(self, token: Optional[str], password: Optional[str]) -> Outcome[None]:
        if not token or not password:
            return Outcome.failure(ErrorKind.VALIDATION, MISSING_FIELDS)
        try:
            if not self._repository.find_by_reset_token(token, self._clock()):
                return Outcome.failure(ErrorKind.INVALID_OR_EXPIRED_TOKEN, INVALID_RESET_TOKEN)
            password_hash = await asyncio.to_thread(self._hasher.hash, password)
            # A concurrent reset may have consumed the token while hashing.
            user = self._repository.consume_reset_token(token, self._clock(), password_hash)
        except PersistenceError:
            return self._dependency_failure("reset_password", "<token>")
        if not user:
            return Outcome.failure(ErrorKind.INVALID_OR_EXPIRED_TOKEN, INVALID_RESET_TOKEN)

        logger.info("Password reset completed for account %s", user.id)
        failure = await self._deliver(
            "reset_password",
            NotificationJob(kind=NotificationKind.RESET_SUCCESS, email=user.email),
        )
        return failure or Outcome.success()

    def logout(self, response: Response) -> Outcome[None]:
        self._sessions.revoke(response)
        return Outcome.success()

    def check_auth(self, user_id: Optional[int]) -> Outcome[PublicUser]:
        if user_id is None:
            return Outcome.failure(ErrorKind.UNAUTHENTICATED, "Unauthorized - invalid token")
        try:
            user = self._repository.get_user_by_id(user_id)
        except PersistenceError:
            return self._dependency_failure("check_auth", str(user_id))
        if not user:
            return Outcome.failure(ErrorKind.ACCOUNT_NOT_FOUND, USER_NOT_FOUND)
        return Outcome.success(user.to_public())

    def reset_url(self, token: str) -> str:
        return f"{self._client_url}/reset-password/{token}"

    # ------------------------------------------------------------------
    def _new_verification_code(self) -> IssuedToken:
        """Draw a code that no other pending account holds.

        Codes are looked up without the email, so two live accounts must never
        share one. After the last attempt the code is used as drawn.
        """
        now = self._clock()
        code = self._tokens.new_verification_code()
        for _ in range(CODE_ATTEMPTS - 1):
            if not self._repository.verification_token_in_use(code.value, now):
                break
            logger.debug("Verification code collision; drawing another.")
            code = self._tokens.new_verification_code()
        return code

    async def _deliver(self, operation: str, job: NotificationJob) -> Optional[Outcome]:
        try:
            future = await self._notifications.submit(job)
            await future
        except NotificationError:
            logger.exception("Notification failed during %s for %s", operation, job.email)
            return Outcome.failure(ErrorKind.DEPENDENCY_FAILURE, INTERNAL_ERROR)
        return None

    @staticmethod
    def _dependency_failure(operation: str, subject: str) -> Outcome:
        logger.exception("Account store failure during %s for %s", operation, subject)
        return Outcome.failure(ErrorKind.DEPENDENCY_FAILURE, INTERNAL_ERROR)
