"""Outcome type returned by account operations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    DUPLICATE_ACCOUNT = "duplicate_account"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_OR_EXPIRED_TOKEN = "invalid_or_expired_token"
    ACCOUNT_NOT_FOUND = "account_not_found"
    UNAUTHENTICATED = "unauthenticated"
    DEPENDENCY_FAILURE = "dependency_failure"


@dataclass(slots=True, frozen=True)
class AuthError:
    kind: ErrorKind
    message: str


@dataclass(slots=True, frozen=True)
class Outcome(Generic[T]):
    """Either a value or an :class:`AuthError`, never both."""

    value: Optional[T] = None
    error: Optional[AuthError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Outcome[T]":
        return cls(error=AuthError(kind=kind, message=message))
