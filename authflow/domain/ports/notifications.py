from __future__ import annotations

from typing import Protocol


class NotificationError(RuntimeError):
    """Raised when a notification could not be delivered."""


class NotificationSink(Protocol):
    """Outbound account notifications (email in production)."""

    async def send_verification(self, email: str, code: str) -> None:
        ...

    async def send_welcome(self, email: str, name: str) -> None:
        ...

    async def send_reset_link(self, email: str, url: str) -> None:
        ...

    async def send_reset_success(self, email: str) -> None:
        ...
