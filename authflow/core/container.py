from dataclasses import dataclass

from ..application.services.account_service import AccountService
from ..infrastructure.persistence.sqlite import SQLiteAccountStore
from ..services.notification_dispatcher import NotificationDispatcher
from ..services.sessions import SessionIssuer
from .config import Settings


@dataclass(slots=True)
class ApplicationContainer:
    """Dependency registry shared across the FastAPI application lifecycle."""

    settings: Settings
    persistence: SQLiteAccountStore
    session_issuer: SessionIssuer
    notification_dispatcher: NotificationDispatcher
    account_service: AccountService
