from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..application.services.account_service import AccountService
from ..domain.ports.notifications import NotificationSink
from ..infrastructure.persistence.sqlite import SQLiteAccountStore
from ..presentation.api.routers import auth as auth_router
from ..services.email_service import LoggingNotificationSink, SmtpNotificationSink
from ..services.notification_dispatcher import NotificationDispatcher
from ..services.passwords import PasswordHasher
from ..services.sessions import SessionIssuer
from ..services.tokens import TokenGenerator
from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    notification_sink: Optional[NotificationSink] = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(title="Authflow", lifespan=_create_lifespan(settings, notification_sink))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router.router)

    @app.get("/health")
    async def health() -> Dict[str, Any]:
        container: ApplicationContainer = app.state.container  # type: ignore[attr-defined]
        return {"ok": True, "notifications": container.notification_dispatcher.is_running}

    return app


def _build_notification_sink(settings: Settings) -> NotificationSink:
    if not settings.smtp_enabled:
        logger.warning("SMTP is not configured; notifications will only be logged.")
        return LoggingNotificationSink()
    return SmtpNotificationSink(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_username=settings.smtp_username,
        smtp_password=settings.smtp_password,
        from_email=settings.smtp_from_email,
        from_name=settings.smtp_from_name,
        verification_ttl_hours=settings.verification_code_ttl_hours,
        reset_ttl_hours=settings.reset_token_ttl_hours,
    )


def _create_lifespan(settings: Settings, notification_sink: Optional[NotificationSink]):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level)
        persistence = SQLiteAccountStore(settings.database_path)
        session_issuer = SessionIssuer(
            settings.session_secret,
            algorithm=settings.session_algorithm,
            lifetime=timedelta(days=settings.session_expiration_days),
            secure_cookies=settings.is_production,
        )
        dispatcher = NotificationDispatcher(
            notification_sink or _build_notification_sink(settings),
            queue_size=settings.notification_queue_size,
            max_workers=settings.notification_workers,
        )
        account_service = AccountService(
            persistence,
            PasswordHasher(rounds=settings.password_hash_rounds),
            TokenGenerator(
                verification_ttl=timedelta(hours=settings.verification_code_ttl_hours),
                reset_ttl=timedelta(hours=settings.reset_token_ttl_hours),
            ),
            session_issuer,
            dispatcher,
            client_url=settings.client_url,
        )

        container = ApplicationContainer(
            settings=settings,
            persistence=persistence,
            session_issuer=session_issuer,
            notification_dispatcher=dispatcher,
            account_service=account_service,
        )

        app.state.container = container  # type: ignore[attr-defined]

        await dispatcher.start()
        logger.info("Auth service ready (environment=%s).", settings.environment)

        try:
            yield
        finally:
            await dispatcher.stop()
            persistence.close()

    return lifespan
