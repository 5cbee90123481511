import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.environment = os.getenv("APP_ENV", "development").lower()
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/auth.db")).resolve()
        self.session_secret = os.getenv("SESSION_SECRET", "change-me")
        self.session_algorithm = os.getenv("SESSION_ALGORITHM", "HS256")
        self.session_expiration_days = self._get_int("SESSION_EXPIRATION_DAYS", default=7)
        self.verification_code_ttl_hours = self._get_int("VERIFICATION_CODE_TTL_HOURS", default=24)
        self.reset_token_ttl_hours = self._get_int("RESET_TOKEN_TTL_HOURS", default=1)
        self.password_hash_rounds = self._get_int("PASSWORD_HASH_ROUNDS", default=10)
        self.client_url = os.getenv("CLIENT_URL", "http://localhost:5173")
        self.notification_queue_size = self._get_int("NOTIFICATION_QUEUE_SIZE", default=100)
        self.notification_workers = self._get_int("NOTIFICATION_WORKERS", default=2)
        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = self._get_int("SMTP_PORT", default=587)
        self.smtp_username = os.getenv("SMTP_USERNAME", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.smtp_from_email = os.getenv("SMTP_FROM_EMAIL", "")
        self.smtp_from_name = os.getenv("SMTP_FROM_NAME", "Auth Company")
        origins = os.getenv("CORS_ALLOW_ORIGINS")
        if origins:
            self.cors_allow_origins = [item.strip() for item in origins.split(",") if item.strip()]
        else:
            self.cors_allow_origins = [self.client_url]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def smtp_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_username and self.smtp_from_email)

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
