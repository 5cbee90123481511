import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Tuple

from ...domain.models import User
from ...domain.ports.persistence import AccountRepository, DuplicateEmailError, PersistenceError


class SQLiteAccountStore(AccountRepository):
    """SQLite-backed implementation of the account store."""

    def __init__(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._initialize()

    def _initialize(self) -> None:
        with self._conn:
            self._conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    name TEXT NOT NULL,
                    is_verified INTEGER NOT NULL DEFAULT 0,
                    verification_token TEXT,
                    verification_token_expires_at TEXT,
                    reset_password_token TEXT,
                    reset_password_expires_at TEXT,
                    last_login TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_verification_token
                    ON users(verification_token);

                CREATE INDEX IF NOT EXISTS idx_users_reset_password_token
                    ON users(reset_password_token);
                """
            )

    def close(self) -> None:
        self._conn.close()

    # Lookups ------------------------------------------------------------------
    def get_user_by_email(self, email: str) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE email = ?", (email,))

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self._fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))

    def find_by_reset_token(self, token: str, now: datetime) -> Optional[User]:
        return self._fetch_one(
            "SELECT * FROM users WHERE reset_password_token = ? AND reset_password_expires_at > ?",
            (token, self._format(now)),
        )

    def verification_token_in_use(self, token: str, now: datetime) -> bool:
        try:
            with self._lock:
                cur = self._conn.execute(
                    "SELECT 1 FROM users WHERE verification_token = ? AND verification_token_expires_at > ?",
                    (token, self._format(now)),
                )
                row = cur.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError("Failed to read verification tokens.") from exc
        return row is not None

    # Writes -------------------------------------------------------------------
    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        name: str,
        verification_token: str,
        verification_token_expires_at: datetime,
    ) -> User:
        now = self._now()
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    """
                    INSERT INTO users (
                        email, password_hash, name, is_verified, verification_token,
                        verification_token_expires_at, created_at, updated_at
                    )
                    VALUES (?, ?, ?, 0, ?, ?, ?, ?)
                    """,
                    (
                        email,
                        password_hash,
                        name,
                        verification_token,
                        self._format(verification_token_expires_at),
                        now,
                        now,
                    ),
                )
                cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (cur.lastrowid,))
                row = cur.fetchone()
        except sqlite3.IntegrityError as exc:
            raise DuplicateEmailError(f"Email {email} is already registered.") from exc
        except sqlite3.Error as exc:
            raise PersistenceError("Failed to create user.") from exc
        if not row:
            raise PersistenceError("Failed to persist user.")
        return self._row_to_user(row)

    def record_login(self, user_id: int, at: datetime) -> User:
        return self._update(
            user_id,
            "last_login = ?",
            (self._format(at),),
        )

    def set_verification_token(self, user_id: int, token: str, expires_at: datetime) -> User:
        return self._update(
            user_id,
            "verification_token = ?, verification_token_expires_at = ?",
            (token, self._format(expires_at)),
        )

    def set_reset_token(self, user_id: int, token: str, expires_at: datetime) -> User:
        return self._update(
            user_id,
            "reset_password_token = ?, reset_password_expires_at = ?",
            (token, self._format(expires_at)),
        )

    def consume_verification_token(self, token: str, now: datetime) -> Optional[User]:
        return self._consume(
            match="verification_token = ? AND verification_token_expires_at > ?",
            match_params=(token, self._format(now)),
            assignments=(
                "is_verified = 1, verification_token = NULL, verification_token_expires_at = NULL"
            ),
            assignment_params=(),
        )

    def consume_reset_token(self, token: str, now: datetime, password_hash: str) -> Optional[User]:
        return self._consume(
            match="reset_password_token = ? AND reset_password_expires_at > ?",
            match_params=(token, self._format(now)),
            assignments=(
                "password_hash = ?, reset_password_token = NULL, reset_password_expires_at = NULL"
            ),
            assignment_params=(password_hash,),
        )

    # Helpers ------------------------------------------------------------------
    def _fetch_one(self, query: str, params: Tuple[Any, ...]) -> Optional[User]:
        try:
            with self._lock:
                cur = self._conn.execute(query, params)
                row = cur.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError("Failed to read user.") from exc
        return self._row_to_user(row) if row else None

    def _update(self, user_id: int, assignments: str, params: Tuple[Any, ...]) -> User:
        now = self._now()
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ?",
                    (*params, now, user_id),
                )
                cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
                row = cur.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to update user {user_id}.") from exc
        if not row:
            raise PersistenceError(f"User {user_id} not found.")
        return self._row_to_user(row)

    def _consume(
        self,
        *,
        match: str,
        match_params: Tuple[Any, ...],
        assignments: str,
        assignment_params: Tuple[Any, ...],
    ) -> Optional[User]:
        now = self._now()
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(f"SELECT id FROM users WHERE {match}", match_params)
                row = cur.fetchone()
                if not row:
                    return None
                user_id = row["id"]
                self._conn.execute(
                    f"UPDATE users SET {assignments}, updated_at = ? WHERE id = ? AND {match}",
                    (*assignment_params, now, user_id, *match_params),
                )
                cur = self._conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
                row = cur.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError("Failed to consume token.") from exc
        return self._row_to_user(row) if row else None

    @staticmethod
    def _now() -> str:
        return datetime.now(timezone.utc).replace(microsecond=0).isoformat()

    @staticmethod
    def _format(value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()

    @staticmethod
    def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
        if not value:
            return None
        result = datetime.fromisoformat(value)
        if result.tzinfo is None:
            return result.replace(tzinfo=timezone.utc)
        return result.astimezone(timezone.utc)

    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            password_hash=row["password_hash"],
            name=row["name"],
            is_verified=bool(row["is_verified"]),
            verification_token=row["verification_token"],
            verification_token_expires_at=self._parse_datetime(row["verification_token_expires_at"]),
            reset_password_token=row["reset_password_token"],
            reset_password_expires_at=self._parse_datetime(row["reset_password_expires_at"]),
            last_login=self._parse_datetime(row["last_login"]),
            created_at=self._parse_datetime(row["created_at"]),
            updated_at=self._parse_datetime(row["updated_at"]),
        )
