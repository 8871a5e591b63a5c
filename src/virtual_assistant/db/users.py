"""Users persistence module.

Stores accounts, assistant settings and each user's bounded command history.
The history is a JSON array in a single column, so replacing it is one
atomic UPDATE of one row.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import duckdb

USER_COLUMNS = """
    id, name, email, password_hash, assistant_name, assistant_image,
    history, created_at, updated_at
"""

DEFAULT_ASSISTANT_NAME = "Assistant"


class DuplicateEmailError(Exception):
    """Raised when creating a user whose email is already registered."""


@dataclass
class HistoryEntry:
    """One submitted assistant command."""

    text: str
    created_at: datetime

    def to_dict(self) -> dict[str, str]:
        """Convert to the stored/API representation."""
        return {"text": self.text, "createdAt": self.created_at.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        created_at = datetime.fromisoformat(data["createdAt"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=UTC)
        return cls(text=data["text"], created_at=created_at)


@dataclass
class User:
    """Represents a stored user account."""

    id: str
    name: str
    email: str
    password_hash: str
    assistant_name: str = DEFAULT_ASSISTANT_NAME
    assistant_image: str | None = None
    history: list[HistoryEntry] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_public_dict(self) -> dict[str, Any]:
        """Convert to an API-safe dictionary (never includes the password hash)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "assistantName": self.assistant_name,
            "assistantImage": self.assistant_image,
            "history": [entry.to_dict() for entry in self.history],
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


def _utcnow() -> datetime:
    # TIMESTAMP columns hold naive UTC values
    return datetime.now(UTC).replace(tzinfo=None)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _encode_history(history: list[HistoryEntry]) -> str:
    return json.dumps([entry.to_dict() for entry in history])


def _decode_history(raw: str | None) -> list[HistoryEntry]:
    if not raw:
        return []
    return [HistoryEntry.from_dict(item) for item in json.loads(raw)]


def _row_to_user(row: tuple) -> User:
    return User(
        id=str(row[0]),
        name=row[1],
        email=row[2],
        password_hash=row[3],
        assistant_name=row[4] or DEFAULT_ASSISTANT_NAME,
        assistant_image=row[5],
        history=_decode_history(row[6]),
        created_at=_as_utc(row[7]),
        updated_at=_as_utc(row[8]),
    )


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address for storage and lookup."""
    return email.strip().lower()


def create_user(
    conn: duckdb.DuckDBPyConnection,
    name: str,
    email: str,
    password_hash: str,
    assistant_name: str = DEFAULT_ASSISTANT_NAME,
) -> User:
    """Create a new user.

    Args:
        conn: Database connection.
        name: Display name (trimmed).
        email: Email address (normalized to lower case).
        password_hash: Already-hashed password.
        assistant_name: Initial assistant persona name.

    Returns:
        Created User object.

    Raises:
        DuplicateEmailError: If the email is already registered.
    """
    user_id = str(uuid.uuid4())
    now = _utcnow()
    email = normalize_email(email)

    try:
        conn.execute(
            f"""
            INSERT INTO users ({USER_COLUMNS})
            VALUES (?, ?, ?, ?, ?, NULL, '[]', ?, ?)
            """,
            [user_id, name.strip(), email, password_hash, assistant_name, now, now],
        )
    except duckdb.ConstraintException as e:
        raise DuplicateEmailError(email) from e

    return User(
        id=user_id,
        name=name.strip(),
        email=email,
        password_hash=password_hash,
        assistant_name=assistant_name,
        created_at=_as_utc(now),
        updated_at=_as_utc(now),
    )


def get_user_by_id(conn: duckdb.DuckDBPyConnection, user_id: str) -> User | None:
    """Get a user by ID.

    Returns:
        User if found, None otherwise.
    """
    row = conn.execute(
        f"SELECT {USER_COLUMNS} FROM users WHERE id = ?",
        [user_id],
    ).fetchone()
    return _row_to_user(row) if row else None


def get_user_by_email(conn: duckdb.DuckDBPyConnection, email: str) -> User | None:
    """Get a user by email (case-insensitive)."""
    row = conn.execute(
        f"SELECT {USER_COLUMNS} FROM users WHERE email = ?",
        [normalize_email(email)],
    ).fetchone()
    return _row_to_user(row) if row else None


def update_user_history(
    conn: duckdb.DuckDBPyConnection,
    user_id: str,
    history: list[HistoryEntry],
) -> bool:
    """Replace a user's history in one statement.

    Returns:
        True if the user row was updated, False if no such user exists.
    """
    row = conn.execute(
        """
        UPDATE users
        SET history = ?, updated_at = ?
        WHERE id = ?
        RETURNING id
        """,
        [_encode_history(history), _utcnow(), user_id],
    ).fetchone()
    return row is not None


def update_assistant_settings(
    conn: duckdb.DuckDBPyConnection,
    user_id: str,
    assistant_name: str | None = None,
    assistant_image: str | None = None,
) -> User | None:
    """Update the assistant name and/or image for a user.

    Only the fields that are not None are changed.

    Returns:
        The updated User, or None if the user does not exist.
    """
    assignments = []
    params: list[Any] = []

    if assistant_name is not None:
        assignments.append("assistant_name = ?")
        params.append(assistant_name)

    if assistant_image is not None:
        assignments.append("assistant_image = ?")
        params.append(assistant_image)

    if not assignments:
        return get_user_by_id(conn, user_id)

    assignments.append("updated_at = ?")
    params.extend([_utcnow(), user_id])

    row = conn.execute(
        f"""
        UPDATE users
        SET {", ".join(assignments)}
        WHERE id = ?
        RETURNING {USER_COLUMNS}
        """,
        params,
    ).fetchone()
    return _row_to_user(row) if row else None


class DBUserRepository:
    """User repository used by the command pipeline.

    Each call runs on its own cursor so the repository can be shared by
    requests served from different threads.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    def get_by_id(self, user_id: str) -> User | None:
        with self._conn.cursor() as cursor:
            return get_user_by_id(cursor, user_id)

    def save_history(self, user: User) -> None:
        """Persist ``user.history``.

        Raises:
            LookupError: If the user row no longer exists.
            duckdb.Error: If the write fails.
        """
        with self._conn.cursor() as cursor:
            if not update_user_history(cursor, user.id, user.history):
                raise LookupError(f"User {user.id} no longer exists")
