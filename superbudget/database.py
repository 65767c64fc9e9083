"""SQLite-backed persistence for users and projects."""
from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .errors import ConflictError, ValidationError
from .models import Project, ProjectStatus, User


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "superbudget.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _generate_id() -> str:
    return str(uuid.uuid4())


_PROJECT_FIELDS = {"name", "status", "deadline", "assigned_team_member", "budget"}


class Database:
    """Simple wrapper around SQLite for persisting users and projects.

    Every public method opens its own connection and commits before returning,
    so each call is atomic on its own.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    name TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    status TEXT NOT NULL,
                    deadline TEXT NOT NULL,
                    assigned_team_member TEXT NOT NULL,
                    budget REAL NOT NULL CHECK (budget >= 0),
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_projects_status ON projects(status);
                CREATE INDEX IF NOT EXISTS idx_projects_created_at ON projects(created_at);
                """
            )

    # ------------------------------------------------------------------
    # Credential store
    # ------------------------------------------------------------------
    def create_user(self, email: str, name: str, password_hash: str) -> User:
        """Persist a new user; the caller supplies an already hashed password."""

        if not password_hash:
            raise ValueError("Password hash must not be empty")

        user_id = _generate_id()
        created_at = _current_timestamp()
        with self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users (id, email, name, password_hash, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user_id,
                        email,
                        name,
                        password_hash,
                        _serialize_datetime(created_at),
                        _serialize_datetime(created_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError("A user with that email already exists") from exc

        return User(id=user_id, email=email, name=name, created_at=created_at, updated_at=created_at)

    def get_user(self, user_id: str) -> Optional[User]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[User]:
        credentials = self.get_user_credentials(email)
        if credentials is None:
            return None
        return credentials[0]

    def get_user_credentials(self, email: str) -> Optional[Tuple[User, str]]:
        """Return the user together with its stored password hash."""

        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row), row["password_hash"]

    def count_users(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS total FROM users").fetchone()
        return int(row["total"])

    # ------------------------------------------------------------------
    # Project store
    # ------------------------------------------------------------------
    def create_project(
        self,
        *,
        name: str,
        status: ProjectStatus,
        deadline: datetime,
        assigned_team_member: str,
        budget: float,
    ) -> Project:
        if budget < 0:
            raise ValidationError("Budget must not be negative")

        project = Project(
            id=_generate_id(),
            name=name,
            status=ProjectStatus(status),
            deadline=deadline,
            assigned_team_member=assigned_team_member,
            budget=float(budget),
            created_at=_current_timestamp(),
            updated_at=_current_timestamp(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO projects (
                    id,
                    name,
                    status,
                    deadline,
                    assigned_team_member,
                    budget,
                    created_at,
                    updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    project.id,
                    project.name,
                    project.status.value,
                    _serialize_datetime(project.deadline),
                    project.assigned_team_member,
                    project.budget,
                    _serialize_datetime(project.created_at),
                    _serialize_datetime(project.updated_at),
                ),
            )
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project.id,)).fetchone()
        return self._row_to_project(row)

    def get_project(self, project_id: str) -> Optional[Project]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_project(row)

    def list_projects(self, status: Optional[ProjectStatus] = None) -> List[Project]:
        """Return projects, most recently created first."""

        query = "SELECT * FROM projects"
        params: Tuple[object, ...] = ()
        if status is not None:
            query += " WHERE status = ?"
            params = (ProjectStatus(status).value,)
        query += " ORDER BY created_at DESC, rowid DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_project(row) for row in rows]

    def update_project(self, project_id: str, **fields: object) -> Optional[Project]:
        """Overwrite only the supplied fields; returns ``None`` if the project is missing."""

        unknown = set(fields) - _PROJECT_FIELDS
        if unknown:
            raise ValueError(f"Unknown project fields: {', '.join(sorted(unknown))}")

        assignments: Dict[str, object] = {}
        for key, value in fields.items():
            if key == "status":
                value = ProjectStatus(value).value  # type: ignore[arg-type]
            elif key == "deadline":
                value = _serialize_datetime(value)  # type: ignore[arg-type]
            elif key == "budget":
                value = float(value)  # type: ignore[arg-type]
                if value < 0:
                    raise ValidationError("Budget must not be negative")
            assignments[key] = value

        with self._connect() as conn:
            if assignments:
                assignments["updated_at"] = _serialize_datetime(_current_timestamp())
                columns = ", ".join(f"{column} = ?" for column in assignments)
                conn.execute(
                    f"UPDATE projects SET {columns} WHERE id = ?",
                    (*assignments.values(), project_id),
                )
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_project(row)

    def delete_project(self, project_id: str) -> Optional[Project]:
        """Delete a project and return its last stored value."""

        with self._connect() as conn:
            row = conn.execute("SELECT * FROM projects WHERE id = ?", (project_id,)).fetchone()
            if row is None:
                return None
            conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
        return self._row_to_project(row)

    def delete_all_projects(self) -> int:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM projects")
        return cursor.rowcount

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            name=row["name"],
            created_at=_parse_datetime(row["created_at"]),
            updated_at=_parse_datetime(row["updated_at"]),
        )

    def _row_to_project(self, row: sqlite3.Row) -> Project:
        return Project(
            id=row["id"],
            name=row["name"],
            status=ProjectStatus(row["status"]),
            deadline=_parse_datetime(row["deadline"]),
            assigned_team_member=row["assigned_team_member"],
            budget=float(row["budget"]),
            created_at=_parse_datetime(row["created_at"]),
            updated_at=_parse_datetime(row["updated_at"]),
        )


__all__ = ["Database", "resolve_database_path"]
