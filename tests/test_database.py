from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from superbudget.database import Database, resolve_database_path
from superbudget.errors import ConflictError, ValidationError
from superbudget.models import ProjectStatus


DEADLINE = datetime(2025, 1, 1, tzinfo=timezone.utc)


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db_path = tmp_path / "superbudget.sqlite3"
    db = Database(db_path)
    db.initialize()
    return db


def _create_project(database: Database, name: str = "Launch", status: ProjectStatus = ProjectStatus.ACTIVE):
    return database.create_project(
        name=name,
        status=status,
        deadline=DEADLINE,
        assigned_team_member="Alice Johnson",
        budget=1000,
    )


def test_resolve_database_path_prefers_explicit_value(tmp_path: Path) -> None:
    explicit = tmp_path / "custom.sqlite3"
    assert resolve_database_path(str(explicit)) == explicit.resolve()
    assert resolve_database_path(None).name == "superbudget.sqlite3"


def test_initialize_is_idempotent(database: Database) -> None:
    database.initialize()
    assert database.count_users() == 0


def test_create_user_and_lookup_credentials(database: Database) -> None:
    user = database.create_user("owner@example.com", "Owner", "hashed-value")

    assert database.get_user(user.id) == user
    assert database.get_user_by_email("owner@example.com") == user
    stored_user, stored_hash = database.get_user_credentials("owner@example.com")
    assert stored_user == user
    assert stored_hash == "hashed-value"


def test_email_lookup_is_case_sensitive(database: Database) -> None:
    database.create_user("Owner@example.com", "Owner", "hashed-value")
    assert database.get_user_by_email("owner@example.com") is None


def test_duplicate_email_raises_conflict(database: Database) -> None:
    database.create_user("dup@example.com", "First", "hash-one")
    with pytest.raises(ConflictError):
        database.create_user("dup@example.com", "Second", "hash-two")
    assert database.count_users() == 1


def test_create_user_requires_hash(database: Database) -> None:
    with pytest.raises(ValueError):
        database.create_user("empty@example.com", "Empty", "")


def test_project_crud_round_trip(database: Database) -> None:
    created = _create_project(database)

    assert created.status is ProjectStatus.ACTIVE
    assert created.deadline == DEADLINE
    assert created.budget == 1000
    assert database.get_project(created.id) == created

    updated = database.update_project(created.id, budget=2500, status=ProjectStatus.ON_HOLD)
    assert updated is not None
    assert updated.budget == 2500
    assert updated.status is ProjectStatus.ON_HOLD
    assert updated.name == created.name
    assert updated.updated_at >= created.updated_at

    deleted = database.delete_project(created.id)
    assert deleted == updated
    assert database.get_project(created.id) is None
    assert database.delete_project(created.id) is None


def test_update_without_fields_leaves_project_untouched(database: Database) -> None:
    created = _create_project(database)
    assert database.update_project(created.id) == created


def test_update_missing_project_returns_none(database: Database) -> None:
    assert database.update_project("missing", name="Nope") is None


def test_update_rejects_unknown_fields(database: Database) -> None:
    created = _create_project(database)
    with pytest.raises(ValueError):
        database.update_project(created.id, created_at=DEADLINE)


def test_negative_budget_is_rejected(database: Database) -> None:
    created = _create_project(database)
    with pytest.raises(ValidationError):
        database.update_project(created.id, budget=-5)
    assert database.get_project(created.id) == created

    with pytest.raises(ValidationError):
        database.create_project(
            name="Broken",
            status=ProjectStatus.ACTIVE,
            deadline=DEADLINE,
            assigned_team_member="Bob",
            budget=-1,
        )


def test_list_projects_newest_first_with_status_filter(database: Database) -> None:
    first = _create_project(database, "First")
    second = _create_project(database, "Second", ProjectStatus.COMPLETED)
    third = _create_project(database, "Third")

    assert [project.id for project in database.list_projects()] == [third.id, second.id, first.id]
    active = database.list_projects(ProjectStatus.ACTIVE)
    assert [project.id for project in active] == [third.id, first.id]
    assert database.list_projects(ProjectStatus.ON_HOLD) == []


def test_delete_all_projects(database: Database) -> None:
    _create_project(database)
    _create_project(database)
    assert database.delete_all_projects() == 2
    assert database.list_projects() == []
