"""Project lifecycle tests with a recording notifier in place of SMTP."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Tuple

import anyio
import pytest

from superbudget.database import Database
from superbudget.errors import NotFoundError, ValidationError
from superbudget.models import ProjectStatus
from superbudget.projects import NewProject, ProjectService, normalize_deadline


class RecordingNotifier:
    def __init__(self, *, fail: bool = False) -> None:
        self.calls: List[Tuple[str, str, str, float]] = []
        self.fail = fail

    async def notify_assignment(self, address: str, project_name: str, deadline: str, budget: float) -> bool:
        self.calls.append((address, project_name, deadline, budget))
        if self.fail:
            raise ConnectionError("transport unavailable")
        return True


@pytest.fixture()
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "projects.sqlite3")
    db.initialize()
    return db


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def service(database: Database, notifier: RecordingNotifier) -> ProjectService:
    return ProjectService(database, notifier)


def _launch(assignee: str = "team@x.com", **overrides) -> NewProject:
    values = {
        "name": "Launch",
        "status": ProjectStatus.ACTIVE,
        "deadline": "2025-01-01",
        "assigned_team_member": assignee,
        "budget": 1000,
    }
    values.update(overrides)
    return NewProject(**values)


def test_create_with_email_assignee_notifies_once(service: ProjectService, notifier: RecordingNotifier) -> None:
    project = anyio.run(service.create, _launch())

    assert project.id
    assert project.status is ProjectStatus.ACTIVE
    assert project.budget == 1000
    assert project.deadline == datetime(2025, 1, 1, tzinfo=timezone.utc)

    assert len(notifier.calls) == 1
    address, name, deadline, budget = notifier.calls[0]
    assert (address, name, budget) == ("team@x.com", "Launch", 1000)
    assert deadline.startswith("2025-01-01T")


@pytest.mark.parametrize("assignee", ["Alice Johnson", "alice@localhost", "a b@x.com", "ünï@x.com"])
def test_create_with_non_email_assignee_does_not_notify(
    service: ProjectService, notifier: RecordingNotifier, assignee: str
) -> None:
    anyio.run(service.create, _launch(assignee))
    assert notifier.calls == []


def test_notifier_failure_does_not_affect_create(database: Database) -> None:
    service = ProjectService(database, RecordingNotifier(fail=True))

    project = anyio.run(service.create, _launch())
    assert database.get_project(project.id) == project


def test_create_validates_input(service: ProjectService, database: Database) -> None:
    with pytest.raises(ValidationError):
        anyio.run(service.create, _launch(budget=-1))
    with pytest.raises(ValidationError):
        anyio.run(service.create, _launch(name="  "))
    with pytest.raises(ValidationError):
        anyio.run(service.create, _launch(status="ARCHIVED"))
    with pytest.raises(ValidationError):
        anyio.run(service.create, _launch(deadline="next tuesday"))
    assert database.list_projects() == []


def test_round_trip_and_idempotent_reads(service: ProjectService) -> None:
    created = anyio.run(service.create, _launch())

    first = anyio.run(service.find_one, created.id)
    second = anyio.run(service.find_one, created.id)
    assert first == created
    assert first == second


def test_find_all_orders_newest_first_and_filters(service: ProjectService) -> None:
    older = anyio.run(service.create, _launch("Bob", name="Older"))
    held = anyio.run(service.create, _launch("Bob", name="Held", status=ProjectStatus.ON_HOLD))
    newer = anyio.run(service.create, _launch("Bob", name="Newer"))

    everything = anyio.run(service.find_all)
    assert [project.id for project in everything] == [newer.id, held.id, older.id]

    active = anyio.run(service.find_all, ProjectStatus.ACTIVE)
    assert [project.id for project in active] == [newer.id, older.id]


def test_update_to_new_email_notifies_with_updated_values(
    service: ProjectService, notifier: RecordingNotifier
) -> None:
    created = anyio.run(service.create, _launch("Alice Johnson"))

    updated = anyio.run(
        service.update,
        created.id,
        {"assigned_team_member": "lead@x.com", "name": "Relaunch", "budget": 2500, "deadline": "2025-03-15"},
    )

    assert updated.name == "Relaunch"
    assert updated.budget == 2500
    assert len(notifier.calls) == 1
    address, name, deadline, budget = notifier.calls[0]
    assert (address, name, budget) == ("lead@x.com", "Relaunch", 2500)
    assert deadline.startswith("2025-03-15T")


def test_update_with_same_email_does_not_notify(service: ProjectService, notifier: RecordingNotifier) -> None:
    created = anyio.run(service.create, _launch())
    notifier.calls.clear()

    anyio.run(service.update, created.id, {"assigned_team_member": "team@x.com"})
    anyio.run(service.update, created.id, {"budget": 5000, "deadline": "2026-01-01"})
    assert notifier.calls == []


def test_update_to_non_email_does_not_notify(service: ProjectService, notifier: RecordingNotifier) -> None:
    created = anyio.run(service.create, _launch())
    notifier.calls.clear()

    updated = anyio.run(service.update, created.id, {"assigned_team_member": "Grace Lee"})
    assert updated.assigned_team_member == "Grace Lee"
    assert notifier.calls == []


def test_partial_update_leaves_other_fields(service: ProjectService) -> None:
    created = anyio.run(service.create, _launch())

    updated = anyio.run(service.update, created.id, {"status": "COMPLETED"})
    assert updated.status is ProjectStatus.COMPLETED
    assert updated.name == created.name
    assert updated.deadline == created.deadline
    assert updated.budget == created.budget
    assert updated.created_at == created.created_at


def test_update_rejects_negative_budget_without_mutation(service: ProjectService) -> None:
    created = anyio.run(service.create, _launch())

    with pytest.raises(ValidationError):
        anyio.run(service.update, created.id, {"budget": -5})
    assert anyio.run(service.find_one, created.id) == created


def test_update_rejects_identifier_fields(service: ProjectService) -> None:
    created = anyio.run(service.create, _launch())
    with pytest.raises(ValidationError):
        anyio.run(service.update, created.id, {"id": "other"})


def test_remove_returns_last_value(service: ProjectService, database: Database) -> None:
    created = anyio.run(service.create, _launch())

    removed = anyio.run(service.remove, created.id)
    assert removed == created
    assert database.get_project(created.id) is None


def test_missing_project_raises_not_found_without_mutation(
    service: ProjectService, database: Database, notifier: RecordingNotifier
) -> None:
    existing = anyio.run(service.create, _launch("Bob"))
    missing = "99999999-9999-9999-9999-999999999999"

    with pytest.raises(NotFoundError):
        anyio.run(service.find_one, missing)
    with pytest.raises(NotFoundError):
        anyio.run(service.update, missing, {"assigned_team_member": "new@x.com"})
    with pytest.raises(NotFoundError):
        anyio.run(service.remove, missing)

    assert database.list_projects() == [existing]
    assert notifier.calls == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2025-01-01", datetime(2025, 1, 1, tzinfo=timezone.utc)),
        (date(2025, 1, 1), datetime(2025, 1, 1, tzinfo=timezone.utc)),
        ("2025-01-01T10:30:00Z", datetime(2025, 1, 1, 10, 30, tzinfo=timezone.utc)),
        ("2025-01-01T12:00:00+02:00", datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)),
        (datetime(2025, 1, 1, 8, 0), datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)),
    ],
)
def test_normalize_deadline(value, expected) -> None:
    assert normalize_deadline(value) == expected


@pytest.mark.parametrize("value", ["", "2025-13-01", "tomorrow", 20250101])
def test_normalize_deadline_rejects_garbage(value) -> None:
    with pytest.raises(ValidationError):
        normalize_deadline(value)


@pytest.mark.parametrize("budget", [float("inf"), float("-inf"), float("nan"), "1e400"])
def test_non_finite_budget_is_rejected(service: ProjectService, database: Database, budget) -> None:
    with pytest.raises(ValidationError):
        anyio.run(service.create, _launch(budget=budget))
    assert database.list_projects() == []

    created = anyio.run(service.create, _launch())
    with pytest.raises(ValidationError):
        anyio.run(service.update, created.id, {"budget": budget})
    assert anyio.run(service.find_one, created.id).budget == 1000


def test_text_fields_are_stripped_before_storing_and_notifying(
    service: ProjectService, notifier: RecordingNotifier
) -> None:
    created = anyio.run(service.create, _launch("  team@x.com  ", name="  Launch  "))

    assert created.name == "Launch"
    assert created.assigned_team_member == "team@x.com"
    assert notifier.calls[0][0] == "team@x.com"

    anyio.run(service.update, created.id, {"assigned_team_member": " team@x.com "})
    assert len(notifier.calls) == 1
