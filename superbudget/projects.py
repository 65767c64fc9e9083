"""Project lifecycle orchestration."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Dict, List, Mapping, Optional, Union

from .database import Database
from .errors import NotFoundError, ValidationError
from .models import Project, ProjectStatus
from .notifications import Notifier, is_email_address

logger = logging.getLogger("superbudget.projects")

DeadlineInput = Union[str, date, datetime]


def normalize_deadline(value: DeadlineInput) -> datetime:
    """Coerce a calendar date or timestamp into an aware UTC datetime.

    Bare dates map to midnight UTC.
    """

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return datetime.combine(date.fromisoformat(text), time.min, tzinfo=timezone.utc)
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValidationError(f"Invalid deadline: {value!r}") from exc
    else:
        raise ValidationError(f"Invalid deadline: {value!r}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class NewProject:
    name: str
    status: ProjectStatus
    deadline: DeadlineInput
    assigned_team_member: str
    budget: float


_UPDATABLE_FIELDS = ("name", "status", "deadline", "assigned_team_member", "budget")


def _validate_budget(value: object) -> float:
    try:
        budget = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValidationError("Budget must be a number") from exc
    if not math.isfinite(budget):
        raise ValidationError("Budget must be a finite number")
    if budget < 0:
        raise ValidationError("Budget must not be negative")
    return budget


def _validate_text(value: object, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must not be empty")
    return value.strip()


def _validate_status(value: object) -> ProjectStatus:
    try:
        return ProjectStatus(value)
    except ValueError as exc:
        raise ValidationError(f"Unknown project status: {value!r}") from exc


class ProjectService:
    """CRUD over projects plus assignment notifications.

    Every read goes back to the store; nothing is cached here.
    """

    def __init__(self, database: Database, notifier: Notifier) -> None:
        self._database = database
        self._notifier = notifier

    async def create(self, data: NewProject) -> Project:
        project = self._database.create_project(
            name=_validate_text(data.name, "name"),
            status=_validate_status(data.status),
            deadline=normalize_deadline(data.deadline),
            assigned_team_member=_validate_text(data.assigned_team_member, "assigned_team_member"),
            budget=_validate_budget(data.budget),
        )
        logger.info("Created project %s", project.id)

        if is_email_address(project.assigned_team_member):
            await self._notify(project.assigned_team_member, project)
        return project

    async def find_all(self, status: Optional[ProjectStatus] = None) -> List[Project]:
        if status is not None:
            status = _validate_status(status)
        return self._database.list_projects(status)

    async def find_one(self, project_id: str) -> Project:
        project = self._database.get_project(project_id)
        if project is None:
            raise NotFoundError(f"Project with ID {project_id} not found")
        return project

    async def update(self, project_id: str, changes: Mapping[str, object]) -> Project:
        """Apply a partial update; only keys present in ``changes`` are written."""

        existing = await self.find_one(project_id)

        fields: Dict[str, object] = {}
        for key, value in changes.items():
            if key not in _UPDATABLE_FIELDS:
                raise ValidationError(f"Field {key!r} cannot be updated")
            if key == "deadline":
                value = normalize_deadline(value)  # type: ignore[arg-type]
            elif key == "status":
                value = _validate_status(value)
            elif key == "budget":
                value = _validate_budget(value)
            else:
                value = _validate_text(value, key)
            fields[key] = value

        updated = self._database.update_project(project_id, **fields)
        if updated is None:
            raise NotFoundError(f"Project with ID {project_id} not found")
        logger.info("Updated project %s (%s)", project_id, ", ".join(sorted(fields)) or "no changes")

        # Only a changed assignee triggers a notification.
        new_assignee = fields.get("assigned_team_member")
        if (
            isinstance(new_assignee, str)
            and new_assignee != existing.assigned_team_member
            and is_email_address(new_assignee)
        ):
            await self._notify(new_assignee, updated)
        return updated

    async def remove(self, project_id: str) -> Project:
        await self.find_one(project_id)
        deleted = self._database.delete_project(project_id)
        if deleted is None:
            raise NotFoundError(f"Project with ID {project_id} not found")
        logger.info("Deleted project %s", project_id)
        return deleted

    async def _notify(self, address: str, project: Project) -> None:
        try:
            delivered = await self._notifier.notify_assignment(
                address,
                project.name,
                project.deadline.isoformat(),
                project.budget,
            )
        except Exception:
            logger.exception("Notifier raised while handling project %s", project.id)
            return
        if not delivered:
            logger.warning("Assignment notification for project %s was not delivered", project.id)


__all__ = ["NewProject", "ProjectService", "normalize_deadline"]
