"""Domain models for the project tracker."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ProjectStatus(str, Enum):
    """Closed set of lifecycle states a project can be in."""

    ACTIVE = "ACTIVE"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class User:
    """Sanitized view of a user account; never carries the password hash."""

    id: str
    email: str
    name: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Project:
    """A tracked project as persisted by the project store."""

    id: str
    name: str
    status: ProjectStatus
    deadline: datetime
    assigned_team_member: str
    budget: float
    created_at: datetime
    updated_at: datetime


__all__ = ["Project", "ProjectStatus", "User"]
