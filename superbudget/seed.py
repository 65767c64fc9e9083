"""Demo data for populating a fresh database."""
from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

from .database import Database
from .models import ProjectStatus
from .projects import NewProject

logger = logging.getLogger("superbudget.seed")

TEAM_MEMBERS = (
    "Alice Johnson",
    "Bob Smith",
    "Charlie Brown",
    "Diana Prince",
    "Eve Williams",
    "Frank Miller",
    "Grace Lee",
    "Henry Davis",
)

PROJECT_NAMES = (
    "Website Redesign",
    "Mobile App Development",
    "API Integration",
    "Database Migration",
    "Cloud Infrastructure",
    "Security Audit",
    "Performance Optimization",
    "Feature Enhancement",
    "Bug Fix Sprint",
    "UI/UX Overhaul",
    "Payment System",
    "Analytics Dashboard",
    "Email Campaign",
    "Content Management",
    "E-commerce Platform",
    "Customer Portal",
    "Admin Dashboard",
    "Reporting System",
    "Notification Service",
    "Authentication System",
    "Data Export Tool",
    "Search Functionality",
    "Recommendation Engine",
    "Social Media Integration",
    "Video Streaming",
    "Documentation Portal",
    "Testing Framework",
    "CI/CD Pipeline",
    "Monitoring System",
    "Backup Solution",
)

DEFAULT_PROJECT_COUNT = 25
_PAST_WINDOW = timedelta(days=180)
_FUTURE_WINDOW = timedelta(days=365)


def _random_between(rng: random.Random, start: datetime, end: datetime) -> datetime:
    return start + (end - start) * rng.random()


def generate_demo_projects(
    count: int = DEFAULT_PROJECT_COUNT,
    *,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Iterator[NewProject]:
    """Yield ``count`` random projects.

    Completed projects get a deadline in the past six months; everything else
    is due within the next year.
    """

    if count < 0:
        raise ValueError("count must not be negative")
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    statuses = list(ProjectStatus)

    for _ in range(count):
        status = rng.choice(statuses)
        if status is ProjectStatus.COMPLETED:
            deadline = _random_between(rng, now - _PAST_WINDOW, now)
        else:
            deadline = _random_between(rng, now, now + _FUTURE_WINDOW)
        yield NewProject(
            name=rng.choice(PROJECT_NAMES),
            status=status,
            deadline=deadline,
            assigned_team_member=rng.choice(TEAM_MEMBERS),
            budget=float(rng.randrange(5000, 105000)),
        )


def seed_projects(
    database: Database,
    count: int = DEFAULT_PROJECT_COUNT,
    *,
    rng: Optional[random.Random] = None,
) -> int:
    """Replace all projects with freshly generated demo data."""

    removed = database.delete_all_projects()
    logger.info("Cleared %s existing projects", removed)

    created = 0
    for project in generate_demo_projects(count, rng=rng):
        database.create_project(
            name=project.name,
            status=project.status,
            deadline=project.deadline,  # type: ignore[arg-type]
            assigned_team_member=project.assigned_team_member,
            budget=project.budget,
        )
        created += 1
    logger.info("Created %s projects", created)
    return created


__all__ = [
    "DEFAULT_PROJECT_COUNT",
    "PROJECT_NAMES",
    "TEAM_MEMBERS",
    "generate_demo_projects",
    "seed_projects",
]
