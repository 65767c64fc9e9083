"""Application factory wired from the process environment."""
from __future__ import annotations

import os
from typing import Optional

from fastapi import FastAPI

from .api import create_app
from .config import Settings, load_settings
from .database import Database, resolve_database_path
from .notifications import SMTPNotifier


def create_application(
    *,
    database_path: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Create the ASGI application used by ``main.py serve``."""

    if settings is None:
        settings = load_settings()

    if database_path is None and settings.database_path is not None:
        database_path = str(settings.database_path)
    db_path = resolve_database_path(database_path or os.getenv("SUPERBUDGET_DB_PATH"))
    database = Database(db_path)
    database.initialize()

    return create_app(
        database=database,
        settings=settings,
        notifier=SMTPNotifier(settings.mail),
    )


__all__ = ["create_application"]
