"""Best-effort email notifications for project assignments."""
from __future__ import annotations

import logging
import re
import smtplib
import ssl
import threading
from datetime import datetime
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Callable, Optional, Protocol

import anyio

from .config import MailSettings

logger = logging.getLogger("superbudget.notifications")

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def is_email_address(value: Optional[str]) -> bool:
    """Return ``True`` when ``value`` looks like ``local@domain.tld``."""

    if not value or not value.isascii():
        return False
    return _EMAIL_PATTERN.match(value) is not None


class Notifier(Protocol):
    async def notify_assignment(
        self,
        address: str,
        project_name: str,
        deadline: str,
        budget: float,
    ) -> bool:
        ...


def format_budget(budget: float) -> str:
    return f"${budget:,.2f}"


def format_deadline(deadline: str) -> str:
    parsed = datetime.fromisoformat(deadline)
    return f"{parsed.strftime('%B')} {parsed.day}, {parsed.year}"


def build_assignment_message(
    settings: MailSettings,
    address: str,
    project_name: str,
    deadline: str,
    budget: float,
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = settings.sender
    message["To"] = address
    if settings.reply_to:
        message["Reply-To"] = settings.reply_to
    message["Subject"] = f"You've been assigned to a new project: {project_name}"
    message["Message-ID"] = make_msgid(domain=settings.sender.rpartition("@")[2] or None)

    formatted_deadline = format_deadline(deadline)
    formatted_budget = format_budget(budget)
    message.set_content(
        "Hello,\n\n"
        "You have been assigned to a new project:\n\n"
        f"Project Name: {project_name}\n"
        f"Deadline: {formatted_deadline}\n"
        f"Budget: {formatted_budget}\n\n"
        "Please log in to the dashboard to view more details and start working on this project.\n\n"
        "Best regards,\nSuper Budget Team\n"
    )
    message.add_alternative(
        f"""\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #4F46E5;">Project Assignment Notification</h2>
  <p>Hello,</p>
  <p>You have been assigned to a new project:</p>
  <div style="background-color: #F3F4F6; padding: 20px; border-radius: 8px; margin: 20px 0;">
    <p><strong>Project Name:</strong> {project_name}</p>
    <p><strong>Deadline:</strong> {formatted_deadline}</p>
    <p><strong>Budget:</strong> {formatted_budget}</p>
  </div>
  <p>Please log in to the dashboard to view more details and start working on this project.</p>
  <p>Best regards,<br>Super Budget Team</p>
</div>
""",
        subtype="html",
    )
    return message


class SMTPNotifier:
    """Deliver assignment emails over SMTP without ever raising to the caller.

    The connection is opened lazily, reused between messages and dropped after
    any failure so the next message reconnects. A reused connection that the
    server has closed is replaced once before the message is given up.
    """

    def __init__(
        self,
        settings: MailSettings,
        *,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
    ) -> None:
        self._settings = settings
        self._smtp_factory = smtp_factory
        self._connection: Optional[smtplib.SMTP] = None
        self._lock = threading.Lock()
        logger.info("Email service configuration: %s", settings.describe())

    @property
    def settings(self) -> MailSettings:
        return self._settings

    async def verify(self) -> bool:
        """Check that the SMTP server accepts our credentials."""

        if not self._settings.configured:
            logger.warning("SMTP credentials not configured - emails will not be sent")
            return False
        try:
            await anyio.to_thread.run_sync(self._ensure_connection)
        except Exception:
            logger.exception("SMTP connection verification failed")
            return False
        logger.info("SMTP server connection verified successfully")
        return True

    async def notify_assignment(
        self,
        address: str,
        project_name: str,
        deadline: str,
        budget: float,
    ) -> bool:
        if not self._settings.configured:
            logger.warning(
                "Email would be sent to %s for project %s (SMTP not configured)",
                address,
                project_name,
            )
            return False

        try:
            message = build_assignment_message(self._settings, address, project_name, deadline, budget)
            await anyio.to_thread.run_sync(self._send, message)
        except Exception:
            logger.exception("Error sending assignment email to %s for project %s", address, project_name)
            return False

        logger.info(
            "Email sent to %s for project %s (message id %s)",
            address,
            project_name,
            message["Message-ID"],
        )
        return True

    def close(self) -> None:
        with self._lock:
            self._discard()

    def _send(self, message: EmailMessage) -> None:
        with self._lock:
            reused = self._connection is not None
            connection = self._open_locked()
            try:
                connection.send_message(message)
                return
            except smtplib.SMTPServerDisconnected:
                self._discard()
                if not reused:
                    raise
                logger.info("SMTP server closed the idle connection, reconnecting")
            except Exception:
                self._discard()
                raise

            connection = self._open_locked()
            try:
                connection.send_message(message)
            except Exception:
                self._discard()
                raise

    def _ensure_connection(self) -> None:
        with self._lock:
            self._open_locked()

    def _open_locked(self) -> smtplib.SMTP:
        if self._connection is not None:
            return self._connection

        settings = self._settings
        connection = self._smtp_factory(settings.host, settings.port, timeout=settings.timeout)
        try:
            connection.ehlo()
            if settings.use_starttls:
                connection.starttls(context=ssl.create_default_context())
                connection.ehlo()
            connection.login(settings.username, settings.password)
        except Exception:
            connection.close()
            raise
        self._connection = connection
        return connection

    def _discard(self) -> None:
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            connection.quit()
        except (smtplib.SMTPException, OSError):
            connection.close()


__all__ = [
    "Notifier",
    "SMTPNotifier",
    "build_assignment_message",
    "format_budget",
    "format_deadline",
    "is_email_address",
]
