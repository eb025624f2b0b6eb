"""Admin notification for newly filed reports."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from html import escape

from spectr.core.settings import settings
from spectr.models import Report, User

logger = logging.getLogger(__name__)


class ReportNotifier:
    """Emails the administrator about a report when SMTP is configured.

    Notification is best effort: the report is already stored when this runs,
    so failures are logged and never propagate.
    """

    def __init__(
        self,
        *,
        host: str | None,
        port: int,
        username: str | None,
        password: str | None,
        admin_email: str | None,
        use_tls: bool = True,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.admin_email = admin_email
        self.use_tls = use_tls

    @property
    def enabled(self) -> bool:
        return bool(self.host and self.admin_email)

    def build_message(self, report: Report, reporter: User) -> EmailMessage:
        """Compose the notification email."""
        message = EmailMessage()
        message["Subject"] = f"New report #{report.id} in {settings.app_name}"
        message["From"] = self.admin_email
        message["To"] = self.admin_email
        lines = [
            f"From: {reporter.display_name} ({reporter.email or reporter.id})",
            f"Reported user: {report.reported_user_id}",
            f"Chat: {report.chat_id if report.chat_id is not None else '-'}",
            f"Reason: {report.reason}",
            f"Time: {report.created_at.isoformat()}",
        ]
        message.set_content("\n".join(lines))
        message.add_alternative(
            "<h2>New report</h2>" + "".join(f"<p>{escape(line)}</p>" for line in lines),
            subtype="html",
        )
        return message

    def notify(self, report: Report, reporter: User) -> bool:
        """Send the notification; returns True if an email went out."""
        if not self.enabled:
            logger.info(
                "Report %s filed by %s against %s (email notification disabled)",
                report.id,
                reporter.id,
                report.reported_user_id,
            )
            return False

        message = self.build_message(report, reporter)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to email report %s: %s", report.id, exc)
            return False
        logger.info("Report %s emailed to admin", report.id)
        return True


def get_report_notifier() -> ReportNotifier:
    """Return a notifier configured from settings."""
    return ReportNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        admin_email=settings.admin_email,
        use_tls=settings.smtp_use_tls,
    )
