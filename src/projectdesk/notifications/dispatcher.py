"""Notification dispatch: project emails, digests and admin errors."""

from __future__ import annotations

import html
import logging
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from projectdesk.config.district import DistrictConfig
from projectdesk.constants import ERROR_SUBJECT_PREFIX
from projectdesk.directory import Directory, is_valid_email
from projectdesk.exceptions import ProjectDeskError
from projectdesk.notifications.templates import TemplateLoader, text_to_html
from projectdesk.providers.base import FolderStore, MailSender
from projectdesk.store.record import ProjectRecord

logger = logging.getLogger(__name__)


def format_date(value: date | None) -> str:
    """Long US format, e.g. ``October 26, 2026``."""
    if value is None:
        return ""
    return f"{value:%B} {value.day}, {value.year}"


class NotificationDispatcher:
    """Builds and sends every email the system produces.

    Args:
        config: District configuration (template ids, admin addresses).
        directory: Used to resolve recipients and greeting names.
        mail: Outgoing mail provider.
        templates: Template loader with a per-run cache.
        folders: Used to build folder links.
        now: Clock used to timestamp admin errors.
    """

    def __init__(
        self,
        config: DistrictConfig,
        directory: Directory,
        mail: MailSender,
        templates: TemplateLoader,
        folders: FolderStore,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.directory = directory
        self.mail = mail
        self.templates = templates
        self.folders = folders
        self.now = now

    # -- helpers ----------------------------------------------------------

    def folder_url(self, record: ProjectRecord) -> str:
        return self.folders.url(record.folder_id) if record.folder_id else ""

    def token_values(self, record: ProjectRecord, **extras: Any) -> dict[str, Any]:
        """Token map for a record; ``extras`` override the defaults."""
        names = [self.directory.name_for(a) for a in record.assignees]
        tokens: dict[str, Any] = {
            "PROJECT_TITLE": record.name,
            "PROJECT_ID": record.project_id,
            "ASSIGNEE_NAME": ", ".join(names),
            "REQUESTED_BY_NAME": self.directory.name_for(record.requested_by),
            "CATEGORY": record.category,
            "DEADLINE": format_date(record.due_date),
            "DESCRIPTION": record.description,
            "FOLDER_LINK": self.folder_url(record),
            "NEW_STATUS": record.project_status,
        }
        tokens.update(extras)
        return tokens

    def assignee_addresses(self, record: ProjectRecord) -> list[str]:
        return self.directory.resolve_all(record.assignees)

    def recipients(self, record: ProjectRecord) -> list[str]:
        """Assignees plus requester, de-duplicated."""
        addresses = self.assignee_addresses(record)
        requester = self.directory.resolve_to_address(record.requested_by)
        if requester and requester not in addresses:
            addresses.append(requester)
        return addresses

    def _greeting_name(self, addresses: list[str]) -> str:
        if len(addresses) == 1:
            return self.directory.name_for(addresses[0])
        return "All"

    def _send_to_assignees(
        self,
        record: ProjectRecord,
        template_id: str,
        kind: str,
        greeting_token: str = "RECIPIENT_NAME",
        **extras: Any,
    ) -> bool:
        if not template_id:
            logger.warning(f"{kind} email template not configured; skipping {record.label()}")
            return False
        addresses = self.assignee_addresses(record)
        if not addresses:
            logger.warning(f"No assignee addresses for {record.label()}; {kind} email not sent")
            return False
        extras[greeting_token] = self._greeting_name(addresses)
        tokens = self.token_values(record, **extras)
        prepared = self.templates.prepare(template_id, tokens)
        requester = self.directory.resolve_to_address(record.requested_by)
        cc = [requester] if requester and requester not in addresses else None
        self.mail.send(addresses, prepared.subject, prepared.body, cc=cc)
        return True

    # -- project notifications --------------------------------------------

    def send_new_project(self, record: ProjectRecord) -> bool:
        """Send the assignment email to all assignees, CC'ing the requester."""
        return self._send_to_assignees(
            record, self.config.template_new_project, "New Project", greeting_token="ASSIGNEE_NAME"
        )

    def send_update(self, record: ProjectRecord, change_lines: list[str] | None = None) -> bool:
        """Send the update email carrying what changed."""
        summary = "\n".join(change_lines) if change_lines else "Project details were updated."
        return self._send_to_assignees(
            record, self.config.template_update, "Project Update", CHANGES_SUMMARY=summary
        )

    def send_cancellation(self, record: ProjectRecord) -> bool:
        return self._send_to_assignees(
            record, self.config.template_cancellation, "Project Cancellation"
        )

    # -- digests ----------------------------------------------------------

    def send_reminder_digest(self, address: str, reminders: list[tuple[ProjectRecord, int]]) -> bool:
        """Send one reminder email covering every due project of an assignee.

        A single reminder uses the reminder template; several are listed in
        a built-in digest.
        """
        if not reminders:
            return False
        template_id = self.config.template_reminder
        if not template_id:
            logger.warning("Reminder email template not configured; skipping reminders")
            return False
        name = self.directory.name_for(address)

        if len(reminders) == 1:
            record, days = reminders[0]
            tokens = self.token_values(record, ASSIGNEE_NAME=name, DAYS_UNTIL_DUE=str(days))
            prepared = self.templates.prepare(template_id, tokens)
            self.mail.send([address], prepared.subject, prepared.body)
            return True

        items = []
        for record, days in reminders:
            items.append(
                f"&bull; <strong>{html.escape(record.name)}</strong> - "
                f"Due in {days} days ({format_date(record.due_date)})<br>"
                f"&nbsp;&nbsp;Project ID: {record.project_id} | "
                f'<a href="{self.folder_url(record)}">View Project Folder</a>'
            )
        subject = f"Reminder: {len(reminders)} projects with upcoming deadlines"
        body = (
            f"Hello {name},<br><br>"
            "This is a reminder that the following projects are approaching their deadlines:<br><br>"
            + "<br><br>".join(items)
            + "<br><br>Please ensure all work is completed and submitted by the deadlines.<br><br>Thank you."
        )
        self.mail.send([address], subject, body)
        return True

    def send_status_change_digest(
        self,
        address: str,
        changes: list[tuple[ProjectRecord, str, str]],
        on: date,
    ) -> bool:
        """Send one digest of status changes to a recipient."""
        if not changes:
            return False
        template_id = self.config.template_status_change
        if not template_id:
            logger.warning("Status Change email template not configured; skipping digest")
            return False
        items = []
        for record, old_status, new_status in changes:
            items.append(
                f"&bull; <strong>{html.escape(record.name)}</strong> - Status changed from "
                f"{html.escape(old_status or 'none')} to: <strong>{html.escape(new_status)}</strong><br>"
                f"&nbsp;&nbsp;Project ID: {record.project_id} | "
                f'<a href="{self.folder_url(record)}">View Project Folder</a>'
            )
        tokens = {
            "RECIPIENT_NAME": self.directory.name_for(address),
            "DATE": format_date(on),
            "STATUS_CHANGES_LIST": "<br><br>".join(items),
        }
        prepared = self.templates.prepare(template_id, tokens)
        self.mail.send([address], prepared.subject, prepared.body)
        return True

    # -- admin ------------------------------------------------------------

    def send_error(self, subject: str, message: str, cc: str | None = None) -> bool:
        """Notify the configured admins. Never raises.

        Args:
            subject: Short subject, prefixed with the error tag.
            message: Full diagnostic text.
            cc: Optional address to copy (used only when well-formed).
        """
        admins = self.config.error_email_addresses
        if not admins:
            logger.warning(f"No admin addresses configured; error not emailed: {subject}")
            return False
        body = (
            "An error occurred in the Teaming Tool automation:\n\n"
            f"{message}\n\n"
            f"Time: {self.now():%Y-%m-%d %H:%M:%S}"
        )
        cc_list = [cc.strip().lower()] if cc and is_valid_email(cc) else None
        try:
            self.mail.send(admins, f"{ERROR_SUBJECT_PREFIX} {subject}", text_to_html(body), cc=cc_list)
        except (ProjectDeskError, OSError) as e:
            logger.error(f"Could not send admin error notification '{subject}': {e}")
            return False
        return True
