"""Provider interfaces, local implementations and the provider bundle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from projectdesk.providers.base import (
    CalendarEvent,
    CalendarProvider,
    DocumentStore,
    FolderStore,
    FormProvider,
    FormSubmission,
    Grant,
    MailSender,
)
from projectdesk.providers.local import LocalCalendar, LocalDrive, LocalForm
from projectdesk.providers.mail import OutboxMailSender, SmtpMailSender
from projectdesk.providers.retrying import RetryingProvider
from projectdesk.retry import RetryPolicy

if TYPE_CHECKING:
    from projectdesk.config.settings import Settings
    from projectdesk.workspace import Workspace


@dataclass
class Providers:
    """The external collaborators handed to the core for one invocation."""

    folders: FolderStore
    documents: DocumentStore
    calendar: CalendarProvider
    mail: MailSender
    form: FormProvider


def build_mail_sender(workspace: Workspace, settings: Settings) -> MailSender:
    mail = settings.mail
    if mail.backend == "smtp" and mail.smtp_host:
        return SmtpMailSender(
            host=mail.smtp_host,
            port=mail.smtp_port,
            use_tls=mail.smtp_use_tls,
            username=mail.smtp_username,
            password=mail.smtp_password,
            sender=mail.sender_address,
            sender_name=mail.sender_name,
        )
    return OutboxMailSender(workspace.outbox_dir, mail.sender_address, mail.sender_name)


def build_providers(workspace: Workspace, settings: Settings, retry: bool = True) -> Providers:
    """Build the workspace-local providers, wrapped in the retry policy."""
    drive = LocalDrive(workspace.drive_dir, settings.owner_address)
    providers = Providers(
        folders=drive,
        documents=drive,
        calendar=LocalCalendar(workspace.calendar_path, settings.owner_address),
        mail=build_mail_sender(workspace, settings),
        form=LocalForm(workspace.form_path),
    )
    if not retry:
        return providers
    policy = RetryPolicy(
        attempts=settings.retry.attempts,
        base_delay_ms=settings.retry.base_delay_ms,
        max_delay_ms=settings.retry.max_delay_ms,
    )
    return Providers(
        folders=RetryingProvider(providers.folders, policy),
        documents=RetryingProvider(providers.documents, policy),
        calendar=RetryingProvider(providers.calendar, policy),
        mail=RetryingProvider(providers.mail, policy),
        form=providers.form,
    )


__all__ = [
    "CalendarEvent",
    "CalendarProvider",
    "DocumentStore",
    "FolderStore",
    "FormProvider",
    "FormSubmission",
    "Grant",
    "LocalCalendar",
    "LocalDrive",
    "LocalForm",
    "MailSender",
    "OutboxMailSender",
    "Providers",
    "RetryingProvider",
    "SmtpMailSender",
    "build_providers",
]
