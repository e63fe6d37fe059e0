"""Email templates and notification dispatch."""

from projectdesk.notifications.dispatcher import NotificationDispatcher, format_date
from projectdesk.notifications.templates import (
    DEFAULT_TEMPLATES,
    EmailTemplate,
    TemplateLoader,
    parse_template,
    text_to_html,
)

__all__ = [
    "DEFAULT_TEMPLATES",
    "EmailTemplate",
    "NotificationDispatcher",
    "TemplateLoader",
    "format_date",
    "parse_template",
    "text_to_html",
]
