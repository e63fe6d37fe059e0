"""Email templates stored as documents.

A template's first non-empty line is the subject and everything after it
is the body. Tokens are written ``{{TOKEN}}`` and rendered with Jinja2;
tokens without a value render empty.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from jinja2 import Environment, TemplateError

from projectdesk.exceptions import ConfigError
from projectdesk.providers.base import DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailTemplate:
    """Parsed template."""

    subject: str
    body: str


@dataclass(frozen=True)
class PreparedEmail:
    """Rendered subject and HTML body."""

    subject: str
    body: str


def parse_template(text: str) -> EmailTemplate:
    """Split template text into subject (first non-empty line) and body."""
    lines = (text or "").replace("\r\n", "\n").split("\n")
    for i, line in enumerate(lines):
        if line.strip():
            return EmailTemplate(line.strip(), "\n".join(lines[i + 1 :]).strip())
    return EmailTemplate("", "")


_URL_PATTERN = re.compile(r'(?<!href=")(https?://[^\s<]+)')


def text_to_html(text: str) -> str:
    """Convert newlines to ``<br>`` and link bare URLs; existing HTML is kept."""
    if not text:
        return ""
    html = text.replace("\n", "<br>")
    return _URL_PATTERN.sub(r'<a href="\1">\1</a>', html)


class TemplateLoader:
    """Loads, caches and renders email templates from a document store."""

    def __init__(self, documents: DocumentStore):
        self.documents = documents
        self._cache: dict[str, EmailTemplate] = {}
        self._env: Environment | None = None

    def _get_env(self) -> Environment:
        if self._env is None:
            self._env = Environment(autoescape=False, keep_trailing_newline=True)
        return self._env

    def load(self, template_id: str) -> EmailTemplate:
        """Get a parsed template, reading the document once per loader."""
        if template_id not in self._cache:
            text = self.documents.read_text(template_id)
            template = parse_template(text)
            if not template.subject:
                raise ConfigError(f"Email template {template_id} is empty")
            self._cache[template_id] = template
            logger.debug(f"Loaded email template {template_id}")
        return self._cache[template_id]

    def render_string(self, source: str, tokens: dict[str, Any]) -> str:
        try:
            return self._get_env().from_string(source).render(**tokens)
        except TemplateError as e:
            raise ConfigError(f"Email template could not be rendered: {e}") from e

    def prepare(self, template_id: str, tokens: dict[str, Any]) -> PreparedEmail:
        """Render a template's subject and body with token values."""
        template = self.load(template_id)
        return PreparedEmail(
            subject=self.render_string(template.subject, tokens).strip(),
            body=text_to_html(self.render_string(template.body, tokens)),
        )


DEFAULT_TEMPLATES = {
    "New Project": """New project assigned: {{PROJECT_TITLE}} ({{PROJECT_ID}})
Hello {{ASSIGNEE_NAME}},

You have been assigned a new project by {{REQUESTED_BY_NAME}}.

Project: {{PROJECT_TITLE}}
Project ID: {{PROJECT_ID}}
Category: {{CATEGORY}}
Deadline: {{DEADLINE}}

{{DESCRIPTION}}

Project folder: {{FOLDER_LINK}}
""",
    "Reminder": """Reminder: {{PROJECT_TITLE}} is due in {{DAYS_UNTIL_DUE}} days
Hello {{ASSIGNEE_NAME}},

This is a reminder that {{PROJECT_TITLE}} ({{PROJECT_ID}}) is due on {{DEADLINE}}.

Project folder: {{FOLDER_LINK}}
""",
    "Status Change": """Project status updates for {{DATE}}
Hello {{RECIPIENT_NAME}},

The following projects changed status:

{{STATUS_CHANGES_LIST}}
""",
    "Project Update": """Project updated: {{PROJECT_TITLE}} ({{PROJECT_ID}})
Hello {{RECIPIENT_NAME}},

The project {{PROJECT_TITLE}} has been updated.

{{CHANGES_SUMMARY}}

Deadline: {{DEADLINE}}
Assigned to: {{ASSIGNEE_NAME}}
Project folder: {{FOLDER_LINK}}
""",
    "Project Cancellation": """Project cancelled: {{PROJECT_TITLE}} ({{PROJECT_ID}})
Hello {{RECIPIENT_NAME}},

The project {{PROJECT_TITLE}} (due {{DEADLINE}}) has been cancelled.
""",
}
