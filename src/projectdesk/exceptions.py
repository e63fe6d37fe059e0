"""Custom exceptions for ProjectDesk."""

from __future__ import annotations


class ProjectDeskError(Exception):
    """Base exception for all ProjectDesk errors."""

    exit_code: int = 1
    default_hint: str | None = None

    def __init__(
        self,
        message: str,
        details: str | None = None,
        hint: str | None = None,
    ):
        self.message = message
        self.details = details
        self.hint = hint or self.default_hint
        super().__init__(message)


# Configuration errors (10-19)
class ConfigError(ProjectDeskError):
    """Configuration error."""

    exit_code = 10


class ConfigValidationError(ConfigError):
    """One or more required configuration items are missing or invalid."""

    exit_code = 11
    default_hint = "Fix every item listed above in the workspace tables, then re-run"

    def __init__(self, problems: list[str], hint: str | None = None):
        self.problems = list(problems)
        super().__init__(
            f"Configuration validation failed ({len(self.problems)} problem(s))",
            details="\n".join(f"- {p}" for p in self.problems),
            hint=hint,
        )


class WorkspaceNotFoundError(ConfigError):
    """No workspace found at the given location."""

    exit_code = 12
    default_hint = "Run 'projectdesk init' to create a workspace"


# Record errors (20-29)
class RecordError(ProjectDeskError):
    """Error related to a project record."""

    exit_code = 20


class RecordValidationError(RecordError):
    """A record is missing or has unresolvable required fields.

    Carries every failing field so the submitter can fix them in one pass.
    """

    exit_code = 21

    def __init__(self, problems: list[str], project_label: str | None = None):
        self.problems = list(problems)
        label = f" for {project_label}" if project_label else ""
        super().__init__(
            f"Validation failed{label}: " + "; ".join(self.problems),
            details="\n".join(f"- {p}" for p in self.problems),
        )


class TransitionError(RecordError):
    """Automation status change is outside the lifecycle graph."""

    exit_code = 22


class RecordNotFoundError(RecordError):
    """No record matches the given row or project id."""

    exit_code = 23


# Provider errors (30-39)
class ProviderError(ProjectDeskError):
    """A folder, file, calendar, mail or form provider call failed."""

    exit_code = 30


class TransientProviderError(ProviderError):
    """Temporary provider failure that is safe to retry."""

    exit_code = 31
    default_hint = "The provider may be temporarily unavailable; try again later"


class RateLimitError(TransientProviderError):
    """Provider rejected the call because of rate limiting."""

    exit_code = 32
    default_hint = "Wait a few minutes and try again"


class ResourceNotFoundError(ProviderError):
    """Referenced folder, file or event does not exist."""

    exit_code = 33


# Concurrency errors (40-49)
class LockTimeoutError(ProjectDeskError):
    """Could not acquire the workspace lock within the allowed wait."""

    exit_code = 40
    default_hint = "Another run is in progress; try again once it finishes"


# Identifier errors (50-59)
class IdAllocationError(ProjectDeskError):
    """Project id could not be allocated."""

    exit_code = 50
    default_hint = "Check 'District ID' and 'Next Serial' in the config table"


# Intake errors (60-69)
class IntakeError(ProjectDeskError):
    """Form submission could not be turned into a project record."""

    exit_code = 60

