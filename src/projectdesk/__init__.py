"""ProjectDesk: project lifecycle automation for school district teams.

Tracks projects from intake to teardown:
- Provisioning a folder, a populated template file and a calendar event per project
- Reminder and status-change digests on a daily sweep
- Directory-driven permission sync
- Safe, idempotent re-processing after partial failures

Typical usage goes through the CLI:
    $ projectdesk init --district SUSD
    $ projectdesk process
    $ projectdesk maintain
"""

__version__ = "0.1.0"

from projectdesk.exceptions import (
    ConfigError,
    ConfigValidationError,
    LockTimeoutError,
    ProjectDeskError,
    ProviderError,
    RecordValidationError,
    TransitionError,
)

__all__ = [
    "__version__",
    "ConfigError",
    "ConfigValidationError",
    "LockTimeoutError",
    "ProjectDeskError",
    "ProviderError",
    "RecordValidationError",
    "TransitionError",
]
