"""
eastdev.core - Foundation layer for the eastdev CLI.

Exports logging, command execution, and source-control primitives.
"""

from eastdev.core.utils import (
    # Logging
    log,
    Logger,
    configure_logging,
    # Constants
    DEFAULT_WORKSPACE,
    GITHUB_ORG_URL,
    # Path utilities
    get_workspace_root,
    has_command,
    # Runtime utilities
    run_cmd,
)
from eastdev.core.git_ops import (
    AheadBehind,
    CommandOutcome,
    GitSourceControl,
    SourceControl,
)
from eastdev.core.timing import RunTimer, format_duration

__all__ = [
    "log",
    "Logger",
    "configure_logging",
    "DEFAULT_WORKSPACE",
    "GITHUB_ORG_URL",
    "get_workspace_root",
    "has_command",
    "run_cmd",
    "AheadBehind",
    "CommandOutcome",
    "GitSourceControl",
    "SourceControl",
    "RunTimer",
    "format_duration",
]
