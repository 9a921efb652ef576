"""
Shared utilities for the eastdev CLI.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Mapping, Optional, TextIO

_logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# Workspace root used when neither --workspace nor EAST_DIR is given
DEFAULT_WORKSPACE = Path.home() / "east"

GITHUB_ORG_URL = "https://github.com/elaraai"


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Simple colored logger with --no-color support.

    Warnings and errors go to stderr, everything else to stdout.
    """

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, use_color: Optional[bool] = None):
        if use_color is None:
            self._use_color = sys.stdout.isatty()
        else:
            self._use_color = use_color

    def set_color(self, use_color: bool) -> None:
        """Set whether to use color output."""
        self._use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    # Streams are looked up per call so pytest's capsys sees the output
    def _out(self, text: str, stream: Optional[TextIO] = None) -> None:
        print(text, file=stream or sys.stdout)

    def header(self, message: str) -> None:
        """Print a section header."""
        self._out(f"\n{self._color('===', 'cyan')} {self._color(message, 'bold')} {self._color('===', 'cyan')}")

    def info(self, message: str) -> None:
        """Print an info message."""
        self._out(f"  {self._color('[INFO]', 'blue')} {message}")

    def success(self, message: str) -> None:
        """Print a success message."""
        self._out(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        """Print a warning message."""
        self._out(f"  {self._color('[WARN]', 'yellow')} {message}", sys.stderr)

    def error(self, message: str) -> None:
        """Print an error message."""
        self._out(f"  {self._color('[ERROR]', 'red')} {message}", sys.stderr)

    def dim(self, message: str) -> None:
        """Print a dim/secondary message."""
        self._out(f"  {self._color(message, 'dim')}")


# Global logger instance
log = Logger()


def configure_logging(verbose: bool = False) -> None:
    """Route command tracing to stderr when --verbose is set."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# =============================================================================
# Path Utilities
# =============================================================================


def get_workspace_root(override: Optional[str | Path] = None) -> Path:
    """Resolve the workspace root: explicit path, then $EAST_DIR, then ~/east."""
    if override:
        return Path(override).expanduser().resolve()
    env_dir = os.environ.get("EAST_DIR")
    if env_dir:
        return Path(env_dir).expanduser().resolve()
    return DEFAULT_WORKSPACE


def has_command(name: str, path: Optional[str] = None) -> bool:
    """Check whether an executable is on the command search path."""
    return shutil.which(name, path=path) is not None


# =============================================================================
# Runtime Utilities
# =============================================================================


def run_cmd(
    cmd: list[str],
    cwd: Optional[Path] = None,
    capture: bool = False,
    check: bool = True,
    env: Optional[Mapping[str, str]] = None,
) -> subprocess.CompletedProcess:
    """Run a command with proper error handling."""
    _logger.debug("run: %s (cwd=%s)", " ".join(cmd), cwd or ".")
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            check=check,
            env=dict(env) if env is not None else None,
        )
    except subprocess.CalledProcessError as e:
        if capture:
            log.error(f"Command failed: {' '.join(cmd)}")
            if e.stdout:
                log.error(f"stdout: {e.stdout}")
            if e.stderr:
                log.error(f"stderr: {e.stderr}")
        raise
    _logger.debug("exit %d: %s", result.returncode, " ".join(cmd))
    return result


def last_line(text: Optional[str]) -> str:
    """Return the last non-empty line of command output (for short details)."""
    if not text:
        return ""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ""


def tail_lines(text: Optional[str], count: int = 20) -> list[str]:
    """Return the last ``count`` non-empty lines of command output."""
    if not text:
        return []
    lines = [line.rstrip() for line in text.splitlines() if line.strip()]
    return lines[-count:]
