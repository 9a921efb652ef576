"""
Main CLI for the eastdev tool.

Provides a unified interface for setting up and refreshing the East
development workspace.
"""

from __future__ import annotations

import argparse
from typing import Optional

from eastdev import __version__
from eastdev.build.orchestrator import cmd_bootstrap, cmd_refresh, cmd_repos, cmd_status
from eastdev.core.utils import configure_logging, log


# =============================================================================
# Argument Parsing
# =============================================================================


def _add_workspace_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--workspace",
        default=None,
        help="Workspace root (default: $EAST_DIR or ~/east)",
    )


def _add_pipeline_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--skip-tests",
        action="store_true",
        help="Do not run repository tests",
    )
    parser.add_argument(
        "--skip-link",
        action="store_true",
        help="Do not register repository CLIs on PATH",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="eastdev",
        description="East development environment orchestrator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  bootstrap   Install the toolchain, clone, build, test and link all repos
  refresh     Pull clean repos (fast-forward only) and rebuild them
  status      Show branch and revision of every checkout
  repos       List repositories in build order

Examples:
  eastdev bootstrap                  # Set up ~/east (asks for confirmation)
  eastdev bootstrap -y --workspace ~/src/east
  eastdev refresh --skip-tests       # Update and rebuild without tests
  eastdev status
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Trace external commands and print per-repository timings",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- bootstrap ---
    bootstrap_parser = subparsers.add_parser(
        "bootstrap",
        help="First-time setup of the development environment",
        description="Install nvm and uv if missing, then clone, build, test and link every repository. "
        "Stops on the first clone or install failure.",
    )
    _add_workspace_argument(bootstrap_parser)
    _add_pipeline_arguments(bootstrap_parser)
    bootstrap_parser.add_argument(
        "-y", "--yes",
        action="store_true",
        help="Assume yes to all prompts (non-interactive mode)",
    )
    bootstrap_parser.set_defaults(func=cmd_bootstrap)

    # --- refresh ---
    refresh_parser = subparsers.add_parser(
        "refresh",
        help="Pull and rebuild existing checkouts",
        description="Fast-forward clean checkouts and rebuild every repository. "
        "Dirty or diverged checkouts are rebuilt without pulling.",
    )
    _add_workspace_argument(refresh_parser)
    _add_pipeline_arguments(refresh_parser)
    refresh_parser.set_defaults(func=cmd_refresh)

    # --- status ---
    status_parser = subparsers.add_parser(
        "status",
        help="Show branch and revision of every checkout",
    )
    _add_workspace_argument(status_parser)
    status_parser.set_defaults(func=cmd_status)

    # --- repos ---
    repos_parser = subparsers.add_parser(
        "repos",
        help="List repositories in build order",
    )
    repos_parser.set_defaults(func=cmd_repos)

    return parser


# =============================================================================
# Main Entry Point
# =============================================================================


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the eastdev CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        log.set_color(False)
    configure_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    return int(args.func(args))
