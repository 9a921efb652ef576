"""
eastdev - East development environment orchestrator.

Sets up and refreshes a local workspace containing every East repository,
built in dependency order.

Usage:
    eastdev <command> [options]
    python -m eastdev <command> [options]

Commands:
    bootstrap   Install the toolchain, clone, build, test and link all repos
    refresh     Fast-forward clean checkouts and rebuild them
    status      Show branch and revision of every checkout
    repos       List repositories in build order
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
