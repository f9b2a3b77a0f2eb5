"""CLI helpers exposed for other modules."""

from .helpers import configure_logging, console, find_repo_root, run_flow
from .ui import ConsolePrompter, select_with_arrows

__all__ = [
    "ConsolePrompter",
    "configure_logging",
    "console",
    "find_repo_root",
    "run_flow",
    "select_with_arrows",
]
