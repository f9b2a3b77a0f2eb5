"""CLI command modules for git-buddy.

Each module exposes a plain command function (or a sub-app) that
``buddy_cli.register_commands`` attaches to the root typer app.
"""

from . import branch, config_cmd, describe, merge, release, save, stash, sync, update

__all__ = ["branch", "config_cmd", "describe", "merge", "release", "save", "stash", "sync", "update"]
