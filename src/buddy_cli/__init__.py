"""git-buddy: guided git workflows with optional AI-written messages."""

from __future__ import annotations

import typer

from buddy_cli.cli.commands import branch, config_cmd, describe, merge, release, save, stash, sync, update
from buddy_cli.cli.helpers import configure_logging

__version__ = "0.1.0"

app = typer.Typer(
    name="buddy",
    help="Guided git workflows: merge, sync, save, stash, release and branch cleanup",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging on stderr"),
) -> None:
    """Guided git workflows with optional AI-written messages."""
    configure_logging(verbose)


def register_commands(root: typer.Typer) -> None:
    root.command("merge")(merge.merge)
    root.command("sync")(sync.sync)
    root.command("save")(save.save)
    root.command("config")(config_cmd.config)
    root.command("describe")(describe.describe)
    root.command("update")(update.update)
    root.command("release")(release.release)
    root.add_typer(branch.app, name="branch")
    root.add_typer(stash.app, name="stash")


register_commands(app)


def main():
    app()


if __name__ == "__main__":
    main()
