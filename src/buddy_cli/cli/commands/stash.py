"""``buddy stash`` commands."""

from __future__ import annotations

from typing import Optional

import typer

from buddy_cli.cli.helpers import console, exit_with, find_repo_root, run_flow
from buddy_cli.cli.ui import ConsolePrompter
from buddy_cli.core.git_gateway import GitGateway
from buddy_cli.core.process import CancelToken, ProcessExecutor
from buddy_cli.stash import StashManager

app = typer.Typer(help="Save and restore uncommitted work")

INDEX_HELP = "Stash index, e.g. 0 for stash@{0} (selected interactively when omitted)"


def _run(action) -> None:
    """Resolve the repository, then run ``action(manager)`` and exit with its code."""
    prompter = ConsolePrompter(console)

    async def flow(token: CancelToken) -> int:
        executor = ProcessExecutor()
        repo_root = await find_repo_root(executor, token)
        gateway = GitGateway(repo_root, executor, token)
        if not await gateway.is_repository():
            prompter.error("Not a git repository.")
            return 1
        manager = StashManager(repo_root, prompter, executor=executor, gateway=gateway, cancel_token=token)
        return await action(manager)

    exit_with(run_flow(flow))


async def _list(manager: StashManager) -> int:
    await manager.list_entries()
    return 0


@app.callback(invoke_without_command=True)
def stash_callback(ctx: typer.Context) -> None:
    """Save and restore uncommitted work. Without a subcommand, list stashes."""
    if ctx.invoked_subcommand is None:
        _run(_list)


@app.command("list")
def list_stashes() -> None:
    """List stashes with their branch and message."""
    _run(_list)


@app.command("push")
def push(
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Message for the new stash"),
    include_untracked: bool = typer.Option(
        False,
        "--include-untracked",
        "-u",
        help="Stash untracked files too",
    ),
) -> None:
    """Stash uncommitted changes."""

    async def action(manager: StashManager) -> int:
        return (await manager.push(message, include_untracked)).exit_code

    _run(action)


@app.command("pop")
def pop(index: Optional[int] = typer.Argument(None, help=INDEX_HELP)) -> None:
    """Apply a stash and remove it from the list."""

    async def action(manager: StashManager) -> int:
        return (await manager.pop(index)).exit_code

    _run(action)


@app.command("apply")
def apply(index: Optional[int] = typer.Argument(None, help=INDEX_HELP)) -> None:
    """Apply a stash and keep it in the list."""

    async def action(manager: StashManager) -> int:
        return (await manager.apply(index)).exit_code

    _run(action)
