"""``buddy sync`` command."""

from __future__ import annotations

import typer

from buddy_cli.cli.helpers import console, exit_with, find_repo_root, run_flow
from buddy_cli.cli.ui import ConsolePrompter
from buddy_cli.core.process import CancelToken, ProcessExecutor
from buddy_cli.sync import SyncCoordinator, SyncReport


def sync(
    remote: str = typer.Option("origin", "--remote", help="Remote to sync with"),
) -> None:
    """Pull (rebase), push, and offer to delete branches that are already merged."""
    prompter = ConsolePrompter(console)

    async def flow(token: CancelToken) -> SyncReport:
        executor = ProcessExecutor()
        repo_root = await find_repo_root(executor, token)
        coordinator = SyncCoordinator(
            repo_root,
            prompter,
            executor=executor,
            cancel_token=token,
            remote=remote,
        )
        return await coordinator.run()

    prompter.rule("Sync")
    report = run_flow(flow)
    if report.deleted_branches:
        console.print(f"[dim]Deleted {len(report.deleted_branches)} merged branch(es).[/dim]")
    exit_with(report.exit_code)
