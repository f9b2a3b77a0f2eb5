"""``buddy branch`` commands."""

from __future__ import annotations

import typer

from buddy_cli.cli.helpers import console, exit_with, find_repo_root, run_flow
from buddy_cli.cli.ui import ConsolePrompter
from buddy_cli.core.git_gateway import GitGateway
from buddy_cli.core.process import CancelToken, ProcessExecutor
from buddy_cli.sync.cleanup import BranchCleaner

app = typer.Typer(help="Branch housekeeping commands")


@app.callback()
def branch_callback() -> None:
    """Branch housekeeping commands."""


@app.command("clean")
def clean() -> None:
    """Delete local branches that are already merged into the current branch."""
    prompter = ConsolePrompter(console)

    async def flow(token: CancelToken) -> int:
        executor = ProcessExecutor()
        repo_root = await find_repo_root(executor, token)
        gateway = GitGateway(repo_root, executor, token)
        if not await gateway.is_repository():
            prompter.error("Not a git repository.")
            return 1

        cleaner = BranchCleaner(repo_root, prompter, executor=executor, gateway=gateway, cancel_token=token)
        candidates = await cleaner.candidates()
        if not candidates:
            prompter.info("No merged branches to clean up.")
            return 0

        result = await cleaner.delete_all_confirmed(candidates)
        if result.skipped:
            prompter.info("No branches deleted.")
        return 1 if result.failed else 0

    exit_with(run_flow(flow))
