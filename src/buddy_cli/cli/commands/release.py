"""``buddy release`` command."""

from __future__ import annotations

from typing import Optional

import typer
from rich.markup import escape

from buddy_cli.cli.helpers import console, exit_with, find_repo_root, run_flow
from buddy_cli.cli.ui import ConsolePrompter
from buddy_cli.core.git_gateway import GitGateway
from buddy_cli.core.process import CancelToken, ProcessExecutor
from buddy_cli.release import BumpKind, ReleaseManager


def release(
    bump: Optional[str] = typer.Argument(
        None,
        help="Version bump: patch, minor or major (shows the release status when omitted)",
    ),
    push: bool = typer.Option(False, "--push", "-p", help="Push the new tag to origin"),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show the release plan without tagging"),
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Custom tag message"),
) -> None:
    """Tag a new semantic-version release from the latest tag."""
    kind: BumpKind | None = None
    if bump:
        try:
            kind = BumpKind(bump.lower())
        except ValueError:
            console.print(
                f"[red]Invalid bump type {escape(repr(bump))}.[/red] Use patch, minor or major."
            )
            raise typer.Exit(1)

    prompter = ConsolePrompter(console)

    async def flow(token: CancelToken) -> int:
        executor = ProcessExecutor()
        repo_root = await find_repo_root(executor, token)
        gateway = GitGateway(repo_root, executor, token)
        if not await gateway.is_repository():
            prompter.error("Not a git repository.")
            return 1
        manager = ReleaseManager(repo_root, prompter, executor=executor, gateway=gateway, cancel_token=token)
        if kind is None:
            report = await manager.status()
        else:
            report = await manager.release(kind, push=push, dry_run=dry_run, message=message)
        return report.exit_code

    exit_with(run_flow(flow))
