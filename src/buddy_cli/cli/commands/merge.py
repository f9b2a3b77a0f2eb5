"""``buddy merge`` command."""

from __future__ import annotations

from typing import Optional

import typer

from buddy_cli.cli.helpers import console, exit_with, find_repo_root, run_flow
from buddy_cli.cli.ui import ConsolePrompter
from buddy_cli.core.process import CancelToken, ProcessExecutor
from buddy_cli.merge import MergeOrchestrator, MergeReport, MergeRequest


def merge(
    branch: Optional[str] = typer.Argument(
        None,
        help="Branch to merge (selected interactively when omitted)",
    ),
    into: bool = typer.Option(
        False,
        "--into",
        help="Merge the current branch INTO the given branch instead",
    ),
    ai: bool = typer.Option(
        False,
        "--ai",
        help="Suggest the merge commit message with the configured AI provider",
    ),
) -> None:
    """Merge a branch into the current branch, with preview and conflict guidance."""
    prompter = ConsolePrompter(console)
    request = MergeRequest(branch=branch, into=into, use_ai=ai)

    async def flow(token: CancelToken) -> MergeReport:
        executor = ProcessExecutor()
        repo_root = await find_repo_root(executor, token)
        orchestrator = MergeOrchestrator(repo_root, prompter, executor=executor, cancel_token=token)
        return await orchestrator.run(request)

    prompter.rule("Merge")
    report = run_flow(flow)
    exit_with(report.exit_code)
