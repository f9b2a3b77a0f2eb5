"""``buddy save`` command: stage everything and commit."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from buddy_cli.ai.client import CommitMessageProvider
from buddy_cli.cli.helpers import console, exit_with, find_repo_root, run_flow
from buddy_cli.cli.ui import ConsolePrompter
from buddy_cli.core.constants import GIT_EXECUTABLE
from buddy_cli.core.git_gateway import GitGateway
from buddy_cli.core.process import CancelToken, ProcessExecutor
from buddy_cli.core.prompts import MessageDecision, Prompter

logger = logging.getLogger(__name__)


async def _suggest_message(
    provider: CommitMessageProvider,
    gateway: GitGateway,
    prompter: Prompter,
) -> tuple[str | None, bool]:
    """Return ``(message, cancelled)`` from the AI suggestion flow."""
    diff = await gateway.staged_diff()
    if not diff:
        prompter.warning("No staged changes found to analyze.")
        return None, False

    prompter.info("AI is thinking...")
    suggestion = await provider.generate_commit_message(diff)
    if suggestion is None:
        reason = provider.last_error.message if provider.last_error else "no message returned"
        prompter.warning(f"AI couldn't come up with a message ({reason}). Falling back to manual.")
        return None, False

    prompter.panel("AI Suggestion", suggestion)
    decision = prompter.choose(
        "Use this message?",
        [MessageDecision.ACCEPT, MessageDecision.EDIT, MessageDecision.CANCEL],
        cancel=MessageDecision.CANCEL,
    )
    if decision is MessageDecision.CANCEL:
        return None, True
    if decision is MessageDecision.EDIT:
        return prompter.ask("Edit message", default=suggestion).strip() or suggestion, False
    return suggestion, False


def save(
    message: Optional[str] = typer.Option(None, "--message", "-m", help="Commit message"),
    ai: bool = typer.Option(False, "--ai", "-a", help="Use AI to suggest a commit message"),
) -> None:
    """Stage all changes and commit them."""
    prompter = ConsolePrompter(console)

    async def flow(token: CancelToken) -> int:
        executor = ProcessExecutor()
        repo_root = await find_repo_root(executor, token)
        gateway = GitGateway(repo_root, executor, token)

        if not await gateway.is_repository():
            prompter.error("Not in a git repository.")
            return 1
        if not await gateway.has_uncommitted_changes():
            prompter.info("Nothing to save. Your working tree is clean.")
            return 0

        staged = await executor.execute(GIT_EXECUTABLE, ["add", "-A"], cwd=repo_root, cancel_token=token)
        if not staged.exited_cleanly:
            prompter.error(f"Could not stage changes: {staged.output}")
            return 1

        commit_message = (message or "").strip() or None
        if commit_message is None and ai:
            provider = CommitMessageProvider(repo_root=repo_root, cancel_token=token)
            commit_message, cancelled = await _suggest_message(provider, gateway, prompter)
            if cancelled:
                prompter.info("Save cancelled. Your changes are still staged.")
                return 0

        if commit_message is None:
            commit_message = prompter.ask("Enter commit message").strip()
            if not commit_message:
                prompter.error("A commit message is required.")
                return 1

        result = await executor.execute(
            GIT_EXECUTABLE, ["commit", "-m", commit_message], cwd=repo_root, cancel_token=token
        )
        if not result.exited_cleanly:
            prompter.error("Commit failed.")
            prompter.info(result.output)
            return 1
        logger.info("Committed %d-char message", len(commit_message))
        prompter.panel("✔ Work Saved", result.output or commit_message, style="green")
        return 0

    exit_with(run_flow(flow))
