"""``buddy describe`` command: write an AI summary of the project to .buddycontext."""

from __future__ import annotations

from pathlib import Path

import typer

from buddy_cli.ai.client import CommitMessageProvider
from buddy_cli.cli.helpers import console, exit_with, find_repo_root, run_flow
from buddy_cli.cli.ui import ConsolePrompter
from buddy_cli.core.constants import PROJECT_CONTEXT_FILE
from buddy_cli.core.process import CancelToken, ProcessExecutor

SNAPSHOT_FILE_LIMIT = 6
SNAPSHOT_LINE_LIMIT = 50
SNAPSHOT_SUFFIXES = (
    ".py",
    ".toml",
    ".cfg",
    ".json",
    ".md",
    ".js",
    ".ts",
    ".go",
    ".rs",
    ".cs",
    ".csproj",
)


def collect_snapshot(repo_root: Path) -> str:
    """First lines of up to six top-level source and manifest files."""
    candidates = sorted(
        path
        for path in repo_root.iterdir()
        if path.is_file() and not path.name.startswith(".") and path.suffix in SNAPSHOT_SUFFIXES
    )
    sections: list[str] = []
    for path in candidates:
        if len(sections) >= SNAPSHOT_FILE_LIMIT:
            break
        try:
            with path.open(encoding="utf-8") as handle:
                lines = [line.rstrip("\n") for _, line in zip(range(SNAPSHOT_LINE_LIMIT), handle)]
        except (OSError, UnicodeDecodeError):
            continue
        sections.append(f"--- File: {path.name} ---\n" + "\n".join(lines))
    return "\n\n".join(sections)


def describe() -> None:
    """Ask the AI provider to describe this project and save it as context."""
    prompter = ConsolePrompter(console)

    async def flow(token: CancelToken) -> int:
        repo_root = await find_repo_root(ProcessExecutor(), token)
        prompter.rule("AI Deep Analysis")

        snapshot = collect_snapshot(repo_root)
        if not snapshot:
            prompter.error("No relevant project files found to analyze.")
            return 1

        provider = CommitMessageProvider(repo_root=repo_root, cancel_token=token)
        prompter.info("AI is architecting a summary...")
        description = await provider.generate_description(snapshot)
        if description is None:
            reason = provider.last_error.message if provider.last_error else "no description returned"
            prompter.error(f"AI failed to analyze the project: {reason}")
            return 1

        prompter.panel("AI Authoritative Context", description)
        if prompter.confirm(f"Save this description to {PROJECT_CONTEXT_FILE}?", default=True):
            (repo_root / PROJECT_CONTEXT_FILE).write_text(description + "\n", encoding="utf-8")
            prompter.success("Project context updated.")
        return 0

    exit_with(run_flow(flow))
