"""Guided ``git stash`` push, list, pop and apply."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from buddy_cli.core import git_output
from buddy_cli.core.constants import GIT_EXECUTABLE
from buddy_cli.core.git_gateway import GitGateway, StashEntry
from buddy_cli.core.process import CancelToken, CommandResult, ProcessExecutor
from buddy_cli.core.prompts import Prompter

__all__ = ["StashManager", "StashResult", "StashStatus"]

logger = logging.getLogger(__name__)


class StashStatus(StrEnum):
    DONE = "done"
    NOTHING_TO_STASH = "nothing_to_stash"
    NO_STASHES = "no_stashes"
    CANCELLED = "cancelled"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FAILED = "failed"


_FAILURE_STATUSES = frozenset({StashStatus.NOT_FOUND, StashStatus.CONFLICT, StashStatus.FAILED})


@dataclass
class StashResult:
    status: StashStatus
    entry: StashEntry | None = None
    detail: str | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.status in _FAILURE_STATUSES else 0


class StashManager:
    """Stash operations with the same confirmations the merge flow uses."""

    def __init__(
        self,
        repo_root: Path,
        prompter: Prompter,
        *,
        executor: ProcessExecutor | None = None,
        gateway: GitGateway | None = None,
        cancel_token: CancelToken | None = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.prompter = prompter
        self.executor = executor or ProcessExecutor()
        self.cancel_token = cancel_token
        self.gateway = gateway or GitGateway(self.repo_root, self.executor, cancel_token)

    async def _git(self, *args: str) -> CommandResult:
        return await self.executor.execute(
            GIT_EXECUTABLE,
            list(args),
            cwd=self.repo_root,
            cancel_token=self.cancel_token,
        )

    async def push(self, message: str | None = None, include_untracked: bool = False) -> StashResult:
        """Stash the working tree. An empty message keeps git's ``WIP on`` text."""
        if not await self.gateway.has_uncommitted_changes():
            self.prompter.warning("No changes to stash.")
            return StashResult(StashStatus.NOTHING_TO_STASH)

        if message is None:
            message = self.prompter.ask("Stash message (leave empty for git's default)", default="")
        message = message.strip()

        args = ["stash", "push"]
        if include_untracked:
            args.append("-u")
        if message:
            args.extend(["-m", message])

        result = await self._git(*args)
        if not result.exited_cleanly:
            self.prompter.error(f"Failed to stash: {result.output}")
            return StashResult(StashStatus.FAILED, detail=result.output)
        if git_output.nothing_to_stash(result.output):
            self.prompter.info("No local changes to save.")
            return StashResult(StashStatus.NOTHING_TO_STASH)

        entries = await self.gateway.stash_entries()
        entry = entries[0] if entries else None
        self.prompter.success(f"Stashed changes: {entry.message if entry else message}")
        if include_untracked:
            self.prompter.info("Included untracked files.")
        return StashResult(StashStatus.DONE, entry=entry)

    async def list_entries(self) -> list[StashEntry]:
        entries = await self.gateway.stash_entries()
        if not entries:
            self.prompter.info("No stashes found. Use 'buddy stash push' to create one.")
            return entries
        self.prompter.table("Stashes", [entry.label for entry in entries])
        self.prompter.info(f"Total: {len(entries)} stash(es)")
        return entries

    async def pop(self, index: int | None = None) -> StashResult:
        return await self._restore("pop", index)

    async def apply(self, index: int | None = None) -> StashResult:
        return await self._restore("apply", index)

    async def _restore(self, action: str, index: int | None) -> StashResult:
        entries = await self.gateway.stash_entries()
        if not entries:
            self.prompter.info("No stashes found.")
            return StashResult(StashStatus.NO_STASHES)

        entry = self._pick(entries, index)
        if entry is None:
            if index is not None:
                self.prompter.error(f"Stash stash@{{{index}}} does not exist.")
                return StashResult(StashStatus.NOT_FOUND)
            self.prompter.info("Cancelled.")
            return StashResult(StashStatus.CANCELLED)

        if await self.gateway.has_uncommitted_changes():
            self.prompter.warning("You have uncommitted changes.")
            if not self.prompter.confirm("Apply stash anyway? It may cause conflicts.", default=False):
                self.prompter.info("Cancelled.")
                return StashResult(StashStatus.CANCELLED, entry=entry)

        if action == "pop" and not self.prompter.confirm(
            f"Pop {entry.ref}? It is applied and removed from the stash list.", default=True
        ):
            self.prompter.info("Cancelled.")
            return StashResult(StashStatus.CANCELLED, entry=entry)

        result = await self._git("stash", action, entry.ref)
        logger.debug("stash %s %s exited %s", action, entry.ref, result.exit_code)
        if not result.exited_cleanly:
            if git_output.has_conflict_markers(result.output):
                self.prompter.panel(f"Conflicts while applying {entry.ref}", result.output, style="yellow")
                steps = "Resolve the conflicts, then run 'buddy save' to commit them."
                if action == "pop":
                    steps += f" The stash is kept; run 'git stash drop {entry.ref}' once you are done."
                self.prompter.warning(steps)
                return StashResult(StashStatus.CONFLICT, entry=entry, detail=result.output)
            self.prompter.error(f"Failed to {action} {entry.ref}: {result.output}")
            return StashResult(StashStatus.FAILED, entry=entry, detail=result.output)

        if action == "pop":
            self.prompter.success(f"Popped {entry.ref}.")
        else:
            self.prompter.success(f"Applied {entry.ref}.")
            self.prompter.info(f"Stash kept in the list. Run 'git stash drop {entry.ref}' to remove it.")
        return StashResult(StashStatus.DONE, entry=entry)

    def _pick(self, entries: list[StashEntry], index: int | None) -> StashEntry | None:
        if index is not None:
            return next((entry for entry in entries if entry.index == index), None)
        labels = [entry.label for entry in entries]
        picked = self.prompter.select("Which stash do you want to use?", labels)
        if picked is None:
            return None
        return entries[labels.index(picked)]
