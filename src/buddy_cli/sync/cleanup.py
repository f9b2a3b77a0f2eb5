"""Deletion of branches that are already merged into the current branch.

Shared by ``buddy sync`` (per-branch confirmation, local and remote delete)
and ``buddy branch clean`` (one confirmation, local safe delete).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

from buddy_cli.core import git_output
from buddy_cli.core.constants import DEFAULT_REMOTE, GIT_EXECUTABLE, PROTECTED_BRANCHES
from buddy_cli.core.git_gateway import GitGateway
from buddy_cli.core.process import CancelToken, CommandResult, ProcessExecutor
from buddy_cli.core.prompts import Prompter

__all__ = ["BranchCleaner", "CleanupResult", "deletable_branches"]

logger = logging.getLogger(__name__)


def deletable_branches(merged: Iterable[str], current: str | None) -> list[str]:
    """Merged branches minus the current branch and protected names."""
    return [name for name in merged if name != current and name not in PROTECTED_BRANCHES]


@dataclass
class CleanupResult:
    deleted: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)


class BranchCleaner:
    """Find and delete merged branches with operator confirmation."""

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

    async def candidates(self) -> list[str]:
        current = await self.gateway.current_branch()
        return deletable_branches(await self.gateway.merged_branches(), current)

    async def delete_each_confirmed(self, branches: list[str], remote: str = DEFAULT_REMOTE) -> CleanupResult:
        """Ask per branch; delete it locally (forced) and on ``remote``."""
        result = CleanupResult()
        for name in branches:
            if not self.prompter.confirm(f"Branch '{name}' is merged. Delete it?", default=False):
                result.skipped.append(name)
                continue

            local = await self._git("branch", "-D", name)
            if not local.exited_cleanly:
                result.failed[name] = local.output
                self.prompter.error(f"Could not delete '{name}': {local.output}")
                continue

            remote_delete = await self._git("push", remote, "--delete", name)
            if not remote_delete.exited_cleanly and not git_output.remote_branch_already_absent(
                remote_delete.output
            ):
                result.failed[name] = remote_delete.output
                self.prompter.warning(f"Deleted '{name}' locally, but not on {remote}: {remote_delete.output}")
            else:
                self.prompter.success(f"Deleted '{name}'.")
            result.deleted.append(name)
        logger.debug("Per-branch cleanup: %s", result)
        return result

    async def delete_all_confirmed(self, branches: list[str]) -> CleanupResult:
        """One confirmation for the whole list; safe local delete of each."""
        result = CleanupResult()
        if not branches:
            return result

        self.prompter.table("Merged branches", branches, style="yellow")
        if not self.prompter.confirm(f"Delete these {len(branches)} branch(es)?", default=False):
            result.skipped.extend(branches)
            return result

        for name in branches:
            outcome = await self._git("branch", "-d", name)
            if outcome.exited_cleanly:
                result.deleted.append(name)
                self.prompter.success(f"Deleted '{name}'.")
            else:
                result.failed[name] = outcome.output
                self.prompter.error(f"Could not delete '{name}': {outcome.output}")
        return result
