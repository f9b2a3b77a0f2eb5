"""Sync flow: pull with rebase, push, and clean up merged branches.

Steps:
    1. Preflight: repository, branch, at least one commit, clean tree
    2. No remote: guided repository creation through ``gh``
    3. Reachability check (``git ls-remote``)
    4. ``git pull --rebase`` (a branch missing on the remote is not fatal)
    5. ``git push -u`` with the long push timeout
    6. Offer to delete branches already merged into the current branch

A remote whose repository no longer exists can be unlinked (after
confirmation) and recreated through step 2.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from buddy_cli.core import git_output
from buddy_cli.core.constants import DEFAULT_REMOTE, GIT_EXECUTABLE, PUSH_TIMEOUT_SECONDS
from buddy_cli.core.errors import ProcessStartFailed
from buddy_cli.core.git_gateway import GitGateway
from buddy_cli.core.process import CancelToken, CommandResult, ProcessExecutor
from buddy_cli.core.prompts import Prompter, Visibility
from buddy_cli.sync.cleanup import BranchCleaner
from buddy_cli.sync.hosting import HostingClient, RepositorySpec

__all__ = ["SyncCoordinator", "SyncReport", "SyncStatus"]

logger = logging.getLogger(__name__)


class SyncStatus(StrEnum):
    SYNCED = "synced"
    PUBLISHED = "published"
    DECLINED = "declined"
    NOT_A_REPOSITORY = "not_a_repository"
    DETACHED_HEAD = "detached_head"
    NO_COMMITS = "no_commits"
    UNCOMMITTED_CHANGES = "uncommitted_changes"
    REMOTE_MISSING = "remote_missing"
    REMOTE_UNREACHABLE = "remote_unreachable"
    PULL_FAILED = "pull_failed"
    PUSH_FAILED = "push_failed"
    HOSTING_FAILED = "hosting_failed"


_SUCCESS_STATUSES = frozenset({SyncStatus.SYNCED, SyncStatus.PUBLISHED, SyncStatus.DECLINED})


@dataclass
class SyncReport:
    """Outcome of one sync run."""

    status: SyncStatus
    branch: str | None = None
    remote_url: str | None = None
    detail: str | None = None
    deleted_branches: list[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 0 if self.status in _SUCCESS_STATUSES else 1


class SyncCoordinator:
    """Run ``buddy sync`` against one repository."""

    def __init__(
        self,
        repo_root: Path,
        prompter: Prompter,
        *,
        executor: ProcessExecutor | None = None,
        gateway: GitGateway | None = None,
        hosting: HostingClient | None = None,
        cleaner: BranchCleaner | None = None,
        cancel_token: CancelToken | None = None,
        remote: str = DEFAULT_REMOTE,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.prompter = prompter
        self.executor = executor or ProcessExecutor()
        self.cancel_token = cancel_token
        self.remote = remote
        self.gateway = gateway or GitGateway(self.repo_root, self.executor, cancel_token)
        self.hosting = hosting or HostingClient(self.repo_root, self.executor, cancel_token)
        self.cleaner = cleaner or BranchCleaner(
            self.repo_root,
            prompter,
            executor=self.executor,
            gateway=self.gateway,
            cancel_token=cancel_token,
        )

    async def _git(self, *args: str, timeout: float | None = None) -> CommandResult:
        return await self.executor.execute(
            GIT_EXECUTABLE,
            list(args),
            cwd=self.repo_root,
            timeout=timeout,
            cancel_token=self.cancel_token,
        )

    def _stop(self, status: SyncStatus, message: str, *, branch: str | None = None, detail: str | None = None) -> SyncReport:
        self.prompter.error(message)
        if detail:
            self.prompter.info(detail)
        logger.info("Sync stopped (%s): %s", status.value, message)
        return SyncReport(status=status, branch=branch, detail=detail or message)

    async def run(self) -> SyncReport:
        if not await self.gateway.is_repository():
            return self._stop(SyncStatus.NOT_A_REPOSITORY, "Not a git repository.")
        branch = await self.gateway.current_branch()
        if not branch:
            return self._stop(SyncStatus.DETACHED_HEAD, "HEAD is detached. Check out a branch before syncing.")
        if not await self.gateway.has_commits():
            return self._stop(
                SyncStatus.NO_COMMITS,
                "This repository has no commits yet. Run 'buddy save' to create the first commit.",
                branch=branch,
            )
        if await self.gateway.has_uncommitted_changes():
            return self._stop(
                SyncStatus.UNCOMMITTED_CHANGES,
                "You have unsaved changes. Run 'buddy save' first, then sync again.",
                branch=branch,
            )
        return await self._sync(branch, allow_relink=True)

    async def _sync(self, branch: str, *, allow_relink: bool) -> SyncReport:
        url = await self.gateway.remote_url(self.remote)
        if url is None:
            return await self._publish(branch)

        self.prompter.info(f"Syncing '{branch}' with {git_output.display_remote(url)}...")
        reachable = await self._git("ls-remote", self.remote)
        if not reachable.exited_cleanly:
            return await self._remote_failure(
                branch, reachable, SyncStatus.REMOTE_UNREACHABLE, allow_relink=allow_relink
            )

        pull = await self._git("pull", self.remote, branch, "--rebase", timeout=PUSH_TIMEOUT_SECONDS)
        if not pull.exited_cleanly:
            if git_output.is_missing_remote_ref(pull.output):
                self.prompter.info(f"'{branch}' is not on {self.remote} yet; it will be created.")
            else:
                return await self._remote_failure(branch, pull, SyncStatus.PULL_FAILED, allow_relink=allow_relink)

        push = await self._git("push", "-u", self.remote, branch, timeout=PUSH_TIMEOUT_SECONDS)
        if not push.exited_cleanly:
            return await self._remote_failure(branch, push, SyncStatus.PUSH_FAILED, allow_relink=allow_relink)

        self.prompter.success(f"'{branch}' is in sync with {git_output.display_remote(url)}.")
        report = SyncReport(status=SyncStatus.SYNCED, branch=branch, remote_url=url)

        candidates = await self.cleaner.candidates()
        if candidates:
            cleanup = await self.cleaner.delete_each_confirmed(candidates, remote=self.remote)
            report.deleted_branches = cleanup.deleted
        return report

    async def _remote_failure(
        self,
        branch: str,
        result: CommandResult,
        status: SyncStatus,
        *,
        allow_relink: bool,
    ) -> SyncReport:
        if not git_output.is_remote_repository_missing(result.output):
            return self._stop(status, f"Sync failed ({status.value.replace('_', ' ')}).", branch=branch, detail=result.output)

        self.prompter.warning(f"The repository linked as '{self.remote}' no longer exists.")
        if not allow_relink or not self.prompter.confirm(
            f"Unlink '{self.remote}' and create a new repository?", default=False
        ):
            return self._stop(
                SyncStatus.REMOTE_MISSING,
                f"Remote repository for '{self.remote}' is missing.",
                branch=branch,
                detail=result.output,
            )

        unlink = await self._git("remote", "remove", self.remote)
        if not unlink.exited_cleanly:
            return self._stop(status, f"Could not remove remote '{self.remote}'.", branch=branch, detail=unlink.output)
        self.prompter.info(f"Removed remote '{self.remote}'.")
        return await self._sync(branch, allow_relink=False)

    async def _publish(self, branch: str) -> SyncReport:
        self.prompter.warning("This project is not linked to a remote repository.")
        if not self.prompter.confirm("Create a GitHub repository for it now?", default=False):
            self.prompter.info("Nothing synced. Add a remote with 'git remote add origin <url>' when ready.")
            return SyncReport(status=SyncStatus.DECLINED, branch=branch)

        name = self.prompter.ask("Repository name", default=self.repo_root.name).strip() or self.repo_root.name
        visibility = self.prompter.choose(
            "Repository visibility",
            [Visibility.PRIVATE, Visibility.PUBLIC],
            cancel=Visibility.PRIVATE,
        )
        description = self.prompter.ask("Description (optional)", default="").strip()
        spec = RepositorySpec(name=name, visibility=visibility, description=description)

        try:
            created = await self.hosting.create_repository(spec)
        except ProcessStartFailed as exc:
            return self._stop(
                SyncStatus.HOSTING_FAILED,
                "GitHub CLI (gh) is not available. Install it and run 'gh auth login'.",
                branch=branch,
                detail=exc.reason,
            )
        if not created.exited_cleanly:
            return self._stop(SyncStatus.HOSTING_FAILED, "Repository creation failed.", branch=branch, detail=created.output)

        url = await self.hosting.repository_url() or await self.gateway.remote_url(self.remote)
        self.prompter.success(f"Created {spec.visibility.value} repository {url or name} and pushed '{branch}'.")
        return SyncReport(status=SyncStatus.PUBLISHED, branch=branch, remote_url=url)
