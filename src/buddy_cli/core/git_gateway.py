"""Read-only projections over the git executable.

Every query runs against an explicit repository root. Nothing here mutates
repository state: checkout, merge, commit and push are issued by the flows
that own their interpretation (merge.orchestrator, sync.coordinator).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from buddy_cli.core import git_output
from buddy_cli.core.constants import DEFAULT_REMOTE, GIT_EXECUTABLE
from buddy_cli.core.process import CancelToken, CommandResult, ProcessExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BranchRef:
    """A branch as seen by one ``git branch -a`` query."""

    name: str
    is_current: bool = False
    is_remote_tracking: bool = False
    remote: str | None = None

    @property
    def ref(self) -> str:
        """Revision usable on the git command line."""
        if self.is_remote_tracking and self.remote:
            return f"{self.remote}/{self.name}"
        return self.name


@dataclass(frozen=True)
class StashEntry:
    """One line of ``git stash list``."""

    index: int
    branch: str
    message: str

    @property
    def ref(self) -> str:
        return f"stash@{{{self.index}}}"

    @property
    def label(self) -> str:
        return f"[{self.index}] {self.branch}: {self.message}"


class GitGateway:
    """Query repository state through ProcessExecutor."""

    def __init__(
        self,
        repo_root: Path,
        executor: ProcessExecutor | None = None,
        cancel_token: CancelToken | None = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.executor = executor or ProcessExecutor()
        self.cancel_token = cancel_token

    async def _git(self, *args: str) -> CommandResult:
        return await self.executor.execute(
            GIT_EXECUTABLE,
            list(args),
            cwd=self.repo_root,
            cancel_token=self.cancel_token,
        )

    async def _value(self, *args: str) -> str | None:
        result = await self._git(*args)
        if result.exit_code != 0 or not result.stdout:
            return None
        return result.stdout

    # ------------------------------------------------------------------ #
    # Core projections
    # ------------------------------------------------------------------ #

    async def is_repository(self) -> bool:
        result = await self._git("rev-parse", "--is-inside-work-tree")
        return result.exit_code == 0 and result.stdout.lower() == "true"

    async def current_branch(self) -> str | None:
        """Name of the checked-out branch, or None when HEAD is detached."""
        return await self._value("branch", "--show-current")

    async def has_uncommitted_changes(self) -> bool:
        result = await self._git("status", "--porcelain")
        return bool(result.stdout)

    async def remote_url(self, name: str = DEFAULT_REMOTE) -> str | None:
        return await self._value("remote", "get-url", name)

    async def all_branches(self) -> list[BranchRef]:
        """Local and remote-tracking branches, each name listed once.

        A branch that exists locally and as a remote-tracking ref keeps its
        local entry.
        """
        result = await self._git("branch", "-a")
        branches: dict[str, BranchRef] = {}
        for line in result.stdout.splitlines():
            parsed = git_output.parse_branch_line(line)
            if parsed is None:
                continue
            name, is_current, remote = parsed
            candidate = BranchRef(
                name=name,
                is_current=is_current,
                is_remote_tracking=remote is not None,
                remote=remote,
            )
            existing = branches.get(name)
            if existing is None or (existing.is_remote_tracking and not candidate.is_remote_tracking):
                branches[name] = candidate
        return list(branches.values())

    # ------------------------------------------------------------------ #
    # Flow-specific read-only queries
    # ------------------------------------------------------------------ #

    async def remotes(self) -> list[str]:
        result = await self._git("remote")
        return git_output.split_lines(result.stdout)

    async def has_commits(self) -> bool:
        result = await self._git("rev-parse", "--verify", "--quiet", "HEAD")
        return result.exit_code == 0

    async def rev_parse(self, ref: str) -> str | None:
        return await self._value("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}")

    async def resolve_branch(self, name: str) -> str | None:
        """Ref-resolution query for a branch name.

        Tries the local branch first, then ``<remote>/<name>`` for each
        configured remote.

        Returns:
            The revision to hand to git, or None if nothing resolves.
        """
        if not name:
            return None
        if await self.rev_parse(name):
            return name
        for remote in await self.remotes():
            qualified = f"{remote}/{name}"
            if await self.rev_parse(qualified):
                return qualified
        logger.debug("Branch %s does not resolve in %s", name, self.repo_root)
        return None

    async def merge_base(self, first: str, second: str) -> str | None:
        return await self._value("merge-base", first, second)

    async def log_oneline(self, revision_range: str, max_count: int | None = None) -> list[str]:
        args = ["log", revision_range, "--oneline"]
        if max_count is not None:
            args.append(f"--max-count={max_count}")
        result = await self._git(*args)
        if result.exit_code != 0:
            return []
        return git_output.split_lines(result.stdout)

    async def count_commits(self, revision_range: str) -> int:
        result = await self._git("rev-list", "--count", revision_range)
        if result.exit_code != 0:
            return 0
        return git_output.parse_count(result.stdout)

    async def diff(self, revision_spec: str) -> str:
        result = await self._git("diff", revision_spec)
        return result.stdout if result.exit_code == 0 else ""

    async def staged_diff(self) -> str:
        result = await self._git("diff", "--cached")
        return result.stdout if result.exit_code == 0 else ""

    async def conflicted_files(self) -> list[str]:
        result = await self._git("diff", "--name-only", "--diff-filter=U")
        return git_output.split_lines(result.stdout)

    async def conflict_diff(self) -> str:
        result = await self._git("diff", "--diff-filter=U")
        return result.stdout

    async def merged_branches(self) -> list[str]:
        result = await self._git("branch", "--merged")
        if result.exit_code != 0:
            return []
        return git_output.parse_merged_branches(result.stdout)

    async def last_commit_message(self) -> str:
        return await self._value("log", "-1", "--pretty=%B") or ""

    async def stash_entries(self) -> list[StashEntry]:
        result = await self._git("stash", "list")
        if result.exit_code != 0:
            return []
        entries = []
        for line in git_output.split_lines(result.stdout):
            parsed = git_output.parse_stash_line(line)
            if parsed is not None:
                entries.append(StashEntry(*parsed))
        return entries

    async def latest_tag(self) -> str | None:
        """Most recent tag reachable from HEAD."""
        return await self._value("describe", "--tags", "--abbrev=0")

    async def tag_exists(self, tag: str) -> bool:
        result = await self._git("rev-parse", "-q", "--verify", f"refs/tags/{tag}")
        return result.exit_code == 0


__all__ = ["BranchRef", "GitGateway", "StashEntry"]
