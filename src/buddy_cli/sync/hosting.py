"""Repository creation through the GitHub CLI (``gh``)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from buddy_cli.core import git_output
from buddy_cli.core.constants import DEFAULT_REMOTE, HOSTING_EXECUTABLE, PUSH_TIMEOUT_SECONDS
from buddy_cli.core.process import CancelToken, CommandResult, ProcessExecutor
from buddy_cli.core.prompts import Visibility

__all__ = ["HostingClient", "RepositorySpec"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepositorySpec:
    """Operator-supplied attributes of a repository to create."""

    name: str
    visibility: Visibility = Visibility.PRIVATE
    description: str = ""

    def create_args(self) -> list[str]:
        args = ["repo", "create", self.name, f"--{self.visibility.value}"]
        if self.description:
            args.extend(["--description", self.description])
        args.extend(["--source=.", f"--remote={DEFAULT_REMOTE}", "--push"])
        return args


class HostingClient:
    """Thin wrapper over ``gh`` scoped to one repository root."""

    def __init__(
        self,
        repo_root: Path,
        executor: ProcessExecutor | None = None,
        cancel_token: CancelToken | None = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.executor = executor or ProcessExecutor()
        self.cancel_token = cancel_token

    async def create_repository(self, spec: RepositorySpec) -> CommandResult:
        """Create the remote, link it as origin and push the current branch."""
        logger.info("Creating %s repository %s", spec.visibility.value, spec.name)
        return await self.executor.execute(
            HOSTING_EXECUTABLE,
            spec.create_args(),
            cwd=self.repo_root,
            timeout=PUSH_TIMEOUT_SECONDS,
            cancel_token=self.cancel_token,
        )

    async def repository_url(self) -> str | None:
        result = await self.executor.execute(
            HOSTING_EXECUTABLE,
            ["repo", "view", "--json", "url"],
            cwd=self.repo_root,
            cancel_token=self.cancel_token,
        )
        if not result.exited_cleanly:
            return None
        return git_output.parse_hosting_url(result.stdout)
