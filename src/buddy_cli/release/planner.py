"""Semantic-version release tags for ``buddy release``.

The latest tag reachable from HEAD is the current version. A release bumps
one component, creates an annotated ``v<version>`` tag and optionally pushes
that tag to the default remote.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from buddy_cli.core.constants import DEFAULT_REMOTE, GIT_EXECUTABLE, PREVIEW_COMMIT_LIMIT, PUSH_TIMEOUT_SECONDS
from buddy_cli.core.git_gateway import GitGateway
from buddy_cli.core.process import CancelToken, CommandResult, ProcessExecutor
from buddy_cli.core.prompts import Prompter

__all__ = [
    "BumpKind",
    "ReleaseManager",
    "ReleasePlan",
    "ReleaseReport",
    "ReleaseStatus",
    "Version",
]

logger = logging.getLogger(__name__)

TAG_PREFIX = "v"


class BumpKind(StrEnum):
    PATCH = "patch"
    MINOR = "minor"
    MAJOR = "major"


_BUMP_HINTS = {
    BumpKind.PATCH: "bug fixes",
    BumpKind.MINOR: "new features",
    BumpKind.MAJOR: "breaking changes",
}


@dataclass(frozen=True, order=True)
class Version:
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, text: str) -> Version | None:
        """Read ``1.2.3`` or ``v1.2.3``; anything else is None."""
        parts = text.strip().removeprefix(TAG_PREFIX).split(".")
        if len(parts) != 3 or not all(part.isdigit() for part in parts):
            return None
        return cls(*(int(part) for part in parts))

    def bump(self, kind: BumpKind) -> Version:
        if kind is BumpKind.MAJOR:
            return Version(self.major + 1, 0, 0)
        if kind is BumpKind.MINOR:
            return Version(self.major, self.minor + 1, 0)
        return Version(self.major, self.minor, self.patch + 1)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class ReleasePlan:
    bump: BumpKind
    current_tag: str
    version: Version
    message: str
    push: bool = False

    @property
    def tag(self) -> str:
        return f"{TAG_PREFIX}{self.version}"

    def describe(self) -> str:
        return "\n".join(
            [
                f"Type:    {self.bump.value}",
                f"From:    {self.current_tag}",
                f"Version: {self.version}",
                f"Tag:     {self.tag}",
                f"Push:    {'yes' if self.push else 'no'}",
                f"Message: {self.message}",
            ]
        )


class ReleaseStatus(StrEnum):
    SHOWN = "shown"
    RELEASED = "released"
    DRY_RUN = "dry_run"
    CANCELLED = "cancelled"
    NO_TAGS = "no_tags"
    INVALID_VERSION = "invalid_version"
    TAG_EXISTS = "tag_exists"
    TAG_FAILED = "tag_failed"
    PUSH_FAILED = "push_failed"


_FAILURE_STATUSES = frozenset(
    {
        ReleaseStatus.NO_TAGS,
        ReleaseStatus.INVALID_VERSION,
        ReleaseStatus.TAG_EXISTS,
        ReleaseStatus.TAG_FAILED,
        ReleaseStatus.PUSH_FAILED,
    }
)


@dataclass
class ReleaseReport:
    status: ReleaseStatus
    plan: ReleasePlan | None = None
    detail: str | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.status in _FAILURE_STATUSES else 0


class ReleaseManager:
    """Show the release status or cut a new tagged release."""

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

    async def _git(self, *args: str, timeout: float | None = None) -> CommandResult:
        return await self.executor.execute(
            GIT_EXECUTABLE,
            list(args),
            cwd=self.repo_root,
            timeout=timeout,
            cancel_token=self.cancel_token,
        )

    async def _current(self) -> tuple[str, Version] | ReleaseReport:
        tag = await self.gateway.latest_tag()
        if not tag:
            self.prompter.error("No tags found in this repository.")
            self.prompter.info("Create an initial tag first: git tag -a v1.0.0 -m \"Initial release\"")
            return ReleaseReport(ReleaseStatus.NO_TAGS)
        version = Version.parse(tag)
        if version is None:
            self.prompter.error(f"Unable to parse version '{tag}'. Expected MAJOR.MINOR.PATCH.")
            return ReleaseReport(ReleaseStatus.INVALID_VERSION, detail=tag)
        return tag, version

    async def status(self) -> ReleaseReport:
        current = await self._current()
        if isinstance(current, ReleaseReport):
            return current
        tag, version = current

        self.prompter.rule("Release status")
        self.prompter.info(f"Current version: {version} (tag {tag})")

        total = await self.gateway.count_commits(f"{tag}..HEAD")
        if total:
            commits = await self.gateway.log_oneline(f"{tag}..HEAD", max_count=PREVIEW_COMMIT_LIMIT)
            rows = list(commits)
            if total > len(commits):
                rows.append(f"... and {total - len(commits)} more")
            self.prompter.table(f"Commits since {tag} ({total})", rows)
        else:
            self.prompter.warning("No commits since the last release.")

        suggestions = [f"{kind.value} -> {version.bump(kind)} ({_BUMP_HINTS[kind]})" for kind in BumpKind]
        self.prompter.table("Suggested versions", suggestions, style="blue")
        self.prompter.info("Usage: buddy release <patch|minor|major> [--push]")
        return ReleaseReport(ReleaseStatus.SHOWN)

    async def release(
        self,
        bump: BumpKind,
        *,
        push: bool = False,
        dry_run: bool = False,
        message: str | None = None,
    ) -> ReleaseReport:
        current = await self._current()
        if isinstance(current, ReleaseReport):
            return current
        tag, version = current

        next_version = version.bump(bump)
        plan = ReleasePlan(
            bump=bump,
            current_tag=tag,
            version=next_version,
            message=message or f"Release {next_version}",
            push=push,
        )
        self.prompter.panel("Release plan", plan.describe())

        if await self.gateway.tag_exists(plan.tag):
            self.prompter.error(f"Tag '{plan.tag}' already exists.")
            return ReleaseReport(ReleaseStatus.TAG_EXISTS, plan=plan)

        if dry_run:
            self.prompter.info("Dry run: no changes were made.")
            return ReleaseReport(ReleaseStatus.DRY_RUN, plan=plan)

        if not self.prompter.confirm("Create this release?", default=False):
            self.prompter.info("Cancelled.")
            return ReleaseReport(ReleaseStatus.CANCELLED, plan=plan)

        created = await self._git("tag", "-a", plan.tag, "-m", plan.message)
        if not created.exited_cleanly:
            self.prompter.error(f"Failed to create tag: {created.output}")
            return ReleaseReport(ReleaseStatus.TAG_FAILED, plan=plan, detail=created.output)
        self.prompter.success(f"Tag {plan.tag} created.")

        if not push:
            self.prompter.success(f"Released {plan.version}.")
            self.prompter.info(f"Run 'git push {DEFAULT_REMOTE} {plan.tag}' to publish the tag.")
            return ReleaseReport(ReleaseStatus.RELEASED, plan=plan)

        pushed = await self._git("push", DEFAULT_REMOTE, plan.tag, timeout=PUSH_TIMEOUT_SECONDS)
        if not pushed.exited_cleanly:
            logger.debug("Tag push failed: %s", pushed.output)
            self.prompter.error(f"Failed to push tag: {pushed.output}")
            self.prompter.info(f"The tag exists locally. Retry with 'git push {DEFAULT_REMOTE} {plan.tag}'.")
            return ReleaseReport(ReleaseStatus.PUSH_FAILED, plan=plan, detail=pushed.output)

        self.prompter.success(f"Released {plan.version} and pushed {plan.tag} to {DEFAULT_REMOTE}.")
        return ReleaseReport(ReleaseStatus.RELEASED, plan=plan)
