from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Callable, Iterator, Sequence

import pytest

from buddy_cli.ai.client import ProviderError


def run_git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=repo,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(repo: Path, name: str, content: str, message: str) -> str:
    path = repo / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    run_git(repo, "add", name)
    run_git(repo, "commit", "-m", message)
    return run_git(repo, "rev-parse", "HEAD")


def _init_repo(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    run_git(path, "init")
    run_git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    run_git(path, "config", "user.name", "Git Buddy")
    run_git(path, "config", "user.email", "buddy@example.com")
    run_git(path, "config", "commit.gpgsign", "false")
    return path


@pytest.fixture(autouse=True)
def isolated_buddy_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep every test away from the real user configuration."""
    home = tmp_path / "buddy-home"
    monkeypatch.setenv("GIT_BUDDY_HOME", str(home))
    return home


@pytest.fixture()
def git() -> Callable[..., str]:
    return run_git


@pytest.fixture()
def commit() -> Callable[[Path, str, str, str], str]:
    return commit_file


@pytest.fixture()
def empty_repo(tmp_path: Path) -> Path:
    return _init_repo(tmp_path / "repo")


@pytest.fixture()
def repo(empty_repo: Path) -> Path:
    """Repository on ``main`` with one commit (README.md)."""
    commit_file(empty_repo, "README.md", "# demo\n", "Initial commit")
    return empty_repo


@pytest.fixture()
def repo_with_remote(tmp_path: Path, repo: Path) -> Iterator[Path]:
    """``repo`` with a bare ``origin`` that already has ``main``."""
    remote = tmp_path / "origin.git"
    subprocess.run(["git", "init", "--bare", str(remote)], check=True, capture_output=True)
    run_git(repo, "remote", "add", "origin", str(remote))
    run_git(repo, "push", "-u", "origin", "main")
    yield repo


class ScriptedPrompter:
    """Prompter that answers from queues and records everything shown."""

    def __init__(
        self,
        *,
        selections: Sequence[str | None] = (),
        choices: Sequence[object] = (),
        confirms: Sequence[bool] = (),
        answers: Sequence[str] = (),
    ) -> None:
        self.selections = list(selections)
        self.choices = list(choices)
        self.confirms = list(confirms)
        self.answers = list(answers)
        self.shown: list[tuple[str, str]] = []
        self.select_calls: list[list[str]] = []
        self.choose_calls: list[list[object]] = []
        self.confirm_calls: list[tuple[str, bool]] = []

    def select(self, title, options):
        self.select_calls.append(list(options))
        return self.selections.pop(0) if self.selections else None

    def choose(self, title, choices, cancel):
        self.choose_calls.append(list(choices))
        return self.choices.pop(0) if self.choices else cancel

    def confirm(self, message, default):
        self.confirm_calls.append((message, default))
        return self.confirms.pop(0) if self.confirms else default

    def ask(self, message, default=""):
        return self.answers.pop(0) if self.answers else default

    def ask_secret(self, message):
        return self.answers.pop(0) if self.answers else ""

    def info(self, message):
        self.shown.append(("info", message))

    def success(self, message):
        self.shown.append(("success", message))

    def warning(self, message):
        self.shown.append(("warning", message))

    def error(self, message):
        self.shown.append(("error", message))

    def rule(self, title):
        self.shown.append(("rule", title))

    def panel(self, title, body, style="blue"):
        self.shown.append(("panel", f"{title}\n{body}"))

    def table(self, title, rows, style="grey50"):
        self.shown.append(("table", "\n".join([title, *rows])))

    def text(self) -> str:
        return "\n".join(message for _, message in self.shown)


class FakeMessageProvider:
    """Stands in for CommitMessageProvider; returns a fixed message or None."""

    def __init__(self, message: str | None = "Merge feature work", error: ProviderError | None = None) -> None:
        self.message = message
        self.last_error = error
        self.requests: list[str] = []

    async def generate_merge_message(self, merge_text: str) -> str | None:
        self.requests.append(merge_text)
        return self.message

    async def generate_commit_message(self, diff_text: str) -> str | None:
        self.requests.append(diff_text)
        return self.message

    async def generate_description(self, snapshot_text: str) -> str | None:
        self.requests.append(snapshot_text)
        return self.message


@pytest.fixture()
def scripted_prompter() -> type[ScriptedPrompter]:
    return ScriptedPrompter


@pytest.fixture()
def fake_provider() -> type[FakeMessageProvider]:
    return FakeMessageProvider
