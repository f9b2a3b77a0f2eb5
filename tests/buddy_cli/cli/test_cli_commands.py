"""CLI commands through typer's CliRunner."""

from __future__ import annotations

import pytest
import typer
from typer.testing import CliRunner

from buddy_cli import app
from buddy_cli.ai.config import ConfigStore
from buddy_cli.cli import helpers
from buddy_cli.cli.commands import describe as describe_module
from buddy_cli.cli.commands import save as save_module
from buddy_cli.cli.commands.update import UpdateOutcome, classify_update
from buddy_cli.cli.ui import ConsolePrompter
from buddy_cli.core.errors import OperationCancelled, ProcessTimeoutError
from buddy_cli.core.git_gateway import GitGateway
from buddy_cli.core.process import CommandResult
from buddy_cli.core.prompts import MessageDecision, Prompter

runner = CliRunner()


class CannedProvider:
    """Replaces CommitMessageProvider inside command modules."""

    message: str | None = "Describe the change"

    def __init__(self, *args, **kwargs) -> None:
        self.last_error = None

    async def generate_commit_message(self, diff_text: str) -> str | None:
        return self.message

    async def generate_description(self, snapshot_text: str) -> str | None:
        return self.message


@pytest.fixture
def ahead_repo(repo, git, commit, monkeypatch):
    git(repo, "checkout", "-b", "feature")
    commit(repo, "feature.txt", "f\n", "Add feature")
    git(repo, "checkout", "main")
    monkeypatch.chdir(repo)
    return repo


def test_help_lists_commands():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("merge", "sync", "save", "config", "describe", "branch", "update", "stash", "release"):
        assert name in result.output


class TestMergeCommand:
    def test_fast_forward(self, ahead_repo, git):
        result = runner.invoke(app, ["merge", "feature"], input="y\n")
        assert result.exit_code == 0, result.output
        assert git(ahead_repo, "rev-parse", "main") == git(ahead_repo, "rev-parse", "feature")

    def test_same_branch(self, ahead_repo):
        result = runner.invoke(app, ["merge", "main"])
        assert result.exit_code == 0
        assert "Nothing to merge" in result.output

    def test_unknown_branch_exits_1(self, ahead_repo):
        result = runner.invoke(app, ["merge", "ghost"])
        assert result.exit_code == 1
        assert "ghost" in result.output

    def test_verbose_flag_accepted(self, ahead_repo):
        result = runner.invoke(app, ["-v", "merge", "main"])
        assert result.exit_code == 0


class TestConfigCommand:
    def test_unknown_provider_rejected_without_side_effects(self, isolated_buddy_home):
        result = runner.invoke(app, ["config", "--provider", "bogus", "--model", "x"])
        assert result.exit_code == 1
        assert "Unknown provider" in result.output
        assert not (isolated_buddy_home / "config.json").exists()

    def test_provider_with_markup_is_printed_literally(self, isolated_buddy_home):
        result = runner.invoke(app, ["config", "--provider", "[/oops]", "--model", "x"])
        assert result.exit_code == 1
        assert "'[/oops]'" in result.output

    def test_save_error_is_printed_literally(self, tmp_path, monkeypatch):
        blocker = tmp_path / "cfg[bold]"
        blocker.write_text("not a directory", encoding="utf-8")
        monkeypatch.setenv("GIT_BUDDY_HOME", str(blocker / "home"))

        result = runner.invoke(
            app,
            ["config", "--provider", "deepseek", "--model", "deepseek-chat"],
            input="sk-deepseek-123456\n",
        )

        assert result.exit_code == 1
        assert "cfg[bold]" in result.output.replace("\n", "")

    def test_saves_and_shows_redacted(self, isolated_buddy_home):
        result = runner.invoke(
            app,
            ["config", "--provider", "deepseek", "--model", "deepseek-chat"],
            input="sk-deepseek-123456\n",
        )
        assert result.exit_code == 0, result.output

        config = ConfigStore().load()
        assert (config.provider_id, config.model, config.api_key) == ("deepseek", "deepseek-chat", "sk-deepseek-123456")

        shown = runner.invoke(app, ["config", "--show"])
        assert "sk-de***" in shown.output
        assert "sk-deepseek-123456" not in shown.output

    def test_keeps_existing_key(self, isolated_buddy_home):
        ConfigStore().save("openai", "gpt-4o-mini", "sk-openai-abcdef")
        result = runner.invoke(app, ["config", "--provider", "openai", "--model", "gpt-4o"], input="y\n")
        assert result.exit_code == 0, result.output
        assert ConfigStore().load().api_key == "sk-openai-abcdef"
        assert ConfigStore().load().model == "gpt-4o"


class TestSaveCommand:
    def test_commits_with_message(self, repo, git, monkeypatch):
        monkeypatch.chdir(repo)
        (repo / "notes.txt").write_text("notes\n", encoding="utf-8")

        result = runner.invoke(app, ["save", "-m", "Add notes"])

        assert result.exit_code == 0, result.output
        assert git(repo, "log", "-1", "--pretty=%s") == "Add notes"
        assert git(repo, "status", "--porcelain") == ""

    def test_clean_tree(self, repo, monkeypatch):
        monkeypatch.chdir(repo)
        result = runner.invoke(app, ["save", "-m", "nothing"])
        assert result.exit_code == 0
        assert "Nothing to save" in result.output

    def test_ai_suggestion_accepted(self, repo, git, monkeypatch):
        monkeypatch.chdir(repo)
        monkeypatch.setattr(save_module, "CommitMessageProvider", CannedProvider)
        monkeypatch.setattr("buddy_cli.cli.ui.select_with_arrows", lambda *args, **kwargs: "accept")
        (repo / "notes.txt").write_text("notes\n", encoding="utf-8")

        result = runner.invoke(app, ["save", "--ai"])

        assert result.exit_code == 0, result.output
        assert git(repo, "log", "-1", "--pretty=%s") == "Describe the change"

    def test_ai_suggestion_cancelled_keeps_changes_staged(self, repo, git, monkeypatch):
        monkeypatch.chdir(repo)
        monkeypatch.setattr(save_module, "CommitMessageProvider", CannedProvider)
        monkeypatch.setattr("buddy_cli.cli.ui.select_with_arrows", lambda *args, **kwargs: None)
        (repo / "notes.txt").write_text("notes\n", encoding="utf-8")

        result = runner.invoke(app, ["save", "--ai"])

        assert result.exit_code == 0
        assert git(repo, "log", "-1", "--pretty=%s") == "Initial commit"
        assert git(repo, "status", "--porcelain") == "A  notes.txt"

    @pytest.mark.asyncio
    async def test_suggestion_flow_works_with_any_prompter(self, repo, git, scripted_prompter):
        (repo / "notes.txt").write_text("notes\n", encoding="utf-8")
        git(repo, "add", "-A")
        prompter = scripted_prompter(choices=[MessageDecision.EDIT], answers=["Write down notes"])

        message, cancelled = await save_module._suggest_message(CannedProvider(), GitGateway(repo), prompter)

        assert (message, cancelled) == ("Write down notes", False)
        assert prompter.choose_calls == [[MessageDecision.ACCEPT, MessageDecision.EDIT, MessageDecision.CANCEL]]


def test_console_prompter_implements_every_prompter_member():
    members = [name for name in vars(Prompter) if not name.startswith("_")]
    assert "ask_secret" in members
    for name in members:
        assert callable(getattr(ConsolePrompter, name, None)), name


class TestBranchClean:
    def test_deletes_after_confirmation(self, repo, git, monkeypatch):
        monkeypatch.chdir(repo)
        git(repo, "branch", "done")

        result = runner.invoke(app, ["branch", "clean"], input="y\n")

        assert result.exit_code == 0, result.output
        assert git(repo, "branch", "--list", "done") == ""

    def test_nothing_to_clean(self, repo, monkeypatch):
        monkeypatch.chdir(repo)
        result = runner.invoke(app, ["branch", "clean"])
        assert result.exit_code == 0
        assert "No merged branches" in result.output


class TestStashCommand:
    def test_push_then_list(self, repo, monkeypatch):
        monkeypatch.chdir(repo)
        (repo / "README.md").write_text("edited\n", encoding="utf-8")

        pushed = runner.invoke(app, ["stash", "push", "-m", "readme draft"])
        listed = runner.invoke(app, ["stash"])

        assert pushed.exit_code == 0, pushed.output
        assert listed.exit_code == 0
        assert "readme draft" in listed.output
        assert "Total: 1 stash(es)" in listed.output

    def test_pop_by_index(self, repo, git, monkeypatch):
        monkeypatch.chdir(repo)
        (repo / "README.md").write_text("edited\n", encoding="utf-8")
        git(repo, "stash", "push", "-m", "draft")

        result = runner.invoke(app, ["stash", "pop", "0"], input="y\n")

        assert result.exit_code == 0, result.output
        assert git(repo, "stash", "list") == ""
        assert (repo / "README.md").read_text(encoding="utf-8") == "edited\n"

    def test_apply_missing_index_exits_1(self, repo, git, monkeypatch):
        monkeypatch.chdir(repo)
        (repo / "README.md").write_text("edited\n", encoding="utf-8")
        git(repo, "stash", "push", "-m", "draft")

        result = runner.invoke(app, ["stash", "apply", "4"])

        assert result.exit_code == 1
        assert "does not exist" in result.output


class TestReleaseCommand:
    def test_invalid_bump_exits_1(self, repo, monkeypatch):
        monkeypatch.chdir(repo)
        result = runner.invoke(app, ["release", "huge"])
        assert result.exit_code == 1
        assert "Invalid bump type" in result.output

    def test_dry_run(self, repo, git, monkeypatch):
        monkeypatch.chdir(repo)
        git(repo, "tag", "-a", "v2.0.0", "-m", "Release 2.0.0")

        result = runner.invoke(app, ["release", "minor", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "v2.1.0" in result.output
        assert git(repo, "tag", "--list", "v2.1.0") == ""

    def test_tags_after_confirmation(self, repo, git, monkeypatch):
        monkeypatch.chdir(repo)
        git(repo, "tag", "-a", "v2.0.0", "-m", "Release 2.0.0")

        result = runner.invoke(app, ["release", "PATCH"], input="y\n")

        assert result.exit_code == 0, result.output
        assert git(repo, "tag", "--list", "v2.0.1") == "v2.0.1"

    def test_status_without_tags_exits_1(self, repo, monkeypatch):
        monkeypatch.chdir(repo)
        result = runner.invoke(app, ["release"])
        assert result.exit_code == 1
        assert "No tags found" in result.output


class TestDescribeCommand:
    def test_writes_context_on_confirmation(self, repo, monkeypatch):
        monkeypatch.chdir(repo)
        monkeypatch.setattr(describe_module, "CommitMessageProvider", CannedProvider)

        result = runner.invoke(app, ["describe"], input="y\n")

        assert result.exit_code == 0, result.output
        assert (repo / ".buddycontext").read_text(encoding="utf-8").strip() == "Describe the change"

    def test_snapshot_limits(self, tmp_path):
        for index in range(8):
            (tmp_path / f"mod{index}.py").write_text("\n".join(f"line {n}" for n in range(80)), encoding="utf-8")
        (tmp_path / ".hidden.py").write_text("secret", encoding="utf-8")
        (tmp_path / "image.png").write_bytes(b"\x89PNG")

        snapshot = describe_module.collect_snapshot(tmp_path)

        assert snapshot.count("--- File:") == 6
        assert "line 49" in snapshot
        assert "line 50" not in snapshot
        assert "secret" not in snapshot


class TestUpdateClassification:
    def test_updated(self):
        result = CommandResult(0, "Successfully installed git-buddy-0.2.0")
        assert classify_update(result) is UpdateOutcome.UPDATED

    def test_already_current(self):
        result = CommandResult(0, "Requirement already satisfied: git-buddy in /venv")
        assert classify_update(result) is UpdateOutcome.CURRENT

    def test_failure(self):
        assert classify_update(CommandResult(1, "", "No matching distribution")) is UpdateOutcome.FAILED


class TestRunFlow:
    def test_cancellation_exits_130(self):
        async def flow(token):
            raise OperationCancelled("stop")

        with pytest.raises(typer.Exit) as exc_info:
            helpers.run_flow(flow)
        assert exc_info.value.exit_code == 130

    def test_buddy_errors_exit_1(self):
        async def flow(token):
            raise ProcessTimeoutError("git", ["push"], 300)

        with pytest.raises(typer.Exit) as exc_info:
            helpers.run_flow(flow)
        assert exc_info.value.exit_code == 1

    def test_returns_flow_value(self):
        async def flow(token):
            return "done"

        assert helpers.run_flow(flow) == "done"
