"""BranchCleaner as used by ``buddy branch clean``."""

from __future__ import annotations

import pytest

from buddy_cli.sync.cleanup import BranchCleaner, deletable_branches


def test_deletable_branches_skip_current_and_protected():
    merged = ["main", "master", "feature", "old-fix"]
    assert deletable_branches(merged, "feature") == ["old-fix"]


@pytest.mark.asyncio
async def test_candidates_are_merged_branches_only(repo, git, commit):
    git(repo, "branch", "done")
    git(repo, "checkout", "-b", "open-work")
    commit(repo, "w.txt", "w\n", "Work in progress")
    git(repo, "checkout", "main")

    from_main = BranchCleaner(repo, None)
    assert await from_main.candidates() == ["done"]


@pytest.mark.asyncio
async def test_single_confirmation_deletes_all(repo, git, scripted_prompter):
    git(repo, "branch", "done-a")
    git(repo, "branch", "done-b")
    prompter = scripted_prompter(confirms=[True])
    cleaner = BranchCleaner(repo, prompter)

    result = await cleaner.delete_all_confirmed(await cleaner.candidates())

    assert result.deleted == ["done-a", "done-b"]
    assert result.failed == {}
    assert prompter.confirm_calls == [("Delete these 2 branch(es)?", False)]
    assert git(repo, "branch", "--list", "done-*") == ""


@pytest.mark.asyncio
async def test_declined_deletes_nothing(repo, git, scripted_prompter):
    git(repo, "branch", "done")
    cleaner = BranchCleaner(repo, scripted_prompter())

    result = await cleaner.delete_all_confirmed(["done"])

    assert result.deleted == []
    assert result.skipped == ["done"]
    assert "done" in git(repo, "branch", "--list", "done")


@pytest.mark.asyncio
async def test_unmerged_branch_failure_reported_verbatim(repo, git, commit, scripted_prompter):
    git(repo, "checkout", "-b", "unmerged")
    commit(repo, "u.txt", "u\n", "Unmerged work")
    git(repo, "checkout", "main")
    prompter = scripted_prompter(confirms=[True])

    result = await BranchCleaner(repo, prompter).delete_all_confirmed(["unmerged"])

    assert result.deleted == []
    assert "not fully merged" in result.failed["unmerged"]
