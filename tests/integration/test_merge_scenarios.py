"""End-to-end merge scenarios driven through MergeOrchestrator with real git."""

from __future__ import annotations

import pytest

from buddy_cli.core.prompts import ConflictDecision
from buddy_cli.merge import MergeOrchestrator, MergeRequest, MergeState

pytestmark = [pytest.mark.integration]


@pytest.fixture
def feature_branch(repo, git):
    git(repo, "checkout", "-b", "feature")
    return repo


@pytest.mark.asyncio
async def test_fast_forward_moves_main_to_feature_head(feature_branch, git, commit, scripted_prompter):
    repo = feature_branch
    head_b = commit(repo, "b.txt", "b\n", "Commit B")
    git(repo, "checkout", "main")

    report = await MergeOrchestrator(repo, scripted_prompter()).run(MergeRequest(branch="feature"))

    assert report.state is MergeState.FAST_FORWARD_DONE
    assert report.fast_forward is True
    assert git(repo, "rev-parse", "main") == head_b


@pytest.mark.asyncio
async def test_divergent_branches_produce_merge_commit(feature_branch, git, commit, scripted_prompter):
    repo = feature_branch
    head_d = commit(repo, "d.txt", "d\n", "Commit D")
    git(repo, "checkout", "main")
    head_c = commit(repo, "c.txt", "c\n", "Commit C")

    report = await MergeOrchestrator(repo, scripted_prompter()).run(MergeRequest(branch="feature"))

    assert report.state is MergeState.COMMITTED
    assert report.fast_forward is False
    merge_head = git(repo, "rev-parse", "HEAD")
    assert merge_head not in (head_c, head_d)
    for ancestor in (head_c, head_d):
        assert git(repo, "merge-base", "--is-ancestor", ancestor, merge_head) == ""


@pytest.mark.asyncio
async def test_conflict_then_abort_restores_main(feature_branch, git, commit, scripted_prompter):
    repo = feature_branch
    commit(repo, "README.md", "feature wording\n", "Commit D")
    git(repo, "checkout", "main")
    head_c = commit(repo, "README.md", "main wording\n", "Commit C")
    prompter = scripted_prompter(choices=[ConflictDecision.ABORT])

    report = await MergeOrchestrator(repo, prompter).run(MergeRequest(branch="feature"))

    assert report.state is MergeState.ABORTED
    assert report.conflicts.paths == ("README.md",)
    assert MergeState.CONFLICT_DETECTED in report.history
    assert git(repo, "rev-parse", "HEAD") == head_c
    assert git(repo, "status", "--porcelain") == ""
