"""Pre-merge checks: candidate selection and the merge preview.

Everything here is read-only. The preview is advisory; the executed merge's
output decides what actually happened.
"""

from __future__ import annotations

from typing import Iterable

from buddy_cli.core.constants import PREVIEW_COMMIT_LIMIT
from buddy_cli.core.git_gateway import BranchRef, GitGateway
from buddy_cli.merge.state import MergePlan

__all__ = ["build_plan", "merge_candidates", "plan_summary"]


def merge_candidates(branches: Iterable[BranchRef], current: str | None) -> list[str]:
    """Branch names offered for selection: everything except ``current``, sorted."""
    names = {branch.name for branch in branches if branch.name != current}
    return sorted(names)


async def build_plan(
    gateway: GitGateway,
    source: str,
    target: str,
    *,
    source_ref: str | None = None,
    target_ref: str | None = None,
) -> MergePlan:
    """Preview merging ``source`` into ``target``.

    A fast-forward is possible when the merge base of the two branches is
    the target's tip.
    """
    source_rev = source_ref or source
    target_rev = target_ref or target

    base = await gateway.merge_base(target_rev, source_rev)
    target_tip = await gateway.rev_parse(target_rev)
    revision_range = f"{target_rev}..{source_rev}"
    commits = await gateway.log_oneline(revision_range, max_count=PREVIEW_COMMIT_LIMIT)
    ahead = await gateway.count_commits(revision_range)

    return MergePlan(
        source_branch=source,
        target_branch=target,
        is_fast_forward_preview=base is not None and base == target_tip,
        ahead_commit_count=max(ahead, len(commits)),
        preview_commits=tuple(commits),
    )


def plan_summary(plan: MergePlan) -> str:
    """Panel body describing a MergePlan."""
    lines = [f"Merging {plan.source_branch} into {plan.target_branch}"]
    if plan.is_fast_forward_preview:
        lines.append("Fast-forward possible (no merge commit needed)")
    else:
        lines.append("Branches have diverged; a merge commit will be created")
    lines.append(f"{plan.ahead_commit_count} commit(s) to merge")
    return "\n".join(lines)
