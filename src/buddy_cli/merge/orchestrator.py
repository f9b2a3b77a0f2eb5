"""Merge state machine.

Drives one ``buddy merge`` run:

1. Selection of the source (or, in ``into`` mode, the target) branch
2. Pre-flight: same-branch check, ref resolution, uncommitted changes
3. Preview and confirmation
4. Checkout of the target, then ``git merge``
5. Classification of the merge output, then the conflict or message
   decision flow

Every transition is recorded in ``MergeReport.history``. Mutations are
issued here through ProcessExecutor; queries go through GitGateway.
"""

from __future__ import annotations

import logging
from pathlib import Path

from buddy_cli.ai.client import CommitMessageProvider
from buddy_cli.core import git_output
from buddy_cli.core.constants import CONFLICT_PREVIEW_CHARS, GIT_EXECUTABLE
from buddy_cli.core.git_gateway import GitGateway
from buddy_cli.core.git_output import MergeOutputKind
from buddy_cli.core.process import CancelToken, CommandResult, ProcessExecutor
from buddy_cli.core.prompts import ConflictDecision, MessageDecision, Prompter
from buddy_cli.merge.preflight import build_plan, merge_candidates, plan_summary
from buddy_cli.merge.state import ConflictSet, MergePlan, MergeReport, MergeRequest, MergeState

__all__ = ["MergeOrchestrator"]

logger = logging.getLogger(__name__)

RESOLVE_GUIDANCE = (
    "Resolve the conflicts in your editor, then run 'git add <files>' and 'git commit'.\n"
    "To give up on this merge instead, run 'git merge --abort'."
)
PENDING_MERGE_GUIDANCE = (
    "The merge is still in progress. Run 'git commit' to finish it "
    "or 'git merge --abort' to undo it."
)


class MergeOrchestrator:
    """Run the interactive merge flow against one repository."""

    def __init__(
        self,
        repo_root: Path,
        prompter: Prompter,
        *,
        executor: ProcessExecutor | None = None,
        gateway: GitGateway | None = None,
        message_provider: CommitMessageProvider | None = None,
        cancel_token: CancelToken | None = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.prompter = prompter
        self.executor = executor or ProcessExecutor()
        self.cancel_token = cancel_token
        self.gateway = gateway or GitGateway(self.repo_root, self.executor, cancel_token)
        self.message_provider = message_provider

    async def _git(self, *args: str) -> CommandResult:
        return await self.executor.execute(
            GIT_EXECUTABLE,
            list(args),
            cwd=self.repo_root,
            cancel_token=self.cancel_token,
        )

    def _fail(self, report: MergeReport, message: str, detail: str | None = None) -> MergeReport:
        report.message = message
        report.detail = detail
        report.transition(MergeState.FAILED)
        self.prompter.error(message)
        if detail:
            self.prompter.info(detail)
        logger.info("Merge failed: %s", message)
        return report

    def _finish(self, report: MergeReport, state: MergeState, message: str) -> MergeReport:
        report.message = message
        report.transition(state)
        return report

    async def run(self, request: MergeRequest) -> MergeReport:
        report = MergeReport()

        if not await self.gateway.is_repository():
            return self._fail(report, "Not a git repository.")
        current = await self.gateway.current_branch()
        if not current:
            return self._fail(report, "HEAD is detached. Check out a branch before merging.")

        chosen = (request.branch or "").strip()
        if not chosen:
            report.transition(MergeState.SELECT_TARGET if request.into else MergeState.SELECT_SOURCE)
            candidates = merge_candidates(await self.gateway.all_branches(), current)
            if not candidates:
                self.prompter.info("No other branches found. Nothing to merge.")
                return self._finish(report, MergeState.NOTHING_TO_MERGE, "No other branches to merge.")
            title = (
                f"Merge '{current}' into which branch?"
                if request.into
                else f"Which branch should be merged into '{current}'?"
            )
            selected = self.prompter.select(title, candidates)
            if selected is None:
                self.prompter.info("Merge cancelled.")
                return self._finish(report, MergeState.ABORTED, "Merge cancelled.")
            chosen = selected

        source, target = (current, chosen) if request.into else (chosen, current)
        report.source = source
        report.target = target
        report.transition(MergeState.PREFLIGHT)

        if source == target:
            self.prompter.info(f"'{source}' is already the current branch. Nothing to merge.")
            return self._finish(report, MergeState.NOTHING_TO_MERGE, "Source and target are the same branch.")

        source_ref = await self.gateway.resolve_branch(source)
        if source_ref is None:
            return self._fail(report, f"Branch '{source}' not found.")
        target_ref = await self.gateway.resolve_branch(target)
        if target_ref is None:
            return self._fail(report, f"Branch '{target}' not found.")

        if await self.gateway.has_uncommitted_changes():
            self.prompter.warning("You have uncommitted changes. They may interfere with the merge.")
            if not self.prompter.confirm("Continue anyway?", default=False):
                self.prompter.info("Merge cancelled. Commit or stash your changes first.")
                return self._finish(report, MergeState.ABORTED, "Uncommitted changes; merge not started.")

        plan = await build_plan(self.gateway, source, target, source_ref=source_ref, target_ref=target_ref)
        report.plan = plan
        if plan.ahead_commit_count == 0:
            self.prompter.info(f"'{target}' already contains everything in '{source}'. Nothing to merge.")
            return self._finish(report, MergeState.NOTHING_TO_MERGE, "Already up to date.")

        self._show_preview(plan)
        report.transition(MergeState.PREVIEW_SHOWN)
        if not self.prompter.confirm(f"Merge '{source}' into '{target}'?", default=True):
            self.prompter.info("Merge cancelled.")
            return self._finish(report, MergeState.ABORTED, "Merge cancelled.")
        report.transition(MergeState.CONFIRMED)

        if target != current:
            checkout = await self._git("checkout", target)
            if not checkout.exited_cleanly:
                return self._fail(report, f"Could not switch to '{target}'.", checkout.output)
            self.prompter.info(f"Switched to '{target}'.")

        report.transition(MergeState.MERGING)
        merge_args = ["merge", "--no-commit", source_ref] if request.use_ai else ["merge", "--no-edit", source_ref]
        merge_result = await self._git(*merge_args)
        kind = git_output.classify_merge(merge_result)
        logger.debug("Merge of %s into %s classified as %s", source_ref, target, kind)

        if kind is MergeOutputKind.CONFLICT:
            return await self._handle_conflicts(report, merge_result)
        if kind is MergeOutputKind.FAILED:
            return self._fail(report, "Merge failed.", merge_result.output)
        if kind is MergeOutputKind.FAST_FORWARD:
            self.prompter.success(f"Fast-forwarded '{target}' to '{source}'.")
            return self._finish(report, MergeState.FAST_FORWARD_DONE, "Fast-forward merge completed.")

        if not request.use_ai:
            message = await self.gateway.last_commit_message()
            self.prompter.success(f"Merged '{source}' into '{target}'.")
            return self._finish(report, MergeState.COMMITTED, message or "Merge commit created.")

        return await self._message_flow(report, source_ref, target)

    def _show_preview(self, plan: MergePlan) -> None:
        self.prompter.panel("Merge preview", plan_summary(plan))
        if plan.preview_commits:
            self.prompter.table("Commits to merge", list(plan.preview_commits))
        if plan.hidden_commit_count:
            self.prompter.info(f"... and {plan.hidden_commit_count} more commit(s)")

    async def _handle_conflicts(self, report: MergeReport, merge_result: CommandResult) -> MergeReport:
        report.transition(MergeState.CONFLICT_DETECTED)
        paths = await self.gateway.conflicted_files()
        if not paths:
            paths = git_output.parse_conflict_paths(merge_result.output)
        report.conflicts = ConflictSet.from_paths(paths)
        report.detail = merge_result.output

        self.prompter.error("Merge conflicts detected!")
        if report.conflicts:
            self.prompter.table("Conflicting files", list(report.conflicts.paths), style="red")

        decision = self.prompter.choose(
            "How would you like to proceed?",
            [ConflictDecision.ABORT, ConflictDecision.SHOW, ConflictDecision.MANUAL],
            cancel=ConflictDecision.MANUAL,
        )

        if decision is ConflictDecision.ABORT:
            abort = await self._git("merge", "--abort")
            if not abort.exited_cleanly:
                return self._fail(report, "Could not abort the merge.", abort.output)
            self.prompter.success("Merge aborted. Your branch is back to where it was.")
            report.message = "Merge aborted after conflicts."
            report.transition(MergeState.ABORTED)
            return report

        if decision is ConflictDecision.SHOW:
            conflict_text = await self.gateway.conflict_diff()
            if len(conflict_text) > CONFLICT_PREVIEW_CHARS:
                conflict_text = conflict_text[:CONFLICT_PREVIEW_CHARS] + "\n... (truncated)"
            self.prompter.panel("Conflicts", conflict_text or "(no diff available)", style="red")

        self.prompter.info(RESOLVE_GUIDANCE)
        report.message = f"{len(report.conflicts)} conflicting file(s) left for manual resolution."
        return report

    async def _message_flow(self, report: MergeReport, source_ref: str, target: str) -> MergeReport:
        report.transition(MergeState.AWAITING_MESSAGE_DECISION)

        commits = await self.gateway.log_oneline(f"{target}..{source_ref}")
        changes = await self.gateway.diff(f"{target}...{source_ref}")
        suggestion: str | None = None
        failure_reason: str | None = None

        if not changes:
            failure_reason = "no changes to describe"
        else:
            provider = self.message_provider or CommitMessageProvider(
                repo_root=self.repo_root, cancel_token=self.cancel_token
            )
            payload = "Commits being merged:\n" + "\n".join(commits) + "\n\nChanges:\n" + changes
            self.prompter.info("Generating merge message...")
            suggestion = await provider.generate_merge_message(payload)
            if suggestion is None and provider.last_error is not None:
                failure_reason = provider.last_error.message

        if suggestion is None:
            self.prompter.warning(
                f"AI message generation failed ({failure_reason or 'no message returned'}). "
                "Committing with the default merge message."
            )
            return await self._commit(report, None)

        self.prompter.panel("Suggested merge message", suggestion, style="green")
        decision = self.prompter.choose(
            "Use this message?",
            [MessageDecision.ACCEPT, MessageDecision.EDIT, MessageDecision.CANCEL],
            cancel=MessageDecision.CANCEL,
        )

        if decision is MessageDecision.CANCEL:
            if not self.prompter.confirm("Abort the merge? Nothing will be committed.", default=False):
                self.prompter.info(PENDING_MERGE_GUIDANCE)
                report.message = "Merge left in progress without a commit."
                return report
            abort = await self._git("merge", "--abort")
            if not abort.exited_cleanly:
                return self._fail(report, "Could not abort the merge.", abort.output)
            self.prompter.info("Merge cancelled. Nothing was committed.")
            report.message = "Merge cancelled at message review."
            report.transition(MergeState.ABORTED)
            return report

        message = suggestion
        if decision is MessageDecision.EDIT:
            message = self.prompter.ask("Commit message", default=suggestion).strip() or suggestion
        return await self._commit(report, message)

    async def _commit(self, report: MergeReport, message: str | None) -> MergeReport:
        args = ["commit", "--no-edit"] if message is None else ["commit", "-m", message]
        result = await self._git(*args)
        if not result.exited_cleanly:
            return self._fail(report, "Could not create the merge commit.", result.output)
        final_message = message or await self.gateway.last_commit_message()
        self.prompter.success(f"Merged '{report.source}' into '{report.target}'.")
        report.message = final_message
        report.transition(MergeState.COMMITTED)
        return report
