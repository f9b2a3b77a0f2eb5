"""States and result envelopes of the merge flow."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

__all__ = [
    "ConflictSet",
    "MergePlan",
    "MergeReport",
    "MergeRequest",
    "MergeState",
    "NONZERO_EXIT_STATES",
    "TERMINAL_STATES",
]


class MergeState(StrEnum):
    IDLE = "idle"
    SELECT_SOURCE = "select_source"
    SELECT_TARGET = "select_target"
    PREFLIGHT = "preflight"
    PREVIEW_SHOWN = "preview_shown"
    CONFIRMED = "confirmed"
    MERGING = "merging"
    FAST_FORWARD_DONE = "fast_forward_done"
    CONFLICT_DETECTED = "conflict_detected"
    AWAITING_MESSAGE_DECISION = "awaiting_message_decision"
    COMMITTED = "committed"
    ABORTED = "aborted"
    NOTHING_TO_MERGE = "nothing_to_merge"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {
        MergeState.FAST_FORWARD_DONE,
        MergeState.CONFLICT_DETECTED,
        MergeState.COMMITTED,
        MergeState.ABORTED,
        MergeState.NOTHING_TO_MERGE,
        MergeState.FAILED,
    }
)

# Runs that end here leave work for the operator (or failed outright).
NONZERO_EXIT_STATES = frozenset(
    {
        MergeState.FAILED,
        MergeState.CONFLICT_DETECTED,
        MergeState.AWAITING_MESSAGE_DECISION,
    }
)


@dataclass(frozen=True)
class MergeRequest:
    """What the operator asked for.

    ``into=False`` merges ``branch`` into the current branch; ``into=True``
    merges the current branch into ``branch``. A missing ``branch`` is
    selected interactively.
    """

    branch: str | None = None
    into: bool = False
    use_ai: bool = False


@dataclass(frozen=True)
class MergePlan:
    """Preview of a merge; the executed merge's output is authoritative."""

    source_branch: str
    target_branch: str
    is_fast_forward_preview: bool
    ahead_commit_count: int
    preview_commits: tuple[str, ...] = ()

    @property
    def hidden_commit_count(self) -> int:
        return max(self.ahead_commit_count - len(self.preview_commits), 0)


@dataclass(frozen=True)
class ConflictSet:
    """Ordered, de-duplicated conflicting paths."""

    paths: tuple[str, ...] = ()

    @classmethod
    def from_paths(cls, paths: list[str]) -> ConflictSet:
        return cls(tuple(dict.fromkeys(p for p in paths if p)))

    def __bool__(self) -> bool:
        return bool(self.paths)

    def __len__(self) -> int:
        return len(self.paths)


@dataclass
class MergeReport:
    """Outcome of one merge run."""

    state: MergeState = MergeState.IDLE
    source: str | None = None
    target: str | None = None
    plan: MergePlan | None = None
    conflicts: ConflictSet = field(default_factory=ConflictSet)
    message: str | None = None
    detail: str | None = None
    history: list[MergeState] = field(default_factory=lambda: [MergeState.IDLE])

    def transition(self, state: MergeState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def fast_forward(self) -> bool:
        return self.state is MergeState.FAST_FORWARD_DONE

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def exit_code(self) -> int:
        return 1 if self.state in NONZERO_EXIT_STATES else 0
