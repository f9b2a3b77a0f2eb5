"""Translation of git's free-text output into typed values.

git offers no stable machine-readable signal for most of what the merge and
sync flows need to know, so every substring and regex check lives here. A
move to porcelain output only has to touch this module.

Rules applied uniformly:
    - A step failed when its exit code is non-zero. Output phrases refine
      *how* it failed (conflict, missing remote ref, missing repository).
    - Phrase matching runs on stdout and stderr together, since git spreads
      informational and error text across both.
"""

from __future__ import annotations

import json
import re
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from buddy_cli.core.process import CommandResult

FAST_FORWARD_MARKER = "Fast-forward"
MISSING_REMOTE_REF_PHRASE = "couldn't find remote ref"
MISSING_REMOTE_REPOSITORY_PHRASES = (
    "repository not found",
    "not found",
    "does not appear to be a git repository",
)
REMOTE_REF_ABSENT_PHRASE = "remote ref does not exist"
NO_LOCAL_CHANGES_PHRASE = "no local changes to save"

_CURRENT_MARKER = "*"
_REMOTE_PREFIX = re.compile(r"^remotes/(?P<remote>[^/]+)/(?P<name>.+)$")
_CONFLICT_PATH = re.compile(r"^CONFLICT \([^)]*\): .*?Merge conflict in (?P<path>.+)$")
# Markers only count at the start of a line; diffstat lines name files, not markers.
_CONFLICT_LINE = re.compile(r"^(?:CONFLICT \([^)]*\): |Automatic merge failed)", re.MULTILINE)
_STASH_LINE = re.compile(r"^stash@\{(?P<index>\d+)\}:\s+(?:WIP on|On)\s+(?P<branch>[^:]+):\s*(?P<message>.*)$")
_ABBREV_HASH = re.compile(r"^[0-9a-f]{7,40}$")


class MergeOutputKind(StrEnum):
    """Classification of an executed ``git merge``."""

    CONFLICT = "conflict"
    FAST_FORWARD = "fast_forward"
    MERGED = "merged"
    FAILED = "failed"


def split_lines(text: str) -> list[str]:
    """Non-empty, stripped lines of ``text``."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def has_conflict_markers(output: str) -> bool:
    """True iff a line of ``output`` opens with git's conflict marker or failure phrase."""
    if not output:
        return False
    return _CONFLICT_LINE.search(output) is not None


def is_fast_forward(output: str) -> bool:
    return bool(output) and FAST_FORWARD_MARKER in output


def classify_merge(result: CommandResult) -> MergeOutputKind:
    """Classify the output of an executed merge.

    A zero exit is always a completed merge, whatever file names the
    diffstat mentions. A non-zero exit is a conflict when git printed its
    conflict lines, otherwise a plain failure.
    """
    output = result.output
    if result.exit_code != 0:
        if has_conflict_markers(output):
            return MergeOutputKind.CONFLICT
        return MergeOutputKind.FAILED
    if is_fast_forward(output):
        return MergeOutputKind.FAST_FORWARD
    return MergeOutputKind.MERGED


def parse_conflict_paths(output: str) -> list[str]:
    """Extract paths from ``CONFLICT (...): Merge conflict in <path>`` lines."""
    paths: list[str] = []
    for line in split_lines(output):
        match = _CONFLICT_PATH.match(line)
        if match and match.group("path") not in paths:
            paths.append(match.group("path"))
    return paths


def parse_branch_line(line: str) -> tuple[str, bool, str | None] | None:
    """Parse one line of ``git branch -a``.

    Returns:
        ``(name, is_current, remote)`` or None for lines that do not name a
        branch (blank lines, ``remotes/origin/HEAD -> origin/main``,
        detached-HEAD placeholders).
    """
    text = line.strip()
    if not text:
        return None

    is_current = text.startswith(_CURRENT_MARKER)
    if is_current:
        text = text[len(_CURRENT_MARKER):].strip()

    if "->" in text or text.startswith("("):
        return None

    remote: str | None = None
    match = _REMOTE_PREFIX.match(text)
    if match:
        remote = match.group("remote")
        text = match.group("name")

    return text, is_current, remote


def parse_merged_branches(output: str) -> list[str]:
    """Branch names from ``git branch --merged`` with the current marker removed."""
    names: list[str] = []
    for line in split_lines(output):
        name = line.lstrip(_CURRENT_MARKER).strip()
        if name and not name.startswith("(") and name not in names:
            names.append(name)
    return names


def parse_count(output: str) -> int:
    """Parse ``git rev-list --count`` output; anything unparsable is zero."""
    try:
        return int(output.strip())
    except ValueError:
        return 0


def is_missing_remote_ref(output: str) -> bool:
    """Pull failed only because the branch is not on the remote yet."""
    return MISSING_REMOTE_REF_PHRASE in output.lower()


def is_remote_repository_missing(output: str) -> bool:
    """The remote repository itself is gone (deleted, renamed, never created)."""
    lowered = output.lower()
    return any(phrase in lowered for phrase in MISSING_REMOTE_REPOSITORY_PHRASES)


def remote_branch_already_absent(output: str) -> bool:
    return REMOTE_REF_ABSENT_PHRASE in output.lower()


def parse_stash_line(line: str) -> tuple[int, str, str] | None:
    """Parse one line of ``git stash list``.

    ``stash@{0}: WIP on main: 1a2b3c4 Fix typo`` becomes
    ``(0, "main", "Fix typo")``; a message given with ``-m`` is kept as is.
    """
    match = _STASH_LINE.match(line.strip())
    if not match:
        return None
    message = match.group("message").strip()
    head, _, rest = message.partition(" ")
    if rest and _ABBREV_HASH.match(head):
        message = rest
    return int(match.group("index")), match.group("branch").strip(), message


def nothing_to_stash(output: str) -> bool:
    return NO_LOCAL_CHANGES_PHRASE in output.lower()


def parse_hosting_url(output: str) -> str | None:
    """Read the ``url`` field of ``gh repo view --json url``."""
    try:
        payload = json.loads(output)
    except (json.JSONDecodeError, TypeError):
        return None
    url = payload.get("url") if isinstance(payload, dict) else None
    return url if isinstance(url, str) and url else None


def display_remote(url: str | None) -> str:
    """Shorten a GitHub remote URL to ``owner/repo`` for display."""
    if not url:
        return ""
    text = url.strip()
    for prefix in ("https://github.com/", "git@github.com:", "ssh://git@github.com/"):
        if text.startswith(prefix):
            text = text[len(prefix):]
            break
    if text.endswith(".git"):
        text = text[: -len(".git")]
    return text


__all__ = [
    "MergeOutputKind",
    "classify_merge",
    "display_remote",
    "has_conflict_markers",
    "is_fast_forward",
    "is_missing_remote_ref",
    "is_remote_repository_missing",
    "nothing_to_stash",
    "parse_branch_line",
    "parse_conflict_paths",
    "parse_count",
    "parse_hosting_url",
    "parse_merged_branches",
    "parse_stash_line",
    "remote_branch_already_absent",
    "split_lines",
]
