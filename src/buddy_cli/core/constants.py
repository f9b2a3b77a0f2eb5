"""Shared constants for git-buddy."""

GIT_EXECUTABLE = "git"
HOSTING_EXECUTABLE = "gh"

DEFAULT_TIMEOUT_SECONDS = 30.0
PUSH_TIMEOUT_SECONDS = 300.0
SELF_UPDATE_TIMEOUT_SECONDS = 120.0

DEFAULT_REMOTE = "origin"
PROTECTED_BRANCHES = frozenset({"main", "master"})

PREVIEW_COMMIT_LIMIT = 10
CONFLICT_PREVIEW_CHARS = 1000

PROJECT_CONTEXT_FILE = ".buddycontext"
DEFAULT_PROJECT_CONTEXT = "a software project"

PACKAGE_NAME = "git-buddy"

__all__ = [
    "GIT_EXECUTABLE",
    "HOSTING_EXECUTABLE",
    "DEFAULT_TIMEOUT_SECONDS",
    "PUSH_TIMEOUT_SECONDS",
    "SELF_UPDATE_TIMEOUT_SECONDS",
    "DEFAULT_REMOTE",
    "PROTECTED_BRANCHES",
    "PREVIEW_COMMIT_LIMIT",
    "CONFLICT_PREVIEW_CHARS",
    "PROJECT_CONTEXT_FILE",
    "DEFAULT_PROJECT_CONTEXT",
    "PACKAGE_NAME",
]
