"""Core utilities: process execution, git queries and output translation."""

from .errors import (
    BuddyError,
    ConfigError,
    OperationCancelled,
    ProcessStartFailed,
    ProcessTimeoutError,
)
from .git_gateway import BranchRef, GitGateway
from .process import CancelToken, CommandResult, ProcessExecutor

__all__ = [
    "BranchRef",
    "BuddyError",
    "CancelToken",
    "CommandResult",
    "ConfigError",
    "GitGateway",
    "OperationCancelled",
    "ProcessExecutor",
    "ProcessStartFailed",
    "ProcessTimeoutError",
]
