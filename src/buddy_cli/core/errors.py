"""Exception hierarchy shared by the process, gateway and provider layers."""

from __future__ import annotations


class BuddyError(Exception):
    """Base class for errors raised by git-buddy."""


class ProcessStartFailed(BuddyError):
    """Raised when an external executable cannot be launched at all."""

    def __init__(self, executable: str, reason: str):
        self.executable = executable
        self.reason = reason
        super().__init__(f"Failed to start '{executable}': {reason}")


class ProcessTimeoutError(BuddyError, TimeoutError):
    """Raised when an external process exceeds its time budget."""

    def __init__(self, executable: str, args: list[str], timeout: float):
        self.executable = executable
        self.args_list = list(args)
        self.timeout = timeout
        super().__init__(
            f"Process '{executable} {' '.join(args)}' timed out after {timeout:g}s"
        )


class OperationCancelled(BuddyError):
    """Raised when the operator cancelled the running command."""


class ConfigError(BuddyError):
    """Raised when configuration cannot be stored."""
