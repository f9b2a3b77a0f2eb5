"""Supervised execution of external tools.

Handles:
    - Async process spawning with asyncio.create_subprocess_exec
    - stdout/stderr capture into an immutable CommandResult
    - Timeout enforcement with process-tree cleanup
    - Operator cancellation through a shared CancelToken

Non-zero exit codes are returned as data. Deciding whether an invocation
achieved what the caller wanted is left to the caller (see git_output).
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from buddy_cli.core.constants import DEFAULT_TIMEOUT_SECONDS
from buddy_cli.core.errors import OperationCancelled, ProcessStartFailed, ProcessTimeoutError
from buddy_cli.core.redaction import truncate

logger = logging.getLogger(__name__)

_KILL_GRACE_SECONDS = 5.0


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single process invocation."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def exited_cleanly(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """stdout and stderr joined, for phrase matching."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class CancelToken:
    """Cancellation signal shared by every call of one command run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelled("Operation cancelled by user")


def _decode(raw: bytes | None) -> str:
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace").strip()


def _spawn_kwargs() -> dict[str, object]:
    # A separate session lets the whole tree be killed through its process group.
    if os.name == "nt":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


class ProcessExecutor:
    """Spawn external tools with a timeout and cooperative cancellation."""

    def __init__(self, default_timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.default_timeout = default_timeout

    async def execute(
        self,
        executable: str,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        cancel_token: CancelToken | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        """Run ``executable`` with ``args`` and capture its output.

        Args:
            executable: Program to launch (resolved through PATH).
            args: Arguments passed verbatim, no shell involved.
            cwd: Working directory; callers pass the repository root.
            timeout: Seconds before the process tree is killed. Defaults
                to ``default_timeout``.
            cancel_token: Operator cancellation signal.
            env: Full replacement environment, if given.

        Returns:
            CommandResult with the exit code and stripped output.

        Raises:
            ProcessStartFailed: The executable could not be launched.
            ProcessTimeoutError: The timeout elapsed first.
            OperationCancelled: The cancel token fired first.
        """
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        budget = self.default_timeout if timeout is None else timeout
        command = [executable, *args]
        logger.debug("Executing %s (timeout=%ss)", " ".join(command), budget)
        started = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(cwd) if cwd is not None else None,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=dict(env) if env is not None else None,
                **_spawn_kwargs(),
            )
        except OSError as exc:
            logger.error("Could not start %s: %s", executable, exc)
            raise ProcessStartFailed(executable, str(exc)) from exc

        communicate = asyncio.ensure_future(process.communicate())
        waiters: set[asyncio.Future] = {communicate}
        cancel_waiter: asyncio.Future | None = None
        if cancel_token is not None:
            cancel_waiter = asyncio.ensure_future(cancel_token.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=budget, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            await self._abandon(process, communicate, executable)
            raise
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if communicate in done:
            stdout, stderr = communicate.result()
            result = CommandResult(
                exit_code=process.returncode if process.returncode is not None else -1,
                stdout=_decode(stdout),
                stderr=_decode(stderr),
            )
            elapsed_ms = (time.monotonic() - started) * 1000
            if result.exit_code == 0:
                logger.debug("%s succeeded in %.0fms", " ".join(command), elapsed_ms)
            else:
                logger.debug(
                    "%s exited with %d in %.0fms: %s",
                    " ".join(command),
                    result.exit_code,
                    elapsed_ms,
                    truncate(result.stderr),
                )
            return result

        await self._abandon(process, communicate, executable)

        if cancel_token is not None and cancel_token.cancelled:
            logger.info("%s cancelled by user", executable)
            raise OperationCancelled(f"'{executable}' was cancelled by user")

        logger.warning("Process '%s' was killed after timing out (%ss)", executable, budget)
        raise ProcessTimeoutError(executable, list(args), budget)

    async def _abandon(
        self,
        process: asyncio.subprocess.Process,
        communicate: asyncio.Future,
        executable: str,
    ) -> None:
        self._terminate_tree(process, executable)
        communicate.cancel()
        await asyncio.wait({communicate}, timeout=_KILL_GRACE_SECONDS)
        try:
            await asyncio.wait_for(process.wait(), _KILL_GRACE_SECONDS)
        except (TimeoutError, ProcessLookupError):
            logger.debug("Process '%s' did not report exit after kill", executable)

    @staticmethod
    def _terminate_tree(process: asyncio.subprocess.Process, executable: str) -> None:
        if process.returncode is not None:
            return
        try:
            if os.name == "nt":
                subprocess.run(
                    ["taskkill", "/F", "/T", "/PID", str(process.pid)],
                    capture_output=True,
                    check=False,
                    timeout=_KILL_GRACE_SECONDS,
                )
            else:
                os.killpg(process.pid, signal.SIGKILL)
        except (OSError, subprocess.SubprocessError) as exc:
            # Already exited, or not ours to kill; the timeout still stands.
            logger.debug("Failed to kill process '%s' (may have already exited): %s", executable, exc)


__all__ = ["CancelToken", "CommandResult", "ProcessExecutor"]
