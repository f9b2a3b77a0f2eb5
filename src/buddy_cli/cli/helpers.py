"""Shared console, logging setup and async flow runner for CLI commands."""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from buddy_cli.core.constants import GIT_EXECUTABLE
from buddy_cli.core.errors import BuddyError, OperationCancelled
from buddy_cli.core.process import CancelToken, ProcessExecutor

logger = logging.getLogger(__name__)

console = Console()

T = TypeVar("T")

CANCELLED_EXIT_CODE = 130


def configure_logging(verbose: bool = False) -> None:
    """Route log records to stderr through rich."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=verbose,
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


async def find_repo_root(executor: ProcessExecutor, cancel_token: CancelToken | None = None) -> Path:
    """Top level of the repository containing the working directory.

    Falls back to the working directory itself outside a repository; the
    flows report that case through their own ``is_repository`` check.
    """
    cwd = Path.cwd()
    result = await executor.execute(
        GIT_EXECUTABLE,
        ["rev-parse", "--show-toplevel"],
        cwd=cwd,
        cancel_token=cancel_token,
    )
    if result.exited_cleanly and result.stdout:
        return Path(result.stdout)
    return cwd


def run_flow(flow: Callable[[CancelToken], Awaitable[T]]) -> T:
    """Run one async command flow with Ctrl+C wired to a CancelToken.

    BuddyError subclasses become a red ``Error:`` line and ``typer.Exit(1)``;
    cancellation exits with 130.
    """

    async def _main() -> T:
        token = CancelToken()
        loop = asyncio.get_running_loop()
        handler_installed = False
        try:
            loop.add_signal_handler(signal.SIGINT, token.cancel)
            handler_installed = True
        except (NotImplementedError, RuntimeError, ValueError):
            logger.debug("Event loop cannot handle SIGINT; Ctrl+C interrupts directly")
        try:
            return await flow(token)
        finally:
            if handler_installed:
                loop.remove_signal_handler(signal.SIGINT)

    try:
        return asyncio.run(_main())
    except (OperationCancelled, KeyboardInterrupt) as exc:
        console.print("\n[yellow]Cancelled.[/yellow] The repository is left as of the last completed step.")
        raise typer.Exit(CANCELLED_EXIT_CODE) from exc
    except BuddyError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def exit_with(code: int) -> None:
    if code:
        raise typer.Exit(code)


__all__ = [
    "CANCELLED_EXIT_CODE",
    "configure_logging",
    "console",
    "exit_with",
    "find_repo_root",
    "run_flow",
]
