"""``buddy update`` command: upgrade git-buddy in the running interpreter."""

from __future__ import annotations

import sys
from enum import StrEnum

from buddy_cli.cli.helpers import console, exit_with, run_flow
from buddy_cli.cli.ui import ConsolePrompter
from buddy_cli.core.constants import PACKAGE_NAME, SELF_UPDATE_TIMEOUT_SECONDS
from buddy_cli.core.process import CancelToken, CommandResult, ProcessExecutor

UPDATED_PHRASE = "Successfully installed"


class UpdateOutcome(StrEnum):
    UPDATED = "updated"
    CURRENT = "current"
    FAILED = "failed"


def classify_update(result: CommandResult) -> UpdateOutcome:
    """Read pip's output; a non-zero exit always means failure.

    Dependency upgrades alone leave git-buddy itself current.
    """
    if not result.exited_cleanly:
        return UpdateOutcome.FAILED
    if UPDATED_PHRASE in result.output and PACKAGE_NAME in result.output:
        return UpdateOutcome.UPDATED
    return UpdateOutcome.CURRENT


def update() -> None:
    """Upgrade git-buddy to the latest release."""
    prompter = ConsolePrompter(console)

    async def flow(token: CancelToken) -> int:
        prompter.info("Checking for git-buddy updates...")
        result = await ProcessExecutor().execute(
            sys.executable,
            ["-m", "pip", "install", "--upgrade", PACKAGE_NAME],
            timeout=SELF_UPDATE_TIMEOUT_SECONDS,
            cancel_token=token,
        )
        outcome = classify_update(result)
        if outcome is UpdateOutcome.UPDATED:
            prompter.success("git-buddy has been updated to the latest version.")
            return 0
        if outcome is UpdateOutcome.CURRENT:
            prompter.success("git-buddy is already up to date.")
            return 0
        prompter.warning("Unable to update git-buddy. Please try again later.")
        if result.stderr:
            prompter.info(result.stderr)
        return 1

    exit_with(run_flow(flow))
