"""Operator interaction contract used by the merge and sync flows.

The flows decide *what* to ask and consume typed answers; rendering is done
by an implementation of :class:`Prompter` (cli.ui.ConsolePrompter in the CLI,
scripted fakes in tests).
"""

from __future__ import annotations

from enum import StrEnum
from typing import Protocol, Sequence, TypeVar


class Choice(StrEnum):
    """Base for operator choices; ``label`` is what the menu shows."""

    @property
    def label(self) -> str:
        return _LABELS.get(self, self.value)


class ConflictDecision(Choice):
    ABORT = "abort"
    SHOW = "show"
    MANUAL = "manual"


class MessageDecision(Choice):
    ACCEPT = "accept"
    EDIT = "edit"
    CANCEL = "cancel"


class Visibility(Choice):
    PUBLIC = "public"
    PRIVATE = "private"


_LABELS: dict[Choice, str] = {
    ConflictDecision.ABORT: "Abort merge (go back to before merge)",
    ConflictDecision.MANUAL: "Open files manually to resolve conflicts",
    ConflictDecision.SHOW: "Show me the conflicts",
    MessageDecision.ACCEPT: "✔ Accept",
    MessageDecision.EDIT: "✎ Edit",
    MessageDecision.CANCEL: "✖ Cancel",
    Visibility.PUBLIC: "Public",
    Visibility.PRIVATE: "Private",
}

ChoiceT = TypeVar("ChoiceT", bound=Choice)


class Prompter(Protocol):
    """Everything a flow needs from the terminal."""

    def select(self, title: str, options: Sequence[str]) -> str | None:
        """Pick one of ``options``; None when the operator backs out."""
        ...

    def choose(self, title: str, choices: Sequence[ChoiceT], cancel: ChoiceT) -> ChoiceT:
        """Pick exactly one typed decision; backing out yields ``cancel``."""
        ...

    def confirm(self, message: str, default: bool) -> bool:
        ...

    def ask(self, message: str, default: str = "") -> str:
        ...

    def ask_secret(self, message: str) -> str:
        """Free text with echo off."""
        ...

    def info(self, message: str) -> None:
        ...

    def success(self, message: str) -> None:
        ...

    def warning(self, message: str) -> None:
        ...

    def error(self, message: str) -> None:
        ...

    def rule(self, title: str) -> None:
        ...

    def panel(self, title: str, body: str, style: str = "blue") -> None:
        ...

    def table(self, title: str, rows: Sequence[str], style: str = "grey50") -> None:
        ...


__all__ = [
    "Choice",
    "ConflictDecision",
    "MessageDecision",
    "Prompter",
    "Visibility",
]
