"""Reusable UI helpers for git-buddy CLI interactions."""

from __future__ import annotations

from typing import Dict, Sequence

import readchar
import typer
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from buddy_cli.core.prompts import ChoiceT


def get_key() -> str:
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()

    if key == readchar.key.UP or key == readchar.key.CTRL_P:
        return "up"
    if key == readchar.key.DOWN or key == readchar.key.CTRL_N:
        return "down"

    if key == readchar.key.ENTER:
        return "enter"

    if key == readchar.key.ESC or key == "\x1b":
        return "escape"

    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt

    return key


def select_with_arrows(
    options: Dict[str, str],
    prompt_text: str = "Select an option",
    default_key: str | None = None,
    console: Console | None = None,
) -> str | None:
    """
    Interactive selection using arrow keys with Rich Live display.

    Returns the selected key, or None when the operator presses Esc.
    """
    console = console or Console()
    option_keys = list(options.keys())
    if not option_keys:
        return None
    if default_key and default_key in option_keys:
        selected_index = option_keys.index(default_key)
    else:
        selected_index = 0

    def create_selection_panel():
        """Create the selection panel with current selection highlighted."""
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")

        for i, key in enumerate(option_keys):
            table.add_row("▶" if i == selected_index else " ", f"[cyan]{escape(options[key])}[/cyan]")

        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")

        return Panel(
            table,
            title=f"[bold]{escape(prompt_text)}[/bold]",
            border_style="cyan",
            padding=(1, 2),
        )

    console.print()
    with Live(create_selection_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            key = get_key()
            if key == "up":
                selected_index = (selected_index - 1) % len(option_keys)
            elif key == "down":
                selected_index = (selected_index + 1) % len(option_keys)
            elif key == "enter":
                return option_keys[selected_index]
            elif key == "escape":
                console.print("[yellow]Selection cancelled[/yellow]")
                return None

            live.update(create_selection_panel(), refresh=True)


class ConsolePrompter:
    """Prompter rendered with rich, readchar menus and typer prompts.

    Flow text is plain; it is escaped before rich renders it.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def select(self, title: str, options: Sequence[str]) -> str | None:
        return select_with_arrows({option: option for option in options}, title, console=self.console)

    def choose(self, title: str, choices: Sequence[ChoiceT], cancel: ChoiceT) -> ChoiceT:
        by_value = {choice.value: choice for choice in choices}
        picked = select_with_arrows(
            {choice.value: choice.label for choice in choices},
            title,
            console=self.console,
        )
        if picked is None:
            return cancel
        return by_value[picked]

    def confirm(self, message: str, default: bool) -> bool:
        return typer.confirm(message, default=default)

    def ask(self, message: str, default: str = "") -> str:
        return typer.prompt(message, default=default, show_default=bool(default))

    def ask_secret(self, message: str) -> str:
        return typer.prompt(message, hide_input=True)

    def info(self, message: str) -> None:
        self.console.print(escape(message))

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {escape(message)}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/red] {escape(message)}")

    def rule(self, title: str) -> None:
        self.console.print(Rule(escape(title)))

    def panel(self, title: str, body: str, style: str = "blue") -> None:
        self.console.print(
            Panel(escape(body), title=f"[bold]{escape(title)}[/bold]", border_style=style, padding=(1, 2))
        )

    def table(self, title: str, rows: Sequence[str], style: str = "grey50") -> None:
        table = Table(title=escape(title), show_header=False, border_style=style)
        table.add_column(style="white")
        for row in rows:
            table.add_row(escape(row))
        self.console.print(table)


__all__ = ["ConsolePrompter", "get_key", "select_with_arrows"]
