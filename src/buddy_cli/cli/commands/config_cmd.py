"""Top-level ``buddy config`` command.

Chooses the AI provider, model and API key used by ``save --ai``,
``merge --ai`` and ``describe``.
"""

from __future__ import annotations

from typing import Optional

import typer
from rich.markup import escape
from rich.table import Table

from buddy_cli.ai.config import ConfigStore
from buddy_cli.ai.providers import PROVIDERS, get_provider
from buddy_cli.cli.helpers import console
from buddy_cli.cli.ui import select_with_arrows
from buddy_cli.core.errors import ConfigError
from buddy_cli.core.redaction import redact_secret

CUSTOM_MODEL = "custom"


def _show(store: ConfigStore) -> None:
    current = store.load()
    table = Table(title="AI Configuration", show_header=False)
    table.add_column(style="cyan")
    table.add_column()
    table.add_row("Provider", get_provider(current.provider_id).display_name)
    table.add_row("Model", escape(current.model))
    table.add_row("API key", redact_secret(current.api_key))
    table.add_row("File", escape(str(store.path)))
    console.print(table)


def _pick_provider(current_id: str) -> str | None:
    return select_with_arrows(
        {pid: spec.display_name for pid, spec in PROVIDERS.items()},
        "Choose AI provider",
        default_key=current_id,
        console=console,
    )


def _pick_model(provider_id: str, current_provider: str, current_model: str) -> str | None:
    spec = PROVIDERS[provider_id]
    default_model = current_model if provider_id == current_provider else spec.default_model
    if not spec.suggested_models:
        return typer.prompt("Model", default=default_model).strip()

    options = {model: model for model in spec.suggested_models}
    options[CUSTOM_MODEL] = "Other (type a model id)"
    picked = select_with_arrows(options, "Choose model", default_key=default_model, console=console)
    if picked == CUSTOM_MODEL:
        return typer.prompt("Model id").strip()
    return picked


def config(
    provider: Optional[str] = typer.Option(
        None,
        "--provider",
        "-p",
        help=f"Provider id ({', '.join(PROVIDERS)})",
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Model id for the provider"),
    show: bool = typer.Option(False, "--show", help="Show the current configuration and exit"),
) -> None:
    """Configure the AI provider used for commit and merge messages."""
    store = ConfigStore()
    if show:
        _show(store)
        return

    current = store.load()

    if provider is not None:
        provider_id = provider.strip().lower()
        if provider_id not in PROVIDERS:
            console.print(
                f"[red]Error:[/red] Unknown provider '{escape(provider)}'. Choose one of: {', '.join(PROVIDERS)}"
            )
            raise typer.Exit(1)
    else:
        picked = _pick_provider(current.provider_id)
        if picked is None:
            console.print("[yellow]Configuration unchanged.[/yellow]")
            raise typer.Exit(0)
        provider_id = picked

    chosen_model = (model or "").strip() or _pick_model(provider_id, current.provider_id, current.model)
    if not chosen_model:
        console.print("[yellow]Configuration unchanged.[/yellow]")
        raise typer.Exit(0)

    api_key = ""
    if current.has_api_key and typer.confirm(
        f"Keep the saved API key ({redact_secret(current.api_key)})?", default=True
    ):
        api_key = current.api_key
    else:
        api_key = typer.prompt(f"{PROVIDERS[provider_id].display_name} API key", hide_input=True).strip()
    if not api_key:
        console.print("[red]Error:[/red] An API key is required.")
        raise typer.Exit(1)

    try:
        store.save(provider_id, chosen_model, api_key)
    except ConfigError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    console.print(
        f"[green]✓[/green] Using [bold]{provider_id}[/bold] with model [bold]{escape(chosen_model)}[/bold] "
        f"(key {redact_secret(api_key)})"
    )
