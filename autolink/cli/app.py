#!/usr/bin/env python3
"""
Command line interface for autolink.

Usage:
    autolink suggest "text"          - Suggest links for the last word of text
    autolink select "text" TITLE     - Insert a link and record the selection
    autolink notes                   - List indexed notes
    autolink new TITLE               - Create a note
    autolink rename PATH TITLE       - Rename a note
    autolink delete PATH             - Delete a note
    autolink stats                   - Show usage statistics
    autolink config show|set         - Inspect or change settings
"""

import asyncio
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Tuple
import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from autolink.daemon.config import Config
from autolink.daemon.editor import TextBuffer
from autolink.daemon.main import AutoLinkService, configure_logging

console = Console()


def load_config(ctx: click.Context) -> Config:
    """Resolve configuration from --vault or a config file."""
    vault = ctx.obj.get("vault")
    config_path = ctx.obj.get("config_path")
    try:
        if vault is not None:
            config = Config(vault_path=vault)
        else:
            config = Config.load(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        console.print("Pass [cyan]--vault PATH[/cyan] or create autolink.yaml")
        ctx.exit(1)

    if config.log_file is not None:
        configure_logging(ctx.obj["log_level"], config.log_file, config.log_level)
    return config


def run_service(ctx: click.Context, action: Callable[[AutoLinkService], Awaitable[Any]]) -> Any:
    """Start a service for the vault, run ``action`` and shut down cleanly."""
    config = load_config(ctx)

    async def runner():
        service = AutoLinkService(config)
        await service.start()
        try:
            return await action(service)
        finally:
            await service.stop()

    return asyncio.run(runner())


@click.group()
@click.option("--vault", type=click.Path(file_okay=False, path_type=Path), help="Vault directory")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Config file")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, vault: Optional[Path], config_path: Optional[Path], verbose: bool):
    """autolink - note link suggestions ranked by usage."""
    log_level = "DEBUG" if verbose else "WARNING"
    configure_logging(log_level)
    ctx.obj = {"vault": vault, "config_path": config_path, "log_level": log_level}


@cli.command()
@click.argument("text")
@click.pass_context
def suggest(ctx, text: str):
    """Suggest links for the word at the end of TEXT."""

    async def action(service: AutoLinkService):
        buffer = TextBuffer(text)
        trigger = service.suggester.on_trigger(buffer.get_cursor(), buffer)
        if trigger is None:
            console.print("[yellow]No suggestions triggered[/yellow]")
            return
        suggestions = service.suggester.get_suggestions(trigger.query)
        display_suggestions(service, trigger.query, suggestions)

    run_service(ctx, action)


def display_suggestions(service: AutoLinkService, query: str, suggestions) -> None:
    """Display suggestions in a table."""
    if not suggestions:
        console.print(f"[yellow]No notes match[/yellow] {query!r}")
        return

    table = Table(title=f"Suggestions for {query!r}")
    table.add_column("#", justify="right")
    table.add_column("Suggestion", style="cyan", no_wrap=False)
    table.add_column("Details", style="dim")

    for i, candidate in enumerate(suggestions, 1):
        rows = service.suggester.render_suggestion(candidate)
        details = " ".join(rows[1:])
        if candidate.is_alias:
            details = f"alias {details}".strip()
        table.add_row(str(i), escape(rows[0]), escape(details))

    console.print(table)


@cli.command()
@click.argument("text")
@click.argument("title")
@click.pass_context
def select(ctx, text: str, title: str):
    """Replace the last word of TEXT with a link to TITLE."""

    async def action(service: AutoLinkService) -> Tuple[bool, str]:
        buffer = TextBuffer(text)
        trigger = service.suggester.on_trigger(buffer.get_cursor(), buffer)
        if trigger is None:
            return False, "No suggestions triggered"
        for candidate in service.suggester.get_suggestions(trigger.query):
            if candidate.display_text == title:
                service.suggester.select_suggestion(candidate)
                return True, buffer.text
        return False, f"{title!r} is not among the suggestions for {trigger.query!r}"

    ok, message = run_service(ctx, action)
    if ok:
        console.print(escape(message))
    else:
        console.print(f"[red]{message}[/red]")
        ctx.exit(1)


@cli.command()
@click.pass_context
def notes(ctx):
    """List indexed notes."""

    async def action(service: AutoLinkService):
        return service.index.all_entries()

    entries = run_service(ctx, action)
    table = Table(title=f"Notes ({len(entries)})")
    table.add_column("Title", style="cyan")
    table.add_column("Path")
    table.add_column("Created", style="dim")
    for note in entries:
        created = datetime.fromtimestamp(note.created_at / 1000).strftime("%Y-%m-%d") if note.created_at else ""
        table.add_row(escape(note.title), escape(note.identity), created)
    console.print(table)


@cli.command()
@click.argument("title")
@click.option("--alias", "-a", "aliases", multiple=True, help="Alias (repeatable)")
@click.option("--folder", "-f", help="Folder inside the vault")
@click.pass_context
def new(ctx, title: str, aliases: Tuple[str, ...], folder: Optional[str]):
    """Create a note."""

    async def action(service: AutoLinkService):
        return await service.vault.create_note(title, aliases=list(aliases), folder=folder)

    try:
        note = run_service(ctx, action)
    except (FileExistsError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(1)
    console.print(f"[green]✓[/green] Created: {note.identity}")


@cli.command()
@click.argument("path")
@click.argument("title")
@click.pass_context
def rename(ctx, path: str, title: str):
    """Rename the note at PATH to TITLE."""

    async def action(service: AutoLinkService):
        return await service.vault.rename_note(path, title)

    try:
        new_identity = run_service(ctx, action)
    except (FileExistsError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(1)
    console.print(f"[green]✓[/green] Renamed: {path} -> {new_identity}")


@cli.command()
@click.argument("path")
@click.pass_context
def delete(ctx, path: str):
    """Delete the note at PATH."""

    async def action(service: AutoLinkService):
        await service.vault.delete_note(path)

    try:
        run_service(ctx, action)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        ctx.exit(1)
    console.print(f"[green]✓[/green] Deleted: {path}")


@cli.command()
@click.pass_context
def stats(ctx):
    """Show usage statistics and recent errors."""

    async def action(service: AutoLinkService):
        records = sorted(service.usage.items(), key=lambda item: item[1].count, reverse=True)
        return records, service.get_status()

    records, status = run_service(ctx, action)

    table = Table(title="Usage")
    table.add_column("Note", style="cyan")
    table.add_column("Selections", justify="right")
    table.add_column("Last used", style="dim")
    for identity, record in records:
        last = datetime.fromtimestamp(record.last_used / 1000).strftime("%Y-%m-%d %H:%M") if record.last_used else ""
        table.add_row(identity, str(record.count), last)
    console.print(table)

    errors = status["errors"]
    if errors["total_errors"]:
        console.print(f"[red]{errors['total_errors']} errors[/red]")
        for entry in errors["recent"]:
            console.print(f"  {entry['service']}: {entry['error_type']} {entry['message']}")


@cli.group(name="config")
def config_group():
    """Inspect or change settings."""


@config_group.command(name="show")
@click.pass_context
def config_show(ctx):
    """Show current settings."""

    async def action(service: AutoLinkService):
        return service.settings_tab.describe()

    fields = run_service(ctx, action)
    table = Table(title="Settings")
    table.add_column("Key", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Description", no_wrap=False)
    for field in fields:
        table.add_row(field.key, str(field.value), field.description)
    console.print(table)


@config_group.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx, key: str, value: str):
    """Set KEY to VALUE; out-of-range values are rejected."""

    async def action(service: AutoLinkService):
        return service.settings_tab.set(key, value), service.settings_tab.get(key)

    ok, current = run_service(ctx, action)
    if ok:
        console.print(f"[green]✓[/green] {key} = {current}")
    else:
        console.print(f"[red]Rejected[/red] {key}={value!r} (keeping {current})")
        ctx.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
