"""Main CLI entry point for volatilestore.

Provides command-line access to a cache directory: read, write, list,
delete and sweep records.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import click
import orjson
from rich.console import Console
from rich.table import Table

from volatilestore.config import StorageConfig
from volatilestore.expiry import NEVER, get_ttl_remaining
from volatilestore.storage import MISS, VolatileStorage

# Global console for Rich output
console = Console()


def build_config(
    ctx_directory: Optional[str] = None, ctx_ext: Optional[str] = None
) -> StorageConfig:
    """Build storage configuration from multiple sources.

    Priority:
    1. Explicit --directory/-d and --ext flags
    2. VOLATILESTORE_* environment variables
    3. Defaults

    Args:
        ctx_directory: Directory from CLI context
        ctx_ext: File extension from CLI context

    Returns:
        StorageConfig instance
    """
    config = StorageConfig.from_env()
    if ctx_directory:
        config.directory = Path(ctx_directory).expanduser()
    if ctx_ext:
        config.file_extension = ctx_ext if ctx_ext.startswith(".") else "." + ctx_ext
    return config


def open_storage(ctx, sweep: bool = False) -> VolatileStorage:
    config = build_config(ctx.obj.get("directory"), ctx.obj.get("ext"))
    config.sweep_on_start = sweep
    return VolatileStorage(config=config)


def format_expiry(expires_at: int) -> str:
    if expires_at == NEVER:
        return "never"
    try:
        moment = datetime.fromtimestamp(expires_at, tz=timezone.utc)
    except (OverflowError, ValueError, OSError):
        # Outside the platform's datetime range
        return str(expires_at)
    return moment.strftime("%Y-%m-%d %H:%M:%S")


@click.group()
@click.option(
    "--directory",
    "-d",
    type=click.Path(file_okay=False),
    help="Cache directory (default: VOLATILESTORE_DIR env var or package storage dir)",
)
@click.option("--ext", help="Record file extension (default: .cache)")
@click.pass_context
def cli(ctx, directory, ext):
    """volatilestore CLI - Inspect and manage a cache directory.

    Use --directory/-d to choose the directory, or set VOLATILESTORE_DIR.
    """
    ctx.ensure_object(dict)
    ctx.obj["directory"] = directory
    ctx.obj["ext"] = ext


@cli.command("get")
@click.argument("key")
@click.pass_context
def get_command(ctx, key):
    """Print the value stored under KEY as JSON.

    Exits with status 1 on a miss.

    Example:
        volatilestore get session:42
    """
    try:
        storage = open_storage(ctx)
        value = storage.fetch(key)
    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)

    if value is MISS:
        console.print(f"[yellow]Miss:[/yellow] {key}")
        sys.exit(1)

    try:
        click.echo(orjson.dumps(value).decode("utf-8"))
    except TypeError:
        click.echo(repr(value))


@cli.command("set")
@click.argument("key")
@click.argument("value")
@click.option("--ttl", type=int, default=None, help="Time-to-live in seconds")
@click.option("--raw", is_flag=True, help="Store VALUE as a string, not JSON")
@click.pass_context
def set_command(ctx, key, value, ttl, raw):
    """Store VALUE under KEY.

    VALUE is parsed as JSON unless --raw is given; text that is not valid
    JSON is stored as a string.

    Example:
        volatilestore set config '{"retries": 3}' --ttl 600
        volatilestore set greeting hello --raw
    """
    data = value
    if not raw:
        try:
            data = orjson.loads(value)
        except orjson.JSONDecodeError:
            data = value

    try:
        storage = open_storage(ctx)
        ok = storage.store(key, data, ttl=ttl)
    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)

    if not ok:
        console.print(f"[red]✗[/red] Could not store '{key}'", style="red")
        sys.exit(1)

    expiry = "never expires" if ttl is None else f"expires in {ttl}s"
    console.print(f"[green]✓[/green] Stored '{key}' ({expiry})")


@cli.command("rm")
@click.argument("key")
@click.pass_context
def rm_command(ctx, key):
    """Delete the record for KEY.

    Example:
        volatilestore rm session:42
    """
    try:
        storage = open_storage(ctx)
        removed = storage.delete(key)
    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)

    if not removed:
        console.print(f"[yellow]No record for '{key}'[/yellow]")
        sys.exit(1)

    console.print(f"[green]✓[/green] Deleted '{key}'")


@cli.command("ls")
@click.option("--all", "show_all", is_flag=True, help="Include expired records")
@click.pass_context
def ls_command(ctx, show_all):
    """List records in the cache directory.

    Example:
        volatilestore ls
        volatilestore -d /var/cache/app ls --all
    """
    try:
        storage = open_storage(ctx)
        entries = [e for e in storage.entries() if show_all or not e.expired]
    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)

    if not entries:
        console.print("[yellow]No records found[/yellow]")
        return

    now = datetime.now(timezone.utc).timestamp()

    table = Table(title=f"Records ({len(entries)})")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Expires (UTC)", style="blue")
    table.add_column("TTL", justify="right", style="green")
    table.add_column("Size", justify="right", style="white")
    table.add_column("Status", style="magenta")

    for entry in entries:
        remaining = get_ttl_remaining(entry.expires_at, now)
        table.add_row(
            entry.key,
            format_expiry(entry.expires_at),
            "-" if remaining is None else f"{remaining}s",
            f"{entry.size_bytes} B",
            "[red]expired[/red]" if entry.expired else "live",
        )

    console.print(table)


@cli.command("sweep")
@click.pass_context
def sweep_command(ctx):
    """Delete every expired record in the cache directory.

    Example:
        volatilestore sweep
    """
    try:
        storage = open_storage(ctx)
        result = storage.sweep()
    except Exception as e:
        console.print(f"[red]✗[/red] Error: {e}", style="red")
        sys.exit(1)

    console.print(
        f"[green]✓[/green] Removed {result.removed} expired of "
        f"{result.scanned} records"
    )
    if result.failed:
        console.print(f"[yellow]{result.failed} records could not be processed[/yellow]")


@cli.command("info")
@click.pass_context
def info_command(ctx):
    """Show the resolved configuration and whether the directory is usable."""
    storage = open_storage(ctx)
    console.print(f"[bold]Directory:[/bold] {storage.directory}")
    console.print(f"[bold]Extension:[/bold] {storage.file_extension}")
    console.print(f"[bold]Lock timeout:[/bold] {storage.config.lock_timeout}s")
    if storage.supported():
        console.print("[bold]Writable:[/bold] [green]yes[/green]")
    else:
        console.print("[bold]Writable:[/bold] [red]no[/red]")
        sys.exit(1)


if __name__ == "__main__":
    cli()
