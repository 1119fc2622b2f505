"""CLI entry point for smbconnector.

Commands:
    smbconnector ls [DIRECTORY]          # List a directory
    smbconnector cat PATH                # Print a file
    smbconnector put LOCAL REMOTE        # Upload a local file
    smbconnector rm PATH                 # Delete a file or directory
    smbconnector rename PATH NEW_NAME    # Rename within the parent directory
    smbconnector cp SOURCE DIRECTORY     # Copy into a directory
    smbconnector mv SOURCE DIRECTORY     # Move into a directory
    smbconnector mkdir PATH              # Create a directory
    smbconnector listen [DIRECTORY]      # Poll a directory and print new files

Connection settings come from ~/.smbconnector/config.toml (or --config), the
SMBCONNECTOR_* environment variables and the global options, in increasing
order of precedence.
"""

import logging
import queue
import sys
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from smbconnector import __version__
from smbconnector.config import ConfigManager, ConnectorConfig, ListenerConfig
from smbconnector.copy_move import FileCopyMode
from smbconnector.exceptions import SmbConnectorError
from smbconnector.filesystem import SmbFileSystemConnection
from smbconnector.listener import DirectoryListener
from smbconnector.logging_config import setup_logging
from smbconnector.models import FileAttributes, ListenerMessage
from smbconnector.post_action import PostActionConfig
from smbconnector.session import SessionManager, SessionPool

logger = logging.getLogger(__name__)

console = Console()


def _format_size(size: int | None) -> str:
    if size is None:
        return "-"
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def _entry_type(attrs: FileAttributes) -> str:
    if attrs.is_symlink:
        return "[magenta]link[/magenta]"
    if attrs.is_directory:
        return "[blue]dir[/blue]"
    return "file"


def _render_listing(title: str, entries: list[FileAttributes]) -> None:
    table = Table(title=title)
    table.add_column("Path", style="cyan")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for attrs in sorted(entries, key=lambda a: a.path):
        modified = attrs.last_modified.strftime("%Y-%m-%d %H:%M:%S") if attrs.last_modified else "-"
        table.add_row(attrs.path, _entry_type(attrs), _format_size(attrs.size), modified)
    console.print(table)


def _load_config(ctx: click.Context) -> ConnectorConfig:
    obj = ctx.obj
    if "config" not in obj:
        obj["config"] = ConfigManager.load(obj.get("config_path"), overrides=obj.get("overrides"))
    return obj["config"]


@contextmanager
def _pool(ctx: click.Context) -> Generator[SessionPool, None, None]:
    config = _load_config(ctx)
    manager = SessionManager(config.connection, client_factory=ctx.obj.get("client_factory"))
    pool = SessionPool(manager, config.pool)
    try:
        yield pool
    finally:
        pool.shutdown(timeout=5)


@contextmanager
def _connection(ctx: click.Context) -> Generator[SmbFileSystemConnection, None, None]:
    with _pool(ctx) as pool, pool.connection() as fs:
        yield fs


@contextmanager
def _errors() -> Generator[None, None, None]:
    """Turn connector errors into a red message and exit code 1."""
    try:
        yield
    except SmbConnectorError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Config file path")
@click.option("--host", help="SMB server host")
@click.option("--domain", help="Authentication domain")
@click.option("--username", "-u", help="User name")
@click.option("--password", help="Password (prefer SMBCONNECTOR_PASSWORD)")
@click.option("--share-root", help="Share and base directory, e.g. 'data/incoming'")
@click.option(
    "--log-level",
    type=click.Choice(["TRACE", "DEBUG", "INFO", "WARN", "ERROR"], case_sensitive=False),
    help="SMB client log level",
)
@click.option("--verbose", "-v", is_flag=True, help="Log connector activity to stderr")
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    host: str | None,
    domain: str | None,
    username: str | None,
    password: str | None,
    share_root: str | None,
    log_level: str | None,
    verbose: bool,
) -> None:
    """smbconnector - operate on and listen to SMB shares."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["overrides"] = {
        "host": host,
        "domain": domain,
        "username": username,
        "password": password,
        "share_root": share_root,
        "log_level": log_level,
    }
    setup_logging("DEBUG" if verbose else "WARN")


@main.command("ls")
@click.argument("directory", default=".")
@click.option("--recursive", "-r", is_flag=True, help="Descend into sub-directories")
@click.pass_context
def list_command(ctx: click.Context, directory: str, recursive: bool) -> None:
    """List DIRECTORY (default: the share root)."""
    with _errors(), _connection(ctx) as fs:
        entries = fs.list(directory, recursive=recursive)
    if not entries:
        console.print(f"[yellow]{directory} is empty[/yellow]")
        return
    _render_listing(directory, entries)


@main.command("cat")
@click.argument("path")
@click.pass_context
def cat_command(ctx: click.Context, path: str) -> None:
    """Print the content of PATH."""
    with _errors(), _connection(ctx) as fs:
        content = fs.read(path)
    click.echo(content, nl=False)


@main.command("put")
@click.argument("local", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("remote")
@click.option("--no-overwrite", is_flag=True, help="Fail if REMOTE exists")
@click.option("--no-create-parents", is_flag=True, help="Fail if REMOTE's directory is missing")
@click.pass_context
def put_command(
    ctx: click.Context, local: Path, remote: str, no_overwrite: bool, no_create_parents: bool
) -> None:
    """Upload LOCAL to REMOTE."""
    content = local.read_bytes()
    with _errors(), _connection(ctx) as fs:
        fs.write(
            remote,
            content,
            overwrite=not no_overwrite,
            create_parent_directories=not no_create_parents,
        )
    console.print(f"[green]✓[/green] Wrote {_format_size(len(content))} to [cyan]{remote}[/cyan]")


@main.command("rm")
@click.argument("path")
@click.pass_context
def rm_command(ctx: click.Context, path: str) -> None:
    """Delete PATH (directories recursively)."""
    with _errors(), _connection(ctx) as fs:
        fs.delete(path)
    console.print(f"[green]✓[/green] Deleted [cyan]{path}[/cyan]")


@main.command("rename")
@click.argument("path")
@click.argument("new_name")
@click.option("--overwrite", is_flag=True, help="Replace an existing NEW_NAME")
@click.pass_context
def rename_command(ctx: click.Context, path: str, new_name: str, overwrite: bool) -> None:
    """Rename PATH to NEW_NAME within its directory."""
    with _errors(), _connection(ctx) as fs:
        fs.rename(path, new_name, overwrite=overwrite)
    console.print(f"[green]✓[/green] Renamed [cyan]{path}[/cyan] to [cyan]{new_name}[/cyan]")


def _copy_or_move(
    ctx: click.Context,
    mode: FileCopyMode,
    source: str,
    directory: str,
    overwrite: bool,
    rename_to: str | None,
    no_create_parents: bool,
) -> None:
    with _errors(), _connection(ctx) as fs:
        target = fs.copy_or_move(
            source,
            directory,
            mode,
            overwrite=overwrite,
            create_parent_directories=not no_create_parents,
            rename_to=rename_to,
        )
    verb = "Copied" if mode is FileCopyMode.COPY else "Moved"
    console.print(f"[green]✓[/green] {verb} [cyan]{source}[/cyan] to [cyan]{target}[/cyan]")


_copy_options = [
    click.argument("source"),
    click.argument("directory"),
    click.option("--overwrite", is_flag=True, help="Replace an existing target"),
    click.option("--rename-to", help="Name of the copy (default: SOURCE's name)"),
    click.option("--no-create-parents", is_flag=True, help="Fail if DIRECTORY is missing"),
]


def _with_copy_options(func):
    for option in reversed(_copy_options):
        func = option(func)
    return func


@main.command("cp")
@_with_copy_options
@click.pass_context
def cp_command(ctx: click.Context, **kwargs: Any) -> None:
    """Copy SOURCE into DIRECTORY."""
    _copy_or_move(ctx, FileCopyMode.COPY, **kwargs)


@main.command("mv")
@_with_copy_options
@click.pass_context
def mv_command(ctx: click.Context, **kwargs: Any) -> None:
    """Move SOURCE into DIRECTORY (the source is deleted after the copy)."""
    _copy_or_move(ctx, FileCopyMode.MOVE, **kwargs)


@main.command("mkdir")
@click.argument("path")
@click.pass_context
def mkdir_command(ctx: click.Context, path: str) -> None:
    """Create directory PATH (and missing parents)."""
    with _errors(), _connection(ctx) as fs:
        fs.create_directory(path)
    console.print(f"[green]✓[/green] Created [cyan]{path}[/cyan]")


def _listener_config(ctx: click.Context, directory: str | None, **options: Any) -> ListenerConfig:
    """Listener settings from the config file, overridden by command options."""
    config = _load_config(ctx).listener
    if config is None:
        if directory is None:
            raise click.UsageError("No DIRECTORY given and no [listener] section configured")
        config = ListenerConfig(directory=directory)
    elif directory is not None:
        config = replace(config, directory=directory)

    if options["pattern"]:
        criteria = replace(config.criteria, filename_pattern=options["pattern"])
        config = replace(config, criteria=criteria)
    if options["auto_delete"] or options["move_to"]:
        config = replace(
            config,
            post_action=PostActionConfig(
                auto_delete=options["auto_delete"],
                move_to_directory=options["move_to"],
                rename_to=options["rename_to"],
            ),
        )
    elif options["rename_to"]:
        raise click.UsageError("--rename-to requires --move-to")
    if options["interval"]:
        interval = options["interval"]
        config = replace(
            config, polling_frequency=interval, max_backoff=max(config.max_backoff, interval)
        )
    return config


def _print_delivery(message: ListenerMessage) -> None:
    attrs = message.attributes
    console.print(
        f"[green]●[/green] [cyan]{attrs.path}[/cyan] "
        f"[dim]({_format_size(len(message.payload))})[/dim]"
    )


@main.command("listen")
@click.argument("directory", required=False)
@click.option("--pattern", help="Filename pattern, e.g. 'glob:*.{csv, txt}'")
@click.option("--auto-delete", is_flag=True, help="Delete files after delivery")
@click.option("--move-to", help="Move files to this directory after delivery")
@click.option("--rename-to", help="Rename moved files (requires --move-to)")
@click.option("--interval", type=float, help="Seconds between polls")
@click.option("--once", is_flag=True, help="Run a single poll and exit")
@click.option("--count", type=int, help="Exit after this many deliveries")
@click.pass_context
def listen_command(
    ctx: click.Context,
    directory: str | None,
    once: bool,
    count: int | None,
    **options: Any,
) -> None:
    """Poll DIRECTORY and print every new file as it is delivered."""
    deliveries: queue.Queue[ListenerMessage] = queue.Queue()

    with _errors():
        config = _listener_config(ctx, directory, **options)
        with _pool(ctx) as pool:
            listener = DirectoryListener(pool, config, deliveries.put)
            if once:
                listener.poll()
                while not deliveries.empty():
                    _print_delivery(deliveries.get())
                return

            console.print(f"[dim]Listening on {config.directory} (Ctrl+C to stop)...[/dim]")
            listener.start()
            delivered = 0
            try:
                while count is None or delivered < count:
                    try:
                        message = deliveries.get(timeout=0.5)
                    except queue.Empty:
                        continue
                    _print_delivery(message)
                    delivered += 1
            finally:
                listener.stop()


__all__ = ["main"]
