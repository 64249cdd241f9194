"""CLI for SyncFree (Typer + Rich)."""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from syncfree.app import SyncFreeApp
from syncfree.auth.flow import FlowState
from syncfree.auth.receiver import CallbackReceiver
from syncfree.config._loader import DOCUMENT_KEYS
from syncfree.config.logging import init_logging
from syncfree.errors import SyncFreeError

app = typer.Typer(
    name="syncfree",
    help="Back up a document vault to Cloudflare R2.",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Show or change settings.", no_args_is_help=True)
app.add_typer(config_app, name="config")
console = Console()

_FIELD_BY_KEY = {key.lower(): name for name, key in DOCUMENT_KEYS.items()}
_SECRET_FIELDS = {"secret_access_key", "auth_token", "oauth_state"}


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[Optional[Path], typer.Option("--config", "-c", help="Settings document path")] = None,
) -> None:
    """Load .env for local runs and remember the settings path."""
    load_dotenv()
    init_logging()
    ctx.obj = config


def _load_app(ctx: typer.Context) -> SyncFreeApp:
    try:
        return SyncFreeApp.from_path(ctx.obj)
    except SyncFreeError as e:
        _fail("Settings error", e)


def _fail(prefix: str, error: object) -> None:
    console.print(f"[red]{prefix}:[/] {error}")
    raise typer.Exit(1)


def _mask(value: str) -> str:
    if not value:
        return "[dim](not set)[/]"
    return value[:4] + "…" if len(value) > 8 else "****"


def _format_size(size_bytes: int) -> str:
    """Human-readable file size."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.2f} MB"


# ── backup now ──────────────────────────────────────────────────────────


@app.command()
def backup(ctx: typer.Context) -> None:
    """Back up the vault to R2 now."""
    sync = _load_app(ctx)
    console.print("Starting backup to R2...")

    with console.status("Backing up..."):
        try:
            run = asyncio.run(sync.backup_now())
        except SyncFreeError as e:
            _fail("Backup failed", e)

    console.print(
        Panel(
            f"[bold]Object:[/] r2://{sync.settings.bucket_name}/{run.key}\n"
            f"[bold]Files:[/]  {run.file_count}\n"
            f"[bold]Size:[/]   {_format_size(run.size)}",
            title="[green]Backup completed successfully![/]",
        )
    )


# ── connection test ─────────────────────────────────────────────────────


@app.command()
def test(ctx: typer.Context) -> None:
    """Test access to the configured bucket."""
    sync = _load_app(ctx)
    console.print("Testing connection to R2...")
    try:
        asyncio.run(sync.test_connection())
    except SyncFreeError as e:
        _fail("Connection failed", e)
    console.print("[green]Connection successful![/] Your R2 bucket is accessible.")


# ── buckets ─────────────────────────────────────────────────────────────


@app.command()
def buckets(ctx: typer.Context) -> None:
    """Refresh and show the buckets available to the account."""
    sync = _load_app(ctx)
    with console.status("Fetching buckets..."):
        try:
            names = asyncio.run(sync.refresh_buckets())
        except SyncFreeError as e:
            _fail("Error refreshing buckets", e)

    if not names:
        console.print("[yellow]No R2 buckets found in your account. Please create a bucket first.[/]")
        return

    table = Table(title="Available Buckets")
    table.add_column("#", style="dim", width=4)
    table.add_column("Bucket", style="cyan")
    table.add_column("Selected")
    for i, name in enumerate(names, 1):
        table.add_row(str(i), name, "[green]✓[/]" if name == sync.settings.bucket_name else "")
    console.print(table)
    console.print("Select one with: [bold]syncfree config set bucketName <name>[/]")


# ── connect / disconnect ────────────────────────────────────────────────


async def _connect(sync: SyncFreeApp, timeout: float) -> FlowState:
    oauth = sync.settings.oauth
    receiver = CallbackReceiver(sync.flow.handle_callback, oauth.trusted_origin, oauth.callback_port)
    receiver.start()
    try:
        url = sync.connect()
        console.print("Please authenticate with Cloudflare in the opened window.")
        console.print(f"[dim]If no browser opened, visit:[/] {url}")
        state = await sync.flow.wait(timeout)
    finally:
        receiver.stop()

    try:
        await sync.refresh_buckets()
    except SyncFreeError as e:
        console.print(f"[yellow]Connected, but the bucket list could not be fetched:[/] {e}")
    return state


@app.command()
def connect(
    ctx: typer.Context,
    timeout: Annotated[float, typer.Option(help="Seconds to wait for the browser callback")] = 300.0,
) -> None:
    """Connect a Cloudflare account and issue an R2 key pair."""
    sync = _load_app(ctx)
    try:
        asyncio.run(_connect(sync, timeout))
    except TimeoutError:
        _fail("Authentication failed", "no callback received in time")
    except (SyncFreeError, OSError) as e:
        _fail("Authentication failed", e)

    console.print(f"[green]Successfully connected to Cloudflare![/] Account ID: {sync.settings.account_id}")
    if sync.settings.available_buckets:
        console.print(f"Buckets: {', '.join(sync.settings.available_buckets)}")


@app.command()
def disconnect(ctx: typer.Context) -> None:
    """Forget the Cloudflare connection and stored credentials."""
    sync = _load_app(ctx)
    sync.disconnect()
    console.print("Disconnected from Cloudflare account")


# ── status ──────────────────────────────────────────────────────────────


@app.command()
def status(ctx: typer.Context) -> None:
    """Show configuration and connection status."""
    sync = _load_app(ctx)
    s = sync.settings
    creds = sync.credentials

    lines = [
        f"[bold]Status:[/]          {sync.status.text}",
        f"[bold]Settings:[/]        {sync.store.path}",
        f"[bold]Vault:[/]           {Path(s.vault_path).expanduser().resolve()}",
        "",
        f"[bold]Account ID:[/]      {s.account_id or '[dim](not set)[/]'}",
        f"[bold]Access Key ID:[/]   {_mask(s.access_key_id)}",
        f"[bold]Secret Key:[/]      {_mask(s.secret_access_key)}",
        f"[bold]Connected:[/]       {'yes' if creds.has_bearer_token() else 'no'}",
        f"[bold]Bucket:[/]          {s.bucket_name or '[dim](not set)[/]'}",
        f"[bold]Backup Path:[/]     {s.backup_path or '[dim](bucket root)[/]'}",
        f"[bold]Exclusions:[/]      {', '.join(s.exclude_patterns) or '[dim](none)[/]'}",
        "",
    ]
    if s.enable_auto_backup:
        lines.append(f"[bold]Auto Backup:[/]     every {s.backup_frequency} minutes")
    else:
        lines.append("[bold]Auto Backup:[/]     [dim]disabled[/]")

    title = "SyncFree" if creds.has_usable_credentials() else "[yellow]SyncFree (incomplete settings)[/]"
    console.print(Panel("\n".join(lines), title=title))


# ── config ──────────────────────────────────────────────────────────────


def _resolve_field(key: str) -> str:
    name = _FIELD_BY_KEY.get(key.lower(), key)
    if name not in DOCUMENT_KEYS or name in ("oauth", "network"):
        console.print(f"[red]Error:[/] Unknown setting: {key}")
        raise typer.Exit(1)
    return name


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Print all settings."""
    sync = _load_app(ctx)
    table = Table(title=str(sync.store.path))
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for name, value in sync.settings.model_dump().items():
        if name in ("oauth", "network"):
            continue
        shown = _mask(value) if name in _SECRET_FIELDS else str(value)
        table.add_row(DOCUMENT_KEYS[name], shown)
    console.print(table)


@config_app.command("set")
def config_set(ctx: typer.Context, key: str, value: str) -> None:
    """Change one setting (camelCase or snake_case key)."""
    sync = _load_app(ctx)
    name = _resolve_field(key)
    parsed: object = value
    if name == "available_buckets":
        parsed = [item.strip() for item in value.split(",") if item.strip()]
    try:
        sync.update_settings(**{name: parsed})
    except SyncFreeError as e:
        _fail("Error", e)
    console.print(f"[green]Saved[/] {DOCUMENT_KEYS[name]} = {getattr(sync.settings, name)!r}")


# ── serve ───────────────────────────────────────────────────────────────


async def _serve(sync: SyncFreeApp) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass  # Windows: KeyboardInterrupt still ends asyncio.run

    sync.start()
    try:
        await stop.wait()
    finally:
        await sync.shutdown()


@app.command()
def serve(ctx: typer.Context) -> None:
    """Run automatic backups until interrupted."""
    sync = _load_app(ctx)
    if not sync.settings.enable_auto_backup:
        console.print("[yellow]Automatic backups are disabled.[/] Enable with: syncfree config set enableAutoBackup true")
        raise typer.Exit(1)

    console.print(f"Automatic backups every {sync.settings.backup_frequency} minutes. Press Ctrl+C to stop.")
    try:
        asyncio.run(_serve(sync))
    except KeyboardInterrupt:
        pass
    console.print("Stopped.")
