"""Mangatrack CLI entry point."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from server.app import run_server
from server.config import DATA_DIR, DEFAULT_CONFIG_PATH, TrackerConfig, load_config, write_default_config
from server.errors import TrackerError
from server.logging_config import setup_logging
from tracker.auth import TokenService
from tracker.store import UserRecordStore


__version__ = "0.1.0"

app = typer.Typer(add_completion=False, help="Mangatrack reading-state server CLI")
console = Console()


def _ensure_config() -> TrackerConfig:
    try:
        return load_config()
    except FileNotFoundError:
        typer.echo("[ERROR] config.ini not found. Run: mangatrack init --password <password>")
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(f"[ERROR] {exc}")
        raise typer.Exit(code=1)


@app.command()
def init(
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Shared access password"),
    storage: Path = typer.Option(DATA_DIR / "mangas", "--storage", help="Folder for user records"),
    port: int = typer.Option(3000, "--port", help="Listening port"),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing config.ini"),
) -> None:
    """Write config.ini with a freshly generated signing secret."""
    config_path = DEFAULT_CONFIG_PATH
    if config_path.exists() and not force:
        typer.echo(f"[ERROR] {config_path} already exists. Use --force to overwrite.")
        raise typer.Exit(code=1)
    write_default_config(config_path, storage, password, port=port)
    storage.expanduser().mkdir(parents=True, exist_ok=True)
    typer.echo(f"[OK] Config created at {config_path}")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Server host"),
    port: Optional[int] = typer.Option(None, "--port", help="Server port"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Console log level (default from config.ini)"),
) -> None:
    """Start the HTTP server."""
    config = _ensure_config()
    log_file = setup_logging(config.logging, level=log_level)
    typer.echo(f"[INFO] Logging to {log_file}")
    try:
        run_server(config, host=host, port=port)
    except KeyboardInterrupt:
        pass


@app.command()
def users() -> None:
    """List known usernames."""
    config = _ensure_config()
    names = UserRecordStore(config.storage_dir).list_usernames()
    if not names:
        typer.echo("[INFO] No users yet")
        return
    for name in names:
        typer.echo(name)


@app.command()
def show(username: str = typer.Argument(..., help="User to display")) -> None:
    """Print a user's favorites and finished chapters."""
    config = _ensure_config()
    try:
        record = UserRecordStore(config.storage_dir).load(username)
    except TrackerError as exc:
        typer.echo(f"[ERROR] {exc.detail}")
        raise typer.Exit(code=1)
    console.print_json(json.dumps(record.model_dump()))


@app.command()
def token(
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Shared access password"),
) -> None:
    """Issue a token locally, e.g. for scripting against the API."""
    config = _ensure_config()
    try:
        typer.echo(TokenService(config.auth).issue(password))
    except TrackerError as exc:
        typer.echo(f"[ERROR] {exc.detail}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
