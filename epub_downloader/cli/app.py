"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console

from epub_downloader import __version__
from epub_downloader.api.client import APIClient
from epub_downloader.exceptions import ErrorCode, invalid_cookies, wrap
from epub_downloader.models.config import AppConfig
from epub_downloader.models.cookie import SessionCookie
from epub_downloader.models.profile import UserProfile
from epub_downloader.storage.config_manager import ConfigManager
from epub_downloader.storage.cookie_store import CookieStore, parse_cookies
from epub_downloader.tui import App, Program, Screen, build_theme
from epub_downloader.tui.models import AuthModel, HomeModel, SessionContext
from epub_downloader.tui.terminal import TerminalInput
from epub_downloader.utils import paths
from epub_downloader.utils.structured_logger import StructuredLogger

from .formatters import print_config, print_profile

VALIDATION_TIMEOUT = 60.0

console = Console()

app = typer.Typer(
    name="epub-downloader",
    help=(
        "Terminal client for O'Reilly Learning. Run without a command to start"
        " the interactive interface."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def _load_config(ctx: typer.Context) -> AppConfig:
    state = ctx.obj
    return ConfigManager(state["config_file"]).load_config(state["overrides"])


def _cookie_store(config: AppConfig) -> CookieStore:
    path = config.cookies_path or str(paths.get_cookies_file_path())
    return CookieStore(Path(path).expanduser())


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to the YAML configuration file.",
        dir_okay=False,
    ),
):
    """O'Reilly EPUB Downloader"""
    if version:
        console.print(
            f"[bold]epub-downloader[/bold] version [cyan]{__version__}[/cyan]"
        )
        raise typer.Exit()

    overrides: dict[str, Any] = {}
    if verbose >= 2:
        overrides["log_level"] = "debug"
    elif verbose == 1:
        overrides["log_level"] = "info"

    ctx.obj = {
        "config_file": config_file or paths.get_config_file_path(),
        "overrides": overrides,
    }

    if ctx.invoked_subcommand is None:
        _run_tui(_load_config(ctx))


def _run_tui(config: AppConfig) -> None:
    if not sys.stdin.isatty():
        console.print(
            "[red]✗ The interactive interface needs a terminal.[/red] Use"
            " [cyan]epub-downloader login -[/cyan] to import cookies from a pipe."
        )
        raise typer.Exit(code=1)

    with StructuredLogger.from_config(config) as logger:
        logger.set_session_context(command="tui")
        asyncio.run(_tui_async(config, logger))


async def _tui_async(config: AppConfig, logger: StructuredLogger) -> None:
    async with APIClient(
        rate_limit_rps=config.rate_limit_rps,
        logger=logger,
        max_connections=config.concurrent_downloads,
    ) as client:
        session = SessionContext(
            client, _cookie_store(config), validation_timeout=VALIDATION_TIMEOUT
        )
        screens = {
            Screen.AUTH: AuthModel(session),
            Screen.HOME: HomeModel(session),
        }
        program = Program(
            App(screens, logger=logger),
            console=Console(theme=build_theme(config.theme)),
            input_reader=TerminalInput(),
            max_concurrency=config.concurrent_downloads,
            logger=logger,
        )
        await program.run()


@app.command()
def tui(ctx: typer.Context):
    """Start the interactive terminal interface."""
    _run_tui(_load_config(ctx))


async def _validate(
    config: AppConfig, logger: StructuredLogger, cookies: list[SessionCookie]
) -> UserProfile:
    async with APIClient(
        cookies,
        rate_limit_rps=config.rate_limit_rps,
        logger=logger,
        max_connections=config.concurrent_downloads,
    ) as client:
        return await client.validate_session(timeout=VALIDATION_TIMEOUT)


@app.command()
def login(
    ctx: typer.Context,
    source: str = typer.Argument(
        ..., help="Cookies JSON file exported from the browser, or '-' for stdin."
    ),
):
    """Validate browser cookies and save them as the current session."""
    config = _load_config(ctx)

    if source == "-":
        console.print("[dim]Reading cookies from stdin...[/dim]")
        text = sys.stdin.read()
    else:
        try:
            text = Path(source).expanduser().read_text(encoding="utf-8")
        except OSError as e:
            raise wrap(
                e,
                ErrorCode.FILE,
                f"failed to read cookies from {source}",
                f"Could not read '{source}'.",
            ) from e
        except UnicodeDecodeError as e:
            raise wrap(
                e,
                ErrorCode.INVALID_COOKIES,
                f"cookies in {source} are not valid UTF-8",
                invalid_cookies().user_message,
                retryable=False,
            ) from e

    cookies = parse_cookies(text)
    console.print(f"[cyan]Validating {len(cookies)} cookies...[/cyan]")

    with StructuredLogger.from_config(config) as logger:
        logger.set_session_context(command="login")
        profile = asyncio.run(_validate(config, logger, cookies))

    store = _cookie_store(config)
    store.save(cookies)
    console.print(f"[green]✓ Session saved to {store.path}[/green]")
    print_profile(profile, console)


@app.command()
def whoami(ctx: typer.Context):
    """Validate the saved session and show the signed-in user."""
    config = _load_config(ctx)
    cookies = _cookie_store(config).load()

    with StructuredLogger.from_config(config) as logger:
        logger.set_session_context(command="whoami")
        profile = asyncio.run(_validate(config, logger, cookies))

    print_profile(profile, console)


@app.command()
def logout(ctx: typer.Context):
    """Forget the saved session."""
    store = _cookie_store(_load_config(ctx))
    if not store.exists():
        console.print("[yellow]No saved session.[/yellow]")
        return
    store.delete()
    console.print("[green]✓ Saved session removed.[/green]")


@app.command(name="show-config")
def show_config(ctx: typer.Context):
    """Display the effective configuration."""
    config = _load_config(ctx)
    print_config(ctx.obj["config_file"], config.model_dump())
