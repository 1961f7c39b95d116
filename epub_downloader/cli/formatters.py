"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from epub_downloader.exceptions import AppError, error_code, user_message
from epub_downloader.models.profile import UserProfile

SUGGESTIONS = {
    "AUTH_001": [
        "• Your O'Reilly session has expired.",
        "• Log in to learning.oreilly.com and export your cookies again.",
        "• Then run `epub-downloader login <cookies.json>`.",
    ],
    "AUTH_003": [
        "• Your account has no active O'Reilly Learning subscription.",
        "• Check your subscription status on learning.oreilly.com.",
    ],
    "AUTH_004": [
        "• The cookies must be a JSON array of objects with `name` and `value`.",
        "• Export them from DevTools > Application > Cookies as JSON.",
    ],
    "NET_001": [
        "• A network connection issue occurred.",
        "• Check your internet connection and try again.",
    ],
    "NET_002": [
        "• The O'Reilly API returned an unexpected response.",
        "• The service might be temporarily unavailable. Try again later.",
    ],
    "NET_003": [
        "• Requests are being throttled.",
        "• Lower `rate_limit_rps` in the configuration file.",
    ],
    "NET_004": [
        "• The request timed out, which may indicate network throttling.",
        "• Check your internet speed and try again.",
    ],
    "STOR_002": [
        "• No saved session was found.",
        "• Run `epub-downloader login <cookies.json>` first.",
    ],
    "VAL_001": [
        "• A configuration value is out of range.",
        "• Run `epub-downloader show-config` and fix the file it points to.",
    ],
    "CFG_003": [
        "• The configuration file is not valid YAML.",
        "• Fix or delete it; a default one is created when it is missing.",
    ],
}


def format_error_with_suggestions(
    error: BaseException, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    code = error_code(error)
    suggestions = SUGGESTIONS.get(
        code, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    if code:
        error_text.append(f"{code}: ", style="bold red")
    else:
        error_text.append(f"{type(error).__name__}: ", style="bold red")
    error_text.append(user_message(error))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    if isinstance(error, AppError) and error.user_message != error.message:
        content.add_row(Text(error.message, style="dim"))
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the effective configuration."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if value is None or value == "":
            value = "[dim]<default>[/dim]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_profile(profile: UserProfile, console: Console | None = None):
    """Displays the signed-in user and their subscription."""
    console = console or Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    sub = profile.subscription
    table.add_row("Name:", profile.display_name)
    table.add_row("Email:", profile.email or "-")
    table.add_row("Username:", profile.username or "-")
    table.add_row(
        "Subscription:",
        "[green]✓ Active[/green]" if sub.active else "[red]✗ Inactive[/red]",
    )
    if sub.type:
        table.add_row("Plan:", sub.type)
    if sub.expires_at is not None:
        table.add_row("Expires:", f"{sub.expires_at:%Y-%m-%d}")

    console.print(
        Panel(table, title="[bold]O'Reilly Session[/bold]", border_style="green")
    )
