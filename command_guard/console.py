from __future__ import annotations

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from .config import GuardSettings
from .errors import CommandBlockedError, GuardError
from .messages import SECURITY_MESSAGES
from .models import Decision
from .utils import preview

# --- Console output for terminal hosts ---
console = Console(stderr=True)


def print_panel(title: str, body: str) -> None:
    console.print(Panel(escape(body), title=escape(title), expand=False))


def print_info(msg: str) -> None:
    console.print(f"[bold cyan]INFO[/bold cyan] {escape(msg)}")


def print_warn(msg: str) -> None:
    console.print(f"[bold yellow]WARN[/bold yellow] {escape(msg)}")


def print_err(msg: str) -> None:
    console.print(f"[bold red]ERROR[/bold red] {escape(msg)}")


def show_decision(decision: Decision) -> None:
    if decision.allowed:
        print_info(decision.message)
        return
    title, _, body = decision.message.partition("\n\n")
    print_panel(title, body)


def show_error(err: GuardError) -> None:
    """Render a guard exception for the user; blocked commands get the full guidance panel."""
    if isinstance(err, CommandBlockedError):
        print_warn(f"Blocked: {preview(err.command or '')}")
        show_decision(err.decision)
    else:
        print_err(str(err))


def notify_untrusted(operation: str) -> None:
    """TrustGate.on_untrusted hook for hosts that talk to the user on a terminal."""
    title, guidance = SECURITY_MESSAGES["workspace-untrusted"]
    print_panel(title, f"{operation} requires workspace trust to execute safely.\n\n{guidance}")


def configure_logging(settings: Optional[GuardSettings] = None) -> None:
    settings = settings or GuardSettings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
