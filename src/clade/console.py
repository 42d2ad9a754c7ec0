"""Shared rich console and status-line helpers."""

from rich.console import Console

_console: Console | None = None
_err_console: Console | None = None


def get_console() -> Console:
    """Get the shared stdout console."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def get_err_console() -> Console:
    """Get the shared stderr console (used when stdout carries a result)."""
    global _err_console
    if _err_console is None:
        _err_console = Console(stderr=True)
    return _err_console


def success(message: str) -> None:
    """Print a green check line."""
    get_console().print(f"[bold green]✓[/bold green] {message}")


def info(message: str) -> None:
    """Print a cyan arrow line."""
    get_console().print(f"[cyan]→[/cyan] {message}")


def warn(message: str) -> None:
    """Print a yellow warning line."""
    get_console().print(f"[yellow]⚠[/yellow] {message}")


def error(message: str) -> None:
    """Print a red cross line."""
    get_console().print(f"[bold red]✗[/bold red] {message}")


def header(message: str) -> None:
    """Print a bold section header preceded by a blank line."""
    console = get_console()
    console.print()
    console.print(f"[bold]{message}[/bold]")


def detail(message: str) -> None:
    """Print an indented detail line."""
    get_console().print(f"  {message}")


def key_value(key: str, value: str) -> None:
    """Print an indented key/value pair with a dimmed key."""
    get_console().print(f"  [dim]{key}:[/dim] {value}")
