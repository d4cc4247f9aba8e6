"""Centralised console management module"""

from typing import Optional

from rich.console import Console

_console: Optional[Console] = None
_error_console: Optional[Console] = None


def get_console() -> Console:
    """Get the shared stdout Console instance"""
    global _console

    if _console is None:
        _console = Console(highlight=False)

    return _console


def get_error_console() -> Console:
    """Get the shared stderr Console instance"""
    global _error_console

    if _error_console is None:
        _error_console = Console(stderr=True, highlight=False)

    return _error_console


def reset_console() -> None:
    """Reset the shared Console instances (for testing purposes)"""
    global _console, _error_console
    _console = None
    _error_console = None


## Convenience Print Functions

def print_success(message: str, console: Optional[Console] = None) -> None:
    """Print a success message to the console"""
    output_console = console or get_console()
    output_console.print(message, style="green", markup=False, soft_wrap=True)

def print_error(message: str, console: Optional[Console] = None) -> None:
    """Print an error message to stderr"""
    output_console = console or get_error_console()
    output_console.print(message, style="red", markup=False, soft_wrap=True)

def print_status(message: str, console: Optional[Console] = None) -> None:
    """Print a status message to the console"""
    output_console = console or get_console()
    output_console.print(message, style="cyan", markup=False, soft_wrap=True)
