"""Shared Rich consoles for the command line entry points."""

from rich.console import Console

_console: Console | None = None
_error_console: Console | None = None


def get_console() -> Console:
    """Get or create the stdout Rich Console."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def get_error_console() -> Console:
    """Get or create the stderr Rich Console."""
    global _error_console
    if _error_console is None:
        _error_console = Console(stderr=True)
    return _error_console


def print_result(success: bool, message: str) -> int:
    """Print a command outcome and return the matching exit code.

    Args:
        success: Whether the command succeeded
        message: Text to show the user

    Returns:
        0 on success, 1 on failure
    """
    if success:
        get_console().print(message)
        return 0
    get_error_console().print(message, style="bold red")
    return 1
