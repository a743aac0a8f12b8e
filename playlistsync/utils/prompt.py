"""
Utility for handling user interaction prompts.
"""
import sys
from typing import Callable, List, Optional, TypeVar

import click


T = TypeVar('T')


def prompt_choice(
    message: str,
    options: List[T],
    display_func: Optional[Callable[[T], str]] = None
) -> T:
    """
    Prompt user to select from a numbered list of options.

    Args:
        message: Message to display to user
        options: List of options to choose from
        display_func: Optional function to convert option to display string

    Returns:
        Selected option
    """
    if not options:
        raise ValueError("No options provided for selection")

    if display_func is None:
        display_func = str

    click.echo(f"\n{message}")
    for i, option in enumerate(options, 1):
        click.echo(f"  {i}. {display_func(option)}")

    choice = click.prompt(
        "\nEnter choice number",
        type=click.IntRange(1, len(options))
    )
    return options[choice - 1]


def prompt_yes_no(message: str, default: bool = False) -> bool:
    """
    Prompt user for a yes/no response.

    Args:
        message: Message to display to user
        default: Default response if user just presses Enter

    Returns:
        True for yes, False for no
    """
    try:
        return click.confirm(message, default=default)
    except click.Abort:
        click.echo("\nOperation cancelled by user")
        sys.exit(1)


def display_progress(current: int, total: int, message: str = "", width: int = 50) -> None:
    """
    Display a simple progress bar in the terminal.

    Args:
        current: Current progress value
        total: Total value for 100% completion
        message: Optional message to display with the progress bar
        width: Width of the progress bar in characters
    """
    progress = min(1.0, current / total if total > 0 else 1.0)
    filled_width = int(width * progress)
    bar = '█' * filled_width + '-' * (width - filled_width)
    percent = progress * 100

    click.echo(f"\r{message} [{bar}] {percent:.1f}% ({current}/{total})", nl=False)

    if current >= total:
        click.echo()


def transfer_progress(message: str = "Uploading") -> Callable[[int, int], None]:
    """
    Build an upload progress callback that renders a progress bar.

    Args:
        message: Label shown before the bar

    Returns:
        Callback taking (sent, total) byte counts
    """
    def callback(sent: int, total: int) -> None:
        display_progress(sent, total, message)

    return callback
