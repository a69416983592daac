"""Operator prompting helpers shared by the wizard and the session."""
from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from rich.console import Console
from rich.markup import escape

from .state import InstanceRegistry
from .validation import ValidationError

T = TypeVar("T")

#: Reads one line of operator input after showing a prompt; raises
#: ``EOFError`` once input is exhausted.
LineReader = Callable[[str], str]

MAX_ATTEMPTS = 3


def console_reader(console: Console) -> LineReader:
    """Return a :data:`LineReader` backed by ``console.input``."""

    def read_line(prompt: str) -> str:
        return console.input(prompt, markup=False)

    return read_line


def prompt_with_retry(
    read_line: LineReader,
    console: Console,
    prompt: str,
    validator: Callable[[str], T],
    *,
    max_attempts: int = MAX_ATTEMPTS,
    default: str | None = None,
    default_display: str | None = None,
) -> T:
    """Prompt until *validator* accepts the input or the attempt budget runs out.

    When *default* is given, empty input reuses it; *default_display* replaces
    the default in the prompt text (used to keep secrets masked).
    """
    if default is not None:
        shown = default if default_display is None else default_display
        label = f"{prompt} [{shown}]: "
    else:
        label = f"{prompt}: "

    for attempt in range(1, max_attempts + 1):
        raw = read_line(label).strip()
        if not raw and default is not None:
            raw = default
        try:
            return validator(raw)
        except ValidationError as exc:
            console.print(f"Error: {escape(str(exc))}")
            remaining = max_attempts - attempt
            if remaining:
                console.print(
                    f"Please try again ({remaining}/{max_attempts} attempts remaining)."
                )
    raise ValidationError(f"maximum attempts reached ({max_attempts}/{max_attempts})")


def print_instance_choices(console: Console, registry: InstanceRegistry) -> list[str]:
    """Print a numbered list of instances and return the names in that order."""
    names = registry.sorted_names()
    for index, name in enumerate(names, start=1):
        instance = registry.get(name)
        endpoint = instance.endpoint if instance is not None else "?"
        console.print(f"[{index}] {escape(name)} ({endpoint})")
    return names


def choose_instance(
    read_line: LineReader,
    console: Console,
    registry: InstanceRegistry,
    prompt: str,
) -> str:
    """Print the instance list and return the name picked by number."""
    names = print_instance_choices(console, registry)
    console.print()
    raw = read_line(prompt).strip()
    try:
        choice = int(raw)
    except ValueError:
        choice = 0
    if choice < 1 or choice > len(names):
        raise ValidationError(f"invalid choice: {raw}")
    return names[choice - 1]


__all__ = [
    "LineReader",
    "MAX_ATTEMPTS",
    "choose_instance",
    "console_reader",
    "print_instance_choices",
    "prompt_with_retry",
]
