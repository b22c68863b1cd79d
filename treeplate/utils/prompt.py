"""Interactive value prompts backed by rich."""

from __future__ import annotations

from typing import Any, Callable

from rich.console import Console
from rich.prompt import Confirm, FloatPrompt, IntPrompt, Prompt

console = Console()

_MISSING = object()


def _ask(name: str, default: Any) -> Any:
    question = f"Please choose a value for [bold cyan]{name}[/]"
    if isinstance(default, bool):
        return Confirm.ask(question, default=default, console=console)
    if isinstance(default, list):
        choices = [str(option) for option in default]
        answer = Prompt.ask(question, choices=choices, default=choices[0], console=console)
        return default[choices.index(answer)]
    if isinstance(default, int):
        return IntPrompt.ask(question, default=default, console=console)
    if isinstance(default, float):
        return FloatPrompt.ask(question, default=default, console=console)
    return Prompt.ask(question, default=str(default), console=console)


def new_prompt(name: str, default: Any) -> Callable[[], Any]:
    """Return a callable that asks for ``name`` on first call and caches the answer.

    Lists offer their elements as choices with the first one preselected.
    """
    answer = _MISSING

    def ask() -> Any:
        nonlocal answer
        if answer is _MISSING:
            answer = _ask(name, default)
        return answer

    return ask
