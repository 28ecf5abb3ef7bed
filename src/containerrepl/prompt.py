"""Interactive single-choice and yes/no prompts."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Sequence
from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt
from rich.table import Table

from containerrepl.errors import UserCancelledError

try:
    import readline
except ImportError:  # pragma: no cover
    readline = None

logger = py_logging.getLogger(__name__)

Candidate = tuple[str, str]


class ChoicePrompt(Protocol):
    def choose(
        self,
        message: str,
        candidates: Sequence[Candidate],
        *,
        default: str | None = None,
        history: Sequence[str] = (),
    ) -> str: ...

    def confirm(self, message: str) -> bool: ...


def resolve_answer(answer: str, names: Sequence[str]) -> str | None:
    """Map a typed answer to a candidate name; 1-based indexes are accepted."""
    value = answer.strip()
    if value in names:
        return value
    if value.isdigit():
        index = int(value)
        if 1 <= index <= len(names):
            return names[index - 1]
    return None


def _seed_history(history: Sequence[str]) -> None:
    if readline is None:
        return
    readline.clear_history()
    # readline recalls the most recently added entry first.
    for item in reversed(history):
        readline.add_history(item)


class RichPrompt:
    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def _render(self, message: str, candidates: Sequence[Candidate], default: str | None) -> None:
        table = Table(title=escape(message), show_header=True, header_style="bold")
        table.add_column("#", justify="right")
        table.add_column("Container")
        for index, (name, display) in enumerate(candidates, start=1):
            marker = " [green]*[/green]" if name == default else ""
            table.add_row(str(index), f"{escape(display)}{marker}")
        self.console.print(table)

    def choose(
        self,
        message: str,
        candidates: Sequence[Candidate],
        *,
        default: str | None = None,
        history: Sequence[str] = (),
    ) -> str:
        names = [name for name, _ in candidates]
        self._render(message, candidates, default)
        _seed_history(history)
        options: dict[str, object] = {"console": self.console}
        if default is not None:
            options["default"] = default
        while True:
            try:
                answer = Prompt.ask(escape(message), **options)
            except (KeyboardInterrupt, EOFError) as exc:
                self.console.print()
                logger.debug("Container prompt cancelled")
                raise UserCancelledError() from exc
            chosen = resolve_answer(answer or "", names)
            if chosen is not None:
                return chosen
            self.console.print(f"[red]No running container named {escape(repr(answer))}.[/red]")

    def confirm(self, message: str) -> bool:
        try:
            return Confirm.ask(escape(message), default=False, console=self.console)
        except (KeyboardInterrupt, EOFError) as exc:
            self.console.print()
            raise UserCancelledError() from exc
