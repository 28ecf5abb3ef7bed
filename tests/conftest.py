from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))
        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)


class ScriptedPrompt:
    """Answers prompts from pre-recorded replies and records every question."""

    def __init__(self, choices: Sequence[object] = (), confirms: Sequence[bool] = ()) -> None:
        self.choices = list(choices)
        self.confirms = list(confirms)
        self.choose_calls: list[dict[str, object]] = []
        self.confirm_calls: list[str] = []

    def choose(
        self,
        message: str,
        candidates: Sequence[tuple[str, str]],
        *,
        default: str | None = None,
        history: Sequence[str] = (),
    ) -> str:
        self.choose_calls.append(
            {
                "message": message,
                "candidates": list(candidates),
                "default": default,
                "history": list(history),
            }
        )
        answer = self.choices.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return str(answer)

    def confirm(self, message: str) -> bool:
        self.confirm_calls.append(message)
        return self.confirms.pop(0)


@pytest.fixture
def scripted_prompt() -> type[ScriptedPrompt]:
    return ScriptedPrompt
