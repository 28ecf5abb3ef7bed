"""Deterministic error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    VALIDATION_ERROR = 5
    NOT_IN_PROJECT = 6
    PERSISTENCE_ERROR = 7
    CANCELLED = 130


@dataclass
class ContainerReplError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


class UserCancelledError(ContainerReplError):
    """The user aborted an interactive prompt."""

    def __init__(self, message: str = "Selection cancelled", hint: str = "") -> None:
        super().__init__(message, code=ExitCode.CANCELLED, hint=hint)


class NotInProjectError(ContainerReplError):
    """A project-scoped command ran outside any detected project."""

    def __init__(self, message: str = "Not in a project", hint: str = "") -> None:
        super().__init__(
            message,
            code=ExitCode.NOT_IN_PROJECT,
            hint=hint or "Run the command inside a project or pass --project-root.",
        )


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
