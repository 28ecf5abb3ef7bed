"""Hand a discovered endpoint to an external REPL client."""

from __future__ import annotations

import logging as py_logging
import signal
import subprocess
import threading
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Protocol

from containerrepl.errors import ContainerReplError, ExitCode

logger = py_logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


class ReplClient(Protocol):
    def connect(self, host: str, port: int | str) -> None: ...


def coerce_port(port: int | str) -> int:
    try:
        value = int(str(port).strip())
    except ValueError as exc:
        raise ContainerReplError(
            f"Invalid port: {port!r}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Ports must be integers between 1 and 65535.",
        ) from exc
    if value < 1 or value > 65535:
        raise ContainerReplError(
            f"Invalid port: {value}",
            code=ExitCode.VALIDATION_ERROR,
            hint="Ports must be integers between 1 and 65535.",
        )
    return value


def build_connect_command(template: Sequence[str], host: str, port: int) -> list[str]:
    if not template:
        raise ContainerReplError(
            "REPL command is empty.",
            code=ExitCode.CONFIG_ERROR,
            hint="Set repl_command in the config file.",
        )
    return [item.format(host=host, port=port) for item in template]


def _client_owns_interrupt(signum: int, frame: object) -> None:
    logger.debug("Interrupt left to the REPL client")


@contextmanager
def foreground_interrupts() -> Iterator[None]:
    """Leave Ctrl-C to the foreground REPL client instead of this process.

    A Python-level handler is reset to the default in the child on exec, so
    the client still receives SIGINT while this process keeps waiting for it.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, _client_owns_interrupt)
    try:
        yield
    finally:
        # None means the previous handler was not installed from Python.
        signal.signal(signal.SIGINT, signal.SIG_DFL if previous is None else previous)


class CommandReplClient:
    """Runs a REPL client command in the foreground with the endpoint filled in."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ) -> None:
        self.command = list(command)
        self.runner = runner

    def connect(self, host: str, port: int | str) -> None:
        resolved_port = coerce_port(port)
        command = build_connect_command(self.command, host, resolved_port)
        logger.info("Connecting REPL client to %s:%s", host, resolved_port)
        logger.debug("Running REPL command=%s", command)
        try:
            with foreground_interrupts():
                result = self.runner(command, check=False)
        except FileNotFoundError as exc:
            raise ContainerReplError(
                f"REPL client '{command[0]}' was not found.",
                code=ExitCode.RUNTIME_ERROR,
                hint="Install the client or change repl_command in the config file.",
            ) from exc
        if result.returncode != 0:
            logger.error("REPL client exited with code %s", result.returncode)
            raise ContainerReplError(
                f"REPL client exited with code {result.returncode}.",
                code=ExitCode.RUNTIME_ERROR,
                hint=f"Check that a REPL server listens on {host}:{resolved_port}.",
            )
