"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import shlex
import subprocess
import sys
from collections.abc import Callable, Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.prompt import Prompt

from .config import AppConfig, load_config
from .connector import Connector
from .errors import ContainerReplError, ExitCode, UserCancelledError, user_facing_error
from .logging import configure_logging, default_log_path
from .picker import ContainerPicker, docker_annotation
from .project import ProjectLocator
from .prompt import ChoicePrompt, RichPrompt
from .repl import CommandReplClient, Endpoint
from .runtime.docker_query import RuntimeQueries
from .state import Session, TomlStateStore

_VALID_RUNTIMES = ("docker", "podman")
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")
_SHELL_EXIT = ("exit", "quit")

Runner = Callable[..., subprocess.CompletedProcess]


def _port_type(value: str) -> int:
    try:
        port = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--port must be an integer") from exc
    if port < 1 or port > 65535:
        raise argparse.ArgumentTypeError("--port must be between 1 and 65535")
    return port


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _add_commands(parser: argparse.ArgumentParser, *, include_shell: bool) -> None:
    commands = parser.add_subparsers(dest="command", metavar="command")

    connect = commands.add_parser("connect", help="Connect to the last or a newly selected container")
    connect.add_argument("--select", action="store_true", help="Always prompt for a container")

    commands.add_parser("select-container", help="Choose the container to connect to")
    commands.add_parser(
        "set-project-container",
        help="Choose the container remembered for the current project",
    )

    connect_project = commands.add_parser(
        "connect-project",
        help="Connect to the container remembered for the current project",
    )
    connect_project.add_argument("--select", action="store_true", help="Always prompt for a container")

    commands.add_parser("save-data", help="Write the selection state file now")
    commands.add_parser("load-data", help="Reload the selection state file and show it")
    commands.add_parser("setup", help="Load saved state and save it again on exit")
    if include_shell:
        commands.add_parser("shell", help="Run commands interactively in one session")

    parser.set_defaults(command="connect", select=False)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="container-repl",
        description="Connect a REPL client to a port published by a running container.",
    )
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--state-file", type=Path, default=None)
    parser.add_argument("--runtime", choices=_VALID_RUNTIMES, default=None)
    parser.add_argument("--port", type=_port_type, default=None, help="Internal REPL port")
    parser.add_argument("--project-root", type=Path, default=None)
    parser.add_argument(
        "--no-annotate",
        action="store_true",
        help="List container names without image and status",
    )
    parser.add_argument(
        "--log-level",
        type=_log_level_type,
        default=None,
        help="Console log level (default: $CONTAINER_REPL_LOG_LEVEL or WARN)",
    )
    parser.add_argument("--log-file", type=Path, default=None)
    _add_commands(parser, include_shell=True)
    return parser


def build_shell_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="", add_help=False, exit_on_error=False)
    _add_commands(parser, include_shell=False)
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    return parser.parse_args(argv)


def resolve_config(namespace: argparse.Namespace) -> AppConfig:
    config = load_config(namespace.config)
    if namespace.runtime is not None:
        config.runtime_binary = namespace.runtime
    if namespace.port is not None:
        config.internal_port = namespace.port
    if namespace.state_file is not None:
        config.state_file = str(namespace.state_file)
    if namespace.no_annotate:
        config.annotate_candidates = False
    return config


@dataclass
class App:
    config: AppConfig
    session: Session
    connector: Connector
    console: Console


def build_app(
    config: AppConfig,
    *,
    project_root: str | Path | None = None,
    runner: Runner = subprocess.run,
    prompt: ChoicePrompt | None = None,
    console: Console | None = None,
) -> App:
    console = console or Console()
    prompt = prompt or RichPrompt(console)
    queries = RuntimeQueries(config.runtime_binary, config.list_delimiter, runner=runner)
    session = Session(TomlStateStore(config.state_path))
    picker = ContainerPicker(
        session,
        lister=queries.list_running_containers,
        prompt=prompt,
        annotate=docker_annotation(queries) if config.annotate_candidates else None,
    )
    connector = Connector(
        session,
        picker=picker,
        port_lookup=queries.find_host_port,
        repl_client=CommandReplClient(config.repl_command, runner=runner),
        prompt=prompt,
        project_root=ProjectLocator(override=project_root, markers=config.project_markers),
        internal_port=config.internal_port,
        host=config.repl_host,
    )
    return App(config=config, session=session, connector=connector, console=console)


def _report_connection(app: App, endpoint: Endpoint | None) -> None:
    if endpoint is None:
        app.console.print("Not connected.")
    else:
        app.console.print(f"REPL session on {endpoint} ended.")


def _describe_state(app: App) -> None:
    state = app.session.state
    last = state.last_container
    app.console.print(f"State file: {app.config.state_path}")
    app.console.print(f"Last container: {last.name if last else '-'}")
    app.console.print(f"History entries: {len(state.container_history)}")
    for root, ref in sorted(state.project_containers.items()):
        app.console.print(f"  {root} -> {ref.name}")


def run_command(app: App, namespace: argparse.Namespace) -> int:
    command = namespace.command
    logger = py_logging.getLogger(__name__)
    logger.debug("Running command %s", command)

    if command == "connect":
        _report_connection(app, app.connector.connect(namespace.select))
    elif command == "connect-project":
        _report_connection(app, app.connector.connect_for_project(namespace.select))
    elif command == "select-container":
        ref = app.connector.select_container()
        app.console.print(f"Selected {ref.name}.")
    elif command == "set-project-container":
        ref = app.connector.set_project_container()
        app.console.print(f"Project container set to {ref.name}.")
    elif command == "save-data":
        app.session.save()
        app.console.print(f"Saved state to {app.config.state_path}.")
    elif command == "load-data":
        if app.session.load() is None:
            app.console.print("No saved state yet.")
        _describe_state(app)
    elif command == "setup":
        _describe_state(app)
    else:
        raise ContainerReplError(
            f"Unknown command: {command}",
            code=ExitCode.INVALID_ARGS,
            hint="Run with --help to list commands.",
        )
    return int(ExitCode.SUCCESS)


def run_shell(app: App) -> int:
    logger = py_logging.getLogger(__name__)
    parser = build_shell_parser()
    app.console.print("Commands: connect [--select], select-container, set-project-container,")
    app.console.print("connect-project [--select], save-data, load-data, exit")
    while True:
        try:
            line = Prompt.ask("container-repl", console=app.console)
        except (KeyboardInterrupt, EOFError):
            app.console.print()
            return int(ExitCode.SUCCESS)
        try:
            argv = shlex.split(line)
        except ValueError as exc:
            app.console.print(f"[red]{exc}[/red]")
            continue
        if not argv:
            continue
        if argv[0] in _SHELL_EXIT:
            return int(ExitCode.SUCCESS)
        try:
            namespace = parser.parse_args(argv)
        except (argparse.ArgumentError, SystemExit) as exc:
            app.console.print(f"[red]Invalid command: {line}[/red]")
            logger.debug("Shell command rejected: %s", exc)
            continue
        try:
            run_command(app, namespace)
        except UserCancelledError:
            app.console.print("Cancelled.")
        except ContainerReplError as exc:
            print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)


def main(
    argv: Sequence[str] | None = None,
    *,
    runner: Runner = subprocess.run,
    prompt: ChoicePrompt | None = None,
    console: Console | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    try:
        config = resolve_config(namespace)
        app = build_app(
            config,
            project_root=namespace.project_root,
            runner=runner,
            prompt=prompt,
            console=console,
        )
        with ExitStack() as shutdown:
            app.session.setup(register=shutdown.callback)
            if namespace.command == "shell":
                return run_shell(app)
            return run_command(app, namespace)
    except ContainerReplError as exc:
        logger.error(
            "Handled ContainerReplError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        try:
            hint = f"Inspect logs: {log_path}"
            print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        except Exception:
            pass
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
