"""Container runtime queries: running containers, published ports, inspect."""

from __future__ import annotations

import logging as py_logging
import re
import subprocess
from collections.abc import Callable

from containerrepl.errors import ContainerReplError, ExitCode
from containerrepl.runtime.models import ContainerDetails, ContainerRef

logger = py_logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]

DEFAULT_BINARY = "docker"
DEFAULT_DELIMITER = "|"

# First "<address>:<port>" in `docker port` output, e.g. "7888/tcp -> 0.0.0.0:32771".
# Older docker prints IPv6 wildcards unbracketed: "7888/tcp -> :::32771".
_HOST_PORT = re.compile(
    r"(?P<address>\[[0-9A-Fa-f:.]*\]|:*[0-9A-Za-z.\-]*):(?P<port>\d{1,5})\b"
)


def _run(command: list[str], runner: Runner) -> subprocess.CompletedProcess:
    logger.debug("Running runtime query command=%s", command)
    return runner(command, capture_output=True, text=True, check=False)


def _output(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def build_list_command(binary: str = DEFAULT_BINARY, delimiter: str = DEFAULT_DELIMITER) -> list[str]:
    return [binary, "ps", "--format", f"{{{{.Names}}}}{delimiter}{{{{.ID}}}}"]


def build_port_command(
    container_id: str,
    internal_port: int,
    binary: str = DEFAULT_BINARY,
) -> list[str]:
    return [binary, "port", container_id, str(internal_port)]


def build_inspect_command(
    container_id: str,
    binary: str = DEFAULT_BINARY,
    delimiter: str = DEFAULT_DELIMITER,
) -> list[str]:
    return [
        binary,
        "inspect",
        "--format",
        f"{{{{.Config.Image}}}}{delimiter}{{{{.State.Status}}}}",
        container_id,
    ]


def parse_container_listing(text: str, delimiter: str = DEFAULT_DELIMITER) -> list[ContainerRef]:
    containers: list[ContainerRef] = []
    for line in text.rstrip().splitlines():
        if not line.strip():
            continue
        name, sep, container_id = line.partition(delimiter)
        if not sep:
            logger.warning("Container listing line without delimiter: %r", line)
        containers.append(ContainerRef(name=name.strip(), id=container_id.strip()))
    return containers


def parse_host_port(text: str) -> str | None:
    match = _HOST_PORT.search(text)
    if match is None:
        return None
    return match.group("port")


def list_running_containers(
    *,
    binary: str = DEFAULT_BINARY,
    delimiter: str = DEFAULT_DELIMITER,
    runner: Runner = subprocess.run,
) -> list[ContainerRef]:
    command = build_list_command(binary, delimiter)
    try:
        result = _run(command, runner)
    except FileNotFoundError as exc:
        logger.error("Container runtime binary not found: %s", binary)
        raise ContainerReplError(
            f"Container runtime '{binary}' was not found.",
            code=ExitCode.RUNTIME_ERROR,
            hint=f"Install {binary} or select another runtime with --runtime.",
        ) from exc

    if result.returncode != 0:
        stderr = _output(result.stderr).strip()
        logger.error("Container listing failed: %s", stderr)
        raise ContainerReplError(
            "Failed to list running containers.",
            code=ExitCode.RUNTIME_ERROR,
            hint=stderr or f"Check that the {binary} daemon is running.",
        )

    containers = parse_container_listing(_output(result.stdout), delimiter)
    logger.debug("Discovered %s running containers", len(containers))
    return containers


def find_host_port(
    container_id: str,
    internal_port: int,
    *,
    binary: str = DEFAULT_BINARY,
    runner: Runner = subprocess.run,
) -> str | None:
    if not container_id:
        logger.debug("Port lookup skipped; container has no id")
        return None
    command = build_port_command(container_id, internal_port, binary)
    try:
        result = _run(command, runner)
    except FileNotFoundError:
        logger.warning("Container runtime binary not found: %s", binary)
        return None
    if result.returncode != 0:
        logger.debug(
            "Port lookup failed container=%s port=%s stderr=%s",
            container_id,
            internal_port,
            _output(result.stderr).strip(),
        )
        return None

    port = parse_host_port(_output(result.stdout))
    logger.debug("Port lookup container=%s internal=%s host=%s", container_id, internal_port, port)
    return port


def inspect_container(
    container_id: str,
    *,
    binary: str = DEFAULT_BINARY,
    delimiter: str = DEFAULT_DELIMITER,
    runner: Runner = subprocess.run,
) -> ContainerDetails | None:
    if not container_id:
        return None
    command = build_inspect_command(container_id, binary, delimiter)
    try:
        result = _run(command, runner)
    except OSError:
        return None
    if result.returncode != 0:
        return None
    image, sep, status = _output(result.stdout).strip().partition(delimiter)
    if not sep:
        return None
    return ContainerDetails(image=image.strip(), status=status.strip())


class RuntimeQueries:
    """Runtime queries bound to one binary, delimiter and process runner."""

    def __init__(
        self,
        binary: str = DEFAULT_BINARY,
        delimiter: str = DEFAULT_DELIMITER,
        *,
        runner: Runner = subprocess.run,
    ) -> None:
        self.binary = binary
        self.delimiter = delimiter
        self.runner = runner

    def list_running_containers(self) -> list[ContainerRef]:
        return list_running_containers(binary=self.binary, delimiter=self.delimiter, runner=self.runner)

    def find_host_port(self, container_id: str, internal_port: int) -> str | None:
        return find_host_port(container_id, internal_port, binary=self.binary, runner=self.runner)

    def inspect_container(self, container_id: str) -> ContainerDetails | None:
        return inspect_container(
            container_id,
            binary=self.binary,
            delimiter=self.delimiter,
            runner=self.runner,
        )
