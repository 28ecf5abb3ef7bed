"""XDG config loading."""

from __future__ import annotations

import logging as py_logging
import os
import sys
from pathlib import Path
from typing import Literal, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

logger = py_logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.config/container-repl/config.toml").expanduser()
DEFAULT_STATE_PATH = "~/.config/container-repl/state.toml"
DEFAULT_RUNTIME: Literal["docker", "podman"] = "docker"
DEFAULT_INTERNAL_PORT = 7888
DEFAULT_DELIMITER = "|"
DEFAULT_REPL_HOST = "localhost"
DEFAULT_REPL_COMMAND = ["lein", "repl", ":connect", "{host}:{port}"]
DEFAULT_PROJECT_MARKERS = [
    ".git",
    "project.clj",
    "deps.edn",
    "shadow-cljs.edn",
    "bb.edn",
    "pyproject.toml",
]
RUNTIME_ENV = "CONTAINER_REPL_RUNTIME"

_VALID_RUNTIMES = {"docker", "podman"}


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    runtime_binary: Literal["docker", "podman"] = DEFAULT_RUNTIME
    internal_port: int = Field(default=DEFAULT_INTERNAL_PORT, ge=1, le=65535)
    list_delimiter: str = Field(default=DEFAULT_DELIMITER, min_length=1)
    repl_host: str = DEFAULT_REPL_HOST
    repl_command: list[str] = Field(default_factory=lambda: list(DEFAULT_REPL_COMMAND))
    state_file: str = DEFAULT_STATE_PATH
    annotate_candidates: bool = True
    project_markers: list[str] = Field(default_factory=lambda: list(DEFAULT_PROJECT_MARKERS))

    @field_validator("runtime_binary")
    @classmethod
    def _validate_runtime(cls, value: str) -> str:
        if value not in _VALID_RUNTIMES:
            raise ValueError(f"Invalid container runtime: {value}")
        return value

    @field_validator("list_delimiter")
    @classmethod
    def _validate_delimiter(cls, value: str) -> str:
        if "\n" in value or "{" in value or "}" in value:
            raise ValueError(f"Invalid listing delimiter: {value!r}")
        return value

    @property
    def state_path(self) -> Path:
        return Path(self.state_file).expanduser()


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _string_list(value: object) -> list[str] | None:
    if not isinstance(value, list):
        return None
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return items or None


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()

    runtime_binary = raw.get("runtime_binary", cfg.runtime_binary)
    if isinstance(runtime_binary, str) and runtime_binary in _VALID_RUNTIMES:
        cfg.runtime_binary = cast(Literal["docker", "podman"], runtime_binary)

    internal_port = raw.get("internal_port", cfg.internal_port)
    if isinstance(internal_port, int) and not isinstance(internal_port, bool):
        if 1 <= internal_port <= 65535:
            cfg.internal_port = internal_port

    list_delimiter = raw.get("list_delimiter", cfg.list_delimiter)
    if (
        isinstance(list_delimiter, str)
        and list_delimiter
        and not set(list_delimiter) & {"\n", "{", "}"}
    ):
        cfg.list_delimiter = list_delimiter

    repl_host = raw.get("repl_host", cfg.repl_host)
    if isinstance(repl_host, str) and repl_host.strip():
        cfg.repl_host = repl_host.strip()

    repl_command = _string_list(raw.get("repl_command"))
    if repl_command is not None:
        cfg.repl_command = repl_command

    state_file = raw.get("state_file", cfg.state_file)
    if isinstance(state_file, str) and state_file.strip():
        cfg.state_file = state_file.strip()

    annotate_candidates = raw.get("annotate_candidates", cfg.annotate_candidates)
    if isinstance(annotate_candidates, bool):
        cfg.annotate_candidates = annotate_candidates

    project_markers = _string_list(raw.get("project_markers"))
    if project_markers is not None:
        cfg.project_markers = project_markers

    env_runtime = os.getenv(RUNTIME_ENV, "").strip().lower()
    if env_runtime in _VALID_RUNTIMES:
        cfg.runtime_binary = cast(Literal["docker", "podman"], env_runtime)

    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _sanitize({})
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        logger.warning("Ignoring unreadable config file: %s", resolved)
        return _sanitize({})
    return _sanitize(raw)
