"""Persistence backends for selection state."""

from __future__ import annotations

import logging as py_logging
import os
import sys
import tempfile
from contextlib import suppress
from pathlib import Path
from typing import Protocol

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from containerrepl.errors import ContainerReplError, ExitCode
from containerrepl.runtime.models import ContainerRef
from containerrepl.state.models import PersistedState

logger = py_logging.getLogger(__name__)

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\b": "\\b",
    "\t": "\\t",
    "\n": "\\n",
    "\f": "\\f",
    "\r": "\\r",
}


class StateStore(Protocol):
    def load(self) -> PersistedState | None: ...

    def save(self, state: PersistedState) -> None: ...


def _escape(value: str) -> str:
    parts: list[str] = []
    for char in value:
        if char in _ESCAPES:
            parts.append(_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            parts.append(f"\\u{ord(char):04x}")
        else:
            parts.append(char)
    return "".join(parts)


def _toml_string(value: str) -> str:
    return f'"{_escape(value)}"'


def _toml_ref(ref: ContainerRef) -> str:
    return f"{{ name = {_toml_string(ref.name)}, id = {_toml_string(ref.id)} }}"


def render_state(state: PersistedState) -> str:
    history = ", ".join(_toml_string(item) for item in state.container_history)
    lines = [f"container_history = [{history}]"]

    if state.last_container is not None:
        lines.extend(
            [
                "",
                "[last_container]",
                f"name = {_toml_string(state.last_container.name)}",
                f"id = {_toml_string(state.last_container.id)}",
            ]
        )

    lines.extend(["", "[project_containers]"])
    for root, ref in sorted(state.project_containers.items()):
        lines.append(f"{_toml_string(root)} = {_toml_ref(ref)}")

    return "\n".join(lines) + "\n"


def _parse_ref(value: object) -> ContainerRef | None:
    if not isinstance(value, dict):
        return None
    name = value.get("name")
    container_id = value.get("id", "")
    if not isinstance(name, str) or not isinstance(container_id, str):
        return None
    return ContainerRef(name=name, id=container_id)


def parse_state(raw: dict[str, object]) -> PersistedState:
    state = PersistedState()

    state.last_container = _parse_ref(raw.get("last_container"))

    history = raw.get("container_history", [])
    if isinstance(history, list):
        state.container_history = [item for item in history if isinstance(item, str)]

    projects = raw.get("project_containers", {})
    if isinstance(projects, dict):
        associations: dict[str, ContainerRef] = {}
        for root, payload in projects.items():
            ref = _parse_ref(payload)
            if isinstance(root, str) and ref is not None:
                associations[root] = ref
        state.project_containers = associations

    return state


class TomlStateStore:
    """Selection state in a single TOML file, replaced atomically on save."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self.backup_path = self.path.with_name(f"{self.path.name}.bak")
        self._unreadable_in_place = False

    def _set_aside(self) -> None:
        try:
            os.replace(self.path, self.backup_path)
        except OSError as exc:
            self._unreadable_in_place = True
            logger.error("Could not move unreadable state file %s aside: %s", self.path, exc)
        else:
            self._unreadable_in_place = False
            logger.warning("Moved unreadable state file to %s", self.backup_path)

    def load(self) -> PersistedState | None:
        if not self.path.exists():
            logger.debug("No saved state at %s", self.path)
            return None
        try:
            with self.path.open("rb") as handle:
                raw = tomllib.load(handle)
        except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, exc)
            self._set_aside()
            return None
        self._unreadable_in_place = False
        return parse_state(raw)

    def save(self, state: PersistedState) -> None:
        if self._unreadable_in_place:
            raise ContainerReplError(
                f"Refusing to overwrite unreadable state file {self.path}",
                code=ExitCode.PERSISTENCE_ERROR,
                hint=f"Move or repair {self.path} and try again.",
            )
        payload = render_state(state)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle = tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            )
            try:
                with handle:
                    handle.write(payload)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(handle.name, self.path)
            except BaseException:
                with suppress(OSError):
                    os.unlink(handle.name)
                raise
        except (OSError, UnicodeError) as exc:
            logger.error("Failed to save state to %s: %s", self.path, exc)
            raise ContainerReplError(
                f"Failed to save selection state to {self.path}",
                code=ExitCode.PERSISTENCE_ERROR,
                hint=str(exc) or "Check that the state directory is writable.",
            ) from exc
        with suppress(OSError):
            self.path.chmod(0o600)
        logger.debug("Saved state to %s", self.path)


class MemoryStateStore:
    """Keeps the last saved state in memory."""

    def __init__(self, state: PersistedState | None = None) -> None:
        self.saved = None if state is None else state.model_copy(deep=True)
        self.save_count = 0

    def load(self) -> PersistedState | None:
        if self.saved is None:
            return None
        return self.saved.model_copy(deep=True)

    def save(self, state: PersistedState) -> None:
        self.saved = state.model_copy(deep=True)
        self.save_count += 1
