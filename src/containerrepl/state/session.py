"""Live selection state and its load/save lifecycle."""

from __future__ import annotations

import atexit
import logging as py_logging
from collections.abc import Callable

from containerrepl.runtime.models import ContainerRef
from containerrepl.state.models import PersistedState
from containerrepl.state.store import StateStore

logger = py_logging.getLogger(__name__)


class Session:
    """Owns the in-memory selection state for one process."""

    def __init__(self, store: StateStore, state: PersistedState | None = None) -> None:
        self.store = store
        self.state = state or PersistedState()

    @property
    def last_container(self) -> ContainerRef | None:
        return self.state.last_container

    @last_container.setter
    def last_container(self, ref: ContainerRef | None) -> None:
        self.state.last_container = ref

    @property
    def history(self) -> list[str]:
        return self.state.container_history

    def project_container(self, project_root: str) -> ContainerRef | None:
        return self.state.project_containers.get(project_root)

    def remember(self, ref: ContainerRef) -> None:
        self.state.last_container = ref
        self.state.container_history.insert(0, ref.name)
        logger.debug("Selected container name=%s id=%s", ref.name, ref.id)

    def associate(self, project_root: str, ref: ContainerRef) -> None:
        self.state.project_containers[project_root] = ref
        logger.info("Associated project %s with container %s", project_root, ref.name)

    def load(self) -> PersistedState | None:
        loaded = self.store.load()
        if loaded is None:
            return None
        self.state = loaded
        logger.debug(
            "Loaded state last=%s history=%s projects=%s",
            loaded.last_container.name if loaded.last_container else None,
            len(loaded.container_history),
            len(loaded.project_containers),
        )
        return loaded

    def save(self) -> None:
        self.store.save(self.state)

    def setup(self, register: Callable[[Callable[[], None]], object] = atexit.register) -> None:
        self.load()
        register(self.save)
