from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from containerrepl.runtime.models import ContainerRef
from containerrepl.state import MemoryStateStore, PersistedState, Session, TomlStateStore


def test_remember_overwrites_selection_and_prepends_history() -> None:
    session = Session(MemoryStateStore())

    session.remember(ContainerRef(name="web", id="a"))
    session.remember(ContainerRef(name="api", id="b"))
    session.remember(ContainerRef(name="web", id="c"))

    assert session.last_container is not None
    assert session.last_container.id == "c"
    assert session.history == ["web", "api", "web"]


def test_load_replaces_state_wholesale() -> None:
    saved = PersistedState(container_history=["db"])
    session = Session(MemoryStateStore(saved))
    session.remember(ContainerRef(name="web", id="a"))
    session.associate("/repo", ContainerRef(name="web", id="a"))

    loaded = session.load()

    assert loaded is not None
    assert session.last_container is None
    assert session.history == ["db"]
    assert session.project_container("/repo") is None


def test_load_without_saved_state_keeps_defaults() -> None:
    session = Session(MemoryStateStore())
    session.remember(ContainerRef(name="web", id="a"))

    assert session.load() is None
    assert session.last_container == ContainerRef(name="web", id="a")


def test_setup_loads_then_registers_save(tmp_path: Path) -> None:
    store = TomlStateStore(tmp_path / "state.toml")
    store.save(PersistedState(container_history=["api"]))
    hooks: list[Callable[[], None]] = []

    session = Session(store)
    session.setup(register=hooks.append)

    assert session.history == ["api"]
    assert hooks == [session.save]

    session.remember(ContainerRef(name="web", id="abc"))
    hooks[0]()

    reloaded = store.load()
    assert reloaded is not None
    assert reloaded.container_history == ["web", "api"]
    assert reloaded.last_container is not None
    assert reloaded.last_container.id == "abc"


def test_associate_overwrites_previous_container() -> None:
    session = Session(MemoryStateStore())
    session.associate("/repo", ContainerRef(name="web", id="a"))
    session.associate("/repo", ContainerRef(name="api", id="b"))

    associated = session.project_container("/repo")
    assert associated is not None
    assert (associated.name, associated.id) == ("api", "b")
