from __future__ import annotations

import os
from pathlib import Path

import pytest

import containerrepl.state.store as store_module
from containerrepl.errors import ContainerReplError, ExitCode
from containerrepl.runtime.models import ContainerRef
from containerrepl.state import MemoryStateStore, PersistedState, TomlStateStore


def _state() -> PersistedState:
    return PersistedState(
        last_container=ContainerRef(name="web", id="abc123"),
        container_history=["web", "api", "web"],
        project_containers={
            "/home/zoë/projekt": ContainerRef(name="web", id="abc123"),
            "/srv/日本/app": ContainerRef(name="api", id="def456"),
            'C:\\Users\\dev\\"quoted"': ContainerRef(name="db", id=""),
        },
    )


def test_missing_state_file_loads_nothing(tmp_path: Path) -> None:
    assert TomlStateStore(tmp_path / "state.toml").load() is None


def test_state_roundtrip(tmp_path: Path) -> None:
    store = TomlStateStore(tmp_path / "state.toml")
    original = _state()

    store.save(original)
    loaded = store.load()

    assert loaded is not None
    assert loaded.model_dump() == original.model_dump()


def test_empty_state_roundtrip_keeps_absent_last_container(tmp_path: Path) -> None:
    store = TomlStateStore(tmp_path / "state.toml")

    store.save(PersistedState())
    loaded = store.load()

    assert loaded is not None
    assert loaded.last_container is None
    assert loaded.container_history == []
    assert loaded.project_containers == {}


def test_save_creates_parent_directories(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "dir" / "state.toml"
    TomlStateStore(path).save(_state())
    assert path.exists()


def test_save_replaces_file_without_leaving_temp_files(tmp_path: Path) -> None:
    path = tmp_path / "state.toml"
    store = TomlStateStore(path)
    store.save(_state())
    store.save(PersistedState(container_history=["api"]))

    assert sorted(item.name for item in tmp_path.iterdir()) == ["state.toml"]
    loaded = store.load()
    assert loaded is not None
    assert loaded.container_history == ["api"]


def test_failed_replace_keeps_previous_file(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "state.toml"
    store = TomlStateStore(path)
    store.save(_state())
    before = path.read_text(encoding="utf-8")

    def fail_replace(src: str, dst: object) -> None:
        raise OSError("disk full")

    monkeypatch.setattr(store_module.os, "replace", fail_replace)

    with pytest.raises(ContainerReplError) as excinfo:
        store.save(PersistedState())

    assert excinfo.value.code == ExitCode.PERSISTENCE_ERROR
    assert path.read_text(encoding="utf-8") == before
    assert sorted(item.name for item in tmp_path.iterdir()) == ["state.toml"]


def test_unwritable_location_raises_persistence_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(ContainerReplError) as excinfo:
        TomlStateStore(blocker / "state.toml").save(_state())

    assert excinfo.value.code == ExitCode.PERSISTENCE_ERROR


def test_corrupt_state_file_loads_nothing(tmp_path: Path) -> None:
    path = tmp_path / "state.toml"
    path.write_text("container_history = [", encoding="utf-8")
    assert TomlStateStore(path).load() is None


def test_corrupt_state_file_is_kept_as_backup_before_save(tmp_path: Path) -> None:
    path = tmp_path / "state.toml"
    broken = 'container_history = ["web"\n[last_container]\nname = "web"\n'
    path.write_text(broken, encoding="utf-8")
    store = TomlStateStore(path)

    assert store.load() is None
    store.save(PersistedState(container_history=["api"]))

    assert (tmp_path / "state.toml.bak").read_text(encoding="utf-8") == broken
    loaded = store.load()
    assert loaded is not None
    assert loaded.container_history == ["api"]


def test_corrupt_state_file_that_cannot_be_moved_is_not_overwritten(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "state.toml"
    path.write_text("container_history = [", encoding="utf-8")
    store = TomlStateStore(path)

    def fail_replace(src: object, dst: object) -> None:
        raise OSError("read-only directory")

    monkeypatch.setattr(store_module.os, "replace", fail_replace)

    assert store.load() is None
    with pytest.raises(ContainerReplError) as excinfo:
        store.save(PersistedState())

    assert excinfo.value.code == ExitCode.PERSISTENCE_ERROR
    assert path.read_text(encoding="utf-8") == "container_history = ["


def test_invalid_entries_are_dropped(tmp_path: Path) -> None:
    path = tmp_path / "state.toml"
    path.write_text(
        "\n".join(
            [
                'container_history = ["web", 3, "api"]',
                "",
                "[last_container]",
                "id = \"no-name\"",
                "",
                "[project_containers]",
                '"/ok" = { name = "web", id = "abc" }',
                '"/bad" = "web"',
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    loaded = TomlStateStore(path).load()

    assert loaded is not None
    assert loaded.last_container is None
    assert loaded.container_history == ["web", "api"]
    assert list(loaded.project_containers) == ["/ok"]


def test_control_characters_are_escaped() -> None:
    state = PersistedState(container_history=["tab\there", "line\nbreak", "bell\x07"])
    rendered = store_module.render_state(state)

    assert "\\t" in rendered
    assert "\\n" in rendered
    assert "\\u0007" in rendered
    assert store_module.parse_state(store_module.tomllib.loads(rendered)) == state


@pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
def test_state_file_is_private(tmp_path: Path) -> None:
    path = tmp_path / "state.toml"
    TomlStateStore(path).save(_state())
    assert path.stat().st_mode & 0o777 == 0o600


def test_memory_store_returns_copies() -> None:
    store = MemoryStateStore()
    assert store.load() is None

    state = _state()
    store.save(state)
    state.container_history.append("mutated")

    loaded = store.load()
    assert loaded is not None
    assert loaded.container_history == ["web", "api", "web"]
    assert store.save_count == 1
