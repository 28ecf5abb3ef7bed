"""Selection state package."""

from .models import PersistedState
from .session import Session
from .store import MemoryStateStore, StateStore, TomlStateStore

__all__ = [
    "MemoryStateStore",
    "PersistedState",
    "Session",
    "StateStore",
    "TomlStateStore",
]
