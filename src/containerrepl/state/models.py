"""Persisted selection state."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from containerrepl.runtime.models import ContainerRef


class PersistedState(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    last_container: ContainerRef | None = None
    # Newest first; duplicates are kept and the list is never trimmed.
    container_history: list[str] = Field(default_factory=list)
    project_containers: dict[str, ContainerRef] = Field(default_factory=dict)
