"""Container records produced by runtime queries."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict


class ContainerRef(BaseModel):
    """A running container. Two refs are the same container when their names match."""

    model_config = ConfigDict(frozen=True)

    name: str
    id: str = ""

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContainerRef):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)


@dataclass(frozen=True)
class ContainerDetails:
    image: str
    status: str
