"""Project root detection by marker files."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Iterable
from pathlib import Path

from containerrepl.config import DEFAULT_PROJECT_MARKERS

logger = py_logging.getLogger(__name__)


def find_project_root(
    start: str | Path | None = None,
    markers: Iterable[str] = DEFAULT_PROJECT_MARKERS,
) -> str | None:
    current = Path(start or Path.cwd()).expanduser().resolve()
    if current.is_file():
        current = current.parent
    marker_names = list(markers)

    for candidate in (current, *current.parents):
        if any((candidate / marker).exists() for marker in marker_names):
            logger.debug("Detected project root %s", candidate)
            return str(candidate)
    return None


class ProjectLocator:
    def __init__(
        self,
        *,
        override: str | Path | None = None,
        start: str | Path | None = None,
        markers: Iterable[str] = DEFAULT_PROJECT_MARKERS,
    ) -> None:
        self.override = override
        self.start = start
        self.markers = list(markers)

    def __call__(self) -> str | None:
        if self.override:
            return str(Path(self.override).expanduser().resolve())
        return find_project_root(self.start, self.markers)
