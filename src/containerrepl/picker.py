"""Interactive container selection."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Callable

from containerrepl.errors import ContainerReplError, ExitCode
from containerrepl.prompt import ChoicePrompt
from containerrepl.runtime.docker_query import RuntimeQueries
from containerrepl.runtime.models import ContainerRef
from containerrepl.state.session import Session

logger = py_logging.getLogger(__name__)

Annotate = Callable[[ContainerRef], str]
DEFAULT_PROMPT = "Container"


def plain_annotation(ref: ContainerRef) -> str:
    return ref.name


def docker_annotation(queries: RuntimeQueries) -> Annotate:
    """Display containers as "name  image  status" using `inspect`."""

    def annotate(ref: ContainerRef) -> str:
        details = queries.inspect_container(ref.id)
        if details is None:
            return ref.name
        extras = [item for item in (details.image, details.status) if item]
        return "  ".join([ref.name, *extras])

    return annotate


class ContainerPicker:
    def __init__(
        self,
        session: Session,
        *,
        lister: Callable[[], list[ContainerRef]],
        prompt: ChoicePrompt,
        annotate: Annotate | None = None,
    ) -> None:
        self.session = session
        self.lister = lister
        self.prompt = prompt
        self.annotate = annotate or plain_annotation

    def _display(self, ref: ContainerRef) -> str:
        try:
            return self.annotate(ref) or ref.name
        except Exception:
            logger.debug("Annotation failed for container %s", ref.name, exc_info=True)
            return ref.name

    def select_container(self, prompt_text: str = DEFAULT_PROMPT) -> ContainerRef:
        containers = self.lister()
        if not containers:
            raise ContainerReplError(
                "No running containers",
                code=ExitCode.RUNTIME_ERROR,
                hint="Start the container that hosts the REPL and retry.",
            )

        by_name: dict[str, ContainerRef] = {}
        for ref in containers:
            by_name.setdefault(ref.name, ref)

        last = self.session.last_container
        default = last.name if last is not None and last.name in by_name else None
        candidates = [(ref.name, self._display(ref)) for ref in by_name.values()]

        chosen = self.prompt.choose(
            prompt_text,
            candidates,
            default=default,
            history=list(self.session.history),
        )
        ref = by_name.get(chosen)
        if ref is None:
            raise ContainerReplError(
                f"Unknown container: {chosen}",
                code=ExitCode.VALIDATION_ERROR,
                hint="Select one of the running containers.",
            )
        self.session.remember(ref)
        return ref
