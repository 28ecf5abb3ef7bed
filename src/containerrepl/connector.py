"""Resolve a container, find its published REPL port and connect."""

from __future__ import annotations

import logging as py_logging
from collections.abc import Callable

from containerrepl.errors import ContainerReplError, NotInProjectError
from containerrepl.picker import DEFAULT_PROMPT, ContainerPicker
from containerrepl.prompt import ChoicePrompt
from containerrepl.repl import Endpoint, ReplClient, coerce_port
from containerrepl.runtime.models import ContainerRef
from containerrepl.state.session import Session

logger = py_logging.getLogger(__name__)

RETRY_QUESTION = "No published REPL port found for {name}. Choose a different container?"


class Connector:
    def __init__(
        self,
        session: Session,
        *,
        picker: ContainerPicker,
        port_lookup: Callable[[str, int], str | None],
        repl_client: ReplClient,
        prompt: ChoicePrompt,
        project_root: Callable[[], str | None],
        internal_port: int = 7888,
        host: str = "localhost",
    ) -> None:
        self.session = session
        self.picker = picker
        self.port_lookup = port_lookup
        self.repl_client = repl_client
        self.prompt = prompt
        self.project_root = project_root
        self.internal_port = internal_port
        self.host = host

    def _resolve_container(self, force_select: bool) -> ContainerRef:
        last = self.session.last_container
        if force_select or last is None:
            return self.picker.select_container(DEFAULT_PROMPT)
        logger.debug("Reusing last container %s", last.name)
        return last

    def select_container(self) -> ContainerRef:
        return self.picker.select_container(DEFAULT_PROMPT)

    def _lookup_port(self, ref: ContainerRef) -> int | None:
        port = self.port_lookup(ref.id, self.internal_port)
        if port is None:
            return None
        try:
            return coerce_port(port)
        except ContainerReplError:
            logger.warning("Ignoring unusable host port %r for container %s", port, ref.name)
            return None

    def connect(self, force_select: bool = False) -> Endpoint | None:
        while True:
            ref = self._resolve_container(force_select)
            port = self._lookup_port(ref)
            if port is not None:
                endpoint = Endpoint(host=self.host, port=port)
                logger.info("Container %s publishes port %s as %s", ref.name, self.internal_port, port)
                self.repl_client.connect(endpoint.host, endpoint.port)
                return endpoint

            logger.info("No host port for container=%s internal=%s", ref.name, self.internal_port)
            if not self.prompt.confirm(RETRY_QUESTION.format(name=ref.name)):
                return None
            force_select = True

    def _require_project(self) -> str:
        root = self.project_root()
        if not root:
            raise NotInProjectError()
        return root

    def connect_for_project(self, force_select: bool = False) -> Endpoint | None:
        root = self._require_project()
        associated = self.session.project_container(root)
        if associated is not None and not force_select:
            logger.debug("Using container %s associated with %s", associated.name, root)
            self.session.last_container = associated
            return self.connect(False)
        return self.connect(True)

    def set_project_container(self) -> ContainerRef:
        root = self._require_project()
        ref = self.picker.select_container(f"Container for project {root}")
        self.session.associate(root, ref)
        self.session.last_container = ref
        return ref
