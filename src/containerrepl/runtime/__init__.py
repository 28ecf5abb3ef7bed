"""Container runtime queries."""

from .docker_query import (
    RuntimeQueries,
    find_host_port,
    inspect_container,
    list_running_containers,
    parse_container_listing,
    parse_host_port,
)
from .models import ContainerDetails, ContainerRef

__all__ = [
    "ContainerDetails",
    "ContainerRef",
    "RuntimeQueries",
    "find_host_port",
    "inspect_container",
    "list_running_containers",
    "parse_container_listing",
    "parse_host_port",
]
