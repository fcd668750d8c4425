"""The scheduler's view of engines, their containers and their images."""

from __future__ import annotations

from dataclasses import dataclass, field


class ResourceError(Exception):
    """Raised when a node cannot hold the resources a container asks for."""


@dataclass(frozen=True)
class PortBinding:
    """A host interface and port a container port is bound to."""

    host_ip: str = ""
    host_port: str = ""


@dataclass
class ContainerConfig:
    """What a container asks for: resources, scheduling hints and host settings."""

    memory: int = 0
    cpu_shares: int = 0
    env: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    exposed_ports: set[str] = field(default_factory=set)
    volumes_from: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    network_mode: str = ""
    port_bindings: dict[str, list[PortBinding]] = field(default_factory=dict)


@dataclass(eq=False)
class Container:
    """A container running on an engine.

    ``config`` is what the container was scheduled with and counts against the
    node's resources; ``info`` and ``network_ports`` describe it as inspected.
    """

    id: str = ""
    names: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    engine_id: str = ""
    engine_name: str = ""
    config: ContainerConfig | None = None
    info: ContainerConfig = field(default_factory=ContainerConfig)
    network_ports: dict[str, list[PortBinding]] = field(default_factory=dict)


@dataclass
class Image:
    """An image present on an engine."""

    id: str = ""
    repo_tags: list[str] = field(default_factory=list)


@dataclass(eq=False)
class Node:
    """An engine as seen by the scheduler."""

    id: str = ""
    ip: str = ""
    addr: str = ""
    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    containers: list[Container] = field(default_factory=list)
    images: list[Image] = field(default_factory=list)
    used_memory: int = 0
    used_cpus: int = 0
    total_memory: int = 0
    total_cpus: int = 0
    is_healthy: bool = False

    def container(self, id_or_name: str) -> Container | None:
        """Return the container matching an ID prefix, a name, /name or engine/name."""
        if not id_or_name:
            return None
        for container in self.containers:
            if container.id.startswith(id_or_name):
                return container
            for name in container.names:
                if id_or_name in (
                    name,
                    name.removeprefix("/") if name == "/" + id_or_name else None,
                    container.engine_id + name,
                    container.engine_name + name,
                ):
                    return container
        return None

    def add_container(self, container: Container) -> None:
        """Record a container on this node, accounting for its resources."""
        if container.config is not None:
            memory = container.config.memory
            cpus = container.config.cpu_shares
            if self.total_memory - memory < 0 or self.total_cpus - cpus < 0:
                raise ResourceError("not enough resources")
            self.used_memory += memory
            self.used_cpus += cpus
        self.containers.append(container)