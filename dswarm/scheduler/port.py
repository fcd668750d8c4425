"""Filter that keeps containers off nodes whose requested host ports are taken."""

from __future__ import annotations

from .filters import Filter, FilterError
from .node import ContainerConfig, Node, PortBinding


def _binds_all_interfaces(binding: PortBinding) -> bool:
    return binding.host_ip in ("0.0.0.0", "")


def _conflicts(requested: PortBinding, bindings: dict[str, list[PortBinding]]) -> bool:
    """Tell whether any of ``bindings`` already holds the requested host port."""
    for port_bindings in bindings.values():
        for binding in port_bindings:
            # Bindings without an explicit external port take nothing.
            if not binding.host_port:
                continue
            if binding.host_port != requested.host_port:
                continue
            if (
                requested.host_ip == binding.host_ip
                or _binds_all_interfaces(requested)
                or _binds_all_interfaces(binding)
            ):
                return True
    return False


class PortFilter(Filter):
    """Only considers nodes that have not already allocated a requested public port."""

    name = "port"

    def filter(self, config: ContainerConfig, nodes: list[Node]) -> list[Node]:
        if config.network_mode == "host":
            return self._filter_host(config, nodes)
        return self._filter_bridge(config, nodes)

    def _filter_host(self, config: ContainerConfig, nodes: list[Node]) -> list[Node]:
        nodes = list(nodes)
        for port in config.exposed_ports:
            candidates = [node for node in nodes if not self._already_exposed(node, port)]
            if not candidates:
                raise FilterError(
                    f"unable to find a node with port {port} available in the Host mode"
                )
            nodes = candidates
        return nodes

    def _filter_bridge(self, config: ContainerConfig, nodes: list[Node]) -> list[Node]:
        nodes = list(nodes)
        for bindings in config.port_bindings.values():
            for binding in bindings:
                candidates = [node for node in nodes if not self._in_use(node, binding)]
                if not candidates:
                    raise FilterError(
                        f"unable to find a node with port {binding.host_port} available"
                    )
                nodes = candidates
        return nodes

    @staticmethod
    def _already_exposed(node: Node, requested_port: str) -> bool:
        return any(
            container.info.network_mode == "host"
            and requested_port in container.info.exposed_ports
            for container in node.containers
        )

    @staticmethod
    def _in_use(node: Node, requested: PortBinding) -> bool:
        # Requested bindings cover stopped containers; the actual network ports
        # cover ports that were assigned dynamically.
        return any(
            _conflicts(requested, container.info.port_bindings)
            or _conflicts(requested, container.network_ports)
            for container in node.containers
        )