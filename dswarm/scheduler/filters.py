"""Filters that narrow the nodes a container may be scheduled on."""

from __future__ import annotations

import abc
import json
import logging

from .expr import Expr, parse_exprs
from .node import ContainerConfig, Node

log = logging.getLogger(__name__)

_LABEL_NAMESPACE = "com.docker.swarm."
_LABEL_SUFFIX = {"affinity": "affinities", "constraint": "constraints"}


class FilterError(Exception):
    """Raised when no node passes a filter."""


class NoHealthyNodeError(FilterError):
    def __init__(self, message: str = "No healthy node available in the cluster"):
        super().__init__(message)


def _config_exprs(config: ContainerConfig, kind: str) -> list[Expr]:
    """Collect ``kind:`` entries from the environment and the swarm label."""
    prefix = kind + ":"
    raw = [entry[len(prefix):] for entry in config.env if entry.startswith(prefix)]
    label = config.labels.get(_LABEL_NAMESPACE + _LABEL_SUFFIX[kind])
    if label:
        try:
            values = json.loads(label)
        except ValueError as err:
            raise FilterError(f"invalid {kind} label: {err}") from err
        if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
            raise FilterError(f"invalid {kind} label: expected a list of strings")
        raw.extend(values)
    return parse_exprs(raw)


def _narrow(nodes: list[Node], exprs: list[Expr], values, kind: str) -> list[Node]:
    nodes = list(nodes)
    for expr in exprs:
        log.debug("matching %s: %s", kind, expr)
        candidates = [node for node in nodes if expr.match(*values(expr, node))]
        if not candidates:
            if expr.is_soft:
                return nodes
            raise FilterError(f"unable to find a node that satisfies {expr}")
        nodes = candidates
    return nodes


class Filter(abc.ABC):
    """A filtering policy over candidate nodes."""

    name: str = ""

    @abc.abstractmethod
    def filter(self, config: ContainerConfig, nodes: list[Node]) -> list[Node]:
        """Return the nodes accepted by the policy."""


class AffinityFilter(Filter):
    """Selects nodes by the containers, images or container labels they hold."""

    name = "affinity"

    @staticmethod
    def _values(expr: Expr, node: Node) -> list[str]:
        if expr.key == "container":
            values: list[str] = []
            for container in node.containers:
                values.append(container.id)
                if container.names:
                    values.append(container.names[0].removeprefix("/"))
            return values
        if expr.key == "image":
            values = []
            for image in node.images:
                values.append(image.id)
                values.extend(image.repo_tags)
                values.extend(tag.split(":")[0] for tag in image.repo_tags)
            return values
        return [container.labels.get(expr.key, "") for container in node.containers]

    def filter(self, config: ContainerConfig, nodes: list[Node]) -> list[Node]:
        return _narrow(nodes, _config_exprs(config, "affinity"), self._values, "affinity")


class ConstraintFilter(Filter):
    """Selects nodes whose labels match; ``node`` pins to an ID or name."""

    name = "constraint"

    @staticmethod
    def _values(expr: Expr, node: Node) -> list[str]:
        if expr.key == "node":
            return [node.id, node.name]
        return [node.labels.get(expr.key, "")]

    def filter(self, config: ContainerConfig, nodes: list[Node]) -> list[Node]:
        return _narrow(
            nodes, _config_exprs(config, "constraint"), self._values, "constraint"
        )


class DependencyFilter(Filter):
    """Co-schedules a container with the containers it depends on."""

    name = "dependency"

    def filter(self, config: ContainerConfig, nodes: list[Node]) -> list[Node]:
        if not nodes:
            return list(nodes)
        volumes = [volume.split(":", 1)[0] for volume in config.volumes_from]
        links = [link.split(":", 1)[0] for link in config.links]
        net = []
        if config.network_mode.startswith("container:"):
            net.append(config.network_mode.removeprefix("container:"))
        dependencies = volumes + links + net

        candidates = [
            node
            for node in nodes
            if all(node.container(dependency) is not None for dependency in dependencies)
        ]
        if not candidates:
            raise FilterError(
                f"Unable to find a node fulfilling all dependencies: {self.describe(config)}"
            )
        return candidates

    def describe(self, config: ContainerConfig) -> str:
        """Render the dependencies of ``config`` as command-line flags."""
        parts = [f"--volumes-from={volume}" for volume in config.volumes_from]
        parts += [f"--link={link}" for link in config.links]
        if config.network_mode.startswith("container:"):
            parts.append(f"--net={config.network_mode}")
        return " ".join(parts)


class HealthFilter(Filter):
    """Only keeps healthy nodes."""

    name = "health"

    def filter(self, config: ContainerConfig, nodes: list[Node]) -> list[Node]:
        result = [node for node in nodes if node.is_healthy]
        if not result:
            raise NoHealthyNodeError()
        return result