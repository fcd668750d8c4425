"""Placement strategies choosing the node a container is scheduled on."""

from __future__ import annotations

import abc
import logging
import random
from dataclasses import dataclass

from .node import ContainerConfig, Node

log = logging.getLogger(__name__)


class StrategyError(Exception):
    """Base class for placement errors."""


class NotSupportedError(StrategyError):
    def __init__(self, message: str = "strategy not supported"):
        super().__init__(message)


class NoResourcesError(StrategyError):
    def __init__(self, message: str = "no resources available to schedule container"):
        super().__init__(message)


@dataclass
class WeightedNode:
    """A node with the weight it would carry after receiving a container."""

    node: Node
    weight: int


def weigh_nodes(config: ContainerConfig, nodes: list[Node]) -> list[WeightedNode]:
    """Weigh the nodes able to hold ``config``; raise NoResourcesError if none can."""
    weighted: list[WeightedNode] = []
    for node in nodes:
        # Skip nodes that are smaller than the requested resources.
        if node.total_memory < config.memory or node.total_cpus < config.cpu_shares:
            continue

        cpu_score = 100
        memory_score = 100
        if config.cpu_shares > 0:
            cpu_score = (node.used_cpus + config.cpu_shares) * 100 // node.total_cpus
        if config.memory > 0:
            memory_score = (node.used_memory + config.memory) * 100 // node.total_memory

        if cpu_score <= 100 and memory_score <= 100:
            weighted.append(WeightedNode(node, cpu_score + memory_score))

    if not weighted:
        raise NoResourcesError()
    return weighted


class PlacementStrategy(abc.ABC):
    """Selects the target node for a container among candidates."""

    name: str = ""

    def initialize(self) -> None:
        """Prepare the strategy for use."""

    @abc.abstractmethod
    def place_container(self, config: ContainerConfig, nodes: list[Node]) -> Node:
        """Return the node the container should be scheduled on."""


class SpreadPlacementStrategy(PlacementStrategy):
    """Places containers on the least loaded node."""

    name = "spread"

    def place_container(self, config: ContainerConfig, nodes: list[Node]) -> Node:
        weighted = sorted(weigh_nodes(config, nodes), key=lambda wn: wn.weight)
        bottom = weighted[0]
        for candidate in weighted:
            if candidate.weight != bottom.weight:
                break
            if len(candidate.node.containers) < len(bottom.node.containers):
                bottom = candidate
        return bottom.node


class BinpackPlacementStrategy(PlacementStrategy):
    """Packs containers on the most loaded node that can still hold them."""

    name = "binpack"

    def place_container(self, config: ContainerConfig, nodes: list[Node]) -> Node:
        weighted = sorted(weigh_nodes(config, nodes), key=lambda wn: wn.weight, reverse=True)
        top = weighted[0]
        for candidate in weighted:
            if candidate.weight != top.weight:
                break
            if len(candidate.node.containers) > len(top.node.containers):
                top = candidate
        return top.node


class RandomPlacementStrategy(PlacementStrategy):
    """Places containers on a randomly chosen node."""

    name = "random"

    def __init__(self) -> None:
        self._random = random.Random()

    def initialize(self) -> None:
        self._random.seed()

    def place_container(self, config: ContainerConfig, nodes: list[Node]) -> Node:
        if not nodes:
            raise StrategyError("No nodes running in the cluster")
        return self._random.choice(nodes)


_STRATEGIES: list[PlacementStrategy] = [
    SpreadPlacementStrategy(),
    BinpackPlacementStrategy(),
    RandomPlacementStrategy(),
]


def new_strategy(name: str) -> PlacementStrategy:
    """Return the initialized strategy called ``name``."""
    if name == "binpacking":
        name = "binpack"
    for strategy in _STRATEGIES:
        if strategy.name == name:
            log.debug("Initializing strategy %s", name)
            strategy.initialize()
            return strategy
    raise NotSupportedError()


def list_strategies() -> list[str]:
    """Return the names of the available strategies."""
    return [strategy.name for strategy in _STRATEGIES]