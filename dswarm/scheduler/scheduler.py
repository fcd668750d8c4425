"""Scheduler combining filters and a placement strategy."""

from __future__ import annotations

import logging
import threading

from .filters import AffinityFilter, ConstraintFilter, DependencyFilter, Filter, HealthFilter
from .node import ContainerConfig, Node
from .port import PortFilter
from .strategy import PlacementStrategy

log = logging.getLogger(__name__)


class FilterNotSupportedError(Exception):
    def __init__(self, message: str = "filter not supported"):
        super().__init__(message)


_FILTERS: list[Filter] = [
    AffinityFilter(),
    HealthFilter(),
    ConstraintFilter(),
    PortFilter(),
    DependencyFilter(),
]


def new_filters(names: list[str]) -> list[Filter]:
    """Return the filters with the given names, in that order."""
    by_name = {f.name: f for f in _FILTERS}
    selected: list[Filter] = []
    for name in names:
        found = by_name.get(name)
        if found is None:
            raise FilterNotSupportedError()
        log.debug("Initializing filter %s", name)
        selected.append(found)
    return selected


def apply_filters(filters: list[Filter], config: ContainerConfig, nodes: list[Node]) -> list[Node]:
    """Run the filters one after another over the nodes."""
    for f in filters:
        nodes = f.filter(config, nodes)
    return nodes


def list_filters() -> list[str]:
    """Return the names of the available filters."""
    return [f.name for f in _FILTERS]


class Scheduler:
    """Finds a node for a container by filtering then applying a strategy."""

    def __init__(self, strategy: PlacementStrategy, filters: list[Filter]):
        self.strategy = strategy
        self.filters = list(filters)
        self.lock = threading.Lock()

    def select_node_for_container(self, nodes: list[Node], config: ContainerConfig) -> Node:
        """Return the node the container should run on."""
        accepted = apply_filters(self.filters, config, nodes)
        return self.strategy.place_container(config, accepted)

    def strategy_name(self) -> str:
        return self.strategy.name

    def filter_names(self) -> str:
        return ", ".join(f.name for f in self.filters)