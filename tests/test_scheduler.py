import pytest

from dswarm.scheduler.filters import FilterError, NoHealthyNodeError
from dswarm.scheduler.node import ContainerConfig, Node
from dswarm.scheduler.scheduler import (
    FilterNotSupportedError,
    Scheduler,
    apply_filters,
    list_filters,
    new_filters,
)
from dswarm.scheduler.strategy import NoResourcesError, new_strategy

GIB = 1024 * 1024 * 1024


def make_node(node_id, healthy=True, labels=None):
    return Node(
        id=node_id,
        name=node_id,
        total_memory=4 * GIB,
        total_cpus=4,
        is_healthy=healthy,
        labels=labels or {},
    )


def test_list_filters():
    assert list_filters() == ["affinity", "health", "constraint", "port", "dependency"]


def test_new_filters_keeps_requested_order():
    names = ["port", "health", "constraint"]
    assert [f.name for f in new_filters(names)] == names


def test_new_filters_unknown():
    with pytest.raises(FilterNotSupportedError, match="filter not supported"):
        new_filters(["health", "unknown"])


def test_apply_filters_chains():
    nodes = [
        make_node("a", healthy=True, labels={"zone": "x"}),
        make_node("b", healthy=False, labels={"zone": "x"}),
        make_node("c", healthy=True, labels={"zone": "y"}),
    ]
    config = ContainerConfig(env=["constraint:zone==x"])
    result = apply_filters(new_filters(["health", "constraint"]), config, nodes)
    assert result == [nodes[0]]


def test_apply_filters_without_filters_returns_nodes():
    nodes = [make_node("a"), make_node("b")]
    assert apply_filters([], ContainerConfig(), nodes) == nodes


def test_apply_filters_propagates_error():
    nodes = [make_node("a", healthy=False)]
    with pytest.raises(NoHealthyNodeError):
        apply_filters(new_filters(["health"]), ContainerConfig(), nodes)


def test_scheduler_names():
    scheduler = Scheduler(new_strategy("spread"), new_filters(["health", "port"]))
    assert scheduler.strategy_name() == "spread"
    assert scheduler.filter_names() == "health, port"


def test_scheduler_selects_healthy_node():
    nodes = [make_node("a", healthy=False), make_node("b", healthy=True)]
    scheduler = Scheduler(new_strategy("spread"), new_filters(["health"]))
    chosen = scheduler.select_node_for_container(nodes, ContainerConfig(memory=GIB))
    assert chosen is nodes[1]


def test_scheduler_filter_failure():
    nodes = [make_node("a", labels={"zone": "x"})]
    scheduler = Scheduler(new_strategy("binpack"), new_filters(["constraint"]))
    with pytest.raises(FilterError):
        scheduler.select_node_for_container(nodes, ContainerConfig(env=["constraint:zone==y"]))


def test_scheduler_strategy_failure():
    nodes = [make_node("a")]
    scheduler = Scheduler(new_strategy("spread"), new_filters(["health"]))
    with pytest.raises(NoResourcesError):
        scheduler.select_node_for_container(nodes, ContainerConfig(memory=10 * GIB))