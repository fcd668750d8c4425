import pytest

from dswarm.scheduler.node import Container, ContainerConfig, Node, ResourceError


@pytest.fixture
def node():
    return Node(
        id="node-0-id",
        name="node-0-name",
        containers=[
            Container(id="abcdef123", names=["/web"], engine_id="eid", engine_name="engine-a"),
            Container(id="987654", names=["/db"]),
        ],
    )


def test_container_by_id_prefix(node):
    assert node.container("abc") is node.containers[0]
    assert node.container("987654") is node.containers[1]


def test_container_by_name_forms(node):
    web = node.containers[0]
    assert node.container("/web") is web
    assert node.container("web") is web
    assert node.container("engine-a/web") is web
    assert node.container("eid/web") is web


def test_container_empty_or_unknown(node):
    assert node.container("") is None
    assert node.container("missing") is None


def test_add_container_accounts_resources():
    node = Node(total_memory=100, total_cpus=4)
    config = ContainerConfig(memory=40, cpu_shares=2)
    container = Container(id="c1", config=config)
    node.add_container(container)
    assert node.used_memory == config.memory
    assert node.used_cpus == config.cpu_shares
    assert node.containers == [container]


def test_add_container_accumulates():
    node = Node(total_memory=100, total_cpus=4)
    first = ContainerConfig(memory=30, cpu_shares=1)
    second = ContainerConfig(memory=20, cpu_shares=2)
    node.add_container(Container(id="c1", config=first))
    node.add_container(Container(id="c2", config=second))
    assert node.used_memory == first.memory + second.memory
    assert node.used_cpus == first.cpu_shares + second.cpu_shares
    assert [c.id for c in node.containers] == ["c1", "c2"]


def test_add_container_without_config_does_not_count():
    node = Node()
    node.add_container(Container(id="c1"))
    assert node.used_memory == 0
    assert len(node.containers) == 1


def test_add_container_not_enough_resources():
    node = Node(total_memory=10, total_cpus=1)
    with pytest.raises(ResourceError):
        node.add_container(Container(id="c1", config=ContainerConfig(memory=11)))
    with pytest.raises(ResourceError):
        node.add_container(Container(id="c2", config=ContainerConfig(cpu_shares=2)))
    assert node.containers == []