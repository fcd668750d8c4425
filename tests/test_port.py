import pytest

from dswarm.scheduler.filters import FilterError
from dswarm.scheduler.node import Container, ContainerConfig, Node, PortBinding
from dswarm.scheduler.port import PortFilter


def make_binding(ip, port):
    return {f"{port}/tcp": [PortBinding(host_ip=ip, host_port=port)]}


def make_nodes(start=0):
    return [
        Node(id=f"node-{i}-id", name=f"node-{i}-name", addr=f"node-{i}")
        for i in range(start, start + 3)
    ]


def bound_container(ip, port):
    return Container(id="c1", info=ContainerConfig(port_bindings=make_binding(ip, port)))


def test_name():
    assert PortFilter().name == "port"


def test_no_conflicts():
    p = PortFilter()
    nodes = make_nodes()

    config = ContainerConfig(port_bindings={})
    assert p.filter(config, nodes) == nodes

    config = ContainerConfig(port_bindings=make_binding("", "80"))
    assert p.filter(config, nodes) == nodes

    nodes[0].add_container(bound_container("", "4242"))
    assert p.filter(config, nodes) == nodes


def test_simple():
    p = PortFilter()
    nodes = make_nodes()
    nodes[0].add_container(bound_container("", "80"))

    config = ContainerConfig(port_bindings=make_binding("", "80"))
    result = p.filter(config, nodes)
    assert nodes[0] not in result
    assert len(result) == 2


def test_different_interfaces():
    p = PortFilter()
    nodes = make_nodes()

    nodes[0].add_container(bound_container("", "80"))
    config = ContainerConfig(port_bindings=make_binding("127.0.0.1", "80"))
    assert nodes[0] not in p.filter(config, nodes)

    nodes[1].add_container(bound_container("127.0.0.1", "4242"))
    config = ContainerConfig(port_bindings=make_binding("127.0.0.1", "4242"))
    assert nodes[1] not in p.filter(config, nodes)

    config = ContainerConfig(port_bindings=make_binding("0.0.0.0", "4242"))
    assert nodes[1] not in p.filter(config, nodes)

    config = ContainerConfig(port_bindings=make_binding("", "4242"))
    assert nodes[1] not in p.filter(config, nodes)

    config = ContainerConfig(port_bindings=make_binding("192.168.1.1", "4242"))
    assert nodes[1] in p.filter(config, nodes)


def test_random_assignment():
    p = PortFilter()
    nodes = make_nodes()

    container = Container(
        id="c1",
        info=ContainerConfig(port_bindings={"80/tcp": [PortBinding(host_ip="", host_port="")]}),
        network_ports={"80/tcp": [PortBinding(host_ip="127.0.0.1", host_port="1234")]},
    )
    nodes[0].add_container(container)

    config = ContainerConfig(port_bindings=make_binding("", "80"))
    assert p.filter(config, nodes) == nodes

    config = ContainerConfig(port_bindings=make_binding("", "1234"))
    assert nodes[0] not in p.filter(config, nodes)


def test_host_mode():
    p = PortFilter()
    nodes = make_nodes(start=1)

    container = Container(
        id="c1",
        info=ContainerConfig(exposed_ports={"80"}, network_mode="host"),
    )
    nodes[0].add_container(container)

    config = ContainerConfig(exposed_ports={"80"}, network_mode="host")
    result = p.filter(config, nodes)
    assert len(result) == 2
    assert nodes[0] not in result


def test_host_mode_no_node_available():
    p = PortFilter()
    nodes = [Node(id="node-1-id")]
    nodes[0].add_container(
        Container(id="c1", info=ContainerConfig(exposed_ports={"80"}, network_mode="host"))
    )
    config = ContainerConfig(exposed_ports={"80"}, network_mode="host")
    with pytest.raises(FilterError, match="in the Host mode"):
        p.filter(config, nodes)


def test_bridge_no_node_available():
    p = PortFilter()
    nodes = [Node(id="node-0-id")]
    nodes[0].add_container(bound_container("", "80"))
    config = ContainerConfig(port_bindings=make_binding("", "80"))
    with pytest.raises(FilterError, match="port 80 available"):
        p.filter(config, nodes)