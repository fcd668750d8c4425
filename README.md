# dswarm

Building blocks for scheduling containers across a pool of hosts. It is a
library only and needs no third-party packages.

- **Discovery** (`dswarm.discovery`): find the hosts of a cluster from a
  comma-separated list, a file, or a key/value store.
- **Scheduling** (`dswarm.scheduler`): narrow candidate nodes with filters,
  then pick one with the `spread`, `binpack` or `random` strategy.
- **Key/value store** (`dswarm.kv`): a store interface, with a thread-safe
  in-memory implementation.
- **Leadership** (`dswarm.leadership`): run for election on a store lock,
  or follow who the leader is.
- **Requested state** (`dswarm.state`): keep the containers that were asked
  for as JSON files in a directory.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Discovery

Address ranges written as `[from:to]` expand to one address for each value:

```python
from dswarm.discovery.entries import generate, create_entries

generate("192.168.0.[1:3]:2375")
# ['192.168.0.1:2375', '192.168.0.2:2375', '192.168.0.3:2375']

entries = create_entries(["127.0.0.1:2375", "127.0.0.2:2375", ""])  # empty ones are skipped
added, removed = entries.diff(create_entries(["127.0.0.2:2375"]))
```

`Entry` holds a `host` and a `port`. `new_entry("host:port")` raises
`DiscoveryError` when the address has no port. `Entries` is a list with
`contains` and `diff` helpers.

Each backend implements `Discovery`. Call `initialize(uris, heartbeat, ttl)`,
with durations in seconds. `watch(stop)` returns an iterator that yields
`Entries` and ends when the `threading.Event` `stop` is set.

- `dswarm.discovery.nodes.NodesDiscovery` serves a fixed, comma-separated
  list, with ranges expanded. It yields the list once and then waits for
  `stop`.
- `dswarm.discovery.file.FileDiscovery` reads addresses from a file, one per
  line. Lines that start with `#` are skipped, and so is anything after a
  `#` on a line. The file is read again every `heartbeat` seconds, and new
  entries are yielded only when its content changes. Read errors are passed
  to the `on_error` callback; by default they are logged. `heartbeat` must
  be positive. `parse_file_content` holds the parsing rules.
- `dswarm.discovery.kvdiscovery.KVDiscovery` keeps hosts as keys under
  `[prefix/]docker/swarm/nodes` in a store. Its URI is
  `addr1,addr2[/prefix]`. `register(addr)` writes an ephemeral key. A watch
  that fails is reported to `on_error` and set up again after `heartbeat`
  seconds.

`register` on the node and file backends raises
`NotImplementedByBackendError`.

When a backend module is imported, it registers itself under a scheme:
`nodes`, `file`, or `zk`/`consul`/`etcd`. `entries.new(rawurl, heartbeat,
ttl)` then returns the initialized backend for that URL. A URL with no
`scheme://` means `nodes`. An unknown scheme raises `NotSupportedError`.

```python
import dswarm.discovery.nodes  # registers "nodes"
from dswarm.discovery.entries import new

discovery = new("1.1.1.1:1111,2.2.2.[2:4]:2222", 0, 0)
```

## Scheduling

```python
from dswarm.scheduler.node import Node, ContainerConfig
from dswarm.scheduler.scheduler import Scheduler, new_filters
from dswarm.scheduler.strategy import new_strategy

nodes = [
    Node(id="n0", name="node-0", labels={"region": "us-west"},
         total_memory=4 << 30, total_cpus=4, is_healthy=True),
    Node(id="n1", name="node-1", labels={"region": "eu"},
         total_memory=4 << 30, total_cpus=4, is_healthy=True),
]
config = ContainerConfig(memory=1 << 30, env=["constraint:region==us*"])

scheduler = Scheduler(new_strategy("spread"), new_filters(["health", "constraint"]))
node = scheduler.select_node_for_container(nodes, config)  # node-0
```

### Filters

`list_filters()` returns `affinity`, `health`, `constraint`, `port` and
`dependency`. `new_filters(names)` raises `FilterNotSupportedError` for an
unknown name. A filter raises `FilterError` when no node passes it.

- **constraint** matches node labels. The `node` key matches the node's id
  or name.
- **affinity** matches the `container` key against the ids and names of the
  containers on a node. It matches the `image` key against image ids, their
  tags, and the tags' repository names. Any other key is matched against
  container labels.
- **dependency** keeps the nodes that already run every container named in
  `volumes_from`, `links` and a `container:<name>` `network_mode`.
- **health** keeps healthy nodes, or raises `NoHealthyNodeError`.
- **port** keeps the nodes where none of the requested host ports is taken.
  In `host` network mode it checks `exposed_ports` instead.

Constraints and affinities come from `env` entries such as
`constraint:key==value` or `affinity:key!=value`. They also come from the
labels `com.docker.swarm.constraints` and `com.docker.swarm.affinities`,
each a JSON list of expressions. A value is a glob (`us*`), or a regular
expression when it is enclosed in slashes (`/node\d/`). Put `~` in front of
a value to make the expression soft: when no node satisfies it, the filter
keeps the nodes it had. `dswarm.scheduler.expr.parse_exprs` raises
`ExprError` for keys, values or operators it does not accept.

### Strategies

`new_strategy(name)` accepts `spread`, `binpack` (or `binpacking`) and
`random`. Any other name raises `NotSupportedError`. Spread and binpack
weigh each node by the share of CPU and memory it would use after placement,
and raise `NoResourcesError` when no node can hold the container. Spread
picks the lightest node and binpack the heaviest. Ties go to the node with
fewer containers (spread) or more containers (binpack).
`Node.add_container` records a container and its resources, and raises
`ResourceError` when the node is too small.

## Key/value store and leadership

```python
from dswarm.kv import new_store, Backend
from dswarm.leadership import Candidate, Follower

store = new_store(Backend.MOCK, [])
candidate = Candidate(store, "leader", "node-a")
candidate.run_for_election()
for elected in candidate.events():  # False, then True once the lock is held
    if elected:
        break
candidate.stop()
```

`MemoryStore` supports put/get/delete, listing and deleting trees, and
compare-and-swap through `atomic_put` and `atomic_delete`. Ephemeral keys
expire after `Config.ephemeral_ttl`. It also provides `watch` and
`watch_tree` iterators and locks from `new_lock`. `Follower.leaders()` yields
each new leader value written at the watched key.

## Requested state

```python
from dswarm.state import StateStore, RequestedState

store = StateStore("/var/lib/dswarm/state")
store.initialize()
store.add("web", RequestedState(name="web"))
store.replace("web", RequestedState(name="web-2"))
store.get("web").name  # 'web-2'
```

Each value is written to `<key>.json` in the root directory. `initialize`
loads those files again. `add` raises `AlreadyExistsError`; `get`, `replace`
and `remove` raise `NotFoundError`; an empty key raises `InvalidKeyError`.

## What it does not do

- The only store backend is the in-memory one (`Backend.MOCK`). No client
  exists for Consul, etcd or ZooKeeper: `new_store` raises
  `NotSupportedError` for those backends. `KVDiscovery` therefore works only
  with the in-memory store, and its data lives only as long as the process.
- There is no hosted token discovery service.
- There is no command-line program, no API server and no engine client.
  Nodes and containers are described by the caller and not read from running
  hosts.