"""Discovery backend on top of a key/value store."""

from __future__ import annotations

import logging
import posixpath
import threading
import time
from typing import Callable, Iterator

from ..kv import Backend, Config, Store, WriteOptions, new_store
from .entries import Discovery, DiscoveryError, Entries, create_entries, register

log = logging.getLogger(__name__)

DISCOVERY_PATH = "docker/swarm/nodes"

ErrorHandler = Callable[[Exception], None]


def _log_error(err: Exception) -> None:
    log.error("%s", err)


def _wait(stop: threading.Event | None, seconds: float) -> bool:
    if stop is None:
        time.sleep(seconds)
        return False
    return stop.wait(seconds)


class KVDiscovery(Discovery):
    """Keeps swarm hosts as keys under a path of a key/value store."""

    def __init__(self, backend: Backend | str, on_error: ErrorHandler | None = None):
        self.backend = Backend(backend)
        self.store: Store | None = None
        self.heartbeat = 0.0
        self.ttl = 0.0
        self.path = ""
        self.on_error: ErrorHandler = on_error or _log_error

    def initialize(self, uris: str, heartbeat: float, ttl: float) -> None:
        parts = uris.split("/", 1)
        addrs = parts[0].split(",")
        prefix = parts[1] if len(parts) == 2 else ""

        self.heartbeat = heartbeat
        self.ttl = ttl
        self.path = posixpath.normpath(posixpath.join(prefix, DISCOVERY_PATH))
        self.store = new_store(self.backend, addrs, Config(ephemeral_ttl=ttl))

    def _require_store(self) -> Store:
        if self.store is None:
            raise DiscoveryError("discovery service not initialized")
        return self.store

    def watch(self, stop: threading.Event | None = None) -> Iterator[Entries]:
        """Yield the registered entries on every change, re-watching after failures."""
        return self._watch(self._require_store(), stop)

    def _watch(self, store: Store, stop: threading.Event | None) -> Iterator[Entries]:
        while True:
            try:
                for pairs in store.watch_tree(self.path, stop):
                    log.debug("Watch triggered with %d nodes on %s", len(pairs), self.backend.value)
                    try:
                        entries = create_entries(
                            pair.value.decode("utf-8", errors="replace") for pair in pairs
                        )
                    except DiscoveryError as err:
                        self.on_error(err)
                        continue
                    yield entries
            except Exception as err:  # any store failure is reported and retried
                self.on_error(err)
            else:
                if stop is not None and stop.is_set():
                    return

            self.on_error(DiscoveryError("Unexpected watch error"))
            if _wait(stop, self.heartbeat):
                return

    def register(self, addr: str) -> None:
        options = WriteOptions(heartbeat=self.heartbeat, ephemeral=True)
        self._require_store().put(posixpath.join(self.path, addr), addr.encode(), options)


register("zk", KVDiscovery(Backend.ZK))
register("consul", KVDiscovery(Backend.CONSUL))
register("etcd", KVDiscovery(Backend.ETCD))