"""Discovery backend over a static list of addresses."""

from __future__ import annotations

import threading
from typing import Iterator

from .entries import (
    Discovery,
    Entries,
    NotImplementedByBackendError,
    generate,
    new_entry,
    register,
)


class NodesDiscovery(Discovery):
    """Serves a fixed, comma-separated list of hosts."""

    def __init__(self) -> None:
        self.entries = Entries()

    def initialize(self, uris: str, heartbeat: float, ttl: float) -> None:
        for item in uris.split(","):
            for ip in generate(item):
                self.entries.append(new_entry(ip))

    def watch(self, stop: threading.Event | None = None) -> Iterator[Entries]:
        """Yield the entries once, then wait until ``stop`` is set."""
        yield Entries(self.entries)
        (stop if stop is not None else threading.Event()).wait()

    def register(self, addr: str) -> None:
        raise NotImplementedByBackendError()


register("nodes", NodesDiscovery())