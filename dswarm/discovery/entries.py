"""Swarm host entries, discovery backends registry and address generation."""

from __future__ import annotations

import abc
import logging
import re
import threading
from dataclasses import dataclass
from typing import Iterable, Iterator

log = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """Base class for discovery errors."""


class NotSupportedError(DiscoveryError):
    def __init__(self, message: str = "discovery service not supported"):
        super().__init__(message)


class NotImplementedByBackendError(DiscoveryError):
    def __init__(self, message: str = "not implemented in this discovery service"):
        super().__init__(message)


@dataclass(frozen=True)
class Entry:
    """A swarm host."""

    host: str
    port: str

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


def _split_host_port(hostport: str) -> tuple[str, str]:
    def fail(reason: str) -> DiscoveryError:
        return DiscoveryError(f"address {hostport}: {reason}")

    colon = hostport.rfind(":")
    if colon < 0:
        raise fail("missing port in address")
    open_from, close_from = 0, 0
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise fail("missing ']' in address")
        if end + 1 == len(hostport):
            raise fail("missing port in address")
        if end + 1 != colon:
            if hostport[end + 1] == ":":
                raise fail("too many colons in address")
            raise fail("missing port in address")
        host = hostport[1:end]
        open_from, close_from = 1, end + 1
    else:
        host = hostport[:colon]
        if ":" in host:
            raise fail("too many colons in address")
    if "[" in hostport[open_from:]:
        raise fail("unexpected '[' in address")
    if "]" in hostport[close_from:]:
        raise fail("unexpected ']' in address")
    return host, hostport[colon + 1 :]


def new_entry(url: str) -> Entry:
    """Create an entry from a ``host:port`` address."""
    host, port = _split_host_port(url)
    return Entry(host, port)


class Entries(list):
    """A list of entries with set-like helpers."""

    def contains(self, entry: Entry) -> bool:
        return entry in self

    def diff(self, other: Iterable[Entry]) -> tuple[Entries, Entries]:
        """Return the entries added in ``other`` and those removed from ``self``."""
        other = Entries(other)
        added = Entries(entry for entry in other if not self.contains(entry))
        removed = Entries(entry for entry in self if not other.contains(entry))
        return added, removed


class Discovery(abc.ABC):
    """A backend that manages swarm host entries."""

    @abc.abstractmethod
    def initialize(self, uris: str, heartbeat: float, ttl: float) -> None:
        """Configure the backend; durations are in seconds."""

    @abc.abstractmethod
    def watch(self, stop: threading.Event | None = None) -> Iterator[Entries]:
        """Yield the entries and then each change; errors are raised."""

    @abc.abstractmethod
    def register(self, addr: str) -> None:
        """Register ``addr`` with the discovery service."""


_discoveries: dict[str, Discovery] = {}


def register(scheme: str, discovery: Discovery) -> None:
    """Make a discovery backend available under ``scheme``."""
    if scheme in _discoveries:
        raise DiscoveryError(f"scheme already registered {scheme}")
    log.debug("Registering discovery service %s", scheme)
    _discoveries[scheme] = discovery


def parse(rawurl: str) -> tuple[str, str]:
    """Split a discovery URL into scheme and URI; a bare list means ``nodes``."""
    parts = rawurl.split("://", 1)
    if len(parts) == 1:
        return "nodes", parts[0]
    return parts[0], parts[1]


def new(rawurl: str, heartbeat: float, ttl: float) -> Discovery:
    """Return the initialized discovery backend for ``rawurl``."""
    scheme, uri = parse(rawurl)
    discovery = _discoveries.get(scheme)
    if discovery is None:
        raise NotSupportedError()
    log.debug("Initializing discovery service %s with %s", scheme, uri)
    discovery.initialize(uri, heartbeat, ttl)
    return discovery


def create_entries(addrs: Iterable[str] | None) -> Entries:
    """Build entries from addresses, skipping empty ones."""
    if addrs is None:
        return Entries()
    return Entries(new_entry(addr) for addr in addrs if addr)


_RANGE = re.compile(r"\[(.+):(.+)\]")
_INTEGER = re.compile(r"[+-]?[0-9]+")


def generate(pattern: str) -> list[str]:
    """Expand a ``[from:to]`` range in ``pattern`` into one address per value."""
    match = _RANGE.search(pattern)
    if match is None:
        return [pattern]
    low, high = match.group(1), match.group(2)
    if not _INTEGER.fullmatch(low) or not _INTEGER.fullmatch(high):
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    return [f"{head}{value}{tail}" for value in range(int(low), int(high) + 1)]