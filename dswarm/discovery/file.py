"""Discovery backend that reads host addresses from a file."""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Iterator

from .entries import (
    Discovery,
    DiscoveryError,
    Entries,
    NotImplementedByBackendError,
    create_entries,
    generate,
    register,
)

log = logging.getLogger(__name__)

ErrorHandler = Callable[[Exception], None]


def _log_error(err: Exception) -> None:
    log.error("%s", err)


def _wait(stop: threading.Event | None, seconds: float) -> bool:
    """Sleep for ``seconds``; return True if a stop was requested."""
    if stop is None:
        time.sleep(seconds)
        return False
    return stop.wait(seconds)


def parse_file_content(content: bytes | str) -> list[str]:
    """Return the addresses listed in a discovery file, ranges expanded."""
    text = content.decode("utf-8", errors="replace") if isinstance(content, bytes) else content
    result: list[str] = []
    for line in text.strip().split("\n"):
        line = line.strip()
        if line.startswith("#"):
            continue
        if "#" in line:
            line = line.split("#", 1)[0].strip()
        result.extend(generate(line))
    return result


class FileDiscovery(Discovery):
    """Reads swarm hosts from a file, re-reading it every heartbeat."""

    def __init__(self, on_error: ErrorHandler | None = None):
        self.path = ""
        self.heartbeat = 0.0
        self.on_error: ErrorHandler = on_error or _log_error

    def initialize(self, uris: str, heartbeat: float, ttl: float) -> None:
        self.path = uris
        self.heartbeat = heartbeat

    def _fetch(self) -> Entries:
        try:
            content = Path(self.path).read_bytes()
        except OSError as err:
            raise DiscoveryError(f"failed to read '{self.path}': {err}") from err
        return create_entries(parse_file_content(content))

    def watch(self, stop: threading.Event | None = None) -> Iterator[Entries]:
        """Yield the file's entries, then every change; read errors go to ``on_error``."""
        if self.heartbeat <= 0:
            raise ValueError("non-positive heartbeat")
        return self._watch(stop)

    def _watch(self, stop: threading.Event | None) -> Iterator[Entries]:
        current = Entries()
        try:
            current = self._fetch()
        except DiscoveryError as err:
            self.on_error(err)
        else:
            yield current

        while not _wait(stop, self.heartbeat):
            try:
                latest = self._fetch()
            except DiscoveryError as err:
                self.on_error(err)
                continue
            if latest != current:
                yield latest
            current = latest

    def register(self, addr: str) -> None:
        raise NotImplementedByBackendError()


register("file", FileDiscovery())