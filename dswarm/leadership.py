"""Leader election and leader following on top of a key/value store."""

from __future__ import annotations

import logging
import queue
import threading
from typing import Iterator

from .kv import KVPair, LockOptions, Locker, Store, StoreError

log = logging.getLogger(__name__)

_CLOSED = object()
_POLL_INTERVAL = 0.05


def _drain(events: queue.Queue) -> Iterator:
    while True:
        item = events.get()
        if item is _CLOSED:
            events.put(_CLOSED)
            return
        yield item


class Candidate:
    """Runs for leadership of ``key`` in the background."""

    def __init__(self, client: Store, key: str, node: str):
        self.client = client
        self.key = key
        self.node = node
        self._elected: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._leader = False
        self._stop = threading.Event()
        self._resign = threading.Event()

    def events(self) -> Iterator[bool]:
        """Yield True on becoming leader and False on losing leadership."""
        return _drain(self._elected)

    def run_for_election(self) -> None:
        """Start campaigning; status changes are delivered through ``events``."""
        lock = self.client.new_lock(self.key, LockOptions(value=self.node.encode()))
        threading.Thread(target=self._campaign, args=(lock,), daemon=True).start()

    def stop(self) -> None:
        """Stop running for election."""
        self._stop.set()

    def resign(self) -> None:
        """Step down if leader; the candidate then campaigns again."""
        with self._lock:
            if self._leader:
                self._resign.set()

    def _update(self, status: bool) -> None:
        with self._lock:
            if not status:
                self._resign.clear()
            self._elected.put(status)
            self._leader = status

    @staticmethod
    def _unlock(lock: Locker) -> None:
        try:
            lock.unlock()
        except StoreError as err:
            log.debug("unlock failed: %s", err)

    def _campaign(self, lock: Locker) -> None:
        try:
            while True:
                self._update(False)
                try:
                    lost = lock.lock()
                except StoreError as err:
                    log.error("%s", err)
                    return
                self._update(True)

                while True:
                    if self._stop.is_set():
                        if self._leader:
                            self._unlock(lock)
                        return
                    if self._resign.is_set():
                        self._unlock(lock)
                        break
                    if lost.wait(_POLL_INTERVAL):
                        break
        finally:
            self._elected.put(_CLOSED)


class Follower:
    """Follows an election and reports each change of leader."""

    def __init__(self, client: Store, key: str):
        self.client = client
        self.key = key
        self._leaders: queue.Queue = queue.Queue()
        self._stop = threading.Event()

    def leaders(self) -> Iterator[str]:
        """Yield the name of each newly elected leader."""
        return _drain(self._leaders)

    def follow_election(self) -> None:
        """Start monitoring the election."""
        pairs = self.client.watch(self.key, self._stop)
        threading.Thread(target=self._follow, args=(pairs,), daemon=True).start()

    def stop(self) -> None:
        """Stop monitoring the election."""
        self._stop.set()

    def _follow(self, pairs: Iterator[KVPair]) -> None:
        try:
            previous = ""
            for pair in pairs:
                current = pair.value.decode("utf-8", errors="replace")
                if current == previous:
                    continue
                previous = current
                self._leaders.put(current)
        except StoreError as err:
            log.error("%s", err)
        finally:
            self._leaders.put(_CLOSED)