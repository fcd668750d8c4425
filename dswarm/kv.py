"""Key/value store abstraction with an in-memory backend."""

from __future__ import annotations

import abc
import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Iterator

log = logging.getLogger(__name__)

# How often blocked watchers and lockers re-check stop requests and expiries.
_POLL_INTERVAL = 0.05


class Backend(str, enum.Enum):
    """Known key/value store backends."""

    MOCK = "mock"
    CONSUL = "consul"
    ETCD = "etcd"
    ZK = "zk"


class StoreError(Exception):
    """Base class for store errors."""


class NotSupportedError(StoreError):
    def __init__(self, message: str = "Backend storage not supported yet, please choose another one"):
        super().__init__(message)


class KeyNotFoundError(StoreError):
    def __init__(self, message: str = "Key not found in store"):
        super().__init__(message)


class KeyModifiedError(StoreError):
    def __init__(self, message: str = "Unable to complete atomic operation, key modified"):
        super().__init__(message)


class PreviousNotSpecifiedError(StoreError):
    def __init__(
        self,
        message: str = "Previous K/V pair should be provided for the Atomic operation",
    ):
        super().__init__(message)


@dataclass(frozen=True)
class KVPair:
    """A key, its value and the index of its last modification."""

    key: str
    value: bytes
    last_index: int


@dataclass(frozen=True)
class WriteOptions:
    """Optional write parameters; durations are in seconds."""

    heartbeat: float = 0.0
    ephemeral: bool = False


@dataclass(frozen=True)
class LockOptions:
    """Optional lock parameters; ``ttl`` is in seconds."""

    value: bytes | None = None
    ttl: float = 0.0


@dataclass(frozen=True)
class Config:
    """Client options for a store; durations are in seconds."""

    tls: Any = None
    connection_timeout: float = 0.0
    ephemeral_ttl: float = 0.0


class Locker(abc.ABC):
    """A distributed mutex on top of a store."""

    @abc.abstractmethod
    def lock(self) -> threading.Event:
        """Block until the lock is held; the returned event is set when it is lost."""

    @abc.abstractmethod
    def unlock(self) -> None:
        """Release the lock. It is an error to call this if the lock is not held."""


class Store(abc.ABC):
    """The operations every key/value backend provides."""

    @abc.abstractmethod
    def put(self, key: str, value: bytes, options: WriteOptions | None = None) -> None:
        """Store ``value`` at ``key``."""

    @abc.abstractmethod
    def get(self, key: str) -> KVPair:
        """Return the pair at ``key`` or raise KeyNotFoundError."""

    @abc.abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``."""

    @abc.abstractmethod
    def exists(self, key: str) -> bool:
        """Tell whether ``key`` is present."""

    @abc.abstractmethod
    def watch(self, key: str, stop: threading.Event | None = None) -> Iterator[KVPair]:
        """Yield the current value of ``key`` and then each change."""

    @abc.abstractmethod
    def watch_tree(
        self, prefix: str, stop: threading.Event | None = None
    ) -> Iterator[list[KVPair]]:
        """Yield the content under ``prefix`` and then each change."""

    @abc.abstractmethod
    def new_lock(self, key: str, options: LockOptions | None = None) -> Locker:
        """Create a lock on ``key``; it is not held until ``lock`` is called."""

    @abc.abstractmethod
    def list(self, prefix: str) -> list[KVPair]:
        """Return the pairs stored under ``prefix``."""

    @abc.abstractmethod
    def delete_tree(self, prefix: str) -> None:
        """Remove every key under ``prefix``."""

    @abc.abstractmethod
    def atomic_put(
        self,
        key: str,
        value: bytes,
        previous: KVPair | None,
        options: WriteOptions | None = None,
    ) -> KVPair:
        """Store ``value`` only if ``key`` is unchanged since ``previous``."""

    @abc.abstractmethod
    def atomic_delete(self, key: str, previous: KVPair | None) -> None:
        """Delete ``key`` only if it is unchanged since ``previous``."""

    @abc.abstractmethod
    def close(self) -> None:
        """Close the store connection."""


def split_key(key: str) -> list[str]:
    """Split a key into its path parts."""
    return key.split("/")


def normalize(key: str) -> str:
    """Return the key in the form ``/path/to/key``."""
    return "/" + "/".join(split_key(key))


def get_directory(key: str) -> str:
    """Return the directory part of the key in the form ``/path/to``."""
    return "/" + "/".join(split_key(key)[:-1])


def create_endpoints(addrs: list[str], scheme: str) -> list[str]:
    """Prefix every address with ``scheme://``."""
    return [f"{scheme}://{addr}" for addr in addrs]


def _canonical(key: str) -> str:
    return "/".join(part for part in split_key(key) if part)


@dataclass
class _Record:
    value: bytes
    index: int
    expires: float | None


class MemoryStore(Store):
    """A thread-safe store kept in process memory."""

    def __init__(self, endpoints: list[str] | None = None, options: Config | None = None):
        self.endpoints = list(endpoints or [])
        self.options = options
        self._ephemeral_ttl = options.ephemeral_ttl if options is not None else 0.0
        self._records: dict[str, _Record] = {}
        self._locks: dict[str, MemoryLock] = {}
        self._index = 0
        self._closed = False
        self._cond = threading.Condition()

    def _purge_expired(self) -> None:
        now = time.monotonic()
        expired = [
            key
            for key, record in self._records.items()
            if record.expires is not None and record.expires <= now
        ]
        for key in expired:
            del self._records[key]
            self._release_lock_on(key)

    def _release_lock_on(self, key: str) -> None:
        holder = self._locks.pop(key, None)
        if holder is not None:
            holder._lost.set()

    def _write(self, key: str, value: bytes, expires: float | None) -> KVPair:
        self._index += 1
        self._records[key] = _Record(bytes(value), self._index, expires)
        return KVPair(key, bytes(value), self._index)

    def _expiry(self, options: WriteOptions | None) -> float | None:
        if options is not None and options.ephemeral and self._ephemeral_ttl > 0:
            return time.monotonic() + self._ephemeral_ttl
        return None

    def _children(self, prefix: str) -> list[str]:
        if not prefix:
            return sorted(self._records)
        start = prefix + "/"
        return sorted(key for key in self._records if key.startswith(start))

    def _snapshot(self, keys: list[str]) -> list[KVPair]:
        return [KVPair(key, self._records[key].value, self._records[key].index) for key in keys]

    def _should_stop(self, stop: threading.Event | None) -> bool:
        return self._closed or (stop is not None and stop.is_set())

    def put(self, key: str, value: bytes, options: WriteOptions | None = None) -> None:
        with self._cond:
            self._purge_expired()
            self._write(_canonical(key), value, self._expiry(options))
            self._cond.notify_all()

    def get(self, key: str) -> KVPair:
        canonical = _canonical(key)
        with self._cond:
            self._purge_expired()
            record = self._records.get(canonical)
            if record is None:
                raise KeyNotFoundError()
            return KVPair(canonical, record.value, record.index)

    def delete(self, key: str) -> None:
        canonical = _canonical(key)
        with self._cond:
            self._purge_expired()
            if canonical not in self._records:
                raise KeyNotFoundError()
            del self._records[canonical]
            self._release_lock_on(canonical)
            self._cond.notify_all()

    def exists(self, key: str) -> bool:
        with self._cond:
            self._purge_expired()
            return _canonical(key) in self._records

    def watch(self, key: str, stop: threading.Event | None = None) -> Iterator[KVPair]:
        canonical = _canonical(key)

        def events() -> Iterator[KVPair]:
            seen: int | None = -1
            while True:
                with self._cond:
                    while True:
                        self._purge_expired()
                        if self._should_stop(stop):
                            return
                        record = self._records.get(canonical)
                        marker = record.index if record is not None else None
                        if marker != seen:
                            break
                        self._cond.wait(_POLL_INTERVAL)
                    seen = marker
                    pair = (
                        KVPair(canonical, record.value, record.index)
                        if record is not None
                        else None
                    )
                if pair is not None:
                    yield pair

        return events()

    def watch_tree(
        self, prefix: str, stop: threading.Event | None = None
    ) -> Iterator[list[KVPair]]:
        canonical = _canonical(prefix)

        def events() -> Iterator[list[KVPair]]:
            seen: tuple[tuple[str, int], ...] | None = None
            while True:
                with self._cond:
                    while True:
                        self._purge_expired()
                        if self._should_stop(stop):
                            return
                        keys = self._children(canonical)
                        marker = tuple((k, self._records[k].index) for k in keys)
                        if marker != seen:
                            break
                        self._cond.wait(_POLL_INTERVAL)
                    seen = marker
                    pairs = self._snapshot(keys)
                yield pairs

        return events()

    def new_lock(self, key: str, options: LockOptions | None = None) -> MemoryLock:
        value = b""
        if options is not None and options.value is not None:
            value = options.value
        return MemoryLock(self, key, value)

    def list(self, prefix: str) -> list[KVPair]:
        with self._cond:
            self._purge_expired()
            pairs = self._snapshot(self._children(_canonical(prefix)))
        if not pairs:
            raise KeyNotFoundError()
        return pairs

    def delete_tree(self, prefix: str) -> None:
        canonical = _canonical(prefix)
        with self._cond:
            self._purge_expired()
            doomed = self._children(canonical)
            if canonical in self._records:
                doomed.append(canonical)
            for key in doomed:
                del self._records[key]
                self._release_lock_on(key)
            self._cond.notify_all()

    def atomic_put(
        self,
        key: str,
        value: bytes,
        previous: KVPair | None,
        options: WriteOptions | None = None,
    ) -> KVPair:
        if previous is None:
            raise PreviousNotSpecifiedError()
        canonical = _canonical(key)
        with self._cond:
            self._purge_expired()
            record = self._records.get(canonical)
            current = record.index if record is not None else 0
            if current != previous.last_index:
                raise KeyModifiedError()
            pair = self._write(canonical, value, self._expiry(options))
            self._cond.notify_all()
            return pair

    def atomic_delete(self, key: str, previous: KVPair | None) -> None:
        if previous is None:
            raise PreviousNotSpecifiedError()
        canonical = _canonical(key)
        with self._cond:
            self._purge_expired()
            record = self._records.get(canonical)
            if record is None or record.index != previous.last_index:
                raise KeyModifiedError()
            del self._records[canonical]
            self._release_lock_on(canonical)
            self._cond.notify_all()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()


class MemoryLock(Locker):
    """A lock on a key of a MemoryStore."""

    def __init__(self, store: MemoryStore, key: str, value: bytes):
        self._store = store
        self.key = _canonical(key)
        self.value = bytes(value)
        self._lost = threading.Event()

    def lock(self) -> threading.Event:
        store = self._store
        with store._cond:
            if store._locks.get(self.key) is self:
                raise StoreError("lock already held")
            while True:
                store._purge_expired()
                if store._closed:
                    raise StoreError("Error acquiring the lock")
                if self.key not in store._locks:
                    break
                store._cond.wait(_POLL_INTERVAL)
            self._lost = threading.Event()
            store._locks[self.key] = self
            store._write(self.key, self.value, None)
            store._cond.notify_all()
            return self._lost

    def unlock(self) -> None:
        store = self._store
        with store._cond:
            if store._locks.get(self.key) is not self:
                raise StoreError("lock is not held")
            del store._locks[self.key]
            self._lost.set()
            store._cond.notify_all()


_INITIALIZERS = {Backend.MOCK: MemoryStore}


def new_store(
    backend: Backend | str, addrs: list[str], options: Config | None = None
) -> Store:
    """Create a store for ``backend`` connected to ``addrs``."""
    try:
        kind = Backend(backend)
    except ValueError:
        raise NotSupportedError() from None
    factory = _INITIALIZERS.get(kind)
    if factory is None:
        raise NotSupportedError()
    log.debug("Initializing store service", extra={"backend": kind.value})
    return factory(addrs, options)