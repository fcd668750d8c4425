"""Requested container states persisted as JSON files in a directory."""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass
from typing import Any

log = logging.getLogger(__name__)

_EXTENSION = ".json"


class StateError(Exception):
    """Base class for state store errors."""


class NotFoundError(StateError):
    def __init__(self, message: str = "not found"):
        super().__init__(message)


class AlreadyExistsError(StateError):
    def __init__(self, message: str = "already exists"):
        super().__init__(message)


class InvalidKeyError(StateError):
    def __init__(self, message: str = "invalid key"):
        super().__init__(message)


@dataclass
class RequestedState:
    """The state requested for a container."""

    id: str = ""
    name: str = ""
    config: Any = None

    def to_json(self) -> dict[str, Any]:
        return {"ID": self.id, "Name": self.name, "Config": self.config}

    @classmethod
    def from_json(cls, data: Any) -> RequestedState:
        if not isinstance(data, dict):
            raise StateError("cannot decode requested state from non-object JSON")
        return cls(
            id=data.get("ID") or "",
            name=data.get("Name") or "",
            config=data.get("Config"),
        )


def _extension(filename: str) -> str:
    dot = filename.rfind(".")
    return filename[dot:] if dot >= 0 else ""


class StateStore:
    """A key to RequestedState store backed by a directory of JSON files."""

    def __init__(self, root_dir: str | os.PathLike):
        self.root_dir = os.fspath(root_dir)
        self._values: dict[str, RequestedState] = {}
        self._lock = threading.RLock()

    def initialize(self) -> None:
        """Create the directory if needed and load the states saved in it."""
        with self._lock:
            os.makedirs(self.root_dir, 0o700, exist_ok=True)
            self._restore()

    def _path(self, key: str) -> str:
        return os.path.join(self.root_dir, key + _EXTENSION)

    def _restore(self) -> None:
        for filename in sorted(os.listdir(self.root_dir)):
            extension = _extension(filename)
            if extension != _EXTENSION:
                log.error("invalid file extension for filename %s (%s)", filename, extension)
                continue
            try:
                value = self._load(os.path.join(self.root_dir, filename))
            except StateError as err:
                log.error("%s", err)
                continue
            key = filename[: -len(extension)]
            if not key:
                log.error("invalid filename %s", filename)
                continue
            self._values[key] = value

    @staticmethod
    def _load(path: str) -> RequestedState:
        try:
            with open(path, encoding="utf-8") as fh:
                text = fh.read()
        except OSError as err:
            raise StateError(f"unable to load {path}: {err}") from err
        try:
            data = json.loads(text)
        except ValueError as err:
            raise StateError(f"unable to decode {path}: {err}") from err
        return RequestedState.from_json(data)

    def get(self, key: str) -> RequestedState:
        with self._lock:
            try:
                return self._values[key]
            except KeyError:
                raise NotFoundError() from None

    def all(self) -> list[RequestedState]:
        with self._lock:
            return list(self._values.values())

    def _set(self, key: str, value: RequestedState) -> None:
        if not key:
            raise InvalidKeyError()
        data = json.dumps(value.to_json(), indent=4)
        fd = os.open(self._path(key), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(data)
        self._values[key] = value

    def add(self, key: str, value: RequestedState) -> None:
        """Add a new state; ``key`` must be unique."""
        with self._lock:
            if key in self._values:
                raise AlreadyExistsError()
            self._set(key, value)

    def replace(self, key: str, value: RequestedState) -> None:
        """Replace an existing state."""
        with self._lock:
            if key not in self._values:
                raise NotFoundError()
            self._set(key, value)

    def remove(self, key: str) -> None:
        """Remove ``key`` and its file."""
        with self._lock:
            if key not in self._values:
                raise NotFoundError()
            os.remove(self._path(key))
            del self._values[key]