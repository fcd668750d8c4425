import json

import pytest

from dswarm.state import (
    AlreadyExistsError,
    InvalidKeyError,
    NotFoundError,
    RequestedState,
    StateStore,
)


def test_store(tmp_path):
    store = StateStore(tmp_path)
    store.initialize()

    c1 = RequestedState(name="foo")
    c2 = RequestedState(name="bar")

    with pytest.raises(InvalidKeyError) as excinfo:
        store.add("", c1)
    assert str(excinfo.value) == "invalid key"

    store.add("foo", c1)
    assert store.get("foo").name == c1.name

    with pytest.raises(AlreadyExistsError) as excinfo:
        store.add("foo", c1)
    assert str(excinfo.value) == "already exists"

    store.replace("foo", c2)
    assert store.get("foo").name == c2.name

    everything = store.all()
    assert len(everything) == 1
    assert everything[0].name == c2.name
    assert everything[0] is c2

    store = StateStore(tmp_path)
    store.initialize()
    assert store.get("foo").name == c2.name


def test_get_missing(tmp_path):
    store = StateStore(tmp_path)
    store.initialize()
    with pytest.raises(NotFoundError) as excinfo:
        store.get("nothing")
    assert str(excinfo.value) == "not found"


def test_replace_missing(tmp_path):
    store = StateStore(tmp_path)
    store.initialize()
    with pytest.raises(NotFoundError):
        store.replace("foo", RequestedState(name="foo"))


def test_remove(tmp_path):
    store = StateStore(tmp_path)
    store.initialize()
    store.add("foo", RequestedState(name="foo"))
    store.remove("foo")
    assert store.all() == []
    assert not (tmp_path / "foo.json").exists()
    with pytest.raises(NotFoundError):
        store.remove("foo")


def test_file_layout(tmp_path):
    store = StateStore(tmp_path)
    store.initialize()
    store.add("web", RequestedState(id="abc", name="web", config={"Image": "busybox"}))
    data = json.loads((tmp_path / "web.json").read_text())
    assert data == {"ID": "abc", "Name": "web", "Config": {"Image": "busybox"}}


def test_initialize_creates_directory(tmp_path):
    root = tmp_path / "nested" / "state"
    store = StateStore(root)
    store.initialize()
    assert root.is_dir()
    assert store.all() == []


def test_restore_skips_invalid_files(tmp_path):
    (tmp_path / "notes.txt").write_text("hello")
    (tmp_path / ".json").write_text(json.dumps({"Name": "nameless"}))
    (tmp_path / "broken.json").write_text("{not json")
    (tmp_path / "list.json").write_text("[1, 2]")
    (tmp_path / "good.json").write_text(json.dumps({"ID": "1", "Name": "good"}))

    store = StateStore(tmp_path)
    store.initialize()
    assert store.all() == [RequestedState(id="1", name="good", config=None)]
    assert store.get("good").name == "good"