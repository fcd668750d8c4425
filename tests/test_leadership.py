from dswarm.kv import new_store
from dswarm.leadership import Candidate, Follower


def test_candidate():
    store = new_store("mock", [], None)
    candidate = Candidate(store, "test_key", "test_node")
    candidate.run_for_election()
    elected = candidate.events()

    # A candidate starts as a follower, then takes the free lock.
    assert next(elected) is False
    assert next(elected) is True
    assert store.get("test_key").value == b"test_node"

    # Losing the lock de-elects, and the candidate wins it back.
    store.delete("test_key")
    assert next(elected) is False
    assert next(elected) is True

    # Resigning gives up the lock, then re-acquires it.
    candidate.resign()
    assert next(elected) is False
    assert next(elected) is True

    # After stopping, the event stream ends with nothing more.
    candidate.stop()
    assert list(elected) == []
    assert list(candidate.events()) == []


def test_resign_when_not_leader_has_no_effect():
    store = new_store("mock", [], None)
    candidate = Candidate(store, "test_key", "test_node")
    candidate.resign()
    candidate.stop()
    candidate.run_for_election()
    assert list(candidate.events()) == [False, True]


def test_follower():
    store = new_store("mock", [], None)
    store.put("test_key", b"leader1")

    follower = Follower(store, "test_key")
    follower.follow_election()
    leaders = follower.leaders()

    assert next(leaders) == "leader1"

    # A repeated value is not reported again.
    store.put("test_key", b"leader1")
    store.put("test_key", b"leader2")
    assert next(leaders) == "leader2"

    store.put("test_key", b"leader1")
    assert next(leaders) == "leader1"

    follower.stop()
    assert list(leaders) == []