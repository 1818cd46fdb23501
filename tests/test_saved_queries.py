"""
Tests for saved query stores.
"""
import pytest
from pivot_explorer.config import ExplorerConfig
from pivot_explorer.storage.saved_queries import (
    SavedQuery,
    MemorySavedQueryStore,
    RedisSavedQueryStore,
    create_store,
)

# Conditional import for fakeredis
try:
    import fakeredis
    FAKEREDIS_AVAILABLE = True
except ImportError:
    FAKEREDIS_AVAILABLE = False


@pytest.fixture(params=["memory", "redis"])
def store(request):
    """Fixture to test both memory and Redis stores."""
    if request.param == "memory":
        yield MemorySavedQueryStore()
    elif request.param == "redis":
        if not FAKEREDIS_AVAILABLE:
            pytest.skip("fakeredis is not installed, skipping Redis store tests.")
        client = fakeredis.FakeStrictRedis()
        yield RedisSavedQueryStore(client=client, prefix="test_query:")
        client.flushall()


def _query(name, created_time="2024-03-01T10:00:00+00:00"):
    return SavedQuery(
        name=name,
        url="/pivot",
        parameters={"rows": "Exec:name", "view": "interactive"},
        created_time=created_time,
    )


def test_save_and_get(store):
    store.save(_query("gpu memory"))
    loaded = store.get("gpu memory")

    assert loaded is not None
    assert loaded.url == "/pivot"
    assert loaded.parameters == {"rows": "Exec:name", "view": "interactive"}


def test_get_nonexistent(store):
    assert store.get("missing") is None


def test_save_overwrites_same_name(store):
    store.save(_query("q"))
    store.save(SavedQuery(name="q", url="/other", parameters={}))

    assert store.get("q").url == "/other"
    assert len(store.list()) == 1


def test_list_newest_first(store):
    store.save(_query("old", "2024-01-01T00:00:00+00:00"))
    store.save(_query("new", "2024-06-01T00:00:00+00:00"))
    store.save(_query("mid", "2024-03-01T00:00:00+00:00"))

    assert [q.name for q in store.list()] == ["new", "mid", "old"]


def test_delete(store):
    store.save(_query("q"))

    assert store.delete("q") is True
    assert store.get("q") is None
    assert store.delete("q") is False


def test_memory_store_expiry(monkeypatch):
    store = MemorySavedQueryStore(ttl=10)
    store.save(_query("q"))

    import time
    real_time = time.time()
    monkeypatch.setattr(time, "time", lambda: real_time + 60)

    assert store.get("q") is None
    assert store.list() == []


def test_saved_query_dict_shape():
    query = _query("q")
    d = query.to_dict()

    assert d == {
        "name": "q",
        "query": {"url": "/pivot", "parameters": {"rows": "Exec:name", "view": "interactive"}},
        "created_time": "2024-03-01T10:00:00+00:00",
    }
    assert SavedQuery.from_dict(d) == query


def test_create_store_defaults_to_memory():
    assert isinstance(create_store(ExplorerConfig()), MemorySavedQueryStore)
