import pytest

from receptionist.db import Database
from receptionist.history import InMemoryHistoryStore, SqliteHistoryStore
from receptionist.models import LLMToolCall, Turn


def _sqlite_store(tmp_path, limit):
    db = Database(tmp_path / "receptionist.db")
    db.initialize()
    return SqliteHistoryStore(db, limit)


@pytest.fixture(params=["memory", "sqlite"])
def make_store(request, tmp_path):
    def _make(limit):
        if request.param == "memory":
            return InMemoryHistoryStore(limit)
        return _sqlite_store(tmp_path, limit)

    return _make


def test_read_unknown_conversation_is_empty(make_store):
    assert make_store(5).read("nobody") == []


def test_append_preserves_order(make_store):
    store = make_store(5)
    store.append("c1", Turn.user("hi"))
    store.append("c1", Turn.assistant("hello"))
    assert [t.content for t in store.read("c1")] == ["hi", "hello"]


def test_window_never_exceeds_limit(make_store):
    store = make_store(4)
    for i in range(11):
        store.append("c1", Turn.user(f"q{i}"))
        store.append("c1", Turn.assistant(f"a{i}"))
        assert len(store.read("c1")) <= 4
    assert [t.content for t in store.read("c1")] == ["q9", "a9", "q10", "a10"]


def test_conversations_are_isolated(make_store):
    store = make_store(3)
    store.append("c1", Turn.user("one"))
    store.append("c2", Turn.user("two"))
    assert [t.content for t in store.read("c1")] == ["one"]
    assert [t.content for t in store.read("c2")] == ["two"]


def test_read_is_a_snapshot(make_store):
    store = make_store(3)
    store.append("c1", Turn.user("one"))
    snapshot = store.read("c1")
    snapshot.append(Turn.user("tampered"))
    assert len(store.read("c1")) == 1


def test_orphaned_tool_turns_are_evicted(make_store):
    store = make_store(2)
    call = LLMToolCall(name="check_availability", arguments={"start_time": "a"}, call_id="c1")
    store.append("c1", Turn.user("free?"))
    store.append("c1", Turn.assistant(tool_calls=(call,)))
    store.append("c1", Turn.tool("c1", "check_availability", "Free"))
    store.append("c1", Turn.assistant("Yes, free"))

    window = store.read("c1")
    assert [t.role for t in window] == ["assistant"]
    assert window[0].content == "Yes, free"


def test_tool_calls_survive_sqlite_round_trip(tmp_path):
    store = _sqlite_store(tmp_path, 5)
    call = LLMToolCall(name="book_appointment", arguments={"service_id": "haircut"}, call_id="call-1")
    store.append("c1", Turn.assistant(tool_calls=(call,)))
    store.append("c1", Turn.tool("call-1", "book_appointment", "Booked"))

    assistant, tool = store.read("c1")
    assert assistant.tool_calls == (call,)
    assert tool.tool_call_id == "call-1"
    assert tool.name == "book_appointment"


def test_clear_forgets_conversation(make_store):
    store = make_store(3)
    store.append("c1", Turn.user("one"))
    store.clear("c1")
    assert store.read("c1") == []


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        InMemoryHistoryStore(0)
