"""Tests for event routing."""

import asyncio

import pytest

from ssesource.client.dispatcher import EventDispatcher
from ssesource.protocol.event import EventRecord


class QueuedExecutor:
    """Collects scheduled callbacks so tests control when they run."""

    def __init__(self):
        self.pending = []

    def __call__(self, callback, *args):
        self.pending.append((callback, args))

    def run(self):
        while self.pending:
            callback, args = self.pending.pop(0)
            callback(*args)


@pytest.fixture
def executor():
    return QueuedExecutor()


@pytest.fixture
def dispatcher(executor):
    return EventDispatcher(executor=executor)


@pytest.fixture
def received(dispatcher):
    calls = []
    dispatcher.on_message = lambda *args: calls.append(("message", args))
    return calls


class TestRoute:
    def test_unnamed_event_goes_to_message(self, dispatcher, executor, received):
        dispatcher.route(EventRecord(data="hello"))
        executor.run()
        assert received == [("message", (None, "message", "hello"))]

    def test_explicit_message_event(self, dispatcher, executor, received):
        dispatcher.route(EventRecord(event="message", data="hi"))
        executor.run()
        assert received == [("message", (None, "message", "hi"))]

    def test_named_event_goes_to_listener_only(self, dispatcher, executor, received):
        dispatcher.add_event_listener("foo", lambda *args: received.append(("foo", args)))
        dispatcher.route(EventRecord(id="42", event="foo", data="bar"))
        executor.run()
        assert received == [("foo", ("42", "foo", "bar"))]
        assert dispatcher.last_event_id == "42"

    def test_named_event_without_listener_dropped(self, dispatcher, executor, received):
        dispatcher.route(EventRecord(event="unknown", data="x"))
        executor.run()
        assert received == []

    def test_message_listener_and_default_handler_both_called(self, dispatcher, executor, received):
        dispatcher.add_event_listener("message", lambda *args: received.append(("listener", args)))
        dispatcher.route(EventRecord(event="message", data="x"))
        executor.run()
        assert [name for name, _ in received] == ["message", "listener"]

    def test_listener_names_case_sensitive(self, dispatcher, executor, received):
        dispatcher.add_event_listener("Foo", lambda *args: received.append(("Foo", args)))
        dispatcher.route(EventRecord(event="foo", data="x"))
        executor.run()
        assert received == []

    def test_callbacks_not_run_inline(self, dispatcher, executor, received):
        dispatcher.route(EventRecord(data="x"))
        assert received == []
        assert len(executor.pending) == 1

    def test_order_preserved(self, dispatcher, executor, received):
        for i in range(5):
            dispatcher.route(EventRecord(data=str(i)))
        executor.run()
        assert [args[2] for _, args in received] == ["0", "1", "2", "3", "4"]


class TestSessionState:
    def test_defaults(self, dispatcher):
        assert dispatcher.last_event_id is None
        assert dispatcher.retry_interval_ms == 3000

    def test_custom_default_retry(self, executor):
        assert EventDispatcher(executor=executor, default_retry_ms=1000).retry_interval_ms == 1000

    def test_retry_only_updates_interval_silently(self, dispatcher, executor, received):
        dispatcher.route(EventRecord(retry="5000"))
        executor.run()
        assert dispatcher.retry_interval_ms == 5000
        assert received == []

    def test_unparsable_retry_keeps_previous(self, dispatcher):
        dispatcher.route(EventRecord(retry="1000"))
        dispatcher.route(EventRecord(data="x", retry="later"))
        assert dispatcher.retry_interval_ms == 1000

    def test_retry_kept_when_absent(self, dispatcher):
        dispatcher.route(EventRecord(retry="1000"))
        dispatcher.route(EventRecord(data="x"))
        assert dispatcher.retry_interval_ms == 1000

    def test_event_without_id_clears_last_event_id(self, dispatcher):
        dispatcher.route(EventRecord(id="1", data="a"))
        dispatcher.route(EventRecord(data="b"))
        assert dispatcher.last_event_id is None

    def test_empty_id(self, dispatcher):
        dispatcher.route(EventRecord(id="", data="a"))
        assert dispatcher.last_event_id == ""


class TestListenerRegistry:
    def test_add_and_events(self, dispatcher):
        dispatcher.add_event_listener("a", print)
        dispatcher.add_event_listener("b", print)
        assert dispatcher.events() == {"a", "b"}

    def test_add_overwrites(self, dispatcher, executor):
        calls = []
        dispatcher.add_event_listener("a", lambda *args: calls.append("first"))
        dispatcher.add_event_listener("a", lambda *args: calls.append("second"))
        dispatcher.route(EventRecord(event="a", data="x"))
        executor.run()
        assert calls == ["second"]
        assert dispatcher.events() == {"a"}

    def test_remove(self, dispatcher):
        dispatcher.add_event_listener("a", print)
        dispatcher.remove_event_listener("a")
        dispatcher.remove_event_listener("missing")
        assert dispatcher.events() == set()


class TestLoopExecutor:
    async def test_default_executor_schedules_on_loop(self):
        dispatcher = EventDispatcher()
        calls = []
        dispatcher.on_message = lambda *args: calls.append(args)
        dispatcher.route(EventRecord(data="x"))
        assert calls == []
        await asyncio.sleep(0)
        assert calls == [(None, "message", "x")]
