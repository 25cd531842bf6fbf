"""Tests for explicit callback subscription via subscribe() and on()."""

import pytest

from tallybus import Mode, RecordingEventBus, ValidationError, subscribe
from conftest import MyEvent, MyOtherEvent, Ping, Pong


class TestSubscribe:
    def test_plain_function_receives_events(self, bus):
        """A subscribed function is called with the event."""
        received = []

        def handler(event):
            received.append(event)

        bus.subscribe(Ping, handler)
        bus.post(Ping(msg="hi"))

        assert received == [Ping(msg="hi")]
        assert bus.get_last_posted().subscriber is handler

    def test_needs_no_markers(self):
        """Explicit subscription works before any marker is added."""
        bus = RecordingEventBus(Mode.ANNOTATION)
        received = []
        bus.subscribe(Ping, received.append)
        bus.post(Ping(msg="x"))
        assert len(received) == 1

    def test_on_decorator_end_to_end(self, bus):
        """@on() subscribes the function and returns it unchanged."""
        called = []

        @bus.on(Pong)
        def handler(event: Pong) -> None:
            called.append(event.msg)

        bus.post(Pong(msg="hi"))
        assert called == ["hi"]
        assert bus.is_registered(handler)

    def test_twice_raises(self, bus):
        """A callable can only be subscribed once."""

        def handler(event): ...

        bus.subscribe(Ping, handler)
        with pytest.raises(ValidationError, match="already registered"):
            bus.subscribe(Pong, handler)

    def test_unregister_callback(self, bus):
        """unregister(callback) removes an explicit subscription."""

        def handler(event): ...

        bus.subscribe(Ping, handler)
        bus.unregister(handler)
        assert bus.listeners(Ping) == ()

    def test_bound_method(self, bus):
        """Bound methods are identified by instance and function."""

        class Counter:
            def __init__(self) -> None:
                self.count = 0

            def bump(self, event) -> None:
                self.count += 1

        counter = Counter()
        bus.subscribe(MyOtherEvent, counter.bump)
        bus.post(MyOtherEvent())
        assert counter.count == 1

        with pytest.raises(ValidationError, match="already registered"):
            bus.subscribe(MyOtherEvent, counter.bump)
        bus.unregister(counter.bump)
        assert not bus.is_registered(counter.bump)

    def test_mixes_with_registered_subscribers(self, bus):
        """Callbacks and subscribers share the dispatch order."""
        order = []

        class Listener:
            @subscribe
            def on_event(self, event: MyEvent) -> None:
                order.append("subscriber")

        bus.subscribe(MyEvent, lambda event: order.append("callback"))
        bus.register(Listener())
        bus.post(MyEvent())
        assert order == ["callback", "subscriber"]

    @pytest.mark.parametrize("event_type", [str, dict, "Ping", None])
    def test_invalid_event_type_raises(self, bus, event_type):
        """Event types must be non-stdlib classes."""
        with pytest.raises(ValidationError):
            bus.subscribe(event_type, lambda event: None)

    def test_none_callback_raises(self, bus):
        with pytest.raises(ValidationError, match="None"):
            bus.subscribe(Ping, None)

    def test_not_callable_raises(self, bus):
        with pytest.raises(ValidationError, match="not callable"):
            bus.subscribe(Ping, "handler")

    def test_wrong_arity_raises(self, bus):
        """Callbacks must take exactly the event."""
        with pytest.raises(ValidationError, match="exactly one"):
            bus.subscribe(Ping, lambda: None)
        with pytest.raises(ValidationError, match="exactly one"):
            bus.subscribe(Ping, lambda event, extra: None)
