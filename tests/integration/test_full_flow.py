"""Integration tests for a complete register -> post -> inspect flow."""

import pytest
from loguru import logger
from pydantic import BaseModel

from tallybus import (
    DispatchError,
    HandlerFailure,
    Marker,
    Mode,
    RecordingEventBus,
    TallybusError,
)

on_domain_event = Marker("on_domain_event")


class UserRegistered(BaseModel):
    username: str
    email: str


class EmailRequested(BaseModel):
    recipient: str
    subject: str


class OrderPlaced(BaseModel):
    order_id: int


class Mailer:
    def __init__(self) -> None:
        self.sent: list[str] = []

    def on_event(self, event: EmailRequested) -> None:
        self.sent.append(event.recipient)


class Onboarding:
    def __init__(self, bus: RecordingEventBus) -> None:
        self.bus = bus

    def on_event(self, event: UserRegistered) -> None:
        self.bus.post(EmailRequested(recipient=event.email, subject="Welcome"))


class TestMethodNameScenario:
    def test_last_posted_and_missing_listener(self):
        """Register S, post A, inspect, then post a type nobody handles."""
        bus = RecordingEventBus(Mode.METHOD_NAME)
        bus.add_method_name("on_event")

        mailer = Mailer()
        bus.register(mailer)
        a = EmailRequested(recipient="ada@example.com", subject="hi")
        bus.post(a)

        last = bus.get_last_posted()
        assert last.event is a
        assert last.subscriber is mailer

        with pytest.raises(DispatchError, match="OrderPlaced"):
            bus.post(OrderPlaced(order_id=1))

    def test_chained_flow(self):
        """A handler posting a follow-up event is recorded in delivery order."""
        bus = RecordingEventBus(Mode.METHOD_NAME, ["on_event"])
        mailer, onboarding = Mailer(), Onboarding(bus)
        bus.register(mailer)
        bus.register(onboarding)

        bus.post(UserRegistered(username="ada", email="ada@example.com"))

        assert mailer.sent == ["ada@example.com"]
        assert [type(p.event) for p in bus.get_all_posted()] == [
            EmailRequested,
            UserRegistered,
        ]
        assert bus.get_first_posted(UserRegistered).subscriber is onboarding


class TestAnnotationScenario:
    def test_best_effort_delivery_with_hook(self):
        """With a hook installed, healthy subscribers still get the event."""
        bus = RecordingEventBus(Mode.ANNOTATION, [on_domain_event])
        failures: list[HandlerFailure] = []
        bus.set_failure_hook(failures.append)

        class Broken:
            @on_domain_event
            def handle(self, event: OrderPlaced) -> None:
                raise ValueError(f"order {event.order_id} rejected")

        class Ledger:
            def __init__(self) -> None:
                self.orders: list[int] = []

            @on_domain_event
            def handle(self, event: OrderPlaced) -> None:
                self.orders.append(event.order_id)

        ledger = Ledger()
        bus.register(Broken())
        bus.register(ledger)

        bus.post(OrderPlaced(order_id=7))

        assert ledger.orders == [7]
        assert [str(f.exception) for f in failures] == ["order 7 rejected"]
        assert [p.subscriber for p in bus.get_all_posted()] == [ledger]

    def test_all_errors_share_a_base(self):
        """Callers can catch every bus error with TallybusError."""
        bus = RecordingEventBus(Mode.ANNOTATION)
        with pytest.raises(TallybusError):
            bus.register(Mailer())
        with pytest.raises(TallybusError):
            bus.post(None)
        with pytest.raises(TallybusError):
            bus.post(OrderPlaced(order_id=1))


class TestLogging:
    def test_logging_is_opt_in(self):
        """Debug records appear once the library logger is enabled."""
        messages: list[str] = []
        sink_id = logger.add(lambda msg: messages.append(str(msg)), level="DEBUG")
        try:
            bus = RecordingEventBus(Mode.METHOD_NAME, ["on_event"])
            bus.register(Mailer())
            assert messages == []

            logger.enable("tallybus")
            try:
                bus.post(EmailRequested(recipient="x", subject="y"))
            finally:
                logger.disable("tallybus")
        finally:
            logger.remove(sink_id)

        assert any("Post EmailRequested" in m for m in messages)
