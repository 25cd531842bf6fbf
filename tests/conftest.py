"""Shared events, subscribers and fixtures for all tallybus tests."""

import pytest
from pydantic import BaseModel, ConfigDict

from tallybus import Marker, Mode, RecordingEventBus, subscribe

EXCEPTION_MESSAGE = "Example exception message"

handles = Marker("handles")


class Ping(BaseModel):
    model_config = ConfigDict(frozen=True)

    msg: str


class Pong(BaseModel):
    model_config = ConfigDict(frozen=True)

    msg: str


class MyEvent:
    pass


class MyOtherEvent:
    pass


class ChildEvent(MyEvent):
    pass


class MyEventListener:
    """Listens to MyEvent in both modes."""

    def __init__(self) -> None:
        self.received: list[MyEvent] = []

    @subscribe
    def on_event(self, event: MyEvent) -> None:
        self.received.append(event)


class MultipleListeners:
    """Listens to MyEvent and MyOtherEvent."""

    def __init__(self) -> None:
        self.received: list[object] = []

    @subscribe
    def on_event(self, event: MyEvent) -> None:
        self.received.append(event)

    @subscribe
    def on_other_event(self, event: MyOtherEvent) -> None:
        self.received.append(event)


class ThrowingListener:
    @subscribe
    def on_event(self, event: MyEvent) -> None:
        raise RuntimeError(EXCEPTION_MESSAGE)


class NoEventMethods:
    def handle(self, event: MyEvent) -> None: ...


@pytest.fixture
def method_bus() -> RecordingEventBus:
    """Bus in method name mode listening to ``on_event`` and ``on_other_event``."""
    return RecordingEventBus(Mode.METHOD_NAME, ["on_event", "on_other_event"])


@pytest.fixture
def annotation_bus() -> RecordingEventBus:
    """Bus in annotation mode honouring ``@subscribe``."""
    return RecordingEventBus(Mode.ANNOTATION, [subscribe])


@pytest.fixture(params=[Mode.METHOD_NAME, Mode.ANNOTATION])
def bus(request, method_bus, annotation_bus) -> RecordingEventBus:
    """Each test using this fixture runs once per mode."""
    return method_bus if request.param is Mode.METHOD_NAME else annotation_bus
