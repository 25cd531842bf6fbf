"""Payload handed to the failure hook."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class HandlerFailure(BaseModel):
    """A handler raised while an event was being posted.

    Attributes:
        event: The event being dispatched.
        subscriber: Owner of the failing handler.
        listener_name: Name of the failing handler.
        exception: The exception the handler raised.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    event: Any
    subscriber: Any
    listener_name: str
    exception: Exception

    @property
    def event_type(self) -> type:
        return type(self.event)
