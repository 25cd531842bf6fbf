"""Registry for listener bindings.

This module provides SubscriptionRegistry, which stores bindings in a
NetworkX multigraph: every registered subscriber is a node with one edge
per handler pointing at the event type node it listens to. Dispatch
order for an event type is the insertion order of its incoming edges.
"""

import types
from dataclasses import dataclass, field
from typing import Any

import networkx as nx

from tallybus._types import Handler


def subscriber_key(subscriber: Any) -> tuple[int, ...]:
    """Identity key for a subscriber.

    Objects are identified by ``id()``. Bound methods are identified by
    their instance and function, since every attribute access creates a
    new bound method object.
    """
    if isinstance(subscriber, types.MethodType):
        return (id(subscriber.__self__), id(subscriber.__func__))
    return (id(subscriber),)


@dataclass(frozen=True)
class _SubscriberNode:
    key: tuple[int, ...]


@dataclass(frozen=True, eq=False)
class ListenerBinding:
    """A handler eligible to receive events of one type.

    Attributes:
        subscriber: Object (or callable) that owns the handler.
        handler: Bound callable invoked with the event.
        event_type: Exact event class the handler listens to.
        name: Handler name, unique per subscriber.

    Two bindings are equal when they belong to the same subscriber (by
    identity) and carry the same handler name.
    """

    subscriber: Any
    handler: Handler
    event_type: type
    name: str = field(default="")

    @property
    def key(self) -> tuple[tuple[int, ...], str]:
        return subscriber_key(self.subscriber), self.name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ListenerBinding):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)


class SubscriptionRegistry:
    """Registry table for event subscribers.

    Bindings are inserted per subscriber in one step, so all edges of a
    subscriber are contiguous and the in-edge order of an event type node
    is the registration order. Event type nodes without incoming edges are
    pruned on removal.

    Not thread-safe on its own; the owning bus serialises access.
    """

    def __init__(self) -> None:
        """Initialize empty registry.

        Post:
            _graph is empty, _subscribers is empty.
        """
        self._graph: nx.MultiDiGraph = nx.MultiDiGraph()
        self._subscribers: dict[tuple[int, ...], Any] = {}

    def __contains__(self, subscriber: Any) -> bool:
        return subscriber_key(subscriber) in self._subscribers

    def __len__(self) -> int:
        return len(self._subscribers)

    @property
    def subscribers(self) -> tuple[Any, ...]:
        """Registered subscribers, in registration order."""
        return tuple(self._subscribers.values())

    def add(self, subscriber: Any, bindings: list[ListenerBinding]) -> None:
        """Insert all bindings of a subscriber, then mark it registered.

        Args:
            subscriber: Owner of the bindings.
            bindings: Non-empty list of already validated bindings.

        Post:
            One edge per binding from the subscriber node to its event type.
            subscriber present in _subscribers.

        Raises:
            ValueError: If bindings is empty or a binding belongs to
                another subscriber.
        """
        if not bindings:
            raise ValueError("bindings can not be empty")

        key = subscriber_key(subscriber)
        if any(subscriber_key(b.subscriber) != key for b in bindings):
            raise ValueError("all bindings must belong to the given subscriber")

        node = _SubscriberNode(key)
        for binding in bindings:
            self._graph.add_edge(
                node, binding.event_type, key=binding.name, binding=binding
            )

        # Marked registered only once every binding is in place
        self._subscribers[key] = subscriber

    def remove(self, subscriber: Any) -> list[ListenerBinding]:
        """Remove a subscriber and every binding it owns.

        Args:
            subscriber: Registered subscriber.

        Returns:
            The removed bindings.

        Post:
            Subscriber node and its edges removed.
            Event type nodes left without listeners removed.

        Raises:
            KeyError: If the subscriber is not registered.
        """
        key = subscriber_key(subscriber)
        if key not in self._subscribers:
            raise KeyError(key)

        removed = self.subscriptions(subscriber)
        node = _SubscriberNode(key)
        event_types = list(self._graph.successors(node))
        self._graph.remove_node(node)
        for event_type in event_types:
            if self._graph.in_degree(event_type) == 0:
                self._graph.remove_node(event_type)

        del self._subscribers[key]
        return removed

    def listeners(self, event_type: type) -> tuple[ListenerBinding, ...]:
        """Return bindings for an exact event type, in dispatch order.

        Parent types of *event_type* are NOT consulted (no MRO expansion).
        """
        if event_type not in self._graph:
            return ()
        return tuple(
            data["binding"]
            for _, _, data in self._graph.in_edges(event_type, data=True)
        )

    def subscriptions(self, subscriber: Any) -> list[ListenerBinding]:
        """Return all bindings owned by a subscriber, in registration order."""
        node = _SubscriberNode(subscriber_key(subscriber))
        if node not in self._graph:
            return []
        return [
            data["binding"] for _, _, data in self._graph.out_edges(node, data=True)
        ]

    def event_types(self) -> list[type]:
        """Event types that currently have at least one listener."""
        return [
            node
            for node in self._graph.nodes
            if not isinstance(node, _SubscriberNode)
        ]
