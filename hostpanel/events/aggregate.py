"""
Listener Aggregates

A ListenerAggregate bundles the listeners of one feature so they are attached
to (and detached from) an EventRegistry as a single unit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hostpanel.events.registry import EventRegistry, Listener, Priority, Subscription

ListenerTriple = tuple[str, "Listener", "Priority"]


class ListenerAggregate(ABC):
    """
    Abstract base class for listener bundles.

    Subclasses declare their hooks in get_listener_triples(); the method must
    be pure data with no side effects, since the registry may call it to
    validate before attaching.
    """

    @abstractmethod
    def get_listener_triples(self) -> Sequence[ListenerTriple]:
        """Return the (event name, listener, priority) triples of this aggregate."""
        ...

    def attach(self, registry: EventRegistry) -> list[Subscription]:
        return registry.attach_aggregate(self)

    def detach(self, registry: EventRegistry) -> bool:
        return registry.detach_aggregate(self)
