"""
Event Registry

EventRegistry: request/process scoped store of named events and their ordered
listeners. Page scripts trigger lifecycle events through it; built-in
aggregates and plugins attach to it during bootstrap.

Dispatch is synchronous and fail-fast: listeners run in priority order
(highest first, ties in registration order) inside the caller's stack, and
any exception a listener raises reaches the triggering code unmodified.
"""

from __future__ import annotations

import inspect
import itertools
import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol

from hostpanel.events.context import EventContext
from hostpanel.exceptions import InvalidListenerError

if TYPE_CHECKING:
    from hostpanel.events.aggregate import ListenerAggregate

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 1

Priority = int | float


class Listener(Protocol):
    """Callable invoked as ``listener(context, params)`` for each trigger."""

    def __call__(self, context: EventContext, params: Mapping[str, Any]) -> Any: ...


class _StopPropagation:
    def __repr__(self) -> str:
        return "STOP_PROPAGATION"


# Returned by a listener to halt the remaining dispatch of the current trigger
STOP_PROPAGATION = _StopPropagation()


@dataclass(frozen=True, eq=False)
class Subscription:
    """Opaque handle returned by attach(); pass it back to detach()."""

    event_name: str
    listener: Listener
    priority: Priority
    sequence: int


def _dispatch_order(subscription: Subscription) -> tuple[Priority, int]:
    return (-subscription.priority, subscription.sequence)


def _describe(listener: Any) -> str:
    return getattr(listener, "__qualname__", None) or repr(listener)


def validate_listener(event_name: Any, listener: Any, priority: Any = DEFAULT_PRIORITY) -> None:
    """
    Check that *listener* can be attached to *event_name*.

    Raises:
        InvalidListenerError: for an empty event name, a priority that is not
            a number (bools and NaN included), a non-callable listener, or one
            whose signature cannot accept ``(context, params)``.
    """
    if not isinstance(event_name, str) or not event_name:
        raise InvalidListenerError(f"Event name must be a non-empty string, got {event_name!r}")
    if not isinstance(priority, (int, float)) or isinstance(priority, bool) or math.isnan(priority):
        raise InvalidListenerError(f"Listener priority must be a number, got {priority!r}", event_name=event_name)
    if not callable(listener):
        raise InvalidListenerError(f"Listener {listener!r} is not callable", event_name=event_name)

    try:
        signature = inspect.signature(listener)
    except (TypeError, ValueError):
        # Some builtins expose no signature; accept them as-is
        return
    try:
        signature.bind(None, None)
    except TypeError as exc:
        raise InvalidListenerError(
            f"Listener {_describe(listener)} cannot be called as (context, params): {exc}",
            event_name=event_name,
        ) from exc


class EventRegistry:
    """
    Named events with priority-ordered listener lists.

    Listener lists are mutated by attach/detach (normally during bootstrap)
    and only read by trigger().
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[Subscription]] = {}
        self._aggregates: dict[int, tuple[ListenerAggregate, list[Subscription]]] = {}
        self._sequence = itertools.count()

    # ── Attach / detach ───────────────────────────────────────────────────────

    def attach(self, event_name: str, listener: Listener, priority: Priority = DEFAULT_PRIORITY) -> Subscription:
        """Register *listener* for *event_name* and return its subscription handle."""
        validate_listener(event_name, listener, priority)
        return self._add(event_name, listener, priority)

    def _add(self, event_name: str, listener: Listener, priority: Priority) -> Subscription:
        subscription = Subscription(event_name, listener, priority, next(self._sequence))
        bucket = self._subscriptions.setdefault(event_name, [])
        bucket.append(subscription)
        bucket.sort(key=_dispatch_order)
        logger.debug(
            "Listener attached: %s -> %s (priority %s)",
            event_name,
            _describe(listener),
            priority,
            extra={"event_name": event_name},
        )
        return subscription

    def detach(self, subscription: Subscription) -> bool:
        """Remove a previously attached listener. Returns False if it is not attached."""
        bucket = self._subscriptions.get(subscription.event_name)
        if not bucket or subscription not in bucket:
            return False
        bucket.remove(subscription)
        if not bucket:
            del self._subscriptions[subscription.event_name]
        self._forget(subscription)
        logger.debug(
            "Listener detached: %s -> %s",
            subscription.event_name,
            _describe(subscription.listener),
            extra={"event_name": subscription.event_name},
        )
        return True

    def _forget(self, subscription: Subscription) -> None:
        """Remove *subscription* from its owning aggregate; an aggregate with no handles left is detached."""
        for key, (_, handles) in list(self._aggregates.items()):
            if subscription in handles:
                handles.remove(subscription)
                if not handles:
                    del self._aggregates[key]
                return

    def attach_aggregate(self, aggregate: ListenerAggregate) -> list[Subscription]:
        """
        Attach every (event name, listener, priority) triple of *aggregate*.

        All triples are validated before any is attached, so an invalid
        triple leaves the registry untouched. Attaching an aggregate that is
        still attached returns its live handles and adds nothing.
        """
        if id(aggregate) in self._aggregates:
            return list(self._aggregates[id(aggregate)][1])

        triples = list(aggregate.get_listener_triples())
        for event_name, listener, priority in triples:
            validate_listener(event_name, listener, priority)

        subscriptions = [self._add(name, listener, priority) for name, listener, priority in triples]
        self._aggregates[id(aggregate)] = (aggregate, subscriptions)
        return list(subscriptions)

    def detach_aggregate(self, aggregate: ListenerAggregate) -> bool:
        """Detach exactly the listeners attach_aggregate() created for *aggregate*."""
        entry = self._aggregates.pop(id(aggregate), None)
        if entry is None:
            return False
        for subscription in entry[1]:
            self.detach(subscription)
        return True

    def is_aggregate_attached(self, aggregate: ListenerAggregate) -> bool:
        return id(aggregate) in self._aggregates

    # ── Inspection ────────────────────────────────────────────────────────────

    def listeners(self, event_name: str) -> list[Listener]:
        """Return the listeners of *event_name* in dispatch order."""
        return [s.listener for s in self._subscriptions.get(event_name, [])]

    def subscriptions(self, event_name: str) -> list[Subscription]:
        return list(self._subscriptions.get(event_name, []))

    def has_listeners(self, event_name: str) -> bool:
        return bool(self._subscriptions.get(event_name))

    def event_names(self) -> list[str]:
        return list(self._subscriptions)

    def clear_listeners(self, event_name: str | None = None) -> None:
        """Drop the listeners of one event, or of every event when *event_name* is None."""
        if event_name is None:
            self._subscriptions.clear()
            self._aggregates.clear()
            return
        for subscription in self._subscriptions.pop(event_name, []):
            self._forget(subscription)

    # ── Dispatch ──────────────────────────────────────────────────────────────

    def trigger(
        self,
        event_name: str,
        context: EventContext | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> EventContext:
        """
        Invoke every listener of *event_name* with ``(context, params)``.

        Args:
            event_name: Event to dispatch; unknown names are a no-op.
            context:    Shared context, created when None.
            params:     Extra read-only parameters for this trigger.

        Returns:
            The (possibly mutated) context. When a listener stopped
            propagation, ``context.propagation_stopped()`` stays True.
        """
        if context is None:
            context = EventContext(event_name)

        # Snapshot: attach/detach from inside a listener affects later triggers only
        subscriptions = tuple(self._subscriptions.get(event_name, ()))
        if not subscriptions:
            return context

        context.name = event_name
        context.stop_propagation(False)
        frozen_params = MappingProxyType(dict(params or {}))

        logger.debug(
            "Triggering %s (%d listeners)", event_name, len(subscriptions), extra={"event_name": event_name}
        )
        for subscription in subscriptions:
            result = subscription.listener(context, frozen_params)
            if result is STOP_PROPAGATION:
                context.stop_propagation(True)
            if context.propagation_stopped():
                logger.debug(
                    "Propagation of %s stopped by %s",
                    event_name,
                    _describe(subscription.listener),
                    extra={"event_name": event_name},
                )
                break

        return context
