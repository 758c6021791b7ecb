"""
Panel lifecycle events

Public API:
    EventContext      - mutable parameter bag shared by the listeners of one trigger
    EventRegistry     - named events, priority-ordered listeners, synchronous dispatch
    ListenerAggregate - abstract bundle of listeners attached as one unit
    STOP_PROPAGATION  - sentinel a listener may return to halt dispatch
"""

from .aggregate import ListenerAggregate
from .context import EventContext
from .registry import DEFAULT_PRIORITY, STOP_PROPAGATION, EventRegistry, Listener, Subscription

__all__ = [
    "DEFAULT_PRIORITY",
    "STOP_PROPAGATION",
    "EventContext",
    "EventRegistry",
    "Listener",
    "ListenerAggregate",
    "Subscription",
]
