"""
Event Context

EventContext is the mutable bag handed to every listener of one trigger call.
Listeners read what earlier listeners wrote (e.g. the service locator under
"ServiceManager") and may halt the remaining dispatch.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from hostpanel.exceptions import ParamNotFoundError

_MISSING = object()


class EventContext:
    """
    Per-trigger parameter bag shared by reference between listeners.

    Attributes:
        name: Name of the event currently (or last) dispatched with this context.
    """

    def __init__(self, name: str | None = None, params: Mapping[str, Any] | None = None) -> None:
        self.name = name
        self._params: dict[str, Any] = dict(params or {})
        self._stopped = False

    def __repr__(self) -> str:
        return f"EventContext(name={self.name!r}, params={sorted(self._params)!r})"

    # ── Parameters ────────────────────────────────────────────────────────────

    def set_param(self, name: str, value: Any) -> None:
        self._params[name] = value

    def set_params(self, params: Mapping[str, Any]) -> None:
        """Merge *params* into the context, overwriting existing keys."""
        self._params.update(params)

    def get_param(self, name: str, default: Any = _MISSING) -> Any:
        """
        Return the parameter stored under *name*.

        Raises:
            ParamNotFoundError: if the parameter is missing and no default was given.
        """
        try:
            return self._params[name]
        except KeyError:
            if default is _MISSING:
                raise ParamNotFoundError(name) from None
            return default

    def has_param(self, name: str) -> bool:
        return name in self._params

    @property
    def params(self) -> dict[str, Any]:
        """Shallow copy of all parameters."""
        return dict(self._params)

    # ── Propagation ───────────────────────────────────────────────────────────

    def stop_propagation(self, flag: bool = True) -> None:
        self._stopped = flag

    def propagation_stopped(self) -> bool:
        return self._stopped

    def copy(self) -> EventContext:
        """Return a new context with the same name and params, propagation cleared."""
        return EventContext(self.name, self._params)
