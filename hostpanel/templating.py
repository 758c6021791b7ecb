"""
Page template handed to listeners as "templateEngine".

A page script assigns variables, triggers its *ScriptEnd event so listeners
(plugins included) can add or override variables, then renders.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fastapi import Request
from fastapi.templating import Jinja2Templates
from starlette.responses import Response


class PageTemplate:
    def __init__(self, templates: Jinja2Templates, page: str, layout: str = "layouts/ui.html") -> None:
        self.templates = templates
        self.page = page
        self.layout = layout
        self._variables: dict[str, Any] = {}

    def assign(self, name: str | Mapping[str, Any], value: Any = None) -> None:
        """Assign one variable, or every item of a mapping."""
        if isinstance(name, Mapping):
            self._variables.update(name)
        else:
            self._variables[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self._variables.get(name, default)

    @property
    def variables(self) -> dict[str, Any]:
        return dict(self._variables)

    def render(self, request: Request, status_code: int = 200) -> Response:
        context = {"layout": self.layout, **self._variables}
        return self.templates.TemplateResponse(request, self.page, context, status_code=status_code)
