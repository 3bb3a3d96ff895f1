"""Template rendering with Jinja2 and code-generation case filters."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Protocol

from jinja2 import (
    DictLoader,
    Environment,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
    Undefined,
)

from .exceptions import RenderError

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    """Anything that turns template text plus variables into rendered text."""

    def render(self, template_text: str, variables: Mapping[str, Any]) -> str:
        ...


_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z0-9])|[A-Z]?[a-z0-9]+|[A-Z]+")

_IRREGULAR_PLURALS = {
    "child": "children",
    "person": "people",
    "man": "men",
    "woman": "women",
    "mouse": "mice",
    "goose": "geese",
    "foot": "feet",
    "tooth": "teeth",
    "ox": "oxen",
    "datum": "data",
    "index": "indices",
    "matrix": "matrices",
    "vertex": "vertices",
    "criterion": "criteria",
}
_UNCOUNTABLE = frozenset(
    {"equipment", "information", "rice", "money", "species", "series", "fish", "sheep", "news", "data"}
)
_F_TO_VES = frozenset(
    {"leaf", "loaf", "thief", "half", "wolf", "shelf", "calf", "knife", "life", "wife"}
)


def split_words(value: str) -> list[str]:
    """Split an identifier on separators and case boundaries."""
    return _WORD_RE.findall(str(value))


def snake_case(value: str) -> str:
    return "_".join(w.lower() for w in split_words(value))


def kebab_case(value: str) -> str:
    return "-".join(w.lower() for w in split_words(value))


def pascal_case(value: str) -> str:
    return "".join(w[:1].upper() + w[1:].lower() for w in split_words(value))


def lower_camel_case(value: str) -> str:
    pascal = pascal_case(value)
    return pascal[:1].lower() + pascal[1:]


def _plural_word(word: str) -> str:
    lower = word.lower()
    if lower in _UNCOUNTABLE:
        return word
    if lower in _IRREGULAR_PLURALS:
        plural = _IRREGULAR_PLURALS[lower]
        return plural.capitalize() if word[:1].isupper() else plural
    if lower in _F_TO_VES:
        return word[:-2] + "ves" if lower.endswith("fe") else word[:-1] + "ves"
    if re.search(r"(s|x|z|ch|sh)$", lower):
        return word + "es"
    if re.search(r"[^aeiou]y$", lower):
        return word[:-1] + "ies"
    return word + "s"


def plural(value: str) -> str:
    """Pluralize the last word of ``value``, keeping any prefix as is.

    >>> plural("email_stat")
    'email_stats'
    """
    value = str(value)
    match = re.search(r"([A-Za-z]+)$", value)
    if not match:
        return value
    return value[: match.start()] + _plural_word(match.group(1))


FILTERS = {
    "snake_case": snake_case,
    "camel_case": lower_camel_case,
    "lower_camel_case": lower_camel_case,
    "pascal_case": pascal_case,
    "kebab_case": kebab_case,
    "plural": plural,
}


def register_all(env: Environment) -> None:
    """Register every case filter on a Jinja2 environment."""
    env.filters.update(FILTERS)


class JinjaRenderer:
    """Jinja2-backed renderer with named templates and case filters."""

    def __init__(self, strict: bool = True) -> None:
        """Initialize the renderer.

        Args:
            strict: Fail on undefined variables instead of rendering them empty
        """
        self._templates: dict[str, str] = {}
        self.env = Environment(
            loader=DictLoader(self._templates),
            undefined=StrictUndefined if strict else Undefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        register_all(self.env)

    def add_template(self, name: str, template_text: str) -> None:
        """Register ``template_text`` under ``name``."""
        try:
            self.env.parse(template_text)
        except TemplateError as e:
            msg = f"Template {name!r} does not compile: {e}"
            raise RenderError(msg, details={"template": name}) from e
        self._templates[name] = template_text

    def render(self, template_text: str, variables: Mapping[str, Any]) -> str:
        """Render inline template text."""
        logger.debug("Rendering template with variables: %s", dict(variables))
        try:
            return self.env.from_string(template_text).render(**variables)
        except TemplateError as e:
            msg = f"Failed to render template: {e}"
            raise RenderError(msg, details=_error_details(e)) from e
        except Exception as e:
            # Runtime failures inside expressions, e.g. division by zero.
            msg = f"Failed to render template: {type(e).__name__}: {e}"
            raise RenderError(msg, details=_error_details(e)) from e

    def render_named(self, name: str, variables: Mapping[str, Any]) -> str:
        """Render a template previously added with ``add_template``."""
        try:
            template = self.env.get_template(name)
        except TemplateNotFound as e:
            msg = f"Template not found: {name}"
            raise RenderError(msg, details={"template": name}) from e
        try:
            return template.render(**variables)
        except TemplateError as e:
            msg = f"Failed to render template {name!r}: {e}"
            raise RenderError(msg, details={"template": name, **_error_details(e)}) from e
        except Exception as e:
            msg = f"Failed to render template {name!r}: {type(e).__name__}: {e}"
            raise RenderError(msg, details={"template": name, **_error_details(e)}) from e


def _error_details(error: Exception) -> dict[str, Any]:
    lineno = getattr(error, "lineno", None)
    return {"line": lineno} if lineno else {}
