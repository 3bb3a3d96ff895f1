"""Frontmatter decoder: YAML text to a validated ``Metadata``."""

from __future__ import annotations

from typing import Any

import jsonschema
import yaml
from pydantic import ValidationError

from .engine import compile_pattern
from .exceptions import InvalidPatternError, SchemaError
from .models import FLAG_PLACEMENTS, PLACEMENT_KEYS, InjectionDirective, Metadata

_PATTERN = {"type": "string"}

INJECTION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["into", "content"],
    "additionalProperties": False,
    "properties": {
        "into": {"type": "string", "minLength": 1},
        "content": {"type": ["string", "null"]},
        "prepend": {"type": "boolean"},
        "append": {"type": "boolean"},
        "before": _PATTERN,
        "before_last": _PATTERN,
        "before_all": _PATTERN,
        "after": _PATTERN,
        "after_last": _PATTERN,
        "after_all": _PATTERN,
        "remove_lines": _PATTERN,
        "replace": _PATTERN,
        "replace_all": _PATTERN,
        "skip_if": _PATTERN,
        "inline": {"type": "boolean"},
    },
}

FRONTMATTER_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "SpliceKit Frontmatter",
    "type": "object",
    "required": ["to"],
    "additionalProperties": False,
    "properties": {
        "to": {"type": "string", "minLength": 1},
        "skip_exists": {"type": "boolean"},
        "skip_glob": {"type": "string"},
        "message": {"type": ["string", "null"]},
        "injections": {
            "type": ["array", "null"],
            "items": INJECTION_SCHEMA,
        },
    },
}


def _placement_from(raw: dict[str, Any], index: int) -> dict[str, Any]:
    """Pick the single placement variant declared on a raw directive."""
    chosen = [
        key
        for key in PLACEMENT_KEYS
        if (raw.get(key) is True if key in FLAG_PLACEMENTS else key in raw)
    ]
    if not chosen:
        msg = f"Injection {index} declares no placement"
        raise SchemaError(
            msg,
            details={"directive": index, "allowed": sorted(PLACEMENT_KEYS)},
        )
    if len(chosen) > 1:
        msg = f"Injection {index} declares more than one placement: {', '.join(chosen)}"
        raise SchemaError(msg, details={"directive": index, "placements": chosen})

    key = chosen[0]
    if key in FLAG_PLACEMENTS:
        return {"kind": key}
    return {"kind": key, "pattern": raw[key]}


def _directive_from(raw: dict[str, Any], index: int) -> InjectionDirective:
    data = {
        "into": raw["into"],
        "content": raw.get("content") or "",
        "placement": _placement_from(raw, index),
        "inline": raw.get("inline", False),
        "skip_if": raw.get("skip_if"),
    }
    try:
        directive = InjectionDirective.model_validate(data)
    except ValidationError as e:
        msg = f"Injection {index} is invalid: {e}"
        raise SchemaError(msg, details={"directive": index}) from e

    try:
        for pattern in directive.patterns():
            compile_pattern(pattern)
    except InvalidPatternError as e:
        e.with_context(directive=index)
        raise
    return directive


def load_yaml_block(text: str) -> dict[str, Any]:
    """Parse a frontmatter block into a mapping."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        msg = f"Failed to parse frontmatter YAML: {e}"
        raise SchemaError(msg) from e

    if not isinstance(data, dict):
        msg = "Frontmatter must be a mapping"
        raise SchemaError(msg, details={"found": type(data).__name__})
    return data


def validate_frontmatter(data: dict[str, Any]) -> None:
    """Validate raw frontmatter data against ``FRONTMATTER_SCHEMA``."""
    try:
        jsonschema.validate(data, FRONTMATTER_SCHEMA)
    except jsonschema.ValidationError as e:
        msg = f"Schema validation failed: {e.message}"
        raise SchemaError(
            msg,
            details={"path": list(e.absolute_path)},
        ) from e


def decode(text: str) -> Metadata:
    """Decode a frontmatter block into ``Metadata``.

    Args:
        text: YAML text between two delimiter lines

    Returns:
        Validated metadata with typed injection directives

    Raises:
        SchemaError: If the block is not valid YAML or violates the schema
        InvalidPatternError: If any anchor or guard pattern does not compile
    """
    data = load_yaml_block(text)
    validate_frontmatter(data)

    raw_injections = data.get("injections") or []
    injections = [_directive_from(raw, i) for i, raw in enumerate(raw_injections)]

    try:
        return Metadata.model_validate({**data, "injections": injections})
    except ValidationError as e:
        msg = f"Frontmatter validation failed: {e}"
        raise SchemaError(msg) from e
