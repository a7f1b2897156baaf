"""Property path resolution over resource documents.

A path is a dot separated list of segments:

- ``name`` selects a key of the current object
- ``name[]`` selects a list and continues with each of its items
- ``name[key.path=value]`` / ``name[key.path!=value]`` keeps only list items
  whose ``key.path`` matches (or does not match) ``value``

Key lookups fall back to a case-insensitive match. String comparisons are
case-insensitive throughout.
"""

import re
from typing import Any

from .base import Comparison

_SEGMENT = re.compile(r"^(?P<name>[^\[\]]+)(?:\[(?P<filter>[^\]]*)\])?$")
_FILTER = re.compile(r"^(?P<path>[^!=]+)(?P<op>!=|=)(?P<value>.*)$")
_MISSING = object()


def split_path(path: str) -> list[str]:
    """Split a property path on dots that are not inside a filter."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    for char in path:
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        if char == "." and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def resolve(document: Any, path: str) -> list[Any]:
    """Resolve a property path against a JSON document.

    Args:
        document: Parsed JSON object
        path: Property path

    Returns:
        All values the path reaches; empty if it reaches nothing

    Raises:
        ValueError: If the path is malformed
    """
    values = [document]
    for segment in split_path(path):
        match = _SEGMENT.match(segment)
        if not match:
            raise ValueError(f"Invalid property path segment '{segment}' in '{path}'")
        name = match.group("name")
        item_filter = match.group("filter")

        selected = []
        for value in values:
            child = _lookup(value, name)
            if child is _MISSING:
                continue
            if item_filter is None:
                selected.append(child)
            elif isinstance(child, list):
                selected.extend(item for item in child if _keep(item, item_filter))
        values = selected
    return values


def compare(values: list[Any], comparison: Comparison, expected: Any = None) -> bool:
    """Compare resolved values against an expected value."""
    if comparison == Comparison.EQUALS:
        return any(_same(value, expected) for value in values)
    if comparison == Comparison.NOT_EQUALS:
        return bool(values) and not any(_same(value, expected) for value in values)
    if comparison == Comparison.INCLUDES:
        wanted = expected if isinstance(expected, (list, tuple, set)) else [expected]
        held = {_fold(item) for item in _flatten(values)}
        return all(_fold(item) in held for item in wanted)
    if comparison == Comparison.CONTAINS:
        needle = _fold(expected)
        return any(value is not None and needle in _fold(value) for value in values)
    if comparison == Comparison.PRESENT:
        return any(value not in (None, "", [], {}) for value in values)
    raise ValueError(f"Unknown comparison: {comparison}")


def _lookup(value: Any, name: str) -> Any:
    if not isinstance(value, dict):
        return _MISSING
    if name in value:
        return value[name]
    lowered = name.lower()
    for key, child in value.items():
        if isinstance(key, str) and key.lower() == lowered:
            return child
    return _MISSING


def _keep(item: Any, item_filter: str) -> bool:
    if not item_filter:
        return True
    match = _FILTER.match(item_filter)
    if not match:
        raise ValueError(f"Invalid list filter '[{item_filter}]'")
    found = any(_same(value, match.group("value")) for value in resolve(item, match.group("path")))
    return found if match.group("op") == "=" else not found


def _flatten(values: list[Any]) -> list[Any]:
    flat = []
    for value in values:
        if isinstance(value, list):
            flat.extend(value)
        else:
            flat.append(value)
    return flat


def _fold(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value).casefold()


def _same(value: Any, expected: Any) -> bool:
    if isinstance(value, str) or isinstance(expected, str):
        return value is not None and _fold(value) == _fold(expected)
    return value == expected
