"""Garbage-collect component schemas that no method refers to."""

from __future__ import annotations

from typing import Any, Iterator, Mapping, Optional, Set

from .document import ContentDescriptor, Method, OpenRPC, Schema
from .errors import BrokenReference

SCHEMA_PREFIX = "#/components/schemas/"


def prune_schemas(document: OpenRPC) -> None:
    """Delete unreachable entries from ``components.schemas`` in place.

    ``document`` must already be resolved. Raises :class:`BrokenReference` for
    a ``$ref`` that is not a local component schema or names a missing one.
    """
    lookup = document.components.schemas if document.components else None
    alive: Set[str] = set()

    for method in document.methods:
        if not isinstance(method, Method):
            continue
        roots = list(method.params)
        if method.result is not None:
            roots.append(method.result)
        for root in roots:
            if isinstance(root, ContentDescriptor):
                _mark(alive, lookup, root.json_schema)

    if lookup is not None:
        for key in [key for key in lookup if key not in alive]:
            del lookup[key]


def _mark(alive: Set[str], lookup: Optional[Mapping[str, Schema]], schema: Any) -> None:
    if not isinstance(schema, Mapping):
        return

    for child in _subschemas(schema):
        _mark(alive, lookup, child)

    reference = schema.get("$ref")
    if reference is None:
        return
    if not isinstance(reference, str) or not reference.startswith(SCHEMA_PREFIX):
        raise BrokenReference(str(reference))
    key = reference[len(SCHEMA_PREFIX):]
    if key in alive:
        return
    alive.add(key)
    if lookup is None or key not in lookup:
        raise BrokenReference(reference)
    _mark(alive, lookup, lookup[key])


def _subschemas(schema: Mapping[str, Any]) -> Iterator[Any]:
    for keyword in ("allOf", "anyOf", "oneOf"):
        yield from schema.get(keyword) or []
    for keyword in ("not", "if", "then", "else"):
        if keyword in schema:
            yield schema[keyword]

    items = schema.get("items")
    if isinstance(items, list):
        yield from items
    elif items is not None:
        yield items
    for keyword in ("additionalItems", "contains"):
        if keyword in schema:
            yield schema[keyword]

    for keyword in ("properties", "patternProperties"):
        yield from (schema.get(keyword) or {}).values()
    for keyword in ("additionalProperties", "propertyNames"):
        if keyword in schema:
            yield schema[keyword]
