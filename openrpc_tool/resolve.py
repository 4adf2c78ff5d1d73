"""Resolve ``$ref`` entries inside OpenRPC methods."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, TypeVar, Union

from .document import Components, Method, OpenRPC, Reference
from .errors import ResolveError

T = TypeVar("T")


def resolve_document(document: OpenRPC) -> OpenRPC:
    """Return a copy of ``document`` whose methods contain no references."""
    return document.model_copy(update={"methods": resolve_methods(document.components, document.methods)})


def resolve_methods(
    components: Optional[Components], methods: List[Union[Reference, Method]]
) -> List[Method]:
    # OpenRPC has no `methods` component section, so method references never resolve.
    return [_method(components, _resolve(components, item, "methods", lambda _: None)) for item in methods]


def _method(components: Optional[Components], method: Method) -> Method:
    def each(
        items: Optional[List[Union[Reference, T]]],
        section: str,
        getter: Callable[[Components], Optional[Dict[str, T]]],
    ) -> Optional[List[T]]:
        if items is None:
            return None
        return [_resolve(components, item, section, getter) for item in items]

    def descriptors(it: Components):
        return it.content_descriptors

    result = None
    if method.result is not None:
        result = _resolve(components, method.result, "contentDescriptors", descriptors)

    return method.model_copy(
        update={
            "tags": each(method.tags, "tags", lambda it: it.tags),
            "params": each(method.params, "contentDescriptors", descriptors) or [],
            "result": result,
            "errors": each(method.errors, "errors", lambda it: it.errors),
            "examples": each(method.examples, "examplePairingObjects", lambda it: it.example_pairing_objects),
        }
    )


def _resolve(
    components: Optional[Components],
    item: Union[Reference, T],
    section: str,
    getter: Callable[[Components], Optional[Dict[str, T]]],
) -> T:
    if not isinstance(item, Reference):
        return item
    prefix = f"#/components/{section}/"
    if not item.ref.startswith(prefix) or components is None:
        raise ResolveError(item.ref)
    lookup = getter(components)
    key = item.ref[len(prefix):]
    if lookup is None or key not in lookup:
        raise ResolveError(item.ref)
    return lookup[key]
