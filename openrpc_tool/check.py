"""Check JSON-RPC exchanges against the methods of an OpenRPC document."""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from .document import ContentDescriptor, Method, OpenRPC, Schema
from .errors import CheckError
from .jsonrpc import Request, Response


class Annotation(enum.Enum):
    INCORRECT_PARAM_STRUCTURE = "incorrect-param-structure"
    MISSING_REQUIRED_PARAM = "missing-required-param"
    DEPRECATED_PARAM = "deprecated-param"
    INVALID_PARAM = "invalid-param"
    INVALID_RESULT = "invalid-result"
    EXCESS_PARAM = "excess-param"
    BAD_NOTIFICATION = "bad-notification"
    DEPRECATED_METHOD = "deprecated-method"


@dataclass
class ParamCheck:
    required: bool
    deprecated: bool
    validator: Draft7Validator


@dataclass
class MethodCheck:
    params: Dict[str, ParamCheck] = field(default_factory=dict)
    param_structure: str = "either"
    deprecated: bool = False
    result: Optional[Draft7Validator] = None

    def check(self, request: Request, response: Optional[Response]) -> List[Annotation]:
        """Annotate everything about the exchange that disagrees with the method."""
        annotations: List[Annotation] = []
        provided = request.params
        if (self.param_structure == "by-name" and isinstance(provided, list)) or (
            self.param_structure == "by-position" and isinstance(provided, dict)
        ):
            annotations.append(Annotation.INCORRECT_PARAM_STRUCTURE)

        by_position = deque(provided) if isinstance(provided, list) else None
        by_name = dict(provided) if isinstance(provided, dict) else {}
        _missing = object()

        for name, param in self.params.items():
            if by_position is not None:
                value = by_position.popleft() if by_position else _missing
            else:
                value = by_name.pop(name, _missing)
            if value is _missing:
                if param.required:
                    annotations.append(Annotation.MISSING_REQUIRED_PARAM)
                continue
            if param.deprecated:
                annotations.append(Annotation.DEPRECATED_PARAM)
            if not param.validator.is_valid(value):
                annotations.append(Annotation.INVALID_PARAM)

        if by_position or by_name:
            annotations.append(Annotation.EXCESS_PARAM)

        if request.is_notification and self.result is None and response is None:
            pass
        elif not request.is_notification and self.result is not None and response is not None:
            if request.id != response.id:
                annotations.append(Annotation.BAD_NOTIFICATION)
            if response.ok and not self.result.is_valid(response.result):
                annotations.append(Annotation.INVALID_RESULT)
        else:
            annotations.append(Annotation.BAD_NOTIFICATION)

        if self.deprecated:
            annotations.append(Annotation.DEPRECATED_METHOD)
        return annotations


class MethodChecker:
    """Compiled checks for every method of a resolved document."""

    def __init__(self, methods: Dict[str, MethodCheck]) -> None:
        self._methods = methods

    @classmethod
    def from_document(cls, document: OpenRPC) -> "MethodChecker":
        methods: Dict[str, MethodCheck] = {}
        components = document.components.to_dict() if document.components is not None else None
        for method in document.methods:
            if not isinstance(method, Method):
                raise CheckError("the document must be resolved before building checks")
            if method.name in methods:
                raise CheckError(f"duplicate method {method.name}")
            methods[method.name] = _method_check(method, components)
        return cls(methods)

    def get(self, method: str) -> Optional[MethodCheck]:
        return self._methods.get(method)

    def __contains__(self, method: str) -> bool:
        return method in self._methods

    def __len__(self) -> int:
        return len(self._methods)


def _method_check(method: Method, components: Optional[Dict[str, Any]]) -> MethodCheck:
    structure = method.param_structure or "either"
    params: Dict[str, ParamCheck] = {}
    seen_optional = False

    for ix, param in enumerate(method.params):
        if not isinstance(param, ContentDescriptor):
            raise CheckError(f"parameter at index {ix} in method {method.name} is an unresolved reference")
        if param.is_required and seen_optional and structure in ("by-position", "either"):
            raise CheckError(f"parameter at index {ix} in method {method.name} is out-of-order")
        if not param.is_required:
            seen_optional = True
        if param.name in params and structure in ("by-name", "either"):
            raise CheckError(f"parameter `{param.name}` in method {method.name} is duplicated")
        params[param.name] = ParamCheck(
            required=param.is_required,
            deprecated=bool(param.deprecated),
            validator=compile_schema(param.json_schema, components),
        )

    result = None
    if isinstance(method.result, ContentDescriptor):
        result = compile_schema(method.result.json_schema, components)

    return MethodCheck(
        params=params,
        param_structure=structure,
        deprecated=bool(method.deprecated),
        result=result,
    )


def compile_schema(schema: Schema, components: Optional[Dict[str, Any]]) -> Draft7Validator:
    """Build a validator whose root also carries the serialized ``components``.

    Bundling the components into the root lets ``#/components/schemas/...``
    references resolve locally.
    """
    bundle: Any = schema
    if isinstance(schema, dict) and components is not None:
        bundle = dict(schema)
        bundle["components"] = components
    try:
        Draft7Validator.check_schema(bundle)
    except SchemaError as exc:
        raise CheckError(f"invalid schema: {exc.message}") from exc
    return Draft7Validator(bundle)
