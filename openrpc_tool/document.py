"""OpenRPC document model and a path-aware JSON loader."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Sequence, TypeVar, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    StrictBool,
    StrictInt,
    StrictStr,
    Tag as UnionTag,
    ValidationError,
    model_validator,
)

from .errors import DocumentError

T = TypeVar("T")

# Union branch labels that show up in validation error locations.
_REFERENCE = "$reference"
_INLINE = "$inline"


def _check_schema(value: Any) -> Any:
    if not isinstance(value, (dict, bool)):
        raise ValueError("expected a JSON schema object or boolean")
    return value


# JSON Schema is either an object or a bool.
Schema = Annotated[Any, AfterValidator(_check_schema)]


class _Model(BaseModel):
    """Base for OpenRPC objects: camelCase aliases, ``x-`` extensions only."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @model_validator(mode="after")
    def _only_extensions(self) -> "_Model":
        for key in self.model_extra or {}:
            if not key.startswith("x-"):
                raise ValueError(f"unknown field `{key}`")
        return self

    @property
    def extensions(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Reference(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    ref: StrictStr = Field(alias="$ref")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def _ref_or_inline(value: Any) -> str:
    if isinstance(value, Reference) or (isinstance(value, dict) and "$ref" in value):
        return _REFERENCE
    return _INLINE


# A `Reference` or an inline item, picked by the presence of `$ref`.
RefOr = Annotated[
    Union[Annotated[Reference, UnionTag(_REFERENCE)], Annotated[T, UnionTag(_INLINE)]],
    Discriminator(_ref_or_inline),
]


class Info(_Model):
    title: StrictStr
    version: StrictStr
    description: Optional[StrictStr] = None
    terms_of_service: Optional[StrictStr] = Field(default=None, alias="termsOfService")
    contact: Optional[Dict[str, Any]] = None
    license: Optional[Dict[str, Any]] = None


class Tag(_Model):
    name: StrictStr
    summary: Optional[StrictStr] = None
    description: Optional[StrictStr] = None
    external_docs: Optional[Dict[str, Any]] = Field(default=None, alias="externalDocs")


class ErrorObject(_Model):
    code: StrictInt
    message: StrictStr
    data: Any = None


class ContentDescriptor(_Model):
    name: StrictStr
    json_schema: Schema = Field(alias="schema")
    summary: Optional[StrictStr] = None
    description: Optional[StrictStr] = None
    required: Optional[StrictBool] = None
    deprecated: Optional[StrictBool] = None

    @property
    def is_required(self) -> bool:
        return bool(self.required)


class Method(_Model):
    """An OpenRPC method object.

    After resolution (see :mod:`openrpc_tool.resolve`) ``params``, ``result``,
    ``tags``, ``errors`` and ``examples`` hold no :class:`Reference` entries.
    """

    name: StrictStr
    params: List[RefOr[ContentDescriptor]]
    result: Optional[RefOr[ContentDescriptor]] = None
    tags: Optional[List[RefOr[Tag]]] = None
    summary: Optional[StrictStr] = None
    description: Optional[StrictStr] = None
    external_docs: Optional[Dict[str, Any]] = Field(default=None, alias="externalDocs")
    deprecated: Optional[StrictBool] = None
    servers: Optional[List[Dict[str, Any]]] = None
    errors: Optional[List[RefOr[ErrorObject]]] = None
    param_structure: Optional[Literal["by-name", "by-position", "either"]] = Field(
        default=None, alias="paramStructure"
    )
    examples: Optional[List[RefOr[Dict[str, Any]]]] = None


class Components(_Model):
    schemas: Optional[Dict[str, Schema]] = None
    content_descriptors: Optional[Dict[str, ContentDescriptor]] = Field(default=None, alias="contentDescriptors")
    examples: Optional[Dict[str, Dict[str, Any]]] = None
    links: Optional[Dict[str, Dict[str, Any]]] = None
    errors: Optional[Dict[str, ErrorObject]] = None
    example_pairing_objects: Optional[Dict[str, Dict[str, Any]]] = Field(
        default=None, alias="examplePairingObjects"
    )
    tags: Optional[Dict[str, Tag]] = None


class OpenRPC(_Model):
    openrpc: StrictStr
    info: Info
    methods: List[RefOr[Method]]
    servers: Optional[List[Dict[str, Any]]] = None
    components: Optional[Components] = None
    external_docs: Optional[Dict[str, Any]] = Field(default=None, alias="externalDocs")


def load_document(path: Path) -> OpenRPC:
    """Read and parse an OpenRPC document from ``path``."""
    try:
        with Path(path).open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except json.JSONDecodeError as exc:
        raise DocumentError("", f"invalid JSON at line {exc.lineno} column {exc.colno}: {exc.msg}") from exc
    except RecursionError as exc:
        raise DocumentError("", "invalid JSON: nested too deeply") from exc
    except OSError as exc:
        raise DocumentError("", f"couldn't open {path}: {exc.strerror}") from exc
    return parse_document(payload)


def parse_document(payload: Any) -> OpenRPC:
    """Convert decoded JSON into an :class:`OpenRPC` document.

    Errors carry the JSON path of the offending value, e.g.
    ``methods[2].params[0].name: Input should be a valid string``.
    """
    try:
        return OpenRPC.model_validate(payload)
    except ValidationError as exc:
        raise _document_error(exc.errors()[0]) from exc


def _document_error(error: Dict[str, Any]) -> DocumentError:
    loc = error["loc"]
    if error["type"] == "missing":
        return DocumentError(format_location(loc[:-1]), f"missing field `{loc[-1]}`")
    message = error["msg"]
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return DocumentError(format_location(loc), message)


def format_location(loc: Sequence[Union[int, str]]) -> str:
    """Render a pydantic error location as ``methods[2].params[0].name``."""
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        elif part in (_REFERENCE, _INLINE):
            continue
        else:
            path = f"{path}.{part}" if path else str(part)
    return path
