"""Structural checks for a resolved OpenRPC document.

Not validated:

- that example pairings match schemas
- that ``Example.value`` and ``Example.externalValue`` are mutually exclusive
- ``$ref`` inside schemas
- links and runtime expressions
- that component keys are identifiers
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .document import ContentDescriptor, Method, OpenRPC


@dataclass
class Finding:
    title: str
    method: Optional[str]
    names: Sequence[str]
    message: str


def validate(document: OpenRPC) -> List[Finding]:
    """Check a resolved document and return every problem found."""
    methods = [method for method in document.methods if isinstance(method, Method)]
    findings: List[Finding] = []

    findings.extend(_duplicate_methods(methods))
    for method in methods:
        findings.extend(_duplicate_params(method))
        out_of_order = _required_after_optional(method)
        if out_of_order:
            findings.append(out_of_order)

    return findings


def duplicates(names: Iterable[str]) -> List[str]:
    """Names seen more than once, each reported at its second appearance."""
    seen = set()
    reported = set()
    dups: List[str] = []
    for name in names:
        if name in seen and name not in reported:
            reported.add(name)
            dups.append(name)
        seen.add(name)
    return dups


def _duplicate_methods(methods: Sequence[Method]) -> List[Finding]:
    dups = duplicates(method.name for method in methods)
    if not dups:
        return []
    return [
        Finding(
            title="duplicate method",
            method=None,
            names=dups,
            message=f"the following method names are duplicated: {', '.join(dups)}",
        )
    ]


def _duplicate_params(method: Method) -> List[Finding]:
    dups = duplicates(param.name for param in _params(method))
    if not dups:
        return []
    return [
        Finding(
            title="duplicate parameter",
            method=method.name,
            names=dups,
            message=f"the following parameter names on method {method.name} are duplicated: {', '.join(dups)}",
        )
    ]


def _required_after_optional(method: Method) -> Optional[Finding]:
    params = _params(method)
    first_optional = next((ix for ix, param in enumerate(params) if not param.is_required), None)
    if first_optional is None:
        return None
    after = [param.name for param in params[first_optional:] if param.is_required]
    if not after:
        return None
    optional = params[first_optional].name
    return Finding(
        title="parameter order",
        method=method.name,
        names=after,
        message=(
            f"the following required parameters on method {method.name} "
            f"follow the optional parameter {optional}: {', '.join(after)}"
        ),
    )


def _params(method: Method) -> List[ContentDescriptor]:
    return [param for param in method.params if isinstance(param, ContentDescriptor)]
