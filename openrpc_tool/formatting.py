"""Console-friendly formatting utilities."""

from __future__ import annotations

from typing import Sequence

from rich import box
from rich.table import Table

from .document import Method, OpenRPC
from .validate import Finding


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = [len(h) for h in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))
    lines = []
    lines.append(_format_row(headers, widths))
    lines.append(_format_row(["-" * w for w in widths], widths))
    for row in rows:
        lines.append(_format_row(row, widths))
    return "\n".join(lines)


def format_findings(findings: Sequence[Finding]) -> str:
    rows = [[finding.title, finding.method or "-", ", ".join(finding.names)] for finding in findings]
    return render_table(["problem", "method", "names"], rows) if rows else "no problems found"


def format_summary(document: OpenRPC) -> str:
    methods = [method for method in document.methods if isinstance(method, Method)]
    schemas = document.components.schemas if document.components else None
    return "\n".join(
        [
            f"document: {document.info.title} {document.info.version} (OpenRPC {document.openrpc})",
            f"methods: {len(methods)} | component schemas: {len(schemas or {})}",
        ]
    )


def findings_table(findings: Sequence[Finding]) -> Table:
    table = Table(title="Problems", box=box.SIMPLE_HEAD)
    table.add_column("Problem", style="bold red")
    table.add_column("Method")
    table.add_column("Detail")
    for finding in findings:
        table.add_row(finding.title, finding.method or "-", finding.message)
    return table


def _format_row(row: Sequence[str], widths: Sequence[int]) -> str:
    padded = [cell.ljust(width) for cell, width in zip(row, widths)]
    return " | ".join(padded)
