"""Entry point for the openrpc-tool command line."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel

from . import __version__
from .check import MethodChecker
from .csv2json import convert
from .document import OpenRPC, load_document
from .errors import ToolError
from .formatting import findings_table, format_findings, format_summary
from .logging_config import configure_logging
from .proxy import ProxyConfig, default_concurrency, serve
from .prune import prune_schemas
from .resolve import resolve_document
from .validate import Finding, validate

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="openrpc-tool",
        description="Work with OpenRPC documents such as the Filecoin Common Node API spec.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command", required=True)

    openrpc = commands.add_parser("openrpc", help="inspect and rewrite OpenRPC documents")
    documents = openrpc.add_subparsers(dest="openrpc_command", required=True)

    validate_cmd = documents.add_parser("validate", help="check method and parameter names and order")
    validate_cmd.add_argument("path", type=Path, help="OpenRPC document (JSON)")
    mode = validate_cmd.add_mutually_exclusive_group()
    mode.add_argument("--json", action="store_true", help="print the findings as JSON")
    mode.add_argument("--ui", action="store_true", help="render the findings with rich")

    resolve_cmd = documents.add_parser("resolve", help="inline every $ref used by the methods")
    resolve_cmd.add_argument("path", type=Path, help="OpenRPC document (JSON)")
    resolve_cmd.add_argument("-o", "--output", type=Path, help="write here instead of stdout")

    prune_cmd = documents.add_parser("prune", help="drop component schemas no method refers to")
    prune_cmd.add_argument("path", type=Path, help="OpenRPC document (JSON)")
    prune_cmd.add_argument("-o", "--output", type=Path, help="write here instead of stdout")

    proxy_cmd = commands.add_parser("proxy", help="forward JSON-RPC traffic and check it against a document")
    proxy_cmd.add_argument("local", help="address to listen on, HOST:PORT")
    proxy_cmd.add_argument("remote", help="origin URL to forward every request to")
    proxy_cmd.add_argument("spec", type=Path, help="OpenRPC document (JSON)")
    proxy_cmd.add_argument(
        "-c",
        "--concurrency",
        type=_positive_int,
        help="requests served at once (default: number of CPUs)",
    )
    proxy_cmd.add_argument("--log", type=Path, help="logging config file (JSON, dictConfig format)")

    csv_cmd = commands.add_parser("csv2json", help="convert delimited text on stdin to JSON on stdout")
    csv_cmd.add_argument("-d", "--delimiter", default="\t", help="field delimiter (default: tab)")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == "proxy":
            return _proxy(args)
        configure_logging(level=logging.WARNING)
        if args.command == "csv2json":
            convert(sys.stdin, sys.stdout, args.delimiter)
            return 0
        if args.openrpc_command == "validate":
            return _validate(args)
        if args.openrpc_command == "resolve":
            _write(resolve_document(load_document(args.path)), args.output)
            return 0
        if args.openrpc_command == "prune":
            document = resolve_document(load_document(args.path))
            prune_schemas(document)
            _write(document, args.output)
            return 0
    except ToolError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 2


def _validate(args: argparse.Namespace) -> int:
    document = resolve_document(load_document(args.path))
    findings = validate(document)

    if args.json:
        print(_to_json(document, findings))
    elif args.ui:
        _render_rich(document, findings)
    else:
        print(format_summary(document))
        if findings:
            print("\nproblems:")
            print(format_findings(findings))
            for finding in findings:
                print(f"- {finding.message}")
        else:
            print("\nno problems found")
    return 1 if findings else 0


def _proxy(args: argparse.Namespace) -> int:
    configure_logging(args.log)
    document = resolve_document(load_document(args.spec))
    # Pruning walks every schema reachable from a method, so broken refs surface before serving.
    prune_schemas(document)
    checker = MethodChecker.from_document(document)
    logger.info("loaded %d methods from %s", len(checker), args.spec)
    config = ProxyConfig(remote=args.remote, concurrency=args.concurrency or default_concurrency())
    try:
        serve(checker, args.local, config)
    except OSError as exc:
        raise ToolError(f"couldn't serve on {args.local}: {exc}") from exc
    return 0


def _to_json(document: OpenRPC, findings: List[Finding]) -> str:
    payload: Dict[str, Any] = {
        "openrpc": document.openrpc,
        "info": document.info.to_dict(),
        "findings": [asdict(finding) for finding in findings],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _render_rich(document: OpenRPC, findings: List[Finding]) -> None:
    console = Console()
    console.print(Panel(format_summary(document), style="bold cyan"))
    if findings:
        console.print(findings_table(findings))
    else:
        console.print(Panel("no problems found", style="bold green"))


def _write(document: OpenRPC, output: Optional[Path]) -> None:
    rendered = json.dumps(document.to_dict(), indent=2, ensure_ascii=False) + "\n"
    if output is None:
        sys.stdout.write(rendered)
    else:
        output.write_text(rendered, encoding="utf-8")


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


if __name__ == "__main__":
    raise SystemExit(main())
