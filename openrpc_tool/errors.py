"""Exceptions raised by the tool's library modules."""

from __future__ import annotations


class ToolError(Exception):
    """Base class for errors the command line reports without a traceback."""


class DocumentError(ToolError):
    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
        self.message = message


class ResolveError(ToolError):
    def __init__(self, reference: str) -> None:
        super().__init__(f"error resolving `$ref`: {reference}")
        self.reference = reference


class BrokenReference(ToolError):
    def __init__(self, reference: str) -> None:
        super().__init__(f"broken schema reference: {reference}")
        self.reference = reference


class CheckError(ToolError):
    """The document cannot be turned into request checkers."""
