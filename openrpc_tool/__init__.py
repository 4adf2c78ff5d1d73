"""
Companion tool for OpenRPC documents such as the Filecoin Common Node API spec.
"""

__all__ = ["document", "resolve", "validate", "prune", "check", "jsonrpc", "proxy", "csv2json", "formatting", "cli"]
__version__ = "0.1.0"
