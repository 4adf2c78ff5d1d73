"""Logging setup shared by the command line entry points."""

from __future__ import annotations

import json
import logging
import logging.config
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

from .errors import ToolError


def configure_logging(config_path: Optional[Path] = None, level: int = logging.INFO) -> None:
    """Install log handlers.

    Without ``config_path`` everything goes through a :class:`RichHandler` on
    stderr. Otherwise the file is read as JSON in ``logging.config.dictConfig``
    format.
    """
    if config_path is None:
        logging.basicConfig(
            level=level,
            format="%(name)s: %(message)s",
            handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
            force=True,
        )
        return

    try:
        with Path(config_path).open("r", encoding="utf-8") as handle:
            config = json.load(handle)
    except OSError as exc:
        raise ToolError(f"couldn't open logging config file {config_path}: {exc.strerror}") from exc
    except json.JSONDecodeError as exc:
        raise ToolError(f"invalid logging config file {config_path}: {exc}") from exc

    if not isinstance(config, dict):
        raise ToolError(f"invalid logging config file {config_path}: expected an object")
    config.setdefault("version", 1)
    try:
        logging.config.dictConfig(config)
    except (ValueError, TypeError, AttributeError, ImportError) as exc:
        raise ToolError(f"couldn't set up logging: {exc}") from exc
