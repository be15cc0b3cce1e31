"""Logging setup shared by the CLI and the webhook server."""

from __future__ import annotations

import logging
import os

from rich.logging import RichHandler

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def configure_logging(level: str | None = None, rich_output: bool = False) -> None:
    """Configure the ``rulesetbot`` logger hierarchy.

    ``LOG_LEVEL`` in the environment wins over *level*; unknown level names
    fall back to ``INFO``.
    """
    level_name = (os.environ.get("LOG_LEVEL") or level or "INFO").upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    if rich_output:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("rulesetbot")
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)
    root.propagate = False
