"""Logging setup shared by resource entrypoints."""

from __future__ import annotations

import logging
import sys

from .config import ResourceSettings

_HANDLER_NAME = "rimg"


def configure_logging(settings: ResourceSettings, *, debug: bool = False) -> None:
    # stdout carries command output, so log records go to stderr
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(settings.log_format))
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else settings.level)
