"""
User facing diagnostics.

Progress lines go to stdout tagged ``INFO:``, failures go to stderr tagged
``ERROR:``. Internal traces use the ``logging`` module and stay silent
unless ``--debug`` is given.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def setup_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("usbbootmgr").setLevel(logging.DEBUG if debug else logging.WARNING)


def info(message: str) -> None:
    print(f"INFO: {message}")


def error(message: str) -> None:
    print(f"ERROR: {message}", file=sys.stderr)
