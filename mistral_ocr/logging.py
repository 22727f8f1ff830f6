"""
Logging setup for the adapter.

Modules use:
    from mistral_ocr.logging import get_logger
    logger = get_logger(__name__)

Entry points (API startup, scripts) call configure_logging() once.
"""

import logging
import sys

DEFAULT_FORMAT = "[%(levelname)s] %(name)s - %(message)s"


def configure_logging(
    level: int = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
    stream=sys.stdout,
):
    """
    Configure the root logging handler.

    Repeated calls only adjust the level; no duplicate handlers are added.
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(stream)
        handler.setFormatter(logging.Formatter(fmt))
        root.addHandler(handler)

    root.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
