"""
core/logging_setup.py
─────────────────────
Root logger configuration for processes embedding the decision engines.

The engines only ever call ``logging.getLogger(__name__)``; nothing is
configured on import.  The host application (or ``build_container`` with
``configure_logging=True``) calls :func:`setup_logging` once.
"""

import logging
import sys


def setup_logging(level: str = "INFO", force: bool = False) -> None:
    """
    Send records to stdout as ``time | level | logger | message``.

    Args:
        level: Level name; unknown names fall back to INFO.
        force: Replace handlers already attached to the root logger.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=force,
    )
