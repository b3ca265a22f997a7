"""
voiceprint.logging - Package logger and CLI logging setup.

Library modules log through ``logger``; only the CLI decides where records
go. litellm is noisy at INFO, so it is held at WARNING unless --verbose.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("voiceprint")

NOISY_LOGGERS = ("LiteLLM", "litellm", "httpx")


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr at the level the CLI asked for.

    Args:
        verbose: If True, log at DEBUG (including litellm); otherwise WARNING
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(format="%(levelname)s [%(name)s] %(message)s")
    logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(level)
