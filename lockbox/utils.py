"""Helpers for scripts using lockbox."""

import logging


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging for scripts. Library code never calls this."""
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)-8s [%(name)s:%(funcName)s] : %(message)s',
    )
