import logging
import sys
from typing import Optional, TextIO

ROOT_LOGGER = "webvizio_mcp"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s %(message)s"

_sink: Optional[logging.Handler] = None


def configure_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Logger:
    """Install the process-wide sink. stdout carries JSON-RPC, so logs go to stderr."""
    global _sink
    logger = logging.getLogger(ROOT_LOGGER)
    if _sink is not None:
        logger.removeHandler(_sink)
    _sink = logging.StreamHandler(stream or sys.stderr)
    _sink.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
    logger.addHandler(_sink)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    logger.propagate = False
    return logger


def get_logger(component: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{component}")


__all__ = ["configure_logging", "get_logger", "ROOT_LOGGER"]
