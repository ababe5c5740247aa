"""Logging configuration helpers."""

import logging

# httpx logs every request at INFO.
_TRANSPORT_LOGGERS = ("httpx", "httpcore")


def configure_logging(level: int | str = logging.INFO) -> None:
    """Configure client logging with a single stream handler.

    ``level`` may be a number or a level name such as ``"DEBUG"``. Transport
    loggers stay at WARNING unless the client itself logs at DEBUG.
    """
    logger = logging.getLogger("ohako_client")
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    verbose = logger.level <= logging.DEBUG
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)
    if logger.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(levelname)s: %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
