from __future__ import annotations

import logging

from redux_lib import environment

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int | None = None) -> logging.Logger:
    """Attach a stream handler to the `redux_lib` logger.

    Calling it more than once only updates the level.

    Args:
        level: Logging level name or number. Defaults to `environment.log_level`.

    Returns:
        The `redux_lib` package logger.
    """
    logger = logging.getLogger("redux_lib")
    logger.setLevel(level if level is not None else environment.log_level)
    if not any(getattr(h, "_redux_lib", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._redux_lib = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
