"""Settings read from the environment (and from a `.env` file, if present)."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _get_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return default if value in (None, "") else float(value)


def _get_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    return default if value in (None, "") else int(value)


def _get_simulation(name: str) -> bool | None:
    value = os.environ.get(name, "").strip().lower()
    if value in ("on", "true", "1"):
        return True
    if value in ("off", "false", "0"):
        return False
    return None


log_level: str = os.environ.get("REDUX_LIB_LOG_LEVEL", "WARNING").upper()
"""Level used by `redux_lib.util.log.configure_logging()` when none is given."""

max_errors_queued: int = _get_int("REDUX_LIB_MAX_ERRORS_QUEUED", 10)
"""Default size of the Store's user-facing error queue."""

internet_simulation: bool | None = _get_simulation("REDUX_LIB_INTERNET_SIMULATION")
"""`on`/`off` forces the connectivity checks of internet behaviors. Unset means real checks."""

connectivity_host: str = os.environ.get("REDUX_LIB_CONNECTIVITY_HOST", "1.1.1.1")
connectivity_port: int = _get_int("REDUX_LIB_CONNECTIVITY_PORT", 53)
connectivity_timeout: float = _get_float("REDUX_LIB_CONNECTIVITY_TIMEOUT", 2.0)
