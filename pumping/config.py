"""
Runtime settings for the pumping engine.
Every value can be overridden through the environment.
"""

import os
from typing import Tuple


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _counts_env(name: str, default: Tuple[int, ...]) -> Tuple[int, ...]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return tuple(int(part) for part in raw.split(",") if part.strip())


# --- Custom predicate sandbox ---
PREDICATE_TIMEOUT_MS = _int_env("PUMPING_PREDICATE_TIMEOUT_MS", 300)
WORKER_STARTUP_S = _int_env("PUMPING_WORKER_STARTUP_S", 10)

# --- Contradiction search ---
# i = 1 reproduces s, so it is left out.
DEFAULT_PUMP_COUNTS = _counts_env("PUMPING_DEFAULT_PUMP_COUNTS", (0, 2, 3))
DEFAULT_FAULT_POLICY = os.environ.get("PUMPING_FAULT_POLICY", "skip")

# --- Request limits for the HTTP surface ---
MAX_STRING_LENGTH = _int_env("PUMPING_MAX_STRING_LENGTH", 64)
MAX_PUMPING_LENGTH = _int_env("PUMPING_MAX_P", 32)
MAX_PUMP_COUNT = 16

# --- Logging ---
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_DIR = os.environ.get("LOG_DIR")
