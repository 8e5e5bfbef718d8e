# Environment Helper
# Reads application settings from the process environment and an optional .env file

import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


@lru_cache(maxsize=None)
def env(key: str, default: Optional[str] = None) -> Optional[str]:
    """
    Read an environment variable.

    Values are cached per (key, default) pair; call ``env.cache_clear()``
    after changing the environment (tests do this in ``conftest.py``).

    Args:
        key: Name of the environment variable
        default: Value returned when the variable is unset or empty

    Returns:
        The variable value or the default
    """
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value


def env_bool(key: str, default: bool = False) -> bool:
    """Read an environment variable as a boolean flag."""
    value = env(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_float(key: str, default: Optional[float] = None) -> Optional[float]:
    """Read an environment variable as a float, falling back on bad input."""
    value = env(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default
