"""
Runtime configuration for the precise summation library.

Settings are read once from the environment when the package is imported.
"""

import os


def _env_flag(name: str, default: bool = False) -> bool:
    """Interpret an environment variable as a boolean switch."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


# Verify the partials invariants after every update (slow, meant for tests)
CHECK_INVARIANTS = _env_flag("PRECISE_SUM_CHECK_INVARIANTS")

# Floating type used by Summator when no dtype is given
DEFAULT_DTYPE = os.environ.get("PRECISE_SUM_DEFAULT_DTYPE", "float64")
