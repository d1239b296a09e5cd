"""Small helpers shared by the config layer and the console."""

import os
import re

_TRUTHY = {"1", "true", "yes", "on"}


def expand_env_vars(config: object) -> object:
    """Recursively expand ${VAR} references in a loaded config tree.

    Unknown variables are left as-is so validation can report them.
    """
    if isinstance(config, dict):
        return {k: expand_env_vars(v) for k, v in config.items()}  # type: ignore[misc]
    if isinstance(config, list):
        return [expand_env_vars(item) for item in config]
    if isinstance(config, str):

        def replace_env_var(match: re.Match[str]) -> str:
            return os.getenv(match.group(1), match.group(0))

        return re.sub(r"\$\{([^}]+)\}", replace_env_var, config)
    return config


def env_flag(name: str) -> bool | None:
    """Read a boolean environment flag; None when unset or empty."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip().lower() in _TRUTHY
