"""Global configuration management.

Config is loaded at module import time and available globally via:
    from deckhub.config import config

Precedence (lowest first): defaults, YAML file, environment, CLI flags
(applied by the console entrypoint through `with_overrides`).
"""

import os
from pathlib import Path

from dotenv import load_dotenv

from deckhub.config.loader import load_config
from deckhub.config.schema import ConsoleConfig, HubConfig, PollingConfig, ReconnectConfig, RelayConfig, ShellConfig
from deckhub.utils import env_flag

# Project root (relative to this file)
_project_root = Path(__file__).parent.parent.parent

# Load .env (allow override for tests)
_env_path = os.getenv("DECKHUB_ENV_PATH")
_dotenv_path = Path(_env_path).expanduser() if _env_path else _project_root / ".env"
if not _dotenv_path.is_absolute():
    _dotenv_path = (_project_root / _dotenv_path).resolve()

load_dotenv(_dotenv_path)


def _config_path() -> Path | None:
    raw = os.getenv("DECKHUB_CONFIG_PATH")
    return Path(raw).expanduser() if raw else None


def apply_env_overrides(base: ConsoleConfig) -> ConsoleConfig:
    """Return a copy of `base` with DECKHUB_* environment overrides applied."""
    hub_updates: dict[str, object] = {}
    host = os.getenv("DECKHUB_HUB_HOST")
    if host:
        hub_updates["host"] = host
    api_host = os.getenv("DECKHUB_API_HOST")
    if api_host:
        hub_updates["api_host"] = api_host
    secure = env_flag("DECKHUB_SECURE")
    if secure is not None:
        hub_updates["secure"] = secure
    if not hub_updates:
        return base
    return with_overrides(base, **hub_updates)


def with_overrides(base: ConsoleConfig, **hub_updates: object) -> ConsoleConfig:
    """Return a copy of `base` with hub fields replaced (None values skipped).

    Values are re-validated so CLI input gets the same checks as YAML input.
    """
    updates = {k: v for k, v in hub_updates.items() if v is not None}
    if not updates:
        return base
    hub = HubConfig.model_validate({**base.hub.model_dump(), **updates})
    return base.model_copy(update={"hub": hub})


config = apply_env_overrides(load_config(_config_path()))

__all__ = [
    "ConsoleConfig",
    "HubConfig",
    "PollingConfig",
    "ReconnectConfig",
    "RelayConfig",
    "ShellConfig",
    "apply_env_overrides",
    "config",
    "load_config",
    "with_overrides",
]
