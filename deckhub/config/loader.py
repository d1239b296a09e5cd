from pathlib import Path
from typing import Optional

import yaml
from instrukt_ai_logging import get_logger
from pydantic import BaseModel

from deckhub.config.schema import ConsoleConfig
from deckhub.utils import expand_env_vars

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("~/.deckhub/deckhub.yml")


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Recursively warn about unknown keys in a model and its nested models."""
    if model.model_extra:
        logger.warning("Unknown keys in %s at %s: %s", path, config_path, list(model.model_extra.keys()))

    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def load_config(path: Optional[Path] = None) -> ConsoleConfig:
    """Load and validate the console configuration from a YAML file.

    A missing or unreadable file yields the defaults; a file that parses but
    fails validation raises `pydantic.ValidationError`.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH.expanduser()
    if not path.exists():
        return ConsoleConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file %s: %s", path, e)
        return ConsoleConfig()

    model = ConsoleConfig.model_validate(expand_env_vars(raw))
    _warn_unknown_keys(model, "root", path)
    return model
