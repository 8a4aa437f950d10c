import logging
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-(.*?))?\}")


def _substitute_env_vars(value: str, env: Mapping[str, str]) -> str:
    def _replace(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        env_val = env.get(var_name)
        if env_val is not None:
            return env_val
        return default if default is not None else ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _substitute_recursive(obj: Any, env: Mapping[str, str]) -> Any:
    if isinstance(obj, str):
        return _substitute_env_vars(obj, env)
    if isinstance(obj, dict):
        return {k: _substitute_recursive(v, env) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_recursive(item, env) for item in obj]
    return obj


def load_settings_file(
    config_path: str | None, env: Mapping[str, str]
) -> dict[str, Any] | None:
    """Read a YAML settings file into a flat mapping of setting overrides.

    Returns None when no path is given, the file is missing, or it cannot be
    parsed; callers keep their defaults in that case.
    """
    if not config_path:
        return None

    path = Path(config_path).expanduser()
    if not path.is_file():
        logger.warning("Settings file not found: %s", config_path)
        return None

    try:
        raw = path.read_text(encoding="utf-8")
        data = yaml.safe_load(raw)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load settings from %s: %s", config_path, e)
        return None

    if data is None:
        return {}

    if not isinstance(data, dict):
        logger.warning("Settings file is not a mapping: %s", config_path)
        return None

    section = data.get("hybrid_ai", data)
    if not isinstance(section, dict):
        logger.warning("Settings 'hybrid_ai' section is not a mapping: %s", config_path)
        return None

    overrides = _substitute_recursive(section, env)
    logger.info("Loaded %d setting(s) from YAML config: %s", len(overrides), config_path)
    return overrides
