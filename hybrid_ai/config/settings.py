import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from hybrid_ai import constants
from hybrid_ai.config.loader import load_settings_file

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Process-wide configuration, built once at startup and passed explicitly."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    local_base_url: str = constants.LOCAL_AI_BASE_URL
    local_model: str = constants.DEFAULT_LOCAL_MODEL

    openrouter_base_url: str = constants.OPENROUTER_BASE_URL
    openrouter_model: str = constants.DEFAULT_OPENROUTER_MODEL
    openrouter_strong_model: str = constants.STRONG_OPENROUTER_MODEL

    gemini_base_url: str = constants.GEMINI_BASE_URL
    gemini_model: str = constants.DEFAULT_REMOTE_MODEL
    qwen_base_url: str = constants.QWEN_BASE_URL
    qwen_model: str = constants.DEFAULT_QWEN_MODEL

    complexity_low_max: int = constants.COMPLEXITY_LOW_MAX_CHARS
    complexity_medium_max: int = constants.COMPLEXITY_MEDIUM_MAX_CHARS

    backend_timeout_seconds: float = constants.BACKEND_TIMEOUT_SECONDS
    workflow_timeout_seconds: float = constants.WORKFLOW_TIMEOUT_SECONDS
    test_runner_timeout_seconds: float = constants.TEST_RUNNER_TIMEOUT_SECONDS
    progress_interval_seconds: float = constants.PROGRESS_INTERVAL_SECONDS

    local_key_file: Path = Path(constants.LOCAL_KEY_FILE)
    global_key_file: Path = Path.home() / constants.GLOBAL_KEY_FILE

    @model_validator(mode="after")
    def _check_thresholds(self):
        if self.complexity_low_max < 0:
            raise ValueError("complexity_low_max must be non-negative")
        if self.complexity_low_max > self.complexity_medium_max:
            raise ValueError(
                f"complexity_low_max ({self.complexity_low_max}) must not exceed "
                f"complexity_medium_max ({self.complexity_medium_max})"
            )
        return self


def _parse_int_env(
    env: Mapping[str, str], name: str, default: int, min_val: int, max_val: int
) -> int:
    """Parse an integer environment variable with bounds clamping.

    Returns default if env var is unset or unparseable. Clamps to [min_val, max_val].
    """
    raw = env.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(min_val, min(max_val, value))


# Settings field -> (environment variable, default, min, max)
_INT_ENV_VARS: dict[str, tuple[str, int, int, int]] = {
    "complexity_low_max": ("COMPLEXITY_LOW_MAX", constants.COMPLEXITY_LOW_MAX_CHARS, 0, 100_000),
    "complexity_medium_max": (
        "COMPLEXITY_MEDIUM_MAX",
        constants.COMPLEXITY_MEDIUM_MAX_CHARS,
        0,
        1_000_000,
    ),
    "backend_timeout_seconds": (
        "BACKEND_TIMEOUT_SECONDS",
        constants.BACKEND_TIMEOUT_SECONDS,
        1,
        3600,
    ),
    "workflow_timeout_seconds": (
        "WORKFLOW_TIMEOUT_SECONDS",
        constants.WORKFLOW_TIMEOUT_SECONDS,
        1,
        24 * 3600,
    ),
    "test_runner_timeout_seconds": (
        "TEST_RUNNER_TIMEOUT_SECONDS",
        constants.TEST_RUNNER_TIMEOUT_SECONDS,
        1,
        3600,
    ),
    "progress_interval_seconds": (
        "PROGRESS_INTERVAL_SECONDS",
        int(constants.PROGRESS_INTERVAL_SECONDS),
        1,
        3600,
    ),
}

_STR_ENV_VARS: dict[str, str] = {
    "local_base_url": "LOCAL_AI_BASE_URL",
    "local_model": "DEFAULT_LOCAL_MODEL",
    "openrouter_model": "DEFAULT_OPENROUTER_MODEL",
    "openrouter_strong_model": "STRONG_OPENROUTER_MODEL",
    "gemini_model": "DEFAULT_REMOTE_MODEL",
    "qwen_model": "DEFAULT_QWEN_MODEL",
    "local_key_file": "HYBRID_AI_LOCAL_KEY_FILE",
    "global_key_file": "HYBRID_AI_GLOBAL_KEY_FILE",
}


def _settings_from_env(env: Mapping[str, str]) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for field, (var, default, min_val, max_val) in _INT_ENV_VARS.items():
        if var in env:
            values[field] = _parse_int_env(env, var, default, min_val, max_val)
    for field, var in _STR_ENV_VARS.items():
        raw = env.get(var, "").strip()
        if raw:
            values[field] = raw
    return values


def load_settings(
    env: Mapping[str, str] | None = None, config_path: str | None = None
) -> Settings:
    """Build the immutable Settings for this process.

    Precedence: environment variables > YAML file (``config_path`` or
    ``HYBRID_AI_CONFIG``) > built-in defaults. An inconsistent combination is
    logged and replaced by the defaults.
    """
    if env is None:
        env = os.environ

    values: dict[str, Any] = {}
    file_overrides = load_settings_file(config_path or env.get("HYBRID_AI_CONFIG"), env)
    if file_overrides:
        values.update(file_overrides)
    values.update(_settings_from_env(env))

    try:
        settings = Settings.model_validate(values)
    except ValidationError as e:
        logger.warning("Invalid settings (%s), using defaults", e)
        return Settings()

    logger.debug(
        "Settings loaded: thresholds=%d/%d, local=%s",
        settings.complexity_low_max,
        settings.complexity_medium_max,
        settings.local_base_url,
    )
    return settings
