"""Credential resolution and capability detection.

Credentials are resolved from four sources, first match wins as a whole set:
explicit call-time arguments, environment variables, the project's ``.env``
file, then the per-user global file. Capabilities are derived from the
resolved set by local format checks only; nothing here touches the network.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path

import httpx
from dotenv import dotenv_values, set_key

from hybrid_ai.config import Settings
from hybrid_ai.errors import ConfigurationError
from hybrid_ai.schemas import CapabilitySet, Credentials, RemoteProvider

logger = logging.getLogger(__name__)

# Credential field -> environment variables, in lookup order.
ENV_KEY_NAMES: dict[str, tuple[str, ...]] = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "qwen": ("QWEN_API_KEY", "ALIBABA_CLOUD_ACCESS_KEY_SECRET"),
    "openrouter": ("OPENROUTER_API_KEY",),
}

# Credential field -> key used inside persisted KEY=VALUE files.
FILE_KEY_NAMES: dict[str, str] = {
    "gemini": "GEMINI_API_KEY",
    "qwen": "QWEN_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}

MIN_KEY_LENGTH = 10

_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_ALNUM_PATTERN = re.compile(r"^[A-Za-z0-9]+$")
_PLACEHOLDER_PATTERN = re.compile(r"^your_.*_here$", re.IGNORECASE)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def read_key_file(path: str | Path | None) -> dict[str, str]:
    """Parse a KEY=VALUE file, tolerating a missing or partially corrupt file.

    Comment lines, blank lines and lines without ``=`` are dropped; quotes
    around values are stripped. Never raises.
    """
    if not path:
        return {}

    file_path = Path(path).expanduser()
    if not file_path.is_file():
        return {}

    try:
        raw = dotenv_values(file_path, interpolate=False, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Could not read key file %s: %s", file_path, e)
        return {}

    return {key: value for key, value in raw.items() if key and value is not None}


def _credentials_from_mapping(values: Mapping[str, str | None]) -> Credentials:
    return Credentials(
        gemini=_clean(values.get(FILE_KEY_NAMES["gemini"])),
        qwen=_clean(values.get(FILE_KEY_NAMES["qwen"])),
        openrouter=_clean(values.get(FILE_KEY_NAMES["openrouter"])),
    )


def credentials_from_env(env: Mapping[str, str]) -> Credentials:
    found: dict[str, str | None] = {}
    for field, names in ENV_KEY_NAMES.items():
        found[field] = next((v for v in (_clean(env.get(n)) for n in names) if v), None)
    return Credentials(**found)


def resolve_credentials(
    cli_args: Credentials | None,
    env: Mapping[str, str],
    local_file: str | Path | None,
    global_file: str | Path | None,
) -> Credentials:
    if cli_args is not None and not cli_args.is_empty():
        logger.debug("Credentials: using explicit call-time arguments")
        return cli_args

    env_creds = credentials_from_env(env)
    if not env_creds.is_empty():
        logger.debug("Credentials: using environment variables")
        return env_creds

    local_creds = _credentials_from_mapping(read_key_file(local_file))
    if not local_creds.is_empty():
        logger.debug("Credentials: using local key file %s", local_file)
        return local_creds

    global_creds = _credentials_from_mapping(read_key_file(global_file))
    if not global_creds.is_empty():
        logger.debug("Credentials: using global key file %s", global_file)
        return global_creds

    logger.debug("Credentials: none configured")
    return Credentials()


def validate_key(key: str | None, provider: str) -> bool:
    if not key or len(key) < MIN_KEY_LENGTH:
        return False
    if _PLACEHOLDER_PATTERN.match(key):
        return False

    if provider in ("gemini", "openrouter"):
        return bool(_TOKEN_PATTERN.match(key))
    if provider == "qwen":
        return bool(_ALNUM_PATTERN.match(key)) or len(key) > 20
    return True


def is_valid_base_url(url: str | None) -> bool:
    if not url:
        return False
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.host)


def check_validity(creds: Credentials, local_base_url: str | None = None) -> CapabilitySet:
    valid: dict[str, bool] = {}
    for provider in FILE_KEY_NAMES:
        key = getattr(creds, provider)
        valid[provider] = validate_key(key, provider)
        if key and not valid[provider]:
            logger.warning(
                "ConfigurationError: %s credential is malformed, treating it as absent",
                provider,
            )

    remote_provider: RemoteProvider | None = None
    if valid["gemini"]:
        remote_provider = RemoteProvider.GEMINI
    elif valid["qwen"]:
        remote_provider = RemoteProvider.QWEN

    return CapabilitySet(
        local=is_valid_base_url(local_base_url),
        aggregator=valid["openrouter"],
        remote=remote_provider is not None,
        remote_provider=remote_provider,
    )


def save_keys_to_file(path: str | Path, creds: Credentials) -> list[str]:
    """Write the non-empty credentials into a KEY=VALUE file, keeping other lines."""
    if creds.is_empty():
        raise ConfigurationError("No keys to save")

    file_path = Path(path).expanduser()
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.touch(mode=0o600, exist_ok=True)

    written: list[str] = []
    for field, file_key in FILE_KEY_NAMES.items():
        value = getattr(creds, field)
        if value:
            set_key(file_path, file_key, value)
            written.append(file_key)

    logger.info("Saved %d key(s) to %s", len(written), file_path)
    return written


class CapabilityRegistry:
    def __init__(self, settings: Settings) -> None:
        self._local_file = settings.local_key_file
        self._global_file = settings.global_key_file
        self._local_base_url = settings.local_base_url

    def resolve(self, cli_args: Credentials | None, env: Mapping[str, str]) -> Credentials:
        return resolve_credentials(cli_args, env, self._local_file, self._global_file)

    def snapshot(
        self, cli_args: Credentials | None, env: Mapping[str, str]
    ) -> tuple[Credentials, CapabilitySet]:
        """Resolve credentials and capabilities afresh; nothing is cached."""
        creds = self.resolve(cli_args, env)
        capabilities = check_validity(creds, self._local_base_url)
        logger.info(
            "Capabilities: local=%s aggregator=%s remote=%s (%s)",
            capabilities.local,
            capabilities.aggregator,
            capabilities.remote,
            capabilities.remote_provider or "none",
        )
        return creds, capabilities
