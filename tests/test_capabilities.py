from pathlib import Path

import pytest

from hybrid_ai.config import Settings
from hybrid_ai.errors import ConfigurationError
from hybrid_ai.llm.capabilities import (
    CapabilityRegistry,
    check_validity,
    credentials_from_env,
    is_valid_base_url,
    read_key_file,
    resolve_credentials,
    save_keys_to_file,
    validate_key,
)
from hybrid_ai.schemas import Credentials, RemoteProvider

GEMINI_KEY = "AIzaSyA1234567890abcdefGHIJ"
QWEN_KEY = "sk0123456789abcdef0123"
OPENROUTER_KEY = "sk-or-v1-0123456789abcdef"


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


class TestReadKeyFile:
    def test_missing_file_is_empty(self, tmp_path):
        assert read_key_file(tmp_path / "nope.env") == {}

    def test_none_path_is_empty(self):
        assert read_key_file(None) == {}

    def test_directory_is_empty(self, tmp_path):
        assert read_key_file(tmp_path) == {}

    def test_parses_pairs_and_strips_quotes(self, tmp_path):
        f = _write(
            tmp_path / ".env",
            "# Hybrid AI CLI Configuration\n"
            "\n"
            f"GEMINI_API_KEY=\"{GEMINI_KEY}\"\n"
            f"OPENROUTER_API_KEY='{OPENROUTER_KEY}'\n"
            "LOCAL_AI_PROVIDER=ollama\n",
        )
        values = read_key_file(f)
        assert values["GEMINI_API_KEY"] == GEMINI_KEY
        assert values["OPENROUTER_API_KEY"] == OPENROUTER_KEY
        assert values["LOCAL_AI_PROVIDER"] == "ollama"

    def test_lines_without_separator_dropped(self, tmp_path):
        f = _write(
            tmp_path / ".env",
            f"JUSTAKEY\nQWEN_API_KEY={QWEN_KEY}\n",
        )
        values = read_key_file(f)
        assert "JUSTAKEY" not in values
        assert values["QWEN_API_KEY"] == QWEN_KEY

    def test_undecodable_file_is_empty(self, tmp_path):
        f = tmp_path / ".env"
        f.write_bytes(b"\xff\xfe\xfa GEMINI_API_KEY=\xff\n")
        assert read_key_file(f) == {}


class TestCredentialsFromEnv:
    def test_primary_names(self):
        creds = credentials_from_env(
            {"GEMINI_API_KEY": "g", "QWEN_API_KEY": "q", "OPENROUTER_API_KEY": "o"}
        )
        assert creds == Credentials(gemini="g", qwen="q", openrouter="o")

    def test_alias_names(self):
        creds = credentials_from_env(
            {"GOOGLE_API_KEY": "g", "ALIBABA_CLOUD_ACCESS_KEY_SECRET": "q"}
        )
        assert creds.gemini == "g"
        assert creds.qwen == "q"
        assert creds.openrouter is None

    def test_blank_values_are_unset(self):
        assert credentials_from_env({"GEMINI_API_KEY": "  "}).is_empty()


class TestResolveCredentialsPrecedence:
    def _setup(self, tmp_path):
        local = _write(tmp_path / ".env", "OPENROUTER_API_KEY=key-from-local-file\n")
        global_ = _write(tmp_path / "global", "OPENROUTER_API_KEY=key-from-global-file\n")
        return local, global_

    def test_cli_wins(self, tmp_path):
        local, global_ = self._setup(tmp_path)
        creds = resolve_credentials(
            Credentials(openrouter="key-from-cli"),
            {"OPENROUTER_API_KEY": "key-from-env"},
            local,
            global_,
        )
        assert creds.openrouter == "key-from-cli"

    def test_env_when_no_cli(self, tmp_path):
        local, global_ = self._setup(tmp_path)
        creds = resolve_credentials(
            Credentials(), {"OPENROUTER_API_KEY": "key-from-env"}, local, global_
        )
        assert creds.openrouter == "key-from-env"

    def test_local_file_when_no_cli_or_env(self, tmp_path):
        local, global_ = self._setup(tmp_path)
        creds = resolve_credentials(None, {}, local, global_)
        assert creds.openrouter == "key-from-local-file"

    def test_global_file_last(self, tmp_path):
        _, global_ = self._setup(tmp_path)
        creds = resolve_credentials(None, {}, tmp_path / "missing.env", global_)
        assert creds.openrouter == "key-from-global-file"

    def test_nothing_configured(self, tmp_path):
        creds = resolve_credentials(None, {}, tmp_path / "a", tmp_path / "b")
        assert creds.is_empty()

    def test_cli_short_circuits_without_merging(self, tmp_path):
        local, global_ = self._setup(tmp_path)
        creds = resolve_credentials(
            Credentials(gemini=GEMINI_KEY),
            {"OPENROUTER_API_KEY": "key-from-env", "QWEN_API_KEY": QWEN_KEY},
            local,
            global_,
        )
        assert creds == Credentials(gemini=GEMINI_KEY)

    def test_env_tier_does_not_merge_files(self, tmp_path):
        local = _write(tmp_path / ".env", f"GEMINI_API_KEY={GEMINI_KEY}\n")
        creds = resolve_credentials(None, {"QWEN_API_KEY": QWEN_KEY}, local, None)
        assert creds == Credentials(qwen=QWEN_KEY)


class TestValidateKey:
    def test_missing_or_short(self):
        assert validate_key(None, "gemini") is False
        assert validate_key("", "gemini") is False
        assert validate_key("abc", "openrouter") is False

    def test_gemini_pattern(self):
        assert validate_key(GEMINI_KEY, "gemini") is True
        assert validate_key("AIza key with spaces", "gemini") is False

    def test_openrouter_pattern(self):
        assert validate_key(OPENROUTER_KEY, "openrouter") is True
        assert validate_key("sk-or-v1-abc$def!ghi", "openrouter") is False

    def test_qwen_alnum_or_long(self):
        assert validate_key("abcdef123456", "qwen") is True
        assert validate_key("sk-abc.def", "qwen") is False
        assert validate_key("sk-abc.def-0123456789xyz", "qwen") is True

    def test_placeholder_rejected(self):
        assert validate_key("your_openrouter_api_key_here", "openrouter") is False
        assert validate_key("your_gemini_api_key_here", "gemini") is False


class TestCheckValidity:
    def test_all_configured(self):
        caps = check_validity(
            Credentials(gemini=GEMINI_KEY, qwen=QWEN_KEY, openrouter=OPENROUTER_KEY),
            "http://localhost:11434",
        )
        assert caps.local and caps.aggregator and caps.remote
        assert caps.remote_provider == RemoteProvider.GEMINI

    def test_qwen_only_remote(self):
        caps = check_validity(Credentials(qwen=QWEN_KEY), None)
        assert caps.remote is True
        assert caps.remote_provider == RemoteProvider.QWEN
        assert caps.local is False

    def test_malformed_present_key_is_absent(self):
        caps = check_validity(Credentials(gemini="short", openrouter="bad key!"), None)
        assert caps.remote is False
        assert caps.aggregator is False
        assert caps.remote_provider is None

    def test_nothing(self):
        caps = check_validity(Credentials(), "")
        assert not (caps.local or caps.aggregator or caps.remote)


class TestIsValidBaseUrl:
    def test_valid(self):
        assert is_valid_base_url("http://localhost:11434")
        assert is_valid_base_url("https://ollama.internal")

    def test_invalid(self):
        assert not is_valid_base_url(None)
        assert not is_valid_base_url("")
        assert not is_valid_base_url("localhost:11434/api")
        assert not is_valid_base_url("ftp://example.com")


class TestSaveKeys:
    def test_round_trip_through_reader(self, tmp_path):
        path = tmp_path / ".env"
        _write(path, "# existing\nLOCAL_AI_PROVIDER=ollama\n")
        written = save_keys_to_file(path, Credentials(openrouter=OPENROUTER_KEY))
        assert written == ["OPENROUTER_API_KEY"]
        values = read_key_file(path)
        assert values["OPENROUTER_API_KEY"] == OPENROUTER_KEY
        assert values["LOCAL_AI_PROVIDER"] == "ollama"

    def test_creates_missing_file(self, tmp_path):
        path = tmp_path / "nested" / ".hybrid-ai-config"
        save_keys_to_file(path, Credentials(gemini=GEMINI_KEY))
        assert read_key_file(path)["GEMINI_API_KEY"] == GEMINI_KEY

    def test_nothing_to_save(self, tmp_path):
        with pytest.raises(ConfigurationError):
            save_keys_to_file(tmp_path / ".env", Credentials())
        assert not (tmp_path / ".env").exists()


class TestCapabilityRegistry:
    def test_snapshot_recomputed_each_call(self, tmp_path):
        local = tmp_path / ".env"
        settings = Settings(local_key_file=local, global_key_file=tmp_path / "global")
        registry = CapabilityRegistry(settings)

        _, caps = registry.snapshot(None, {})
        assert caps.aggregator is False

        _write(local, f"OPENROUTER_API_KEY={OPENROUTER_KEY}\n")
        creds, caps = registry.snapshot(None, {})
        assert creds.openrouter == OPENROUTER_KEY
        assert caps.aggregator is True
