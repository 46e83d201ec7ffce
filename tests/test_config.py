"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest

from quorum.config import ConfigError, QuorumConfig, load_config
from quorum.dispatch import DispatchConfig
from quorum.providers import ErrorCode


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "quorum.toml"
    path.write_text(content, encoding="utf-8")
    return path


@pytest.mark.unit
class TestDefaults:
    def test_builtin_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config()

        assert isinstance(config, QuorumConfig)
        assert [p.name for p in config.providers] == ["groq", "ollama", "openai", "claude"]
        assert config.dispatch == DispatchConfig()
        assert config.dispatch.timeout_seconds == 30.0
        assert config.dispatch.max_attempts == 1
        assert config.max_ratings == 100
        assert config.log_level == "INFO"
        assert config.log_format == "console"

    def test_default_credentials_read_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GROQ_API_KEY", "gsk-env")

        providers = {p.name: p for p in load_config().providers}

        assert providers["groq"].credential == "gsk-env"
        assert providers["openai"].credential is None

    def test_quorum_toml_in_working_directory(self, tmp_path, monkeypatch):
        _write(tmp_path, "max_ratings = 7\n")
        monkeypatch.chdir(tmp_path)

        assert load_config().max_ratings == 7


@pytest.mark.unit
class TestTomlFile:
    def test_provider_tables_override_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MY_OPENAI_KEY", "sk-from-env")
        path = _write(
            tmp_path,
            """
[providers.openai]
enabled = true
model = "gpt-4o-mini"
credential_env = "MY_OPENAI_KEY"

[providers.local]
model = "mistral"
priority = 5
endpoint = "http://gpu-box:11434"
requires_credential = false
""",
        )

        providers = {p.name: p for p in load_config(path).providers}

        assert providers["openai"].enabled is True
        assert providers["openai"].model == "gpt-4o-mini"
        assert providers["openai"].priority == 3
        assert providers["openai"].credential == "sk-from-env"
        assert providers["local"].priority == 5
        assert list(providers)[-1] == "local"

    def test_dispatch_table(self, tmp_path):
        path = _write(
            tmp_path,
            """
[dispatch]
timeout_seconds = 12.5
max_attempts = 3
retry_on = ["rate_limit_error"]
""",
        )

        dispatch = load_config(path).dispatch

        assert dispatch.timeout_seconds == 12.5
        assert dispatch.max_attempts == 3
        assert dispatch.retry_on == [ErrorCode.RATE_LIMIT]

    def test_config_file_from_environment(self, tmp_path, monkeypatch):
        path = _write(tmp_path, 'log_format = "json"\n')
        monkeypatch.setenv("QUORUM_CONFIG_FILE", str(path))

        assert load_config().log_format == "json"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "nope.toml")

    def test_invalid_toml(self, tmp_path):
        path = _write(tmp_path, "max_ratings = = 3\n")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)

    def test_invalid_value(self, tmp_path):
        path = _write(tmp_path, "[providers.groq]\npriority = 0\n")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_unknown_provider_key(self, tmp_path):
        path = _write(tmp_path, '[providers.groq]\nmodle = "llama3-70b"\n')

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)


@pytest.mark.unit
class TestEnvironment:
    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = _write(
            tmp_path,
            'log_level = "warning"\nmax_ratings = 20\n\n[dispatch]\ntimeout_seconds = 10\n',
        )
        monkeypatch.setenv("QUORUM_LOG_LEVEL", "debug")
        monkeypatch.setenv("QUORUM_TIMEOUT_SECONDS", "4.5")
        monkeypatch.setenv("QUORUM_MAX_RATINGS", "unbounded")

        config = load_config(path)

        assert config.log_level == "DEBUG"
        assert config.dispatch.timeout_seconds == 4.5
        assert config.max_ratings is None

    def test_invalid_integer(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("QUORUM_MAX_ATTEMPTS", "lots")

        with pytest.raises(ConfigError, match="QUORUM_MAX_ATTEMPTS"):
            load_config()

    def test_invalid_log_format(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("QUORUM_LOG_FORMAT", "xml")

        with pytest.raises(ConfigError):
            load_config()
