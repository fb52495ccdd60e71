from pathlib import Path

import pytest
from pydantic import ValidationError

from studypals.application import config as config_module
from studypals.application.config import AppConfig, resolve_config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point config discovery at a temp dir and clear STUDYPALS_* env vars."""
    config_file = tmp_path / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_FILES", [config_file])
    for key in (
        "DATA_DIR", "LOG_DIR", "SESSION_HISTORY_LIMIT", "SERVER_HOST", "SERVER_PORT", "VERBOSE"
    ):
        monkeypatch.delenv(f"STUDYPALS_{key}", raising=False)
    return config_file


def test_defaults():
    config = AppConfig()
    assert config.data_dir == Path.home() / ".local/share/studypals"
    assert config.session_history_limit == 100
    assert config.server_host == "127.0.0.1"
    assert config.server_port == 8777


def test_env_vars(monkeypatch, tmp_path):
    monkeypatch.setenv("STUDYPALS_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("STUDYPALS_SESSION_HISTORY_LIMIT", "25")
    config = AppConfig()
    assert config.data_dir == tmp_path / "data"
    assert config.session_history_limit == 25


def test_toml_file(isolated_config):
    isolated_config.write_text('server_port = 9001\nsession_history_limit = 10\n')
    config = AppConfig()
    assert config.server_port == 9001
    assert config.session_history_limit == 10


def test_env_beats_toml(isolated_config, monkeypatch):
    isolated_config.write_text("server_port = 9001\n")
    monkeypatch.setenv("STUDYPALS_SERVER_PORT", "9100")
    assert AppConfig().server_port == 9100


def test_overrides_beat_env_and_skip_none(monkeypatch):
    monkeypatch.setenv("STUDYPALS_SERVER_HOST", "0.0.0.0")
    config = resolve_config({"server_host": "localhost", "server_port": None})
    assert config.server_host == "localhost"
    assert config.server_port == 8777


def test_paths_expand_user():
    config = resolve_config({"data_dir": "~/studypals-data"})
    assert config.data_dir == Path.home() / "studypals-data"


def test_history_limit_must_be_positive():
    with pytest.raises(ValidationError):
        AppConfig(session_history_limit=0)


def test_log_dir_and_verbose_from_env(monkeypatch):
    monkeypatch.setenv("STUDYPALS_LOG_DIR", "~/studypals-logs")
    monkeypatch.setenv("STUDYPALS_VERBOSE", "2")
    config = AppConfig()
    assert config.log_dir == Path.home() / "studypals-logs"
    assert config.verbose == 2
