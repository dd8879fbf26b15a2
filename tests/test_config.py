"""Tests for configuration files and settings resolution."""

from pathlib import Path

import pytest
import yaml

from success_mcp.config import DEFAULT_LOCAL_ENDPOINT, DEFAULT_ONLINE_ENDPOINT, Config, Settings


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the user's home at a temporary directory."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home_dir)
    return home_dir


def test_set_and_get_roundtrip_through_file(tmp_path: Path, home: Path) -> None:
    """Test that set persists to YAML and a new Config reads it back."""
    config = Config(config_dir=tmp_path / "cfg")
    config.set("graphql.mode", "local")

    saved = yaml.safe_load((tmp_path / "cfg" / "config.yaml").read_text())
    assert saved == {"graphql.mode": "local"}
    assert Config(config_dir=tmp_path / "cfg").get("graphql.mode") == "local"


def test_local_falls_back_to_global(tmp_path: Path, home: Path) -> None:
    """Test that local lookups fall back to the global config file."""
    global_dir = home / ".success-mcp"
    global_dir.mkdir()
    (global_dir / "config.yaml").write_text(yaml.safe_dump({"api_key": "global-key", "debug": "true"}))

    local = Config(config_dir=tmp_path / "local")
    local.set("api_key", "local-key")

    assert local.get("api_key") == "local-key"
    assert local.get("debug") == "true"
    assert local.list() == {"api_key": "local-key", "debug": "true"}


def test_unset_removes_key(tmp_path: Path, home: Path) -> None:
    """Test that unset removes a key and missing keys return the default."""
    config = Config(config_dir=tmp_path)
    config.set("debug", "true")
    config.unset("debug")
    config.unset("never-set")

    assert config.get("debug", "fallback") == "fallback"


def test_invalid_yaml_raises_value_error(tmp_path: Path, home: Path) -> None:
    """Test that an unreadable config file is reported as ValueError."""
    (tmp_path / "config.yaml").write_text("key: [unclosed")

    with pytest.raises(ValueError, match="Failed to load config"):
        Config(config_dir=tmp_path)


def test_resolve_settings_defaults(tmp_path: Path) -> None:
    """Test settings with an empty environment."""
    settings = Settings.resolve(env={}, working_dir=tmp_path)

    assert settings.endpoint_mode == "online"
    assert settings.graphql_endpoint == DEFAULT_ONLINE_ENDPOINT
    assert settings.api_key is None
    assert settings.api_key_mode is False
    assert settings.database_configured is False
    assert settings.db_port == 5432


def test_resolve_settings_local_mode_and_database(tmp_path: Path) -> None:
    """Test the local endpoint switch and discrete database settings."""
    settings = Settings.resolve(
        env={"GRAPHQL_ENDPOINT_MODE": "local", "DB_HOST": "db", "DB_PORT": "6543", "DB_PASS": "secret"},
        working_dir=tmp_path,
    )

    assert settings.graphql_endpoint == DEFAULT_LOCAL_ENDPOINT
    assert settings.database_configured is True
    assert settings.db_port == 6543
    assert settings.db_password == "secret"


def test_api_key_mode_requires_dev_mode(tmp_path: Path) -> None:
    """Test that the API key switch is ignored outside dev mode."""
    env = {"DEVMODE_SUCCESS_API_KEY": "suc_api_x", "DEVMODE_SUCCESS_USE_API_KEY": "true"}

    assert Settings.resolve(env=env, working_dir=tmp_path).api_key_mode is False
    assert Settings.resolve(env={**env, "NODE_ENV": "development"}, working_dir=tmp_path).api_key_mode is True
    assert Settings.resolve(env={**env, "DEBUG": "true"}, working_dir=tmp_path).api_key_mode is True


def test_environment_wins_over_config(tmp_path: Path, home: Path) -> None:
    """Test precedence: environment, then config file, then .api_key file."""
    config = Config(config_dir=tmp_path / "cfg")
    config.set("api_key", "from-config")
    (tmp_path / ".api_key").write_text("from-file\n")

    assert Settings.resolve(env={"DEVMODE_SUCCESS_API_KEY": "from-env"}, config=config, working_dir=tmp_path).api_key == "from-env"
    assert Settings.resolve(env={}, config=config, working_dir=tmp_path).api_key == "from-config"
    assert Settings.resolve(env={}, working_dir=tmp_path).api_key == "from-file"


def test_broken_global_config_is_skipped(tmp_path: Path, home: Path) -> None:
    """Test that an unparsable global file does not block local config."""
    global_dir = home / ".success-mcp"
    global_dir.mkdir()
    (global_dir / "config.yaml").write_text("key: [unclosed")

    local = Config(config_dir=tmp_path / "local")
    local.set("debug", "true")

    assert len(local.layers) == 1
    assert local.list() == {"debug": "true"}


def test_global_config_ignores_local(tmp_path: Path, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that a global Config neither reads nor writes the local file."""
    monkeypatch.chdir(tmp_path)
    Config().set("graphql.mode", "local")

    global_config = Config(use_global=True)

    assert global_config.get("graphql.mode") is None
    assert global_config.config_file == home / ".success-mcp" / "config.yaml"


def test_config_settings_use_file_values(tmp_path: Path, home: Path) -> None:
    """Test that Config.settings falls back to dotted config keys."""
    config = Config(config_dir=tmp_path / "cfg")
    config.set("graphql.mode", "local")
    config.set("database.host", "db")
    config.set("database.port", 6543)

    settings = config.settings(env={"DB_HOST": "env-db"}, working_dir=tmp_path)

    assert settings.graphql_endpoint == DEFAULT_LOCAL_ENDPOINT
    assert settings.db_host == "env-db"
    assert settings.db_port == 6543
