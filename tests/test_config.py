"""Tests for ClientConfig helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from arcadex import config as config_module
from arcadex.config import ClientConfig, ServerProfileConfig, load_config, save_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")

    result = load_config()

    assert result == ClientConfig()


def test_load_config_reads_values(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
timeout = 5
max_connections = 20
log_level = "DEBUG"
migrations = "myapp.migrations:REGISTRY"
active_profile = "Local"

[[profiles]]
name = "Local"
base_url = "http://localhost:2480"
database = "mydb"
username = "admin"
password = "secret"
pool = "local"

[[profiles]]
name = "Broken"
"""
    )
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result.timeout == 5.0
    assert result.max_connections == 20
    assert result.max_keepalive_connections == 10
    assert result.log_level == "DEBUG"
    assert result.migrations == "myapp.migrations:REGISTRY"
    assert result.active_profile == "Local"
    assert [profile.name for profile in result.profiles] == ["Local"]
    assert result.profiles[0].pool == "local"


def test_load_config_ignores_values_of_the_wrong_type(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text('timeout = "fast"\nmax_connections = true\n')
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    assert load_config() == ClientConfig()


def test_load_config_handles_toml_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("timeout = [unterminated")
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)

    result = load_config()

    assert result == ClientConfig()


def test_save_config_round_trips(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_path = tmp_path / "nested" / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)
    config = ClientConfig(
        timeout=12.5,
        migrations="myapp.migrations:REGISTRY",
        profiles=[ServerProfileConfig(name="Local", database="mydb", password="secret")],
        active_profile="Local",
    )

    save_config(config)

    content = config_path.read_text()
    assert "timeout = 12.5" in content
    assert "[[profiles]]" in content
    assert 'database = "mydb"' in content
    assert load_config() == config


@pytest.mark.parametrize("password", ['pa"ss\\w', "tab\there", "line\nbreak", "naïve\x7f"])
def test_save_config_escapes_strings(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, password: str
) -> None:
    config_path = tmp_path / "config.toml"
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_path)
    config = ClientConfig(
        migrations="myapp.migrations:REGISTRY",
        profiles=[ServerProfileConfig(name='My "Local"', database="mydb", password=password)],
        active_profile='My "Local"',
    )

    save_config(config)
    result = load_config()

    assert result == config
    assert result.profiles[0].password == password


def test_profile_lookup() -> None:
    local = ServerProfileConfig(name="Local", database="mydb")
    staging = ServerProfileConfig(name="Staging", base_url="http://staging:2480", database="app")
    config = ClientConfig(profiles=[local, staging])

    assert config.profile() == local
    assert config.profile("Staging") == staging
    assert config.with_active_profile("Staging").profile() == staging


def test_profile_lookup_errors() -> None:
    with pytest.raises(ValueError, match="No server profiles configured"):
        ClientConfig().profile()
    with pytest.raises(ValueError, match="Profile 'Missing' not found"):
        ClientConfig(profiles=[ServerProfileConfig(name="Local", database="mydb")]).profile("Missing")


def test_profile_builds_connection_handle() -> None:
    profile = ServerProfileConfig(
        name="Local", base_url="http://localhost:2480/", database="mydb", username="admin", password="pw"
    )

    conn = profile.to_conn()

    assert conn.base_url == "http://localhost:2480"
    assert conn.database == "mydb"
    assert conn.auth == ("admin", "pw")
    assert conn.pool == "default"
    assert conn.session_id is None


def test_with_migrations_updates_field() -> None:
    config = ClientConfig()

    updated = config.with_migrations("pkg.mod:REGISTRY")

    assert updated.migrations == "pkg.mod:REGISTRY"
    assert config.migrations is None
