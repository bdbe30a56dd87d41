"""Client configuration loading helpers."""

from __future__ import annotations

from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

from .models import DEFAULT_POOL, Conn

CONFIG_FILE = Path.home() / ".config" / "arcadex" / "config.toml"


class ServerProfileConfig(BaseModel):
    """Server profile stored in config.toml."""

    name: str
    base_url: str = "http://localhost:2480"
    database: str
    username: str = "root"
    password: str = "root"
    pool: str = DEFAULT_POOL

    def to_conn(self) -> Conn:
        return Conn(
            base_url=self.base_url,
            database=self.database,
            auth=(self.username, self.password),
            pool=self.pool,
        )


class ClientConfig(BaseModel):
    """Shape of the configuration file."""

    timeout: float = 30.0
    max_connections: int = 50
    max_keepalive_connections: int = 10
    log_level: str = "WARNING"
    migrations: str | None = None
    profiles: list[ServerProfileConfig] = Field(default_factory=list)
    active_profile: str | None = None

    def profile(self, name: str | None = None) -> ServerProfileConfig:
        """Return the named profile, or the active/first one when `name` is None."""

        wanted = name or self.active_profile
        if wanted is None:
            if not self.profiles:
                raise ValueError("No server profiles configured.")
            return self.profiles[0]
        for profile in self.profiles:
            if profile.name == wanted:
                return profile
        raise ValueError(f"Profile '{wanted}' not found.")

    def with_active_profile(self, name: str) -> ClientConfig:
        """Return a copy with the active profile updated."""

        return self.model_copy(update={"active_profile": name})

    def with_migrations(self, target: str | None) -> ClientConfig:
        """Return a copy pointing at another migration registry."""

        return self.model_copy(update={"migrations": target})


def load_config() -> ClientConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return ClientConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return ClientConfig()

    profiles_data = data.pop("profiles", None)
    profiles: list[ServerProfileConfig] = []
    if isinstance(profiles_data, list):
        profiles = [ServerProfileConfig(**profile) for profile in profiles_data]  # type: ignore[arg-type]
    return ClientConfig(profiles=profiles, **data)  # type: ignore[arg-type]


def save_config(config: ClientConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f"timeout = {config.timeout}",
        f"max_connections = {config.max_connections}",
        f"max_keepalive_connections = {config.max_keepalive_connections}",
        f"log_level = {_toml_string(config.log_level)}",
    ]
    if config.migrations:
        lines.append(f"migrations = {_toml_string(config.migrations)}")
    if config.active_profile:
        lines.append(f"active_profile = {_toml_string(config.active_profile)}")
    if config.profiles:
        lines.append("")
        for profile in config.profiles:
            lines.append("[[profiles]]")
            lines.append(f"name = {_toml_string(profile.name)}")
            lines.append(f"base_url = {_toml_string(profile.base_url)}")
            lines.append(f"database = {_toml_string(profile.database)}")
            lines.append(f"username = {_toml_string(profile.username)}")
            lines.append(f"password = {_toml_string(profile.password)}")
            if profile.pool != DEFAULT_POOL:
                lines.append(f"pool = {_toml_string(profile.pool)}")
            lines.append("")
    CONFIG_FILE.write_text("\n".join(lines) + "\n", encoding="utf-8")


def _toml_string(value: str) -> str:
    """Quote `value` as a TOML basic string."""

    escaped: list[str] = []
    for char in value:
        if char in ('"', "\\"):
            escaped.append("\\" + char)
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            escaped.append(f"\\u{ord(char):04x}")
        else:
            escaped.append(char)
    return '"' + "".join(escaped) + '"'


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if not isinstance(raw, dict):
        return data
    for key in ("timeout",):
        value = raw.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            data[key] = float(value)
    for key in ("max_connections", "max_keepalive_connections"):
        value = raw.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            data[key] = value
    for key in ("log_level", "migrations", "active_profile"):
        value = raw.get(key)
        if isinstance(value, str):
            data[key] = value
    profiles = raw.get("profiles")
    if isinstance(profiles, list):
        parsed_profiles: list[dict[str, object]] = []
        for profile in profiles:
            if not isinstance(profile, dict):
                continue
            parsed: dict[str, object] = {}
            for key in ("name", "base_url", "database", "username", "password", "pool"):
                value = profile.get(key)
                if isinstance(value, str):
                    parsed[key] = value
            if parsed.get("name") and parsed.get("database"):
                parsed_profiles.append(parsed)
        data["profiles"] = parsed_profiles
    return data


__all__ = [
    "CONFIG_FILE",
    "ClientConfig",
    "ServerProfileConfig",
    "load_config",
    "save_config",
]
