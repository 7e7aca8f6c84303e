"""Configuration management for rethinkdb-migrate."""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from rethinkdb_migrate.exceptions import ConfigError
from rethinkdb_migrate.types import TABLE_NAME_RE

DEFAULT_CONFIG_FILE = ".rethinkdb-migrate.yaml"

# Keys accepted in the config file besides the Config field names.
_FILE_KEY_ALIASES = {
    "migrationsDirectory": "migrations_dir",
    "migrations_directory": "migrations_dir",
    "migrationsTable": "migrations_table",
    "relativeTo": "relative_to",
    "authKey": "auth_key",
    "username": "user",
    "waitTimeout": "wait_timeout",
    "sslCaCerts": "ssl_ca_certs",
}


def load_config_file(path: Optional[Path] = None) -> dict[str, Any]:
    """Load settings from a YAML config file.

    Args:
        path: Explicit file to load. When None, ./.rethinkdb-migrate.yaml is
              used if it exists.

    Returns:
        Dict keyed by Config field name (empty if no file)

    Raises:
        ConfigError: If an explicit file is missing, the YAML is invalid,
                     or it contains unknown keys
    """
    if path is None:
        path = Path.cwd() / DEFAULT_CONFIG_FILE
        if not path.exists():
            return {}
    elif not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(Config)}
    result = {}
    unknown = []
    for key, value in data.items():
        name = _FILE_KEY_ALIASES.get(key, str(key).replace("-", "_"))
        if name not in known:
            unknown.append(str(key))
            continue
        result[name] = value

    if unknown:
        raise ConfigError(
            f"Unknown keys in config file {path}: {', '.join(sorted(unknown))}"
        )

    return result


def _to_int(value: Any, name: str) -> Optional[int]:
    if value is None or isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None


@dataclass
class Config:
    """Configuration for one migration invocation."""

    op: Optional[str] = None
    db: Optional[str] = None
    host: str = "localhost"
    port: int = 28015
    user: Optional[str] = None
    password: Optional[str] = None
    auth_key: Optional[str] = None
    ssl_ca_certs: Optional[str] = None
    timeout: int = 20
    migrations_dir: str = "migrations"
    relative_to: str = field(default_factory=os.getcwd)
    migrations_table: str = "_migrations"
    wait_timeout: Optional[int] = None

    @classmethod
    def from_env(
        cls,
        *,
        op: Optional[str] = None,
        db: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        auth_key: Optional[str] = None,
        ssl_ca_certs: Optional[str] = None,
        migrations_dir: Optional[str] = None,
        relative_to: Optional[str] = None,
        migrations_table: Optional[str] = None,
        wait_timeout: Optional[int] = None,
        config_file: Optional[Path] = None,
    ) -> "Config":
        """Load configuration from a YAML file and env vars, with CLI overrides.

        Priority (highest to lowest):
        1. Explicit parameters (CLI args)
        2. Environment variables
        3. Config file (--config, or ./.rethinkdb-migrate.yaml)
        4. Defaults
        """
        file_cfg = load_config_file(config_file)

        def resolve(explicit, env_key, cfg_key):
            if explicit is not None:
                return explicit
            env_val = os.environ.get(env_key)
            if env_val is not None:
                return env_val
            return file_cfg.get(cfg_key)

        defaults = cls()
        values = {
            "op": op if op is not None else file_cfg.get("op"),
            "db": resolve(db, "RETHINKDB_DB", "db"),
            "host": resolve(host, "RETHINKDB_HOST", "host"),
            "port": _to_int(resolve(port, "RETHINKDB_PORT", "port"), "port"),
            "user": resolve(user, "RETHINKDB_USER", "user"),
            "password": resolve(password, "RETHINKDB_PASSWORD", "password"),
            "auth_key": resolve(auth_key, "RETHINKDB_AUTH_KEY", "auth_key"),
            "ssl_ca_certs": resolve(
                ssl_ca_certs, "RETHINKDB_SSL_CA_CERTS", "ssl_ca_certs"
            ),
            "timeout": _to_int(file_cfg.get("timeout"), "timeout"),
            "migrations_dir": resolve(
                migrations_dir, "RETHINKDB_MIGRATE_DIR", "migrations_dir"
            ),
            "relative_to": resolve(
                relative_to, "RETHINKDB_MIGRATE_RELATIVE_TO", "relative_to"
            ),
            "migrations_table": resolve(
                migrations_table, "RETHINKDB_MIGRATE_TABLE", "migrations_table"
            ),
            "wait_timeout": _to_int(
                resolve(
                    wait_timeout, "RETHINKDB_MIGRATE_WAIT_TIMEOUT", "wait_timeout"
                ),
                "wait_timeout",
            ),
        }

        return cls(
            **{
                name: value if value is not None else getattr(defaults, name)
                for name, value in values.items()
            }
        )

    @property
    def migrations_path(self) -> Path:
        return (Path(self.relative_to) / self.migrations_dir).resolve()

    def connection_kwargs(self) -> dict[str, Any]:
        """Arguments for ``RethinkDB.connect``; unset values are omitted."""
        kwargs: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "timeout": self.timeout,
        }
        if self.user is not None:
            kwargs["user"] = self.user
        if self.password is not None:
            kwargs["password"] = self.password
        if self.auth_key is not None:
            kwargs["auth_key"] = self.auth_key
        if self.ssl_ca_certs is not None:
            kwargs["ssl"] = {"ca_certs": self.ssl_ca_certs}
        return kwargs

    def validate(self) -> None:
        """Validate everything a migration run needs.

        Raises:
            ConfigError: Listing every problem found.
        """
        problems = []
        if self.op not in ("up", "down"):
            problems.append(f"op must be 'up' or 'down', got {self.op!r}")
        if not self.db:
            problems.append("db (use --db or RETHINKDB_DB)")
        if not self.host:
            problems.append("host (use --host or RETHINKDB_HOST)")
        if not isinstance(self.port, int) or not 0 < self.port < 65536:
            problems.append(f"port must be between 1 and 65535, got {self.port!r}")
        if self.auth_key is not None and (
            self.user is not None or self.password is not None
        ):
            problems.append("auth_key cannot be combined with user/password")
        if not TABLE_NAME_RE.match(self.migrations_table or ""):
            problems.append(
                f"migrations_table must be alphanumeric or underscore, "
                f"got {self.migrations_table!r}"
            )
        if self.wait_timeout is not None and self.wait_timeout <= 0:
            problems.append(
                f"wait_timeout must be positive, got {self.wait_timeout!r}"
            )

        if problems:
            raise ConfigError("Invalid configuration:\n  - " + "\n  - ".join(problems))
