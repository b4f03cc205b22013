"""Connection configuration for the coordinator store.

The connection descriptor (ConnectionConfig) is passed explicitly to the
database layer; nothing here is cached at module level. load_config()
reads it from a TOML file shaped like:

    [database]
    path = "coordinator.db"
    timeout = 5.0
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "coordinator.toml"
DEFAULT_DB_FILE = "coordinator.db"
DEFAULT_TIMEOUT = 5.0


@dataclass(frozen=True)
class ConnectionConfig:
    """Descriptor for reaching the backing database.

    Attributes:
        database: Path to the SQLite database file.
        timeout: Seconds to wait for a locked database before failing.
    """

    database: Path
    timeout: float = DEFAULT_TIMEOUT

    def __post_init__(self) -> None:
        if str(self.database) == ":memory:":
            msg = "In-memory databases are not supported: every session opens a new connection"
            raise ValueError(msg)
        if not isinstance(self.database, Path):
            object.__setattr__(self, "database", Path(self.database))
        if self.timeout < 0:
            msg = f"timeout must be non-negative, got {self.timeout}"
            raise ValueError(msg)


def load_config(config_file: Path) -> ConnectionConfig:
    """Load a ConnectionConfig from a TOML file.

    Args:
        config_file: Path to the TOML configuration file.

    Returns:
        Parsed ConnectionConfig. A relative database path is resolved
        against the directory holding the config file.

    Raises:
        FileNotFoundError: If the config file is missing.
        ValueError: On empty or invalid TOML, or invalid values.
    """
    if not config_file.exists():
        msg = f"Config file not found: {config_file}"
        raise FileNotFoundError(msg)

    content = config_file.read_text(encoding="utf-8")
    if not content.strip():
        msg = f"Config file is empty: {config_file}"
        raise ValueError(msg)

    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {config_file}: {exc}"
        raise ValueError(msg) from exc

    return _parse_config(data, config_file.resolve().parent)


def _parse_config(data: dict[str, object], base_dir: Path) -> ConnectionConfig:
    """Parse raw TOML data into a ConnectionConfig.

    Unknown fields are silently ignored.
    """
    database = data.get("database", {})
    if not isinstance(database, dict):
        msg = "[database] section must be a table"
        raise ValueError(msg)

    path = database.get("path", DEFAULT_DB_FILE)
    if not isinstance(path, str) or not path:
        msg = "database.path must be a non-empty string"
        raise ValueError(msg)

    timeout = database.get("timeout", DEFAULT_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        msg = "database.timeout must be a number"
        raise ValueError(msg)

    db_path = Path(path).expanduser()
    if path != ":memory:" and not db_path.is_absolute():
        db_path = base_dir / db_path

    return ConnectionConfig(database=db_path, timeout=float(timeout))


def resolve_config_for_cli(
    db: str | None = None,
    config_file: str | None = None,
) -> ConnectionConfig:
    """Resolve the connection descriptor for CLI commands.

    Resolution order:
        1. Explicit --db path
        2. Explicit --config file
        3. coordinator.toml in the current directory
        4. coordinator.db in the current directory

    Raises:
        FileNotFoundError: If an explicit --config file is missing.
        ValueError: If the configuration is invalid.
    """
    if db is not None:
        return ConnectionConfig(database=Path(db))

    if config_file is not None:
        return load_config(Path(config_file))

    discovered = Path.cwd() / CONFIG_FILE_NAME
    if discovered.is_file():
        logger.debug("Using discovered config: %s", discovered)
        return load_config(discovered)

    return ConnectionConfig(database=Path.cwd() / DEFAULT_DB_FILE)
